"""Stockroom API — main application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stockroom.core.config import settings
from stockroom.core.logging import configure_logging
from stockroom.api.routes import catalog, config, health, imports

configure_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "Inventory catalog import. Parse a supplier or practice-software "
        "export, map its columns, reconcile suppliers and categories, commit."
    ),
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router, tags=["health"])
app.include_router(config.router, prefix="/api/v1/config", tags=["config"])
app.include_router(catalog.router, prefix="/api/v1/catalog", tags=["catalog"])
app.include_router(imports.router, prefix="/api/v1/import", tags=["import"])
