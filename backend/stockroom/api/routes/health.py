"""Health check route."""

from fastapi import APIRouter

from stockroom.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": settings.APP_NAME, "version": settings.APP_VERSION}
