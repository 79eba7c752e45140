"""
Seed data script — default suppliers and categories.

A fresh catalog starts with the suppliers and categories a podiatry
practice uses most, so the first import has canonical names to match
against. Each kind is only seeded when its table is empty.

Usage:
  python -m scripts.seed_data

  Or import and call seed_defaults() with a database session.
"""

import asyncio

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Ensure models are imported so Base.metadata is populated
from stockroom.models.core import Category, Supplier
from stockroom.core.config import settings
from stockroom.core.logging import configure_logging

logger = structlog.get_logger()


DEFAULT_SUPPLIERS = [
    {"name": "Temu", "code": "TEMU", "color": "#FF6B35"},
    {"name": "Transpharm", "code": "TRANSPHARM", "color": "#17a2b8"},
    {"name": "Medis", "code": "MEDIS", "color": "#28a745"},
    {"name": "Other", "code": "OTHER", "color": "#6c757d"},
]

DEFAULT_CATEGORIES = [
    {"name": "Orthotic Materials", "code": "ORTHOTIC_MATERIALS", "color": "#E91E63",
     "description": "Materials for making orthotics"},
    {"name": "Footwear", "code": "FOOTWEAR", "color": "#9C27B0",
     "description": "Therapeutic and orthopedic footwear"},
    {"name": "Instruments", "code": "INSTRUMENTS", "color": "#3F51B5",
     "description": "Medical instruments and tools"},
    {"name": "Consumables", "code": "CONSUMABLES", "color": "#4CAF50",
     "description": "Disposable medical supplies"},
    {"name": "Equipment", "code": "EQUIPMENT", "color": "#FF9800",
     "description": "Medical equipment and devices"},
    {"name": "Courier & Shipping", "code": "COURIER_SHIPPING", "color": "#795548",
     "description": "Delivery fees and shipping costs"},
    {"name": "Other", "code": "OTHER", "color": "#6c757d",
     "description": "Miscellaneous items"},
]


# ─── Seed function ─────────────────────────────────────────────

async def seed_defaults(db: AsyncSession) -> dict[str, int]:
    """
    Insert the default suppliers and categories into empty tables.
    Returns how many of each were created.
    """
    created = {"suppliers": 0, "categories": 0}

    supplier_count = (await db.execute(select(func.count(Supplier.id)))).scalar()
    if not supplier_count:
        for data in DEFAULT_SUPPLIERS:
            db.add(Supplier(is_default=True, **data))
        created["suppliers"] = len(DEFAULT_SUPPLIERS)

    category_count = (await db.execute(select(func.count(Category.id)))).scalar()
    if not category_count:
        for data in DEFAULT_CATEGORIES:
            db.add(Category(is_default=True, **data))
        created["categories"] = len(DEFAULT_CATEGORIES)

    await db.flush()
    logger.info("seed_defaults", **created)
    return created


# ─── CLI entry point ───────────────────────────────────────────

async def main():
    configure_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        async with session.begin():
            await seed_defaults(session)

    await engine.dispose()
    logger.info("seed_complete")


if __name__ == "__main__":
    asyncio.run(main())
