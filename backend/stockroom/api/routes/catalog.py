"""Catalog API routes — suppliers, categories and items."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.catalog_fields import ItemKind
from stockroom.core.database import get_db
from stockroom.models.core import Item
from stockroom.schemas.catalog import CatalogEntity, CatalogItem, EntityCreate, PaginatedItems
from stockroom.services.catalog_store import SqlCatalogStore
from stockroom.services.errors import CatalogStoreError

router = APIRouter()


# ─── Suppliers ─────────────────────────────────────────────────

@router.get("/suppliers", response_model=list[CatalogEntity])
async def list_suppliers(db: AsyncSession = Depends(get_db)):
    return await SqlCatalogStore(db).list_suppliers()


@router.post("/suppliers", response_model=CatalogEntity, status_code=201)
async def create_supplier(
    payload: EntityCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a supplier. Name and code must be unique."""
    try:
        return await SqlCatalogStore(db).create_supplier(payload)
    except CatalogStoreError as e:
        raise HTTPException(status_code=409, detail=str(e))


# ─── Categories ────────────────────────────────────────────────

@router.get("/categories", response_model=list[CatalogEntity])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await SqlCatalogStore(db).list_categories()


@router.post("/categories", response_model=CatalogEntity, status_code=201)
async def create_category(
    payload: EntityCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a category. Name and code must be unique."""
    try:
        return await SqlCatalogStore(db).create_category(payload)
    except CatalogStoreError as e:
        raise HTTPException(status_code=409, detail=str(e))


# ─── Items ─────────────────────────────────────────────────────

@router.get("/items", response_model=PaginatedItems)
async def list_items(
    item_type: ItemKind | None = Query(None, description="Filter by item kind"),
    search: str | None = Query(None, description="Search name or SKU"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List catalog items with optional kind filter and name/SKU search."""
    query = select(Item)
    count_query = select(func.count(Item.id))

    if item_type:
        query = query.where(Item.item_type == item_type.value)
        count_query = count_query.where(Item.item_type == item_type.value)

    if search:
        pattern = f"%{search.lower()}%"
        condition = or_(func.lower(Item.name).like(pattern), func.lower(Item.sku).like(pattern))
        query = query.where(condition)
        count_query = count_query.where(condition)

    total = (await db.execute(count_query)).scalar()
    query = query.order_by(Item.name).offset(offset).limit(limit)
    result = await db.execute(query)
    items = result.scalars().all()

    return PaginatedItems(
        items=[CatalogItem.model_validate(i) for i in items],
        total=total,
        limit=limit,
        offset=offset,
    )
