"""Pydantic schemas for catalog entities and items."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from stockroom.core.catalog_fields import ItemKind


class EntityCreate(BaseModel):
    """Schema for creating a supplier or category."""
    name: str = Field(..., min_length=1, description="Display name, unique per kind")
    code: str = Field(..., min_length=1, max_length=20, description="Short unique code")
    color: str | None = Field(None, description="Badge color, e.g. '#2196F3'")
    description: str | None = None
    website: str | None = Field(None, description="Suppliers only")
    is_default: bool = False


class CatalogEntity(BaseModel):
    """A canonical supplier or category."""
    id: uuid.UUID
    name: str
    code: str
    color: str | None = None
    description: str | None = None

    model_config = {"from_attributes": True}


class ItemData(BaseModel):
    """Fields an import writes onto a catalog item. Unset fields are left alone on update."""
    name: str
    sku: str | None = None
    description: str | None = None
    item_type: ItemKind = ItemKind.RESELLING
    category_id: uuid.UUID | None = None
    supplier_id: uuid.UUID | None = None
    quantity: float | None = None
    cost_price: float | None = None
    selling_price: float | None = None
    low_stock_threshold: float | None = None
    location: str | None = None
    notes: str | None = None


class CatalogItem(BaseModel):
    """Schema for a catalog item in API responses."""
    id: uuid.UUID
    name: str
    sku: str | None
    description: str | None
    item_type: str
    category_id: uuid.UUID | None
    supplier_id: uuid.UUID | None
    quantity: float | None
    cost_price: float | None
    selling_price: float | None
    low_stock_threshold: float | None
    location: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaginatedItems(BaseModel):
    """Paginated list of items with total count."""
    items: list[CatalogItem]
    total: int
    limit: int
    offset: int
