"""
Catalog Store — the persistence collaborator of the import pipeline.

The pipeline only depends on the CatalogStore protocol. SqlCatalogStore
is the SQLAlchemy implementation used by the API; every write commits on
its own so a failed row never rolls back rows written before it.
"""

import uuid
from typing import Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.models.core import Category, Item, Supplier
from stockroom.schemas.catalog import CatalogEntity, CatalogItem, EntityCreate, ItemData
from stockroom.services.errors import CatalogStoreError

logger = structlog.get_logger()


class CatalogStore(Protocol):
    """Entity lookup / insert / update operations the pipeline consumes."""

    async def list_suppliers(self) -> list[CatalogEntity]: ...

    async def list_categories(self) -> list[CatalogEntity]: ...

    async def create_supplier(self, data: EntityCreate) -> CatalogEntity: ...

    async def create_category(self, data: EntityCreate) -> CatalogEntity: ...

    async def list_items(self) -> list[CatalogItem]: ...

    async def create_item(self, data: ItemData) -> CatalogItem: ...

    async def update_item(self, item_id: uuid.UUID, data: ItemData) -> CatalogItem: ...


class SqlCatalogStore:
    """CatalogStore over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fail(self, action: str, error: SQLAlchemyError) -> CatalogStoreError:
        await self.db.rollback()
        logger.warning("catalog_write_failed", action=action, error=str(error))
        return CatalogStoreError(f"Failed to {action}: {error.__class__.__name__}")

    async def _commit(self, action: str, refresh: Item | None = None) -> None:
        """Flush and commit, then reload `refresh`; any database error becomes CatalogStoreError."""
        try:
            await self.db.flush()
            await self.db.commit()
            if refresh is not None:
                await self.db.refresh(refresh)
        except SQLAlchemyError as e:
            raise await self._fail(action, e) from e

    # ─── Entities ─────────────────────────────────────────────

    async def list_suppliers(self) -> list[CatalogEntity]:
        result = await self.db.execute(select(Supplier).order_by(Supplier.created_at, Supplier.name))
        return [CatalogEntity.model_validate(s) for s in result.scalars().all()]

    async def list_categories(self) -> list[CatalogEntity]:
        result = await self.db.execute(select(Category).order_by(Category.created_at, Category.name))
        return [CatalogEntity.model_validate(c) for c in result.scalars().all()]

    async def create_supplier(self, data: EntityCreate) -> CatalogEntity:
        supplier = Supplier(
            name=data.name,
            code=data.code,
            color=data.color,
            description=data.description,
            website=data.website,
            is_default=data.is_default,
        )
        self.db.add(supplier)
        await self._commit(f"add supplier '{data.name}' - name or code may already exist")
        return CatalogEntity.model_validate(supplier)

    async def create_category(self, data: EntityCreate) -> CatalogEntity:
        category = Category(
            name=data.name,
            code=data.code,
            color=data.color,
            description=data.description,
            is_default=data.is_default,
        )
        self.db.add(category)
        await self._commit(f"add category '{data.name}' - name or code may already exist")
        return CatalogEntity.model_validate(category)

    # ─── Items ────────────────────────────────────────────────

    async def list_items(self) -> list[CatalogItem]:
        result = await self.db.execute(select(Item).order_by(Item.created_at))
        return [CatalogItem.model_validate(i) for i in result.scalars().all()]

    async def create_item(self, data: ItemData) -> CatalogItem:
        item = Item(**data.model_dump(mode="python", exclude_none=True))
        item.item_type = data.item_type.value
        self.db.add(item)
        await self._commit(f"add item '{data.name}'", refresh=item)
        return CatalogItem.model_validate(item)

    async def update_item(self, item_id: uuid.UUID, data: ItemData) -> CatalogItem:
        try:
            result = await self.db.execute(select(Item).where(Item.id == item_id))
        except SQLAlchemyError as e:
            raise await self._fail(f"load item {item_id}", e) from e
        item = result.scalar_one_or_none()
        if item is None:
            raise CatalogStoreError(f"Item not found: {item_id}")

        # Merge semantics: only fields carried by this import are overwritten
        for key, value in data.model_dump(mode="python", exclude_none=True).items():
            setattr(item, key, value)
        item.item_type = data.item_type.value
        await self._commit(f"update item '{data.name}'", refresh=item)
        return CatalogItem.model_validate(item)
