"""
In-memory CatalogStore for service-level tests.

Enforces the same uniqueness rules as the database (entity name and
code) and can be told to fail specific writes.
"""

import uuid
from datetime import datetime, timezone

from stockroom.schemas.catalog import CatalogEntity, CatalogItem, EntityCreate, ItemData
from stockroom.services.errors import CatalogStoreError


class MemoryCatalogStore:
    def __init__(
        self,
        suppliers: list[str] | None = None,
        categories: list[str] | None = None,
    ):
        self.suppliers: list[CatalogEntity] = []
        self.categories: list[CatalogEntity] = []
        self.items: dict[uuid.UUID, CatalogItem] = {}
        self.fail_item_names: set[str] = set()
        self.fail_entity_creates = False
        self.calls: list[str] = []
        for name in suppliers or []:
            self._add(self.suppliers, EntityCreate(name=name, code=name.upper().replace(" ", "")))
        for name in categories or []:
            self._add(self.categories, EntityCreate(name=name, code=name.upper().replace(" ", "")))

    def _add(self, table: list[CatalogEntity], data: EntityCreate) -> CatalogEntity:
        if self.fail_entity_creates:
            raise CatalogStoreError("store unavailable")
        if any(e.name == data.name or e.code == data.code for e in table):
            raise CatalogStoreError(f"duplicate name or code: {data.name}/{data.code}")
        entity = CatalogEntity(
            id=uuid.uuid4(),
            name=data.name,
            code=data.code,
            color=data.color,
            description=data.description,
        )
        table.append(entity)
        return entity

    def supplier(self, name: str) -> CatalogEntity:
        return next(e for e in self.suppliers if e.name == name)

    def category(self, name: str) -> CatalogEntity:
        return next(e for e in self.categories if e.name == name)

    # ─── CatalogStore ─────────────────────────────────────────

    async def list_suppliers(self) -> list[CatalogEntity]:
        self.calls.append("list_suppliers")
        return list(self.suppliers)

    async def list_categories(self) -> list[CatalogEntity]:
        self.calls.append("list_categories")
        return list(self.categories)

    async def create_supplier(self, data: EntityCreate) -> CatalogEntity:
        self.calls.append("create_supplier")
        return self._add(self.suppliers, data)

    async def create_category(self, data: EntityCreate) -> CatalogEntity:
        self.calls.append("create_category")
        return self._add(self.categories, data)

    async def list_items(self) -> list[CatalogItem]:
        self.calls.append("list_items")
        return list(self.items.values())

    def _to_item(self, item_id: uuid.UUID, data: ItemData, created_at: datetime | None = None) -> CatalogItem:
        now = datetime.now(timezone.utc)
        return CatalogItem(
            id=item_id,
            created_at=created_at or now,
            updated_at=now,
            **{**data.model_dump(), "item_type": data.item_type.value},
        )

    async def create_item(self, data: ItemData) -> CatalogItem:
        self.calls.append("create_item")
        if data.name in self.fail_item_names:
            raise CatalogStoreError(f"write rejected for '{data.name}'")
        item = self._to_item(uuid.uuid4(), data)
        self.items[item.id] = item
        return item

    async def update_item(self, item_id: uuid.UUID, data: ItemData) -> CatalogItem:
        self.calls.append("update_item")
        existing = self.items.get(item_id)
        if existing is None:
            raise CatalogStoreError(f"Item not found: {item_id}")
        merged = ItemData(**{
            **existing.model_dump(include=set(ItemData.model_fields)),
            **data.model_dump(exclude_none=True),
        })
        item = self._to_item(item_id, merged, created_at=existing.created_at)
        self.items[item_id] = item
        return item
