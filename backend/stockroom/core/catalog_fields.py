"""
Catalog field configuration.

The catalog schema an import maps onto is application configuration:
adding a mappable field is an entry here plus a column on the item model.

Each field defines:
  - display metadata (label, description)
  - data type (string, number, entity reference, enum)
  - header synonyms used by the mapping heuristic
  - whether the field must be mapped before the import can advance

Also holds the item-kind enumeration, the keyword sets used for kind
inference, the entity badge palette, and the built-in import profiles.
"""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class CatalogFieldDef:
    """Definition of a catalog field an import column can bind to."""
    name: str
    label: str
    data_type: str = "string"  # string, number, entity, enum
    required: bool = False
    synonyms: list[str] = field(default_factory=list)
    description: str = ""


class ItemKind(str, Enum):
    RESELLING = "reselling"
    CONSUMABLE = "consumable"
    OFFICE_EQUIPMENT = "office_equipment"


class EntityKind(str, Enum):
    SUPPLIER = "supplier"
    CATEGORY = "category"


# ─── Field Registry ────────────────────────────────────────────

CATALOG_FIELDS: dict[str, CatalogFieldDef] = {}


def register_field(config: CatalogFieldDef) -> CatalogFieldDef:
    """Register a catalog field. Registration order is mapping order."""
    CATALOG_FIELDS[config.name] = config
    return config


def get_field(name: str) -> CatalogFieldDef | None:
    """Look up a catalog field by name."""
    return CATALOG_FIELDS.get(name)


def get_required_fields() -> list[str]:
    return [f.name for f in CATALOG_FIELDS.values() if f.required]


def get_numeric_fields() -> list[str]:
    return [f.name for f in CATALOG_FIELDS.values() if f.data_type == "number"]


register_field(CatalogFieldDef(
    name="name",
    label="Item Name",
    required=True,
    synonyms=["name", "item name", "product name", "title"],
    description="The name of the item",
))

register_field(CatalogFieldDef(
    name="sku",
    label="SKU/Code",
    synonyms=["sku", "code", "item code", "product code", "barcode"],
    description="Stock keeping unit or item code",
))

register_field(CatalogFieldDef(
    name="description",
    label="Description",
    synonyms=["description", "desc", "details", "notes"],
    description="Item description",
))

register_field(CatalogFieldDef(
    name="category",
    label="Category",
    data_type="entity",
    synonyms=["category", "type", "class", "group"],
    description="Item category",
))

register_field(CatalogFieldDef(
    name="supplier",
    label="Supplier",
    data_type="entity",
    synonyms=["supplier", "vendor", "manufacturer"],
    description="Default supplier",
))

register_field(CatalogFieldDef(
    name="quantity",
    label="Current Stock",
    data_type="number",
    synonyms=["quantity", "qty", "stock", "balance", "amount"],
    description="Current quantity in stock",
))

register_field(CatalogFieldDef(
    name="cost_price",
    label="Cost Price",
    data_type="number",
    synonyms=["cost", "cost price", "unit cost", "price"],
    description="Cost price per unit",
))

register_field(CatalogFieldDef(
    name="selling_price",
    label="Selling Price",
    data_type="number",
    synonyms=["selling price", "sale price", "retail price"],
    description="Selling price per unit",
))

register_field(CatalogFieldDef(
    name="low_stock_threshold",
    label="Low Stock Threshold",
    data_type="number",
    synonyms=["threshold", "min stock", "minimum"],
    description="Alert when stock falls below this number",
))

register_field(CatalogFieldDef(
    name="location",
    label="Location",
    synonyms=["location", "warehouse", "bin", "shelf"],
    description="Storage location",
))

register_field(CatalogFieldDef(
    name="notes",
    label="Notes",
    synonyms=["notes", "comments", "remarks"],
    description="Additional notes",
))

register_field(CatalogFieldDef(
    name="item_type",
    label="Item Type",
    data_type="enum",
    synonyms=["item type", "kind"],
    description="reselling, consumable or office_equipment",
))


# Entity-reference fields, keyed by the entity kind they resolve to
ENTITY_FIELDS: dict[EntityKind, str] = {
    EntityKind.SUPPLIER: "supplier",
    EntityKind.CATEGORY: "category",
}


# ─── Item Kinds ────────────────────────────────────────────────

ITEM_KIND_LABELS: dict[ItemKind, str] = {
    ItemKind.RESELLING: "Reselling",
    ItemKind.CONSUMABLE: "Consumables",
    ItemKind.OFFICE_EQUIPMENT: "Office Equipment",
}

# Lower-cased spellings accepted in an item-type column
ITEM_KIND_ALIASES: dict[str, ItemKind] = {
    "reselling": ItemKind.RESELLING,
    "resale": ItemKind.RESELLING,
    "consumable": ItemKind.CONSUMABLE,
    "consumables": ItemKind.CONSUMABLE,
    "office_equipment": ItemKind.OFFICE_EQUIPMENT,
    "office equipment": ItemKind.OFFICE_EQUIPMENT,
    "equipment": ItemKind.OFFICE_EQUIPMENT,
}

CONSUMABLE_KEYWORDS = frozenset({
    "consumable", "consumables", "supplies", "supply", "disposable",
    "gloves", "bandage", "bandages", "dressing", "dressings", "gauze",
    "syringe", "syringes", "swab", "swabs", "tape", "wipes", "cleaning",
    "sanitizer", "paper", "stationery",
})

EQUIPMENT_KEYWORDS = frozenset({
    "equipment", "furniture", "computer", "computers", "printer", "printers",
    "chair", "chairs", "desk", "desks", "device", "devices", "machine",
    "machines", "monitor", "monitors", "electronics", "hardware", "appliance",
})


# ─── Entity Badges ─────────────────────────────────────────────

BADGE_PALETTE: list[str] = [
    "#E91E63", "#9C27B0", "#673AB7", "#3F51B5",
    "#2196F3", "#03A9F4", "#00BCD4", "#009688",
    "#4CAF50", "#8BC34A", "#CDDC39", "#FFC107",
    "#FF9800", "#FF5722", "#795548", "#607D8B",
]


# ─── Built-in Import Profiles ──────────────────────────────────

BUILTIN_PROFILES: dict[str, dict] = {
    "halaxy": {
        "name": "Halaxy Medical Practice",
        "source_format": "delimited",
        "field_mappings": {
            "name": "Name",
            "sku": "Code",
            "supplier": "Supplier",
            "quantity": "Balance",
            "category": "Type",
            "cost_price": "Unit Cost",
        },
        "default_item_kind": ItemKind.CONSUMABLE.value,
        "description": "Default profile for importing from Halaxy medical practice software",
    },
}
