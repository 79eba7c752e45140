"""Configuration API routes — catalog fields and item kinds."""

from fastapi import APIRouter

from stockroom.core.catalog_fields import CATALOG_FIELDS, ITEM_KIND_LABELS

router = APIRouter()


# ─── Catalog Fields ────────────────────────────────────────────

@router.get("/fields")
async def get_catalog_fields():
    """
    Get the catalog fields an import column can be mapped to.

    Returned in mapping order with the header synonyms used to suggest a
    mapping, so the UI can render the mapping step without hard-coding it.
    """
    return [
        {
            "name": f.name,
            "label": f.label,
            "data_type": f.data_type,
            "required": f.required,
            "synonyms": f.synonyms,
            "description": f.description,
        }
        for f in CATALOG_FIELDS.values()
    ]


# ─── Item Kinds ────────────────────────────────────────────────

@router.get("/item-kinds")
async def get_item_kinds():
    """List the item kinds an import can assign."""
    return [
        {"value": kind.value, "label": label}
        for kind, label in ITEM_KIND_LABELS.items()
    ]
