"""
Row validation.

Turns a MappedRow into an ItemDraft or raises RowValidationError. Checks
run in column order so the operator sees the first problem on a row:

  - name present after trimming
  - numeric fields parse (currency mark and thousands separators allowed)
    and are not negative
  - an explicit item type is one of the known kinds (aliases accepted)

When the row carries no item type, the kind is inferred from category
keywords (if enabled) and otherwise falls back to the import default.
"""

import re
from dataclasses import asdict, dataclass
from typing import Sequence

from stockroom.core.catalog_fields import (
    CONSUMABLE_KEYWORDS,
    EQUIPMENT_KEYWORDS,
    ITEM_KIND_ALIASES,
    ItemKind,
    get_field,
    get_numeric_fields,
)
from stockroom.schemas.catalog import ItemData
from stockroom.schemas.imports import ImportOptions, PreviewRow
from stockroom.services.errors import RowValidationError
from stockroom.services.field_mapper import MAPPED_ROW_FIELDS, MappedRow
from stockroom.services.normalization import normalize_identifier, parse_amount

_WORD = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class ItemDraft:
    """A validated row, still carrying supplier/category as import literals."""
    row_index: int
    name: str
    item_type: ItemKind
    sku: str | None = None
    description: str | None = None
    category: str | None = None
    supplier: str | None = None
    quantity: float | None = None
    cost_price: float | None = None
    selling_price: float | None = None
    low_stock_threshold: float | None = None
    location: str | None = None
    notes: str | None = None

    def to_item_data(self, category_id=None, supplier_id=None) -> ItemData:
        return ItemData(
            name=self.name,
            sku=self.sku,
            description=self.description,
            item_type=self.item_type,
            category_id=category_id,
            supplier_id=supplier_id,
            quantity=self.quantity,
            cost_price=self.cost_price,
            selling_price=self.selling_price,
            low_stock_threshold=self.low_stock_threshold,
            location=self.location,
            notes=self.notes,
        )


def is_blank(row: MappedRow) -> bool:
    """True when no mapped column carries a value. Such rows are skipped."""
    return not any(row.get(f) for f in MAPPED_ROW_FIELDS)


def infer_item_kind(category: str | None, default: ItemKind) -> ItemKind:
    """Guess the item kind from category words; consumable keywords win."""
    if not category:
        return default
    words = set(_WORD.findall(category.lower()))
    if words & CONSUMABLE_KEYWORDS:
        return ItemKind.CONSUMABLE
    if words & EQUIPMENT_KEYWORDS:
        return ItemKind.OFFICE_EQUIPMENT
    return default


def _optional(value: str | None) -> str | None:
    if not value:
        return None
    return value.strip() or None


def validate_row(row: MappedRow, options: ImportOptions) -> ItemDraft:
    name = (row.name or "").strip()
    if not name:
        raise RowValidationError("Item name is required", row.row_index, row.label)

    amounts: dict[str, float | None] = {}
    for field_name in get_numeric_fields():
        raw = row.get(field_name)
        if not raw:
            amounts[field_name] = None
            continue
        label = get_field(field_name).label
        amount = parse_amount(raw)
        if amount is None:
            raise RowValidationError(
                f"{label} must be a number (got '{raw}')", row.row_index, row.label,
            )
        if amount < 0:
            raise RowValidationError(
                f"{label} cannot be negative (got '{raw}')", row.row_index, row.label,
            )
        amounts[field_name] = float(amount)

    if row.item_type:
        kind = ITEM_KIND_ALIASES.get(normalize_identifier(row.item_type))
        if kind is None:
            allowed = ", ".join(k.value for k in ItemKind)
            raise RowValidationError(
                f"Unknown item type '{row.item_type}' (expected one of {allowed})",
                row.row_index,
                row.label,
            )
    elif options.auto_detect_kind:
        kind = infer_item_kind(row.category, options.default_item_kind)
    else:
        kind = options.default_item_kind

    return ItemDraft(
        row_index=row.row_index,
        name=name,
        item_type=kind,
        sku=_optional(row.sku),
        description=_optional(row.description),
        category=_optional(row.category),
        supplier=_optional(row.supplier),
        location=_optional(row.location),
        notes=_optional(row.notes),
        **amounts,
    )


def preview_rows(
    rows: Sequence[MappedRow],
    options: ImportOptions,
    limit: int = 10,
) -> list[PreviewRow]:
    """How the first `limit` rows would be committed, or why they would not be."""
    preview = []
    for row in rows[:limit]:
        if is_blank(row):
            preview.append(PreviewRow(row_index=row.row_index, error="Blank row, will be skipped"))
            continue
        try:
            draft = validate_row(row, options)
        except RowValidationError as e:
            preview.append(PreviewRow(row_index=row.row_index, error=e.message))
            continue
        item = asdict(draft)
        item["item_type"] = draft.item_type.value
        preview.append(PreviewRow(row_index=row.row_index, item=item))
    return preview
