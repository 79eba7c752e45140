"""
Field mapping: binds import columns to catalog fields.

A FieldMapping is catalog_field → source header. Mappings come from a
saved ImportProfile or from header heuristics, and the operator may edit
either before advancing. The only blocking rule is that `name` is mapped
to a header actually present in the file.
"""

from dataclasses import dataclass, fields

from stockroom.core.catalog_fields import CATALOG_FIELDS, get_required_fields
from stockroom.schemas.imports import ImportProfile, ParsedTable
from stockroom.services.errors import MappingError

FieldMapping = dict[str, str]


@dataclass(frozen=True)
class MappedRow:
    """
    One import row projected onto the catalog schema.

    Only declared catalog fields exist; a field is None when it is not
    mapped and "" when it is mapped but the cell is blank.
    """
    row_index: int
    name: str | None = None
    sku: str | None = None
    description: str | None = None
    category: str | None = None
    supplier: str | None = None
    quantity: str | None = None
    cost_price: str | None = None
    selling_price: str | None = None
    low_stock_threshold: str | None = None
    location: str | None = None
    notes: str | None = None
    item_type: str | None = None

    def get(self, field_name: str) -> str | None:
        return getattr(self, field_name)

    @property
    def label(self) -> str:
        """Name for error messages; falls back to the 1-indexed row."""
        return (self.name or "").strip() or f"Row {self.row_index + 1}"


MAPPED_ROW_FIELDS = {f.name for f in fields(MappedRow)} - {"row_index"}


def _find_header(headers: list[str], column: str) -> str | None:
    """Exact header match first, then case-insensitive."""
    if column in headers:
        return column
    lower_map = {h.lower(): h for h in headers}
    return lower_map.get(column.strip().lower())


def suggest_mapping(headers: list[str]) -> FieldMapping:
    """
    Guess a mapping from header names.

    For each catalog field, synonyms are tried in order and the first
    header that contains the synonym (or is contained by it) wins. A
    header may be suggested for more than one field. Enum fields only
    match headers containing a synonym, so a bare "Type" column is left
    to the category field.
    """
    mapping: FieldMapping = {}
    lowered = [(h, h.lower()) for h in headers]
    for field_def in CATALOG_FIELDS.values():
        either_way = field_def.data_type != "enum"
        for synonym in field_def.synonyms:
            match = next(
                (h for h, low in lowered if synonym in low or (either_way and low in synonym)),
                None,
            )
            if match:
                mapping[field_def.name] = match
                break
    return mapping


def apply_profile(profile: ImportProfile, headers: list[str]) -> FieldMapping:
    """Bind a saved profile to this file's headers, dropping stale bindings."""
    mapping: FieldMapping = {}
    for field_name, column in profile.field_mappings.items():
        if field_name not in CATALOG_FIELDS or not column:
            continue
        header = _find_header(headers, column)
        if header is not None:
            mapping[field_name] = header
    return mapping


def validate_mapping(mapping: FieldMapping, headers: list[str]) -> bool:
    """True iff every required field is mapped to a present header."""
    return all(
        mapping.get(required) in headers
        for required in get_required_fields()
    )


def require_valid_mapping(mapping: FieldMapping, headers: list[str]) -> None:
    """Raise MappingError unless the mapping can advance to conflict detection."""
    unknown = sorted(f for f in mapping if f not in CATALOG_FIELDS)
    if unknown:
        raise MappingError(
            f"Unknown catalog field(s): {', '.join(unknown)}",
            unknown=unknown,
        )

    absent = sorted(f for f, column in mapping.items() if column and column not in headers)
    if absent:
        raise MappingError(
            f"Field(s) mapped to columns not in the file: {', '.join(absent)}",
            missing=absent,
        )

    missing = [f for f in get_required_fields() if not mapping.get(f)]
    if missing:
        raise MappingError(
            "Please map at least the Name field",
            missing=missing,
        )


def map_rows(table: ParsedTable, mapping: FieldMapping) -> list[MappedRow]:
    """Project every parsed row onto the catalog schema."""
    bound = {f: column for f, column in mapping.items() if column}
    unknown = set(bound) - MAPPED_ROW_FIELDS
    if unknown:
        raise MappingError(
            f"Unknown catalog field(s): {', '.join(sorted(unknown))}",
            unknown=sorted(unknown),
        )
    return [
        MappedRow(
            row_index=idx,
            **{f: row.get(column, "").strip() for f, column in bound.items()},
        )
        for idx, row in enumerate(table.rows)
    ]
