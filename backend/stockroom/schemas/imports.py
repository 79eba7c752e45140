"""Pydantic schemas for the import reconciliation pipeline."""

import uuid
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, computed_field

from stockroom.core.catalog_fields import EntityKind, ItemKind


# ─── Profiles & Parsed Input ──────────────────────────────────

class SourceFormat(str, Enum):
    DELIMITED = "delimited"
    SPREADSHEET = "spreadsheet"


class ImportProfile(BaseModel):
    """
    A saved column-to-field mapping.

    Once configured for a first import, later imports from the same
    system reuse it; bindings to columns missing from a new file are
    dropped when the profile is applied.
    """
    model_config = {"frozen": True}

    name: str = Field(..., min_length=1)
    source_format: SourceFormat = SourceFormat.DELIMITED
    field_mappings: dict[str, str] = Field(
        default_factory=dict,
        description="Mapping of catalog_field → source column header",
    )
    default_item_kind: ItemKind = ItemKind.RESELLING
    description: str = ""


class ParsedTable(BaseModel):
    """Header row plus string-keyed row records. Every row has every header."""
    headers: list[str]
    rows: list[dict[str, str]]

    @computed_field
    @property
    def row_count(self) -> int:
        return len(self.rows)


class ImportOptions(BaseModel):
    """Operator choices that shape validation and commit."""
    default_item_kind: ItemKind = ItemKind.RESELLING
    update_existing: bool = False
    auto_detect_kind: bool = False


# ─── Conflicts ────────────────────────────────────────────────

class ConflictStatus(str, Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    RESOLVED = "resolved"


class Suggestion(BaseModel):
    """A canonical entity ranked against an import value."""
    existing_id: uuid.UUID
    existing_name: str
    existing_code: str | None = None
    score: float = Field(..., ge=0.0, le=1.0)


class ConflictVariant(BaseModel):
    """One literal value folded into a grouped conflict."""
    value: str
    item_count: int
    affected_row_indices: list[int] = Field(default_factory=list)
    sample_item_names: list[str] = Field(default_factory=list)


class ConflictCandidate(BaseModel):
    """An import value with no canonical match."""
    conflict_type: Literal["candidate"] = "candidate"
    id: str
    entity_kind: EntityKind
    import_value: str
    item_count: int
    affected_row_indices: list[int] = Field(default_factory=list)
    sample_item_names: list[str] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)
    status: ConflictStatus = ConflictStatus.PENDING

    @property
    def values(self) -> list[str]:
        return [self.import_value]

    def as_variant(self) -> ConflictVariant:
        return ConflictVariant(
            value=self.import_value,
            item_count=self.item_count,
            affected_row_indices=list(self.affected_row_indices),
            sample_item_names=list(self.sample_item_names),
        )


class GroupedConflict(BaseModel):
    """Near-duplicate import values answered with a single decision."""
    conflict_type: Literal["group"] = "group"
    id: str
    entity_kind: EntityKind
    variants: list[ConflictVariant]
    aggregate_item_count: int
    suggestions: list[Suggestion] = Field(default_factory=list)
    status: ConflictStatus = ConflictStatus.PENDING

    @property
    def primary_value(self) -> str:
        return self.variants[0].value

    @property
    def values(self) -> list[str]:
        return [v.value for v in self.variants]


Conflict = Annotated[
    Union[ConflictCandidate, GroupedConflict],
    Field(discriminator="conflict_type"),
]


# ─── Resolution ───────────────────────────────────────────────

class EntityRef(BaseModel):
    """A canonical supplier or category an import value resolves to."""
    id: uuid.UUID
    name: str
    code: str | None = None
    created: bool = False


class ResolutionMap(BaseModel):
    """
    Import-time literal → canonical entity, one table per entity kind.

    Never holds an entry for an unresolved conflict.
    """
    suppliers: dict[str, EntityRef] = Field(default_factory=dict)
    categories: dict[str, EntityRef] = Field(default_factory=dict)

    def _table(self, kind: EntityKind) -> dict[str, EntityRef]:
        return self.suppliers if kind == EntityKind.SUPPLIER else self.categories

    def set(self, kind: EntityKind, value: str, ref: EntityRef) -> None:
        self._table(kind)[value] = ref

    def get(self, kind: EntityKind, value: str) -> EntityRef | None:
        return self._table(kind).get(value)

    def contains(self, kind: EntityKind, value: str) -> bool:
        return value in self._table(kind)

    def size(self) -> int:
        return len(self.suppliers) + len(self.categories)


class ResolutionAction(str, Enum):
    MAP = "map"
    CREATE = "create"
    SPLIT = "split"


class ResolutionDecision(BaseModel):
    """An operator decision for one conflict."""
    action: ResolutionAction
    entity_id: uuid.UUID | None = Field(
        None, description="Target entity for action='map'",
    )
    name: str | None = Field(None, description="Override name for action='create'")
    code: str | None = Field(None, description="Override code for action='create'")
    attributes: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra entity attributes for action='create' (color, description, website)",
    )


class ResolutionSummary(BaseModel):
    """Outcome of applying a decision to a conflict."""
    conflict_id: str
    action: ResolutionAction
    entity: EntityRef | None = None
    values: list[str] = Field(default_factory=list)
    created: bool = False
    ignored: bool = False
    split_into: list[str] = Field(default_factory=list)


# ─── Run Statistics ───────────────────────────────────────────

class RowError(BaseModel):
    """A row-scoped failure recorded during commit."""
    row_index: int
    item_label: str
    message: str


class ImportRunStats(BaseModel):
    """Counts produced once per commit."""
    model_config = {"frozen": True}

    imported: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[RowError] = Field(default_factory=list)
    processed: int = 0
    total: int = 0
    cancelled: bool = False

    @computed_field
    @property
    def error_count(self) -> int:
        return len(self.errors)

    def error_summary(self, limit: int = 10) -> list[str]:
        """Human-readable error lines, head-truncated to `limit`."""
        lines = [
            f"Row {e.row_index + 1} ({e.item_label}): {e.message}"
            for e in self.errors[:limit]
        ]
        remainder = len(self.errors) - limit
        if remainder > 0:
            lines.append(f"...and {remainder} more error(s)")
        return lines


# ─── Session API ──────────────────────────────────────────────

class PreviewRow(BaseModel):
    """One row as it would be committed, or why it would not be."""
    row_index: int
    item: dict[str, Any] | None = None
    error: str | None = None


class MappingRequest(BaseModel):
    """Body for PUT /import/sessions/{id}/mapping."""
    field_mapping: dict[str, str]
    options: ImportOptions = Field(default_factory=ImportOptions)
    save_profile_as: str | None = Field(
        None, description="When set, the mapping is saved as a named profile",
    )


class SessionResponse(BaseModel):
    """Snapshot of an import session for the operator."""
    id: str
    stage: str
    filename: str | None = None
    source_format: SourceFormat
    headers: list[str]
    row_count: int
    sample_rows: list[dict[str, str]] = Field(default_factory=list)
    suggested_mapping: dict[str, str] = Field(default_factory=dict)
    field_mapping: dict[str, str] = Field(default_factory=dict)
    pending_conflicts: int = 0
    stats: ImportRunStats | None = None


class ConflictListResponse(BaseModel):
    """Conflicts for a session plus what was resolved without asking."""
    conflicts: list[Conflict]
    pending: int
    auto_resolved: int
    resolution_map: ResolutionMap


class CommitResponse(BaseModel):
    """Result of POST /import/sessions/{id}/commit."""
    stats: ImportRunStats
    error_summary: list[str] = Field(default_factory=list)


class ProfileResponse(ImportProfile):
    """A profile as listed by the API."""
    key: str
    builtin: bool = False
