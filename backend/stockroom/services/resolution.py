"""
Conflict resolution workflow.

Each conflict moves Pending → Resolving → Resolved. The workflow owns the
pending list, the ResolutionMap and the known-entity lists for one
import session; the executor only ever reads the finished map.

Transitions are idempotent: a conflict that is already Resolving or
Resolved ignores further input. Any failure while Resolving puts the
conflict back to Pending and raises ConflictResolutionError.
"""

import time
import uuid
from typing import Any, Sequence

import structlog
from pydantic import ValidationError

from stockroom.core.catalog_fields import BADGE_PALETTE, EntityKind
from stockroom.schemas.catalog import CatalogEntity, EntityCreate
from stockroom.schemas.imports import (
    Conflict,
    ConflictCandidate,
    ConflictStatus,
    EntityRef,
    GroupedConflict,
    ResolutionAction,
    ResolutionDecision,
    ResolutionMap,
    ResolutionSummary,
)
from stockroom.services.catalog_store import CatalogStore
from stockroom.services.errors import (
    CatalogStoreError,
    ConflictResolutionError,
    ResolutionIncompleteError,
)
from stockroom.services.normalization import names_match, normalize_whitespace, strip_to_alphanum

logger = structlog.get_logger()

CODE_MAX_LENGTH = 6
CODE_MAX_COUNTER = 99

_FALLBACK_CODE_BASE = {
    EntityKind.SUPPLIER: "SUP",
    EntityKind.CATEGORY: "CAT",
}


# ─── Entity Codes & Colors ────────────────────────────────────

def generate_entity_code(
    name: str,
    existing_codes: Sequence[str],
    kind: EntityKind = EntityKind.SUPPLIER,
) -> str:
    """
    Unique short code for a new entity.

    'MEDIS (PTY) LTD' → 'MEDISP', then 'MEDISP01' … 'MEDISP99' on
    collision, then a timestamp suffix.
    """
    base = strip_to_alphanum(name).upper()[:CODE_MAX_LENGTH] or _FALLBACK_CODE_BASE[kind]
    taken = {c.upper() for c in existing_codes if c}
    if base not in taken:
        return base
    for counter in range(1, CODE_MAX_COUNTER + 1):
        candidate = f"{base}{counter:02d}"
        if candidate not in taken:
            return candidate
    return f"{base}{int(time.time() * 1000) % 1_000_000:06d}"


def pick_badge_color(index: int) -> str:
    """Palette color for the index-th entity of a kind."""
    return BADGE_PALETTE[index % len(BADGE_PALETTE)]


# ─── Workflow ─────────────────────────────────────────────────

class ResolutionWorkflow:
    """Interactive resolution of one session's conflicts."""

    def __init__(
        self,
        store: CatalogStore,
        conflicts: Sequence[Conflict],
        resolution_map: ResolutionMap | None = None,
        suppliers: Sequence[CatalogEntity] = (),
        categories: Sequence[CatalogEntity] = (),
        auto_resolved: int = 0,
    ):
        self.store = store
        self.auto_resolved = auto_resolved
        self.resolution_map = resolution_map or ResolutionMap()
        self._conflicts: list[Conflict] = list(conflicts)
        self._known: dict[EntityKind, list[CatalogEntity]] = {
            EntityKind.SUPPLIER: list(suppliers),
            EntityKind.CATEGORY: list(categories),
        }

    # ─── State ────────────────────────────────────────────────

    @property
    def conflicts(self) -> list[Conflict]:
        return list(self._conflicts)

    @property
    def pending(self) -> list[Conflict]:
        """Conflicts not yet Resolved, Resolving ones included."""
        return [c for c in self._conflicts if c.status != ConflictStatus.RESOLVED]

    @property
    def is_complete(self) -> bool:
        return not self.pending

    def ensure_complete(self) -> None:
        pending = self.pending
        if pending:
            raise ResolutionIncompleteError([c.id for c in pending])

    def known_entities(self, kind: EntityKind) -> list[CatalogEntity]:
        return list(self._known[kind])

    def find_conflict(self, conflict_id: str) -> Conflict | None:
        return next((c for c in self._conflicts if c.id == conflict_id), None)

    def _get(self, conflict_id: str) -> Conflict:
        conflict = self.find_conflict(conflict_id)
        if conflict is None:
            raise ConflictResolutionError(f"Unknown conflict: {conflict_id}", conflict_id)
        return conflict

    def _ignored(self, conflict: Conflict, action: ResolutionAction) -> ResolutionSummary:
        logger.debug("resolution_ignored", conflict_id=conflict.id, status=conflict.status.value)
        return ResolutionSummary(
            conflict_id=conflict.id,
            action=action,
            values=conflict.values,
            ignored=True,
        )

    def _resolve(
        self,
        conflict: Conflict,
        action: ResolutionAction,
        entity: CatalogEntity,
        created: bool,
    ) -> ResolutionSummary:
        ref = EntityRef(id=entity.id, name=entity.name, code=entity.code, created=created)
        # One entry per literal; a group's variants all point at the same entity
        for value in conflict.values:
            self.resolution_map.set(conflict.entity_kind, value, ref)
        conflict.status = ConflictStatus.RESOLVED
        logger.info(
            "conflict_resolved",
            conflict_id=conflict.id,
            action=action.value,
            entity=entity.name,
            created=created,
            values=len(conflict.values),
        )
        return ResolutionSummary(
            conflict_id=conflict.id,
            action=action,
            entity=ref,
            values=conflict.values,
            created=created,
        )

    async def _find_entity(self, kind: EntityKind, entity_id: uuid.UUID) -> CatalogEntity | None:
        """Known entity by id, re-reading the store once when it is not known."""
        entity = next((e for e in self._known[kind] if e.id == entity_id), None)
        if entity is not None:
            return entity
        if kind == EntityKind.SUPPLIER:
            self._known[kind] = list(await self.store.list_suppliers())
        else:
            self._known[kind] = list(await self.store.list_categories())
        return next((e for e in self._known[kind] if e.id == entity_id), None)

    # ─── Transitions ──────────────────────────────────────────

    async def map_to_existing(self, conflict_id: str, entity_id: uuid.UUID) -> ResolutionSummary:
        """Point every literal of the conflict at an existing entity."""
        conflict = self._get(conflict_id)
        if conflict.status != ConflictStatus.PENDING:
            return self._ignored(conflict, ResolutionAction.MAP)

        conflict.status = ConflictStatus.RESOLVING
        try:
            entity = await self._find_entity(conflict.entity_kind, entity_id)
        except CatalogStoreError as e:
            conflict.status = ConflictStatus.PENDING
            raise ConflictResolutionError(str(e), conflict_id) from e
        if entity is None:
            conflict.status = ConflictStatus.PENDING
            raise ConflictResolutionError(
                f"The selected {conflict.entity_kind.value} no longer exists",
                conflict_id,
            )
        return self._resolve(conflict, ResolutionAction.MAP, entity, created=False)

    async def create_new(
        self,
        conflict_id: str,
        name: str | None = None,
        code: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> ResolutionSummary:
        """
        Create a canonical entity for the conflict and map its literals to it.

        The name defaults to the conflict's (primary) literal. If an entity
        with that name already exists, for instance created while resolving
        an earlier conflict in this session, the conflict is mapped to it
        instead of creating a duplicate.
        """
        conflict = self._get(conflict_id)
        if conflict.status != ConflictStatus.PENDING:
            return self._ignored(conflict, ResolutionAction.CREATE)

        conflict.status = ConflictStatus.RESOLVING
        try:
            return await self._create(conflict, name, code, attributes or {})
        except ConflictResolutionError:
            conflict.status = ConflictStatus.PENDING
            raise
        except (CatalogStoreError, ValidationError) as e:
            conflict.status = ConflictStatus.PENDING
            raise ConflictResolutionError(str(e), conflict_id) from e

    async def _create(
        self,
        conflict: Conflict,
        name: str | None,
        code: str | None,
        attributes: dict[str, Any],
    ) -> ResolutionSummary:
        kind = conflict.entity_kind
        primary = conflict.primary_value if isinstance(conflict, GroupedConflict) else conflict.import_value
        entity_name = normalize_whitespace(name or primary)
        if not entity_name:
            raise ConflictResolutionError(f"A {kind.value} name is required", conflict.id)

        known = self._known[kind]
        existing = next((e for e in known if names_match(e.name, entity_name)), None)
        if existing is not None:
            return self._resolve(conflict, ResolutionAction.MAP, existing, created=False)

        existing_codes = [e.code for e in known if e.code]
        if code and code.strip():
            entity_code = code.strip().upper()
            if entity_code in {c.upper() for c in existing_codes}:
                raise ConflictResolutionError(
                    f"A {kind.value} with code '{entity_code}' already exists",
                    conflict.id,
                )
        else:
            entity_code = generate_entity_code(entity_name, existing_codes, kind)

        data = EntityCreate(
            name=entity_name,
            code=entity_code,
            color=attributes.get("color") or pick_badge_color(len(known)),
            description=attributes.get("description"),
            website=attributes.get("website") if kind == EntityKind.SUPPLIER else None,
        )
        if kind == EntityKind.SUPPLIER:
            entity = await self.store.create_supplier(data)
        else:
            entity = await self.store.create_category(data)

        known.append(entity)
        return self._resolve(conflict, ResolutionAction.CREATE, entity, created=True)

    def split_group(self, conflict_id: str) -> ResolutionSummary:
        """Replace a pending group with one pending candidate per variant."""
        conflict = self._get(conflict_id)
        if not isinstance(conflict, GroupedConflict):
            raise ConflictResolutionError(f"Conflict {conflict_id} is not a group", conflict_id)
        if conflict.status != ConflictStatus.PENDING:
            return self._ignored(conflict, ResolutionAction.SPLIT)

        candidates = [
            ConflictCandidate(
                id=f"{conflict.id}-{n}",
                entity_kind=conflict.entity_kind,
                import_value=variant.value,
                item_count=variant.item_count,
                affected_row_indices=list(variant.affected_row_indices),
                sample_item_names=list(variant.sample_item_names),
                suggestions=list(conflict.suggestions),
            )
            for n, variant in enumerate(conflict.variants, start=1)
        ]
        position = self._conflicts.index(conflict)
        self._conflicts[position:position + 1] = candidates

        logger.info("conflict_group_split", conflict_id=conflict.id, variants=len(candidates))
        return ResolutionSummary(
            conflict_id=conflict.id,
            action=ResolutionAction.SPLIT,
            values=conflict.values,
            split_into=[c.id for c in candidates],
        )

    async def apply(self, conflict_id: str, decision: ResolutionDecision) -> ResolutionSummary:
        """Dispatch an operator decision to the matching transition."""
        if decision.action == ResolutionAction.MAP:
            if decision.entity_id is None:
                raise ConflictResolutionError("entity_id is required to map a conflict", conflict_id)
            return await self.map_to_existing(conflict_id, decision.entity_id)
        if decision.action == ResolutionAction.CREATE:
            return await self.create_new(
                conflict_id,
                name=decision.name,
                code=decision.code,
                attributes=decision.attributes,
            )
        return self.split_group(conflict_id)
