"""
Conflict detection and grouping.

Detection collects the distinct supplier/category literals an import
references and diffs them against the canonical catalog:

    literal matches a canonical name (case-insensitive)  → auto-resolved
    otherwise                                            → ConflictCandidate

Grouping then folds near-duplicate candidates of the same kind into one
GroupedConflict so the operator answers "Medis", "Medis Pty" and
"MEDIS LTD" once. It is a single greedy pass: each remaining candidate
is compared to the group's primary only, so A~B~C with A≁C yields
{A, B} and {C} when A comes first.
"""

from dataclasses import dataclass, field
from typing import Sequence

import structlog

from stockroom.core.catalog_fields import ENTITY_FIELDS, EntityKind
from stockroom.core.config import settings
from stockroom.schemas.catalog import CatalogEntity
from stockroom.schemas.imports import (
    Conflict,
    ConflictCandidate,
    EntityRef,
    GroupedConflict,
    ResolutionMap,
    Suggestion,
)
from stockroom.services.field_mapper import MappedRow
from stockroom.services.normalization import names_match
from stockroom.services.similarity import rank_suggestions, similarity

logger = structlog.get_logger()


@dataclass
class DetectionResult:
    """Unresolved conflicts plus the map of literals resolved without asking."""
    conflicts: list[Conflict] = field(default_factory=list)
    resolution_map: ResolutionMap = field(default_factory=ResolutionMap)
    auto_resolved_count: int = 0


@dataclass
class _Bucket:
    value: str
    row_indices: list[int] = field(default_factory=list)
    item_names: list[str] = field(default_factory=list)


def _collect_buckets(rows: Sequence[MappedRow], field_name: str, sample_limit: int) -> list[_Bucket]:
    """Distinct literals for one reference column, in first-seen order."""
    buckets: dict[str, _Bucket] = {}
    for row in rows:
        value = (row.get(field_name) or "").strip()
        if not value:
            continue
        bucket = buckets.setdefault(value, _Bucket(value=value))
        bucket.row_indices.append(row.row_index)
        if len(bucket.item_names) < sample_limit:
            bucket.item_names.append(row.label)
    return list(buckets.values())


def detect_conflicts(
    rows: Sequence[MappedRow],
    suppliers: Sequence[CatalogEntity],
    categories: Sequence[CatalogEntity],
    suggestion_limit: int | None = None,
    min_score: float | None = None,
    sample_limit: int | None = None,
) -> DetectionResult:
    """
    Diff the import's supplier/category literals against the catalog.

    Bucket keys are the raw trimmed literal (case-sensitive), so "Medis"
    and "MEDIS" are two conflicts even though they would group. Canonical
    comparison is case-insensitive.
    """
    suggestion_limit = suggestion_limit if suggestion_limit is not None else settings.IMPORT_SUGGESTION_LIMIT
    min_score = min_score if min_score is not None else settings.IMPORT_SUGGESTION_MIN_SCORE
    sample_limit = sample_limit if sample_limit is not None else settings.IMPORT_SAMPLE_ITEM_LIMIT

    known = {EntityKind.SUPPLIER: suppliers, EntityKind.CATEGORY: categories}
    result = DetectionResult()

    for kind, field_name in ENTITY_FIELDS.items():
        entities = known[kind]
        sequence = 0
        for bucket in _collect_buckets(rows, field_name, sample_limit):
            match = next((e for e in entities if names_match(e.name, bucket.value)), None)
            if match is not None:
                result.resolution_map.set(
                    kind, bucket.value,
                    EntityRef(id=match.id, name=match.name, code=match.code),
                )
                result.auto_resolved_count += 1
                continue

            sequence += 1
            result.conflicts.append(ConflictCandidate(
                id=f"{kind.value}-{sequence}",
                entity_kind=kind,
                import_value=bucket.value,
                item_count=len(bucket.row_indices),
                affected_row_indices=bucket.row_indices,
                sample_item_names=bucket.item_names,
                suggestions=rank_suggestions(
                    bucket.value, entities, limit=suggestion_limit, min_score=min_score,
                ),
            ))

    logger.info(
        "conflicts_detected",
        conflicts=len(result.conflicts),
        auto_resolved=result.auto_resolved_count,
    )
    return result


def merge_suggestions(
    suggestion_lists: Sequence[Sequence[Suggestion]],
    limit: int | None = None,
) -> list[Suggestion]:
    """Union of suggestion lists keeping each entity's best score, best first."""
    best: dict = {}
    for suggestions in suggestion_lists:
        for s in suggestions:
            current = best.get(s.existing_id)
            if current is None or s.score > current.score:
                best[s.existing_id] = s
    merged = sorted(best.values(), key=lambda s: s.score, reverse=True)
    if limit is not None:
        merged = merged[:limit]
    return merged


def _build_group(group_id: str, members: list[ConflictCandidate], limit: int) -> GroupedConflict:
    variants = [m.as_variant() for m in members]
    return GroupedConflict(
        id=group_id,
        entity_kind=members[0].entity_kind,
        variants=variants,
        aggregate_item_count=sum(v.item_count for v in variants),
        suggestions=merge_suggestions([m.suggestions for m in members], limit=limit),
    )


def group_conflicts(
    conflicts: Sequence[Conflict],
    threshold: float | None = None,
    suggestion_limit: int | None = None,
) -> list[Conflict]:
    """
    Fold near-duplicate candidates into GroupedConflicts.

    Walks candidates in order; each ungrouped candidate absorbs every later
    candidate of the same kind scoring ≥ threshold against it. Absorbed
    candidates leave consideration. Lone candidates pass through unchanged,
    and a group takes the position of its primary.
    """
    threshold = threshold if threshold is not None else settings.IMPORT_GROUP_THRESHOLD
    suggestion_limit = suggestion_limit if suggestion_limit is not None else settings.IMPORT_SUGGESTION_LIMIT

    output: list[Conflict] = []
    absorbed: set[str] = set()
    group_sequence = {kind: 0 for kind in EntityKind}

    for position, primary in enumerate(conflicts):
        if primary.id in absorbed:
            continue
        if not isinstance(primary, ConflictCandidate):
            output.append(primary)
            continue

        members = [primary]
        for other in conflicts[position + 1:]:
            if (
                other.id in absorbed
                or not isinstance(other, ConflictCandidate)
                or other.entity_kind != primary.entity_kind
            ):
                continue
            if similarity(primary.import_value, other.import_value) >= threshold:
                members.append(other)
                absorbed.add(other.id)

        if len(members) == 1:
            output.append(primary)
            continue

        group_sequence[primary.entity_kind] += 1
        group_id = f"{primary.entity_kind.value}-group-{group_sequence[primary.entity_kind]}"
        output.append(_build_group(group_id, members, suggestion_limit))

    grouped = sum(1 for c in output if isinstance(c, GroupedConflict))
    if grouped:
        logger.info("conflicts_grouped", groups=grouped, remaining=len(output))
    return output
