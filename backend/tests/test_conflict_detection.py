"""
Tests for conflict detection and grouping.

Covers:
  - Exact (case-insensitive) catalog matches resolve without a conflict
  - One candidate per distinct literal, suppliers before categories
  - Affected rows, sample names and suggestions on each candidate
  - Near-duplicate literals folded into one group
  - Greedy grouping against the group's primary only
"""

import uuid

import pytest

from stockroom.core.catalog_fields import EntityKind
from stockroom.schemas.catalog import CatalogEntity
from stockroom.schemas.imports import ConflictCandidate, GroupedConflict
from stockroom.services.conflicts import detect_conflicts, group_conflicts, merge_suggestions
from stockroom.services.field_mapper import MappedRow
from stockroom.services.similarity import rank_suggestions


# ─── Helpers ──────────────────────────────────────────────────

def entity(name: str, code: str | None = None) -> CatalogEntity:
    return CatalogEntity(id=uuid.uuid4(), name=name, code=code or name[:6].upper())


def rows_with(field: str, values: list[str]) -> list[MappedRow]:
    return [
        MappedRow(row_index=i, name=f"Item {i + 1}", **{field: value})
        for i, value in enumerate(values)
    ]


def candidate(cid: str, value: str, count: int = 1, kind=EntityKind.SUPPLIER) -> ConflictCandidate:
    return ConflictCandidate(
        id=cid,
        entity_kind=kind,
        import_value=value,
        item_count=count,
        affected_row_indices=list(range(count)),
    )


# ─── Detection ────────────────────────────────────────────────

class TestDetectConflicts:
    def test_exact_catalog_match_is_auto_resolved(self):
        medis = entity("MEDIS (PTY) LTD")
        rows = rows_with("supplier", ["MEDIS (PTY) LTD", "MEDIS (PTY) LTD"])

        result = detect_conflicts(rows, [medis], [])

        assert result.conflicts == []
        assert result.auto_resolved_count == 1
        ref = result.resolution_map.get(EntityKind.SUPPLIER, "MEDIS (PTY) LTD")
        assert ref.id == medis.id
        assert ref.created is False

    def test_match_ignores_case_and_spacing(self):
        medis = entity("Medis (Pty) Ltd")
        rows = rows_with("supplier", ["medis  (pty) LTD"])

        result = detect_conflicts(rows, [medis], [])

        assert result.conflicts == []
        assert result.resolution_map.get(EntityKind.SUPPLIER, "medis  (pty) LTD").id == medis.id

    def test_one_candidate_per_distinct_literal(self):
        rows = rows_with("supplier", ["Medis", "Transpharm", "Medis", "Medis"])

        result = detect_conflicts(rows, [], [])

        assert [c.import_value for c in result.conflicts] == ["Medis", "Transpharm"]
        medis = result.conflicts[0]
        assert medis.id == "supplier-1"
        assert medis.item_count == 3
        assert medis.affected_row_indices == [0, 2, 3]

    def test_literals_keyed_case_sensitively(self):
        rows = rows_with("supplier", ["Medis", "MEDIS"])
        result = detect_conflicts(rows, [], [])
        assert [c.import_value for c in result.conflicts] == ["Medis", "MEDIS"]

    def test_blank_references_ignored(self):
        rows = rows_with("supplier", ["", "   ", "Medis"])
        result = detect_conflicts(rows, [], [])
        assert [c.import_value for c in result.conflicts] == ["Medis"]

    def test_suppliers_before_categories(self):
        rows = [
            MappedRow(row_index=0, name="Gauze", category="Consumables", supplier="Medis"),
            MappedRow(row_index=1, name="Insoles", category="Footwear", supplier="Medis"),
        ]
        result = detect_conflicts(rows, [], [])
        assert [c.id for c in result.conflicts] == ["supplier-1", "category-1", "category-2"]
        assert [c.entity_kind for c in result.conflicts] == [
            EntityKind.SUPPLIER, EntityKind.CATEGORY, EntityKind.CATEGORY,
        ]

    def test_sample_names_limited(self):
        rows = rows_with("supplier", ["Medis"] * 5)
        [conflict] = detect_conflicts(rows, [], [], sample_limit=3).conflicts
        assert conflict.sample_item_names == ["Item 1", "Item 2", "Item 3"]
        assert conflict.item_count == 5

    def test_sample_names_fall_back_to_row_label(self):
        rows = [MappedRow(row_index=6, name="", supplier="Medis")]
        [conflict] = detect_conflicts(rows, [], []).conflicts
        assert conflict.sample_item_names == ["Row 7"]

    def test_suggestions_ranked_from_catalog(self):
        catalog = [entity("Transpharm"), entity("Medis (Pty) Ltd")]
        rows = rows_with("supplier", ["Medis Pty"])

        [conflict] = detect_conflicts(rows, catalog, []).conflicts

        assert conflict.suggestions
        assert conflict.suggestions[0].existing_name == "Medis (Pty) Ltd"
        assert all(s.existing_name != "Transpharm" for s in conflict.suggestions)

    def test_unmapped_reference_columns_ignored(self):
        rows = [MappedRow(row_index=0, name="Gauze")]
        result = detect_conflicts(rows, [], [])
        assert result.conflicts == []
        assert result.auto_resolved_count == 0

    def test_map_never_holds_unresolved_literals(self):
        rows = rows_with("supplier", ["Medis", "Transpharm"])
        result = detect_conflicts(rows, [entity("Transpharm")], [])
        assert not result.resolution_map.contains(EntityKind.SUPPLIER, "Medis")
        assert result.resolution_map.contains(EntityKind.SUPPLIER, "Transpharm")


# ─── Grouping ─────────────────────────────────────────────────

class TestGroupConflicts:
    def test_medis_variants_form_one_group(self):
        catalog = [entity("Medis (Pty) Ltd")]
        rows = rows_with("supplier", ["Medis", "Medis Pty", "MEDIS LTD", "Medis"])

        detected = detect_conflicts(rows, catalog, [])
        grouped = group_conflicts(detected.conflicts)

        assert len(grouped) == 1
        group = grouped[0]
        assert isinstance(group, GroupedConflict)
        assert group.id == "supplier-group-1"
        assert group.values == ["Medis", "Medis Pty", "MEDIS LTD"]
        assert group.primary_value == "Medis"
        assert group.aggregate_item_count == 4
        assert group.suggestions[0].existing_name == "Medis (Pty) Ltd"

    def test_aggregate_equals_sum_of_variants(self):
        conflicts = [
            candidate("supplier-1", "Medis", 2),
            candidate("supplier-2", "Medis Pty", 5),
            candidate("supplier-3", "MEDIS LTD", 1),
        ]
        [group] = group_conflicts(conflicts, threshold=0.8)
        assert group.aggregate_item_count == sum(v.item_count for v in group.variants) == 8

    def test_lone_candidates_pass_through(self):
        conflicts = [candidate("supplier-1", "Medis"), candidate("supplier-2", "Transpharm")]
        assert group_conflicts(conflicts, threshold=0.8) == conflicts

    def test_group_takes_primary_position(self):
        conflicts = [
            candidate("supplier-1", "Transpharm"),
            candidate("supplier-2", "Medis"),
            candidate("supplier-3", "Surgical Direct"),
            candidate("supplier-4", "Medis Pty"),
        ]
        grouped = group_conflicts(conflicts, threshold=0.8)
        assert [c.id for c in grouped] == ["supplier-1", "supplier-group-1", "supplier-3"]

    def test_kinds_never_mix(self):
        conflicts = [
            candidate("supplier-1", "Medis"),
            candidate("category-1", "Medis", kind=EntityKind.CATEGORY),
        ]
        grouped = group_conflicts(conflicts, threshold=0.8)
        assert all(isinstance(c, ConflictCandidate) for c in grouped)

    def test_greedy_compares_against_primary_only(self):
        # a~b and b~c at 0.75, but a≁c
        conflicts = [
            candidate("supplier-1", "abcdefghij"),
            candidate("supplier-2", "abcdefghxy"),
            candidate("supplier-3", "abcdefzwxy"),
        ]
        grouped = group_conflicts(conflicts, threshold=0.75)
        assert [c.id for c in grouped] == ["supplier-group-1", "supplier-3"]
        assert grouped[0].values == ["abcdefghij", "abcdefghxy"]

    def test_absorbed_candidates_do_not_start_groups(self):
        conflicts = [
            candidate("supplier-1", "Medis"),
            candidate("supplier-2", "Medis Pty"),
            candidate("supplier-3", "Medis Pty"),
        ]
        grouped = group_conflicts(conflicts, threshold=0.8)
        assert [c.id for c in grouped] == ["supplier-group-1"]
        assert len(grouped[0].variants) == 3

    def test_group_numbering_per_kind(self):
        conflicts = [
            candidate("supplier-1", "Medis"),
            candidate("supplier-2", "Medis Pty"),
            candidate("category-1", "Footwear", kind=EntityKind.CATEGORY),
            candidate("category-2", "Footwear Range", kind=EntityKind.CATEGORY),
        ]
        grouped = group_conflicts(conflicts, threshold=0.8)
        assert [c.id for c in grouped] == ["supplier-group-1", "category-group-1"]


class TestMergeSuggestions:
    def test_best_score_per_entity(self):
        medis = entity("Medis (Pty) Ltd")
        other = entity("Medical Supplies")
        first = rank_suggestions("Medis", [medis, other])
        second = rank_suggestions("Medis (Pty)", [medis, other])

        merged = merge_suggestions([first, second])

        ids = [s.existing_id for s in merged]
        assert len(ids) == len(set(ids))
        best_medis = max(s.score for s in first + second if s.existing_id == medis.id)
        assert next(s for s in merged if s.existing_id == medis.id).score == pytest.approx(best_medis)

    def test_limit(self):
        catalog = [entity(f"Medis {i}", code=f"M{i}") for i in range(6)]
        merged = merge_suggestions([rank_suggestions("Medis", catalog)], limit=2)
        assert len(merged) == 2
