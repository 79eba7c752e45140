"""
Presentation sink: the operator side of an import session.

The pipeline reports to the sink (parsed table, suggested mapping,
conflicts, resolutions, progress, completion) and asks it for decisions
(mapping, per-conflict resolution, cancellation). All calls are plain
synchronous request/response; the pipeline never resolves anything in
the background.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

import structlog

from stockroom.schemas.imports import (
    Conflict,
    ImportRunStats,
    ParsedTable,
    ResolutionDecision,
    ResolutionSummary,
)
from stockroom.services.field_mapper import FieldMapping

logger = structlog.get_logger()


class PresentationSink(Protocol):
    def on_parsed(self, table: ParsedTable) -> None: ...

    def on_mapping_suggested(self, mapping: FieldMapping) -> None: ...

    def on_conflicts(self, conflicts: Sequence[Conflict]) -> None: ...

    def on_resolution_applied(self, conflict_id: str, summary: ResolutionSummary) -> None: ...

    def on_resolution_failed(self, conflict_id: str, message: str) -> None: ...

    def on_progress(self, processed: int, total: int, stats: ImportRunStats) -> None: ...

    def on_completed(self, stats: ImportRunStats) -> None: ...

    def choose_mapping(self, suggested: FieldMapping) -> FieldMapping: ...

    def resolve_conflict(self, conflict: Conflict) -> ResolutionDecision | None: ...

    def cancel(self) -> bool: ...


class NullSink:
    """Accepts every suggestion, never decides a conflict, never cancels."""

    def on_parsed(self, table: ParsedTable) -> None:
        logger.debug("sink_parsed", rows=table.row_count)

    def on_mapping_suggested(self, mapping: FieldMapping) -> None:
        logger.debug("sink_mapping_suggested", fields=sorted(mapping))

    def on_conflicts(self, conflicts: Sequence[Conflict]) -> None:
        logger.debug("sink_conflicts", count=len(conflicts))

    def on_resolution_applied(self, conflict_id: str, summary: ResolutionSummary) -> None:
        logger.debug("sink_resolution_applied", conflict_id=conflict_id)

    def on_resolution_failed(self, conflict_id: str, message: str) -> None:
        logger.debug("sink_resolution_failed", conflict_id=conflict_id, error=message)

    def on_progress(self, processed: int, total: int, stats: ImportRunStats) -> None:
        logger.debug("sink_progress", processed=processed, total=total)

    def on_completed(self, stats: ImportRunStats) -> None:
        logger.debug("sink_completed", imported=stats.imported, errors=stats.error_count)

    def choose_mapping(self, suggested: FieldMapping) -> FieldMapping:
        return dict(suggested)

    def resolve_conflict(self, conflict: Conflict) -> ResolutionDecision | None:
        return None

    def cancel(self) -> bool:
        return False


@dataclass
class RecordingSink(NullSink):
    """
    Keeps every event as (name, payload) and answers from queued decisions.

    `decisions` maps conflict id → decision; `mapping` overrides the
    suggested mapping; `cancel_after` requests cancellation once that many
    progress events have been seen.
    """
    decisions: dict[str, ResolutionDecision] = field(default_factory=dict)
    mapping: FieldMapping | None = None
    cancel_after: int | None = None
    events: list[tuple[str, Any]] = field(default_factory=list)
    cancel_requested: bool = False

    def on_parsed(self, table: ParsedTable) -> None:
        self.events.append(("parsed", table.row_count))

    def on_mapping_suggested(self, mapping: FieldMapping) -> None:
        self.events.append(("mapping_suggested", dict(mapping)))

    def on_conflicts(self, conflicts: Sequence[Conflict]) -> None:
        self.events.append(("conflicts", [c.id for c in conflicts]))

    def on_resolution_applied(self, conflict_id: str, summary: ResolutionSummary) -> None:
        self.events.append(("resolution_applied", summary))

    def on_resolution_failed(self, conflict_id: str, message: str) -> None:
        self.events.append(("resolution_failed", (conflict_id, message)))

    def on_progress(self, processed: int, total: int, stats: ImportRunStats) -> None:
        self.events.append(("progress", (processed, total)))

    def on_completed(self, stats: ImportRunStats) -> None:
        self.events.append(("completed", stats))

    def choose_mapping(self, suggested: FieldMapping) -> FieldMapping:
        return dict(self.mapping) if self.mapping is not None else dict(suggested)

    def resolve_conflict(self, conflict: Conflict) -> ResolutionDecision | None:
        return self.decisions.get(conflict.id)

    def cancel(self) -> bool:
        if self.cancel_after is not None and len(self.events_named("progress")) >= self.cancel_after:
            return True
        return self.cancel_requested

    def events_named(self, name: str) -> list[Any]:
        return [payload for event, payload in self.events if event == name]
