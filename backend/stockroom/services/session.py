"""
Import sessions.

An ImportSession is the caller-owned state of one import, advanced stage
by stage:

    uploaded → mapped → resolving → ready → committing → committed
                                                      ↘ cancelled

Cancelling before commit closes the session at once; cancelling while
the commit runs stops the executor at its next progress checkpoint.

Nothing is shared between sessions. The HTTP layer keeps open sessions
in a SessionRegistry; run_interactive_import drives a whole session
against a PresentationSink in one call.
"""

import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import structlog

from stockroom.core.config import settings
from stockroom.schemas.imports import (
    Conflict,
    ImportOptions,
    ImportProfile,
    ImportRunStats,
    ParsedTable,
    PreviewRow,
    ResolutionDecision,
    ResolutionSummary,
    SessionResponse,
    SourceFormat,
)
from stockroom.services.catalog_store import CatalogStore
from stockroom.services.conflicts import detect_conflicts, group_conflicts
from stockroom.services.errors import ConflictResolutionError, SessionStateError
from stockroom.services.field_mapper import (
    FieldMapping,
    MappedRow,
    apply_profile,
    map_rows,
    require_valid_mapping,
    suggest_mapping,
)
from stockroom.services.import_service import run_import
from stockroom.services.profiles import ProfileStore
from stockroom.services.resolution import ResolutionWorkflow
from stockroom.services.sink import PresentationSink
from stockroom.services.tabular_parser import detect_format, parse_table
from stockroom.services.validation import preview_rows

logger = structlog.get_logger()

SAMPLE_ROW_COUNT = 5


class SessionStage(str, Enum):
    UPLOADED = "uploaded"
    MAPPED = "mapped"
    RESOLVING = "resolving"
    READY = "ready"
    COMMITTING = "committing"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


_CLOSED_STAGES = {SessionStage.COMMITTED, SessionStage.CANCELLED}


@dataclass
class ImportSession:
    table: ParsedTable
    source_format: SourceFormat
    filename: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    stage: SessionStage = SessionStage.UPLOADED
    profile: ImportProfile | None = None
    suggested_mapping: FieldMapping = field(default_factory=dict)
    mapping: FieldMapping = field(default_factory=dict)
    options: ImportOptions = field(default_factory=ImportOptions)
    rows: list[MappedRow] = field(default_factory=list)
    workflow: ResolutionWorkflow | None = None
    stats: ImportRunStats | None = None
    cancel_requested: bool = field(default=False, repr=False)

    # ─── Upload ───────────────────────────────────────────────

    @classmethod
    def start(
        cls,
        file_bytes: bytes,
        filename: str | None = None,
        source_format: SourceFormat | None = None,
        profile: ImportProfile | None = None,
    ) -> "ImportSession":
        """Parse the upload and suggest a mapping. Raises ParseError."""
        if source_format is None:
            source_format = profile.source_format if profile and not filename else detect_format(filename or "")
        table = parse_table(file_bytes, source_format)
        session = cls(table=table, source_format=source_format, filename=filename, profile=profile)
        if profile is not None:
            session.options = ImportOptions(default_item_kind=profile.default_item_kind)
        session.suggested_mapping = session.suggest_mapping()
        logger.info(
            "import_session_started",
            session_id=session.id,
            filename=filename,
            rows=table.row_count,
            profile=profile.name if profile else None,
        )
        return session

    def _require_open(self) -> None:
        if self.stage in _CLOSED_STAGES or self.stage == SessionStage.COMMITTING:
            raise SessionStateError(f"Import session is already {self.stage.value}")

    def suggest_mapping(self) -> FieldMapping:
        """The profile's bindings when a profile is set, header heuristics otherwise."""
        if self.profile is not None:
            return apply_profile(self.profile, self.table.headers)
        return suggest_mapping(self.table.headers)

    # ─── Mapping ──────────────────────────────────────────────

    async def apply_mapping(
        self,
        mapping: FieldMapping,
        options: ImportOptions | None = None,
        *,
        save_profile_as: str | None = None,
        profiles: ProfileStore | None = None,
    ) -> list[MappedRow]:
        """
        Bind the mapping and project rows. Raises MappingError.

        Re-mapping is allowed until commit; it discards any detected
        conflicts and resolutions.
        """
        self._require_open()
        cleaned = {f: column for f, column in mapping.items() if column}
        require_valid_mapping(cleaned, self.table.headers)

        self.mapping = cleaned
        if options is not None:
            self.options = options
        self.rows = map_rows(self.table, cleaned)
        self.workflow = None
        self.stage = SessionStage.MAPPED

        if save_profile_as:
            if profiles is None:
                raise SessionStateError("No profile store available to save the mapping")
            await profiles.save_profile(ImportProfile(
                name=save_profile_as,
                source_format=self.source_format,
                field_mappings=dict(cleaned),
                default_item_kind=self.options.default_item_kind,
            ))

        logger.info("import_mapping_applied", session_id=self.id, fields=sorted(cleaned))
        return self.rows

    def preview(self, limit: int = 10) -> list[PreviewRow]:
        if self.stage == SessionStage.UPLOADED:
            raise SessionStateError("Map the columns before previewing")
        return preview_rows(self.rows, self.options, limit=limit)

    # ─── Conflicts ────────────────────────────────────────────

    async def detect_conflicts(self, store: CatalogStore) -> list[Conflict]:
        """Diff references against the catalog and start the resolution workflow."""
        self._require_open()
        if self.stage == SessionStage.UPLOADED:
            raise SessionStateError("Map the columns before detecting conflicts")

        suppliers = await store.list_suppliers()
        categories = await store.list_categories()
        detection = detect_conflicts(self.rows, suppliers, categories)
        conflicts = group_conflicts(detection.conflicts)

        self.workflow = ResolutionWorkflow(
            store,
            conflicts,
            resolution_map=detection.resolution_map,
            suppliers=suppliers,
            categories=categories,
            auto_resolved=detection.auto_resolved_count,
        )
        self.stage = SessionStage.RESOLVING if conflicts else SessionStage.READY
        return self.workflow.conflicts

    def _require_workflow(self) -> ResolutionWorkflow:
        self._require_open()
        if self.workflow is None:
            raise SessionStateError("Conflicts have not been detected for this session")
        return self.workflow

    async def resolve(
        self,
        store: CatalogStore,
        conflict_id: str,
        decision: ResolutionDecision,
    ) -> ResolutionSummary:
        workflow = self._require_workflow()
        workflow.store = store
        summary = await workflow.apply(conflict_id, decision)
        if workflow.is_complete:
            self.stage = SessionStage.READY
        return summary

    # ─── Commit / Cancel ──────────────────────────────────────

    async def commit(
        self,
        store: CatalogStore,
        sink: PresentationSink | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> ImportRunStats:
        """
        Run the executor. Raises ResolutionIncompleteError while conflicts are pending.

        The run stops at the next checkpoint once cancel() is called or
        `should_cancel` (default: the sink's cancel) returns True.
        """
        workflow = self._require_workflow()
        workflow.ensure_complete()

        external = should_cancel or (sink.cancel if sink is not None else None)

        def cancel_check() -> bool:
            return self.cancel_requested or bool(external and external())

        self.stage = SessionStage.COMMITTING
        self.cancel_requested = False
        try:
            self.stats = await run_import(
                store,
                self.rows,
                workflow.resolution_map,
                self.options,
                sink=sink,
                should_cancel=cancel_check,
            )
        except Exception:
            self.stage = SessionStage.READY
            raise
        self.stage = SessionStage.CANCELLED if self.stats.cancelled else SessionStage.COMMITTED
        return self.stats

    def cancel(self) -> None:
        if self.stage == SessionStage.COMMITTED:
            raise SessionStateError("Import session is already committed")
        if self.stage == SessionStage.COMMITTING:
            self.cancel_requested = True
            logger.info("import_cancel_requested", session_id=self.id)
            return
        self.stage = SessionStage.CANCELLED
        logger.info("import_session_cancelled", session_id=self.id)

    # ─── Presentation ─────────────────────────────────────────

    @property
    def pending_conflicts(self) -> int:
        return len(self.workflow.pending) if self.workflow else 0

    def to_response(self) -> SessionResponse:
        return SessionResponse(
            id=self.id,
            stage=self.stage.value,
            filename=self.filename,
            source_format=self.source_format,
            headers=self.table.headers,
            row_count=self.table.row_count,
            sample_rows=self.table.rows[:SAMPLE_ROW_COUNT],
            suggested_mapping=self.suggested_mapping,
            field_mapping=self.mapping,
            pending_conflicts=self.pending_conflicts,
            stats=self.stats,
        )


# ─── Interactive Driver ───────────────────────────────────────

async def run_interactive_import(
    store: CatalogStore,
    file_bytes: bytes,
    sink: PresentationSink,
    *,
    filename: str | None = None,
    source_format: SourceFormat | None = None,
    profile: ImportProfile | None = None,
    options: ImportOptions | None = None,
) -> ImportSession:
    """
    Drive one import end to end, asking the sink for every decision.

    Conflicts are offered to the sink until none are pending; a pass in
    which the sink decides nothing ends the loop and commit then raises
    ResolutionIncompleteError. Cancellation is checked before each
    decision and at the executor's progress checkpoints.
    """
    session = ImportSession.start(file_bytes, filename=filename, source_format=source_format, profile=profile)
    sink.on_parsed(session.table)
    sink.on_mapping_suggested(session.suggested_mapping)

    await session.apply_mapping(sink.choose_mapping(session.suggested_mapping), options)
    conflicts = await session.detect_conflicts(store)
    sink.on_conflicts(conflicts)

    workflow = session.workflow
    while not workflow.is_complete:
        progressed = False
        for conflict in workflow.pending:
            if sink.cancel():
                session.cancel()
                return session
            decision = sink.resolve_conflict(conflict)
            if decision is None:
                continue
            try:
                summary = await session.resolve(store, conflict.id, decision)
            except ConflictResolutionError as e:
                sink.on_resolution_failed(conflict.id, e.message)
                continue
            sink.on_resolution_applied(conflict.id, summary)
            progressed = True
        if not progressed:
            break

    if sink.cancel():
        session.cancel()
        return session

    await session.commit(store, sink=sink)
    return session


# ─── Registry ─────────────────────────────────────────────────

class SessionRegistry:
    """Open sessions by id, oldest evicted beyond `max_sessions`."""

    def __init__(self, max_sessions: int | None = None):
        self.max_sessions = max_sessions or settings.IMPORT_MAX_SESSIONS
        self._sessions: OrderedDict[str, ImportSession] = OrderedDict()

    def add(self, session: ImportSession) -> ImportSession:
        self._sessions[session.id] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("import_session_evicted", session_id=evicted)
        return session

    def get(self, session_id: str) -> ImportSession | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)
