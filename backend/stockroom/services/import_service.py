"""
Import executor.

Replays mapped rows through the finished ResolutionMap and writes them
to the catalog:

  1. Blank row (no mapped content) → skipped
  2. Validate → ItemDraft (RowValidationError on failure)
  3. Supplier/category literal → canonical id via the ResolutionMap
  4. update_existing and an item with the same name or SKU → update
  5. Otherwise → insert

Every row lands in exactly one of imported / updated / skipped / errors
and a failing row never stops the batch. The store commits per row, so
a cancelled run keeps what it already wrote and reports partial stats.
Progress is reported, and cancellation checked, every
`progress_interval` rows and once at the end.
"""

import uuid
from enum import Enum
from typing import Callable, Sequence

import structlog

from stockroom.core.catalog_fields import EntityKind
from stockroom.core.config import settings
from stockroom.schemas.catalog import CatalogItem
from stockroom.schemas.imports import ImportOptions, ImportRunStats, ResolutionMap, RowError
from stockroom.services.catalog_store import CatalogStore
from stockroom.services.errors import CatalogStoreError, RowCommitError, RowValidationError
from stockroom.services.field_mapper import MappedRow
from stockroom.services.sink import NullSink, PresentationSink
from stockroom.services.validation import is_blank, validate_row

logger = structlog.get_logger()


class RowOutcome(str, Enum):
    IMPORTED = "imported"
    UPDATED = "updated"
    SKIPPED = "skipped"


# ─── Existing Item Index ──────────────────────────────────────

class ItemIndex:
    """Existing items keyed by lower-cased name and SKU, kept current as rows commit."""

    def __init__(self, items: Sequence[CatalogItem] = ()):
        self._by_name: dict[str, uuid.UUID] = {}
        self._by_sku: dict[str, uuid.UUID] = {}
        for item in items:
            self.add(item)

    def add(self, item: CatalogItem) -> None:
        if item.name:
            self._by_name.setdefault(item.name.strip().lower(), item.id)
        if item.sku:
            self._by_sku.setdefault(item.sku.strip().lower(), item.id)

    def find(self, name: str, sku: str | None) -> uuid.UUID | None:
        """Match by name first, then by SKU, both case-insensitive."""
        match = self._by_name.get(name.strip().lower())
        if match is None and sku:
            match = self._by_sku.get(sku.strip().lower())
        return match


# ─── Row Commit ───────────────────────────────────────────────

def _resolve_reference(
    resolution_map: ResolutionMap,
    kind: EntityKind,
    value: str | None,
    row: MappedRow,
) -> uuid.UUID | None:
    if not value:
        return None
    ref = resolution_map.get(kind, value)
    if ref is None:
        raise RowCommitError(
            f"{kind.value.capitalize()} '{value}' was not resolved",
            row.row_index,
            row.label,
        )
    return ref.id


async def commit_row(
    store: CatalogStore,
    row: MappedRow,
    resolution_map: ResolutionMap,
    options: ImportOptions,
    index: ItemIndex,
) -> RowOutcome:
    """Validate, resolve and write one row. Raises a row-scoped error on failure."""
    if is_blank(row):
        return RowOutcome.SKIPPED

    draft = validate_row(row, options)
    data = draft.to_item_data(
        supplier_id=_resolve_reference(resolution_map, EntityKind.SUPPLIER, draft.supplier, row),
        category_id=_resolve_reference(resolution_map, EntityKind.CATEGORY, draft.category, row),
    )

    existing_id = index.find(draft.name, draft.sku) if options.update_existing else None
    try:
        if existing_id is not None:
            item = await store.update_item(existing_id, data)
            outcome = RowOutcome.UPDATED
        else:
            item = await store.create_item(data)
            outcome = RowOutcome.IMPORTED
    except CatalogStoreError as e:
        raise RowCommitError(str(e), row.row_index, row.label) from e

    index.add(item)
    return outcome


# ─── Executor ─────────────────────────────────────────────────

async def run_import(
    store: CatalogStore,
    rows: Sequence[MappedRow],
    resolution_map: ResolutionMap,
    options: ImportOptions,
    *,
    sink: PresentationSink | None = None,
    should_cancel: Callable[[], bool] | None = None,
    progress_interval: int | None = None,
) -> ImportRunStats:
    """
    Commit every row, isolating failures.

    `should_cancel` defaults to the sink's cancel(). When it returns True
    at a checkpoint the run stops before the next row and returns the
    partial stats with cancelled=True.
    """
    sink = sink or NullSink()
    should_cancel = should_cancel or sink.cancel
    interval = progress_interval or settings.IMPORT_PROGRESS_INTERVAL

    index = ItemIndex(await store.list_items())
    total = len(rows)
    counts = {outcome: 0 for outcome in RowOutcome}
    errors: list[RowError] = []
    processed = 0
    cancelled = False

    def snapshot() -> ImportRunStats:
        return ImportRunStats(
            imported=counts[RowOutcome.IMPORTED],
            updated=counts[RowOutcome.UPDATED],
            skipped=counts[RowOutcome.SKIPPED],
            errors=list(errors),
            processed=processed,
            total=total,
            cancelled=cancelled,
        )

    logger.info("import_started", total=total, update_existing=options.update_existing)

    for row in rows:
        try:
            outcome = await commit_row(store, row, resolution_map, options, index)
        except (RowValidationError, RowCommitError) as e:
            errors.append(RowError(row_index=e.row_index, item_label=e.item_label, message=e.message))
            logger.info("import_row_failed", row=e.row_index + 1, item=e.item_label, error=e.message)
        else:
            counts[outcome] += 1
        processed += 1

        if processed % interval == 0 and processed < total:
            logger.debug("import_progress", processed=processed, total=total)
            sink.on_progress(processed, total, snapshot())
            if should_cancel():
                cancelled = True
                logger.info("import_cancelled", processed=processed, total=total)
                break

    stats = snapshot()
    if not cancelled:
        sink.on_progress(processed, total, stats)
    sink.on_completed(stats)

    logger.info(
        "import_completed",
        imported=stats.imported,
        updated=stats.updated,
        skipped=stats.skipped,
        errors=stats.error_count,
        cancelled=stats.cancelled,
    )
    return stats
