"""
Import pipeline error taxonomy.

Fatal to the session:   ParseError
Blocks a stage:         MappingError, SessionStateError, ProfileError
Returns to Pending:     ConflictResolutionError (+ ResolutionIncompleteError)
Row scoped, aggregated: RowValidationError, RowCommitError

CatalogStoreError is raised by store implementations and translated by the
caller into the error class of the stage it happened in.
"""

from enum import Enum


class ImportPipelineError(Exception):
    """Base class for every error raised by the import pipeline."""


class ParseErrorReason(str, Enum):
    EMPTY_FILE = "empty_file"
    NO_HEADERS = "no_headers"
    NO_DATA_ROWS = "no_data_rows"
    UNSUPPORTED_FORMAT = "unsupported_format"
    UNREADABLE = "unreadable"


class ParseError(ImportPipelineError, ValueError):
    """Malformed or empty input. No partial parse is ever accepted."""

    def __init__(self, reason: ParseErrorReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class MappingError(ImportPipelineError, ValueError):
    """The field mapping cannot be used to advance past the mapping stage."""

    def __init__(
        self,
        message: str,
        missing: list[str] | None = None,
        unknown: list[str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.missing = missing or []
        self.unknown = unknown or []


class SessionStateError(ImportPipelineError):
    """A session stage was invoked out of order."""


class ConflictResolutionError(ImportPipelineError):
    """A resolution could not be applied; the conflict stays pending."""

    def __init__(self, message: str, conflict_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.conflict_id = conflict_id


class ResolutionIncompleteError(ConflictResolutionError):
    """Commit was requested while conflicts are still pending."""

    def __init__(self, pending_ids: list[str]):
        super().__init__(
            f"{len(pending_ids)} conflict(s) still pending: {', '.join(pending_ids)}"
        )
        self.pending_ids = pending_ids


class RowScopedError(ImportPipelineError):
    """Base for row-scoped failures. Never fatal to the session."""

    def __init__(self, message: str, row_index: int, item_label: str = ""):
        super().__init__(message)
        self.message = message
        self.row_index = row_index
        self.item_label = item_label


class RowValidationError(RowScopedError):
    """A row failed structural or value-range checks."""


class RowCommitError(RowScopedError):
    """A valid row could not be written to the catalog."""


class CatalogStoreError(ImportPipelineError):
    """The catalog store rejected a write (constraint, connectivity, ...)."""


class ProfileError(ImportPipelineError, ValueError):
    """A profile cannot be saved or deleted (built-in, invalid fields)."""
