"""
Error taxonomy for the enrichment run.

Only SelectionFailure may abort a run. Everything else is scoped to a
single candidate and ends up in the run's AggregateReport.
"""

from typing import Optional


class SicSyncError(Exception):
    """Base class for all sicsync errors."""
    pass


class TransportFailure(SicSyncError):
    """Registry could not be reached or returned an unreadable body."""

    def __init__(self, message: str, registry_id: Optional[str] = None):
        self.registry_id = registry_id
        super().__init__(message)


class InvalidCodeError(SicSyncError):
    """A classification code was rejected by the record store."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Incorrect/missing SIC code: {code}")


class SelectionFailure(SicSyncError):
    """The candidate query itself failed; nothing was processed."""
    pass


class ItemProcessingError(SicSyncError):
    """Unexpected fault while handling one candidate."""

    def __init__(self, record_id, cause: Exception):
        self.record_id = record_id
        self.cause = cause
        super().__init__(f"Record #{record_id}: {type(cause).__name__}: {cause}")


def error_kind(exc: Exception) -> str:
    """Kind recorded in reports: the taxonomy class name."""
    if isinstance(exc, SicSyncError):
        return type(exc).__name__
    return ItemProcessingError.__name__
