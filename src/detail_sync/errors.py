"""Error taxonomy for detail synchronization.

Every failure raised by the adapters, the detail row service, and the
reconciliation core derives from ``DetailSyncError``.  The core never
recovers locally: errors propagate to the caller that owns the enclosing
transaction, and leaving the ``transaction()`` block with an exception
rolls everything back.

Usage:
    from detail_sync.errors import NotFoundError, ConstraintViolationError

    try:
        await store.save(movie)
    except ConstraintViolationError as e:
        print(f"Save rejected: {e}")
"""


class DetailSyncError(Exception):
    """Base class for all detail-sync errors."""


class NotFoundError(DetailSyncError, LookupError):
    """A row referenced by identifier no longer exists.

    Raised by ``update``/``delete`` when no row matches, typically because
    of a race between the read and the write of one reconciliation.
    """


class ConstraintViolationError(DetailSyncError):
    """A write violated a uniqueness, foreign-key, or check constraint."""


class StorageConnectionError(DetailSyncError, ConnectionError):
    """Transient storage failure (lost connection, timeout, pool exhausted)."""


class QueryError(DetailSyncError):
    """The server rejected a statement (bad input value, type mismatch, SQL error)."""


class ReconciliationError(DetailSyncError):
    """The submitted master/detail payload cannot be reconciled."""


class DuplicateDetailIdError(ReconciliationError):
    """The submitted detail list repeats the same non-null identifier."""

    def __init__(self, duplicates: list) -> None:
        self.duplicates = duplicates
        super().__init__(
            f"Duplicate detail identifiers in submitted list: {duplicates}"
        )


class DetailValidationError(DetailSyncError, ValueError):
    """A per-row validator rejected a detail before it was written."""


class ConfigError(DetailSyncError, ValueError):
    """Invalid master/detail descriptor or unknown configuration name."""
