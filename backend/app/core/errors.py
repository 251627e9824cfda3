class CatalogError(Exception):
    """Base class for run catalog errors."""


class NotFoundError(CatalogError):
    """An operation referenced a run id that does not exist."""


class ConflictError(CatalogError):
    """An insert or update collided with an existing run_number."""


class TransientStoreError(CatalogError):
    """The store was unreachable or timed out. Retried on the next scheduled pass."""


class ValidationError(CatalogError):
    """Caller input is well-typed but not acceptable."""
