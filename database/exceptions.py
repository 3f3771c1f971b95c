class StorageError(Exception):
    """Base for all storage backend errors."""


class NotFoundError(StorageError):
    """Entity not found. Expected before an event is seeded."""


class DuplicateError(StorageError):
    """Unique constraint violation."""


class IntegrityError(StorageError):
    """Foreign key or check constraint violation."""
