"""
Error types for the backup store.

Every error carries the HTTP status the API layer answers with and a
human-readable message. Store failures are never retried or rolled back.
"""

from typing import Optional


class BackupError(Exception):
    """Base class for all backup store errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BackupError):
    status_code = 404


class BadRequestError(BackupError):
    status_code = 400


class UnauthorizedError(BackupError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class StoreIOError(BackupError):
    """An underlying get/put/list/delete call failed."""

    status_code = 502

    def __init__(self, operation: str, key: str, error: Optional[Exception] = None):
        detail = f": {error}" if error is not None else ""
        super().__init__(f"Store {operation} failed for {key!r}{detail}")
        self.operation = operation
        self.key = key


class PartialWriteError(StoreIOError):
    """
    The old current was archived but the new current could not be written.

    The stray historical slot is left in place; callers can detect it with a
    version listing.
    """

    status_code = 500

    def __init__(self, key: str, archived_key: str, error: Optional[Exception] = None):
        super().__init__("put", key, error)
        self.archived_key = archived_key
        self.message = (
            f"Archived previous content to {archived_key!r} but writing "
            f"{key!r} failed: {error}"
        )
        self.args = (self.message,)
