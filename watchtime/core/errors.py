"""Error taxonomy shared by the aggregation engine and the query layer.

Services raise these; the handlers in watchtime/api/errors.py map each
kind to an HTTP status.  StorageFailure is opaque to clients: the
chained cause is logged, never returned.
"""

from __future__ import annotations


class ActivityError(Exception):
    """Base class for every error the core surfaces to its callers."""

    status_code = 500
    public_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class Unauthenticated(ActivityError):
    status_code = 401
    public_message = "Not authenticated"


class InvalidInput(ActivityError):
    status_code = 400
    public_message = "Invalid input"


class NotFound(ActivityError):
    status_code = 404
    public_message = "Not found"


class Unauthorized(ActivityError):
    """The entity exists but belongs to a different user."""

    status_code = 403
    public_message = "Unauthorized"


class StorageFailure(ActivityError):
    status_code = 500
    public_message = "Storage failure"
