"""Error kinds raised by the document client core.

Every failure that leaves a client or the synchronizer is one of these.
Callers branch on the concrete class (or on ``kind``); only
``RemoteUnavailableError`` is safe to retry by explicit caller action.
"""


class DMSError(Exception):
    """Base class for all document client errors."""

    kind: str = "error"
    retryable: bool = False

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UnauthenticatedError(DMSError):
    """No credential available, or the remote rejected it."""

    kind = "unauthenticated"


class ForbiddenError(DMSError):
    """The authorization engine (or the remote) denied the action."""

    kind = "forbidden"


class NotFoundError(DMSError):
    """The entity does not exist on the remote."""

    kind = "not_found"


class ValidationFailedError(DMSError):
    """Malformed input: empty filter value, missing title, disallowed file type, ..."""

    kind = "validation_failed"


class RemoteUnavailableError(DMSError):
    """Network failure or 5xx. The operation may be resubmitted by the caller."""

    kind = "remote_unavailable"
    retryable = True


class ShapeMismatchError(DMSError):
    """The remote response does not match the expected contract."""

    kind = "shape_mismatch"
