"""Domain errors raised by services and mapped to HTTP status codes at the API boundary."""


class CallbookError(Exception):
    """Base class for caller-visible errors; carries the message and HTTP status to return."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnauthenticatedError(CallbookError):
    """Missing, malformed, expired or badly signed credential."""

    status_code = 401


class ForbiddenError(CallbookError):
    """Caller is known but its role does not allow the operation."""

    status_code = 403


class NotFoundOrForbiddenError(CallbookError):
    """
    Target does not exist or lies outside the caller's ownership scope.

    Both cases share one outcome so non-owners cannot probe for existence.
    """

    status_code = 404


class ValidationFailedError(CallbookError):
    """Request content is invalid (missing required field, bad value)."""

    status_code = 400


class InvalidScheduleError(ValidationFailedError):
    """Callback time is not strictly in the future."""


class ConflictError(CallbookError):
    """Write would violate a uniqueness or ownership constraint (duplicate username, owned records)."""

    status_code = 400


class SchedulerNotStartedError(RuntimeError):
    """Scheduler operation attempted before startup recovery ran."""
