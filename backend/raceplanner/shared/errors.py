"""
Error taxonomy.

Every failure that reaches a caller is one of these. The API layer turns them
into ``{"message": ...}`` responses with ``status_code``.
"""

from typing import Optional


class RacePlannerError(Exception):
    """Base error. Carries a caller-facing message and an HTTP status."""

    status_code: int = 500
    default_message: str = "Unexpected error."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(RacePlannerError):
    """Malformed request: missing file, bad body, bad id."""
    status_code = 400
    default_message = "Invalid request."


class UnprocessableGpxError(ValidationError):
    """Upload is present but contains no usable track."""
    status_code = 422
    default_message = "Invalid GPX file."


class AuthenticationError(RacePlannerError):
    status_code = 401
    default_message = "Invalid session."


class PermissionDeniedError(RacePlannerError):
    status_code = 403
    default_message = "Not authorized."


class QuotaExceededError(RacePlannerError):
    status_code = 402
    default_message = "A premium plan is required to save additional plans."


class NotFoundError(RacePlannerError):
    status_code = 404
    default_message = "Not found."


class ConflictError(RacePlannerError):
    status_code = 409
    default_message = "Conflict."


class RateLimitedError(RacePlannerError):
    """Too many requests; ``retry_after`` is in whole seconds."""
    status_code = 429
    default_message = "Too many requests."

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message)


class DependencyError(RacePlannerError):
    """Blob store or record store call failed."""
    status_code = 502
    default_message = "Upstream service failed."
