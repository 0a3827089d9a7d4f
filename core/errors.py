"""
core/errors.py -- Error taxonomy shared by the auth and tasks services.

Every failure a request can hit is one of these classes. Each carries the
HTTP status, a machine-readable code, and a client-facing message, so the
exception handlers in api/common.py can render any of them into the same
ErrorResponse envelope without a lookup table.

Messages on authentication paths are deliberately generic (no username
enumeration oracle). Validation messages are field-level.

Layer rule: core/ is the kernel. No imports from api/, auth/, tasks/, or cache/.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for every error that terminates a request."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Malformed input or a field that breaks a length rule."""

    status_code = 400
    code = "validation_error"
    message = "Invalid request."


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"
    message = "Resource already exists."


class InvalidCredentials(ServiceError):
    """Unknown username or wrong password. The two cases are indistinguishable."""

    status_code = 401
    code = "bad_credentials"
    message = "Invalid username or password."


class InvalidToken(ServiceError):
    status_code = 401
    code = "invalid_token"
    message = "Invalid token."


class Unauthorized(ServiceError):
    status_code = 401
    code = "unauthorized"
    message = "Unauthorized."


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"
    message = "Not found."


class RateLimitExceeded(ServiceError):
    status_code = 429
    code = "rate_limited"
    message = "Too many attempts, please try again later."

    def __init__(self, retry_after: int = 1, message: str | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class InternalError(ServiceError):
    """Storage or hashing failure. Detail is logged, never sent to the client."""
