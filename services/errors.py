"""
Service-layer error taxonomy.

Services raise these; ``middleware.error_handlers`` turns them into
``{"status": <code>, "message": <text>}`` responses.
"""
from __future__ import annotations


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Not authenticated"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class UpstreamProviderError(AppError):
    """A payment network call failed. The raw cause is logged, never returned."""

    status_code = 500
    default_message = "Order failed"

    def __init__(self, provider: str, detail: str | None = None):
        self.provider = provider
        self.detail = detail
        super().__init__(self.default_message)


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"
