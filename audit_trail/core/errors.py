"""Error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations


class AppError(Exception):
    """Base application error carrying an HTTP status and a stable code."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class UnknownActionType(ValidationError):
    """Raised when an action code is not an active registry entry."""

    code = "UNKNOWN_ACTION_TYPE"

    def __init__(self, action_code: str) -> None:
        super().__init__(f"Invalid action type code: {action_code}")
        self.action_code = action_code


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "VERSION_CONFLICT"
    retryable = True


class StoreUnavailableError(AppError):
    status_code = 503
    code = "STORE_UNAVAILABLE"
    retryable = True
