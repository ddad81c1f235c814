# app/core/errors.py
"""
Application error taxonomy.

Every error the services raise on purpose is an AppError subclass with a
fixed ErrorKind. The HTTP boundary (app/core/error_handlers.py) maps the
kind to a status code; nothing inspects messages or ad hoc attributes.
"""
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    INVALID_CODE = "invalid_code"
    INVALID_STATE = "invalid_state"
    AUTH = "auth"
    ACCOUNT_LOCKED = "account_locked"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.INVALID_CODE: 400,
    ErrorKind.INVALID_STATE: 400,
    ErrorKind.AUTH: 401,
    ErrorKind.ACCOUNT_LOCKED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


class AppError(Exception):
    """Base class for typed application errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION
    default_message = "Invalid input"


class InvalidCodeError(AppError):
    kind = ErrorKind.INVALID_CODE
    default_message = "Invalid OTP code"


class InvalidStateError(AppError):
    kind = ErrorKind.INVALID_STATE
    default_message = "Operation not allowed in the current state"


class AuthError(AppError):
    kind = ErrorKind.AUTH
    default_message = "Invalid credentials"


class AccountLockedError(AppError):
    kind = ErrorKind.ACCOUNT_LOCKED
    default_message = (
        "Your account has been suspended or deactivated. Please contact support."
    )


class ForbiddenError(AppError):
    kind = ErrorKind.FORBIDDEN
    default_message = "You do not have permission to perform this action"


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT
    default_message = "Resource already exists"


class InternalError(AppError):
    kind = ErrorKind.INTERNAL
