# app/core/error_handlers.py
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.core.errors import AppError, ErrorKind

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went wrong"
DUPLICATE_MESSAGE = "Duplicate value. Please use another value."
DB_CONNECTION_MESSAGE = "Database connection error. Please try again later."


def _error_response(
    status_code: int,
    message: str,
    exc: Exception | None = None,
) -> JSONResponse:
    """
    Build the shared error envelope:

        {"status": "error", "message": "..."}

    In development the exception repr is attached under "error".
    """
    body: dict[str, str] = {"status": "error", "message": message}
    if exc is not None and get_settings().is_development:
        body["error"] = repr(exc)
    return JSONResponse(status_code=status_code, content=body)


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid input")
    return f"{location}: {message}" if location else message


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.kind is ErrorKind.INTERNAL:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        message = exc.message if get_settings().is_development else GENERIC_MESSAGE
        return _error_response(exc.status_code, message, exc)
    return _error_response(exc.status_code, exc.message)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        _first_validation_message(exc),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return _error_response(status.HTTP_409_CONFLICT, DUPLICATE_MESSAGE, exc)


async def database_error_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        DB_CONNECTION_MESSAGE,
        exc,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        GENERIC_MESSAGE,
        exc,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Attach the envelope-producing handlers to the app.

    Order matters only for readability: Starlette picks the handler of the
    most specific exception class in the MRO.
    """
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(OperationalError, database_error_handler)
    app.add_exception_handler(DBAPIError, database_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
