import logging
from typing import Any, ClassVar

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from psycopg import OperationalError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Failure reported to the client as ``{"error": {code, message, details}}``."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class _KindError(AppError):
    kind_status: ClassVar[int] = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(self.kind_status, code, message, details)


class InvalidInputError(_KindError):
    kind_status = status.HTTP_400_BAD_REQUEST


class NotAuthenticatedError(_KindError):
    kind_status = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(_KindError):
    kind_status = status.HTTP_403_FORBIDDEN


class NotFoundError(_KindError):
    kind_status = status.HTTP_404_NOT_FOUND


class ConflictError(_KindError):
    kind_status = status.HTTP_409_CONFLICT


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body = {"code": code, "message": message, "details": details or {}}
    return JSONResponse(status_code=status_code, content={"error": body})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.debug("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status.HTTP_422_UNPROCESSABLE_CONTENT,
        "VALIDATION_ERROR",
        "Request validation failed.",
        {"issues": exc.errors()},
    )


async def store_unavailable_handler(request: Request, exc: OperationalError) -> JSONResponse:
    # No retry here; the driver message goes back as-is.
    logger.warning("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "STORE_UNAVAILABLE",
        "The time-tracking store could not complete the request.",
        {"reason": str(exc)},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "Unexpected server error.",
        {"reason": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    handlers = {
        AppError: app_error_handler,
        RequestValidationError: validation_error_handler,
        OperationalError: store_unavailable_handler,
        Exception: unhandled_error_handler,
    }
    for exc_class, handler in handlers.items():
        app.add_exception_handler(exc_class, handler)
