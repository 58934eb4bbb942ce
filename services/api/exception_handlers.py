"""FastAPI exception handlers rendering the error envelope."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from fragments.exceptions import (
    AuthenticationError,
    ContentTypeError,
    ConversionNotSupportedError,
    FragmentDataError,
    FragmentsError,
    MalformedContentError,
    NotFoundError,
    StorageUnavailableError,
    UnknownExtensionError,
    ValidationError,
)


def error_response(code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content={"status": "error", "error": {"code": code, "message": message}},
        headers=headers,
    )


def status_for(exc: FragmentsError) -> int:
    # subclasses before their parents
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, (ContentTypeError, FragmentDataError, ConversionNotSupportedError)):
        return status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    if isinstance(exc, (ValidationError, UnknownExtensionError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, MalformedContentError):
        return 422
    if isinstance(exc, StorageUnavailableError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def fragments_exception_handler(request: Request, exc: FragmentsError) -> JSONResponse:
    """Handle fragments-specific exceptions."""
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "{type} on {method} {path}: {message}",
        type=type(exc).__name__,
        method=request.method,
        path=request.url.path,
        message=exc.message,
        details=exc.details,
    )
    headers = {"WWW-Authenticate": "Basic"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return error_response(status_code, exc.message, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        logger.warning("404 Not Found: {path}", path=request.url.path)
    message = exc.detail if isinstance(exc.detail, str) else "unable to process request"
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
        message = "not found"
    return error_response(exc.status_code, message, getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled exception on {path}", path=request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "unable to process request")


__all__ = [
    "error_response",
    "status_for",
    "fragments_exception_handler",
    "http_exception_handler",
    "unhandled_exception_handler",
]
