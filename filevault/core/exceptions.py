"""
@file: exceptions.py
@description:
Exception taxonomy for the FileVault service and the handlers that turn it into
JSON envelopes.

Expected outcomes (bad credentials, missing files, malformed input) carry the
message returned to the caller. Storage failures carry a generic message; their
detail goes to the server log only.

@dependencies:
- fastapi: For the exception handler registration and JSON responses
- filevault.core.logger: For component-specific logging
"""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from filevault.core.logger import setup_logger

logger = setup_logger("filevault.core.exceptions")

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"


class FileVaultError(Exception):
    """Base class for all errors surfaced to API callers."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = INTERNAL_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class Unauthenticated(FileVaultError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid API key"


class Unauthorized(FileVaultError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Insufficient permissions"


class FileNotFound(FileVaultError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "File not found"


class BadRequest(FileVaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class PayloadTooLarge(BadRequest):
    message = "File exceeds the maximum upload size"


class StorageUnavailable(FileVaultError):
    """
    The catalog database or the blob directory could not be used.

    The constructor message is kept for the server log; callers always
    receive INTERNAL_ERROR_MESSAGE.
    """

    def __init__(self, detail: str = "Storage unavailable"):
        super().__init__(detail)
        self.detail = detail
        self.message = INTERNAL_ERROR_MESSAGE


class InconsistentState(StorageUnavailable):
    """A catalog record and its blob disagree about whether a file exists."""


class DuplicateFileId(StorageUnavailable):
    """The catalog rejected an insert because the file id is already taken."""


class AllocationError(StorageUnavailable):
    """No free file id could be allocated."""


async def filevault_error_handler(request: Request, exc: FileVaultError) -> JSONResponse:
    if isinstance(exc, StorageUnavailable):
        logger.error(
            f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc.detail}",
            exc_info=exc,
        )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Route not found"
    elif exc.status_code == status.HTTP_400_BAD_REQUEST:
        message = "Invalid multipart form data"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": INTERNAL_ERROR_MESSAGE},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Attach the JSON envelope handlers to the application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(FileVaultError, filevault_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
