"""Domain errors and their HTTP rendering.

Services raise `FileServiceError` subclasses; the handlers registered by
`register_exception_handlers()` turn them (and Starlette's own HTTP errors)
into the `{success, error, code, message?}` envelope.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class FileServiceError(Exception):
    """Base error. Carries the HTTP status and a stable machine-readable code."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, error: str, message: Optional[str] = None):
        super().__init__(error)
        self.error = error
        self.message = message


# ─── Taxonomy ────────────────────────────────────────────────────

class ValidationError(FileServiceError):
    status_code = 400
    code = "VALIDATION_ERROR"


class ForbiddenError(FileServiceError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(FileServiceError):
    status_code = 404
    code = "NOT_FOUND"


class QuotaExceededError(FileServiceError):
    status_code = 413
    code = "QUOTA_EXCEEDED"


class UnsupportedTypeError(FileServiceError):
    status_code = 415
    code = "UNSUPPORTED_TYPE"


class StorageFaultError(FileServiceError):
    status_code = 500
    code = "STORAGE_FAULT"


# ─── Upload / link specific ──────────────────────────────────────

class MissingFiles(ValidationError):
    code = "MISSING_FILES"


class NoLinksProvided(ValidationError):
    code = "NO_LINKS_PROVIDED"


class InvalidRequestBody(ValidationError):
    code = "INVALID_REQUEST_BODY"


class FileTooLarge(QuotaExceededError):
    code = "FILE_TOO_LARGE"


class TooManyFiles(QuotaExceededError):
    code = "TOO_MANY_FILES"


class InvalidFileType(UnsupportedTypeError):
    code = "INVALID_FILE_TYPE"


class InternalStorageError(StorageFaultError):
    code = "INTERNAL_STORAGE_ERROR"


class InternalError(StorageFaultError):
    code = "INTERNAL_ERROR"


# ─── HTTP rendering ──────────────────────────────────────────────

def error_body(error: str, message: Optional[str] = None, code: Optional[str] = None) -> dict:
    body = {"success": False, "error": error}
    if code:
        body["code"] = code
    if message:
        body["message"] = message
    return body


async def file_service_error_handler(request: Request, exc: FileServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed with %s: %s",
            request.method, request.url.path, exc.code, exc.message or exc.error,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error, exc.message, exc.code),
    )


HTTP_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 405:
        error = f"Method {request.method} not allowed."
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error, code=HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = error_body("Invalid request.", code=InvalidRequestBody.code)
    body["details"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=400, content=body)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("Internal Server Error", code=InternalError.code),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FileServiceError, file_service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
