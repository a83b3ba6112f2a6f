"""
Application error type and the exception handlers that render every failure
in the same JSON envelope: {"success": false, "error": ..., "code": ...}.
"""
import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Raised by routes and dependencies; extra kwargs are merged into the body."""

    def __init__(self, status_code: int, message: str, code: str, headers: Dict[str, str] = None, **extra: Any):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.headers = headers
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "error": self.message, "code": self.code}
        body.update(self.extra)
        return body


def _error_response(status_code: int, body: Dict[str, Any], headers: Dict[str, str] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    return _error_response(exc.status_code, exc.to_dict(), exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = []
    for err in exc.errors():
        # loc is ("body", "field") / ("query", "field"); keep the field path only
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
        details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        {"success": False, "error": "Validation failed", "code": "VALIDATION_FAILED", "details": details},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(
        exc.status_code,
        {"success": False, "error": exc.detail, "code": "HTTP_%d" % exc.status_code},
        getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
