"""
Domain error taxonomy and the FastAPI handlers that render it.

Every error response uses the same envelope:

    {"error": {"code": "...", "message": "...", "status": 409, "details": {...}}}

Services raise the ``AppError`` subclasses below; low-level store errors are
translated into ``ConflictError`` before they leave a service.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

log = structlog.get_logger()

UNIQUE_VIOLATION_SQLSTATE = "23505"


# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------

class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "status": self.status_code,
        }
        if self.details:
            body["details"] = self.details
        return body


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


# ---------------------------------------------------------------------------
# Store error inspection
# ---------------------------------------------------------------------------

def is_unique_violation(exc: BaseException) -> bool:
    """True when ``exc`` is a unique-constraint violation from the store.

    PostgreSQL drivers expose SQLSTATE 23505 (``pgcode`` on psycopg,
    ``sqlstate`` on asyncpg); SQLite only reports it in the message.
    """
    if not isinstance(exc, IntegrityError):
        return False
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        if getattr(orig, attr, None) == UNIQUE_VIOLATION_SQLSTATE:
            return True
    cause = getattr(orig, "__cause__", None)
    if getattr(cause, "sqlstate", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = str(orig)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message


# ---------------------------------------------------------------------------
# Validation error formatting
# ---------------------------------------------------------------------------

def format_validation_errors(errors: list[dict[str, Any]]) -> dict[str, str]:
    """Map dotted field paths to the first message reported for them."""
    fields: dict[str, str] = {}
    for error in errors:
        loc = error.get("loc", ())
        parts = [str(p) for p in loc if p not in ("body", "query", "path")]
        field = ".".join(parts) if parts else "request"
        fields.setdefault(field, error.get("msg", "Invalid value"))
    return fields


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _envelope(code: str, message: str, status_code: int, details: Optional[dict] = None) -> JSONResponse:
    body: dict[str, Any] = {"code": code, "message": message, "status": status_code}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request.failed", path=request.url.path, code=exc.code, message=exc.message)
    else:
        log.info(
            "request.rejected",
            path=request.url.path,
            method=request.method,
            code=exc.code,
            status=exc.status_code,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = format_validation_errors(exc.errors())
    log.info("request.invalid", path=request.url.path, fields=list(fields))
    return _envelope(
        "VALIDATION_ERROR",
        "Invalid request data",
        status.HTTP_400_BAD_REQUEST,
        {"fields": fields},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    response = _envelope(f"HTTP_{exc.status_code}", message, exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("request.unhandled_error", path=request.url.path, method=request.method)
    return _envelope(
        "INTERNAL_ERROR",
        "Unexpected server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to ``app``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
