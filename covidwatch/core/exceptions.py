"""
Application error taxonomy and global exception handlers.

Handlers translate every error into a JSON body of the form
``{"detail": ..., "success": false}`` and never leak stack traces.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from covidwatch.core.config import settings

logger = logging.getLogger(__name__)


# ── Error taxonomy ──────────────────────────────────────────────────
class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_content(self) -> dict[str, Any]:
        return {"detail": self.detail, "success": False}


class ClientInputError(AppError):
    """Malformed body, unexpected fields or failed validation (400)."""

    status_code = 400
    default_detail = "Invalid request"

    def __init__(
        self, detail: str | None = None, errors: list[dict[str, str]] | None = None
    ) -> None:
        super().__init__(detail)
        self.errors = errors or []

    def to_content(self) -> dict[str, Any]:
        content = super().to_content()
        if self.errors:
            content["errors"] = self.errors
        return content


class AuthenticationError(AppError):
    status_code = 401
    default_detail = "Authentication required"


class AuthorizationError(AppError):
    status_code = 403
    default_detail = "Insufficient privileges"


class ConflictError(AppError):
    status_code = 409
    default_detail = "Resource already exists"


class RateLimitError(AppError):
    """Too many requests in the current window (429)."""

    status_code = 429
    default_detail = "Too many requests"

    def __init__(self, retry_after: int, detail: str | None = None) -> None:
        super().__init__(detail)
        self.retry_after = retry_after

    def to_content(self) -> dict[str, Any]:
        content = super().to_content()
        content["message"] = "You have exceeded the rate limit. Please try again later."
        content["retryAfter"] = self.retry_after
        return content


class StoreError(AppError):
    """Database connection or query failure (500)."""

    status_code = 500
    default_detail = "Internal database error"


# ── Handlers ────────────────────────────────────────────────────────
def _internal_detail(public: str, exc: Exception) -> str:
    if settings.is_production:
        return public
    return f"{public}: {exc}"


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}
        logger.warning("Rate limit exceeded on %s %s", request.method, request.url.path)
    elif isinstance(exc, StoreError):
        logger.error("Store error on %s: %s", request.url.path, exc.__cause__ or exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": _internal_detail(exc.detail, exc.__cause__ or exc),
                "success": False,
            },
        )
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_content(), headers=headers
    )


async def _http_exception_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": _internal_detail("Internal database error", exc), "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": _internal_detail("Internal server error", exc), "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
