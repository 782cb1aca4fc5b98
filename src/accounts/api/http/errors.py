"""Translate store errors and framework exceptions into JSON envelopes."""

from collections.abc import Iterable, Sequence
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse

from src.accounts.core.exceptions import (
    AccountsError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from src.accounts.core.models import ErrorResponse
from src.accounts.runtime.context import get_config

VALIDATION_FAILED = "Validation failed"
INTERNAL_ERROR = "Internal server error"

_STATUS_BY_ERROR: dict[type[AccountsError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    ConflictError: 400,
    InternalError: 500,
}

_LOC_PREFIXES = {"body", "query", "path"}

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status: {"model": ErrorResponse} for status in (400, 404, 422, 429, 500)
}


def status_for(exc: AccountsError) -> int:
    for error_type, status in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status
    return 500


def field_key(loc: Sequence[Any]) -> str:
    """``("body", "emails", 0, "email")`` becomes ``"emails.0.email"``."""
    parts = list(loc)
    if parts and parts[0] in _LOC_PREFIXES:
        parts = parts[1:]
    return ".".join(str(part) for part in parts) or "body"


def collect_errors(errors: Iterable[dict[str, Any]]) -> dict[str, list[str]]:
    collected: dict[str, list[str]] = {}
    for error in errors:
        key = field_key(error.get("loc", ()))
        if error.get("type") == "missing":
            label = key.rsplit(".", 1)[-1].replace("_", " ")
            message = f"The {label} field is required."
        else:
            message = str(error.get("msg", "Invalid value"))
        collected.setdefault(key, []).append(message)
    return collected


def _envelope(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "message": message, **extra}


async def accounts_error_handler(request: Request, exc: AccountsError) -> JSONResponse:
    status = status_for(exc)
    if isinstance(exc, ValidationError):
        return JSONResponse(
            status_code=status,
            content=_envelope(exc.message, errors=exc.errors),
        )

    message = exc.message
    if status >= 500:
        logger.bind(error_type=type(exc).__name__).error(
            "Request failed: {}", exc.message
        )
        if not get_config().app.debug:
            message = INTERNAL_ERROR
    return JSONResponse(status_code=status, content=_envelope(message))


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = collect_errors(exc.errors())
    logger.bind(fields=sorted(errors)).info("Request validation failed")
    return JSONResponse(
        status_code=422,
        content=_envelope(VALIDATION_FAILED, errors=errors),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    extra: dict[str, Any] = {}
    headers = getattr(exc, "headers", None)
    if exc.status_code == 429 and headers and "Retry-After" in headers:
        extra["retry_after"] = int(headers["Retry-After"])
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(str(exc.detail), **extra),
        headers=headers,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.bind(error_type=type(exc).__name__).exception("Unhandled error")
    message = str(exc) if get_config().app.debug else INTERNAL_ERROR
    return JSONResponse(status_code=500, content=_envelope(message))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccountsError, accounts_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
