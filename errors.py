"""Exceptions and FastAPI exception handlers."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class IntelixirError(Exception):
    """Base class for application errors."""


class IngestionError(IntelixirError):
    """Raised when a news ingestion run cannot proceed."""


class AdminUserNotFoundError(IngestionError):
    """No admin user exists to own ingested posts."""


class NewsSourceError(IntelixirError):
    """The news API call failed or returned an error payload."""


class AIClientError(IntelixirError):
    """The generative model call failed or returned nothing usable."""


class EmailServiceError(IntelixirError):
    """SMTP delivery failed."""


def error_body(message: str, errors=None) -> dict:
    body = {"status": "error", "message": message}
    if errors:
        body["errors"] = errors
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")
    else:
        logger.info(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def field_errors(errors, skip: int = 0) -> list:
    """Map pydantic error dicts to [{field, message}]; ``skip`` drops the request location prefix."""
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())[skip:]), "message": err.get("msg")}
        for err in errors
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", field_errors(exc.errors(), skip=1)),
    )


async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    # document models built inside a route
    logger.info(f"Model validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", field_errors(exc.errors())),
    )


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    fields = list((exc.details or {}).get("keyValue", {}).keys())
    message = "Duplicate value"
    if fields:
        message = f"Duplicate value for field{'s' if len(fields) > 1 else ''}: {', '.join(fields)}"
    logger.warning(f"{message} on {request.method} {request.url.path}")
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=error_body(message))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, model_validation_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, general_exception_handler)
