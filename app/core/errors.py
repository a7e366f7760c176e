"""Domain errors and their HTTP rendering.

Services raise these exceptions; the handlers registered by
``register_exception_handlers`` turn them into ``{"message": ..., **details}``
JSON bodies with the matching status code.
"""
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logging import get_logger

logger = get_logger(__name__)


class StudioError(Exception):
    """Base class for errors with a client-facing message."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_body(self) -> Dict[str, Any]:
        return {"message": self.message, **self.details}


class ValidationError(StudioError):
    """Missing or malformed input, rejected before any write."""
    status_code = status.HTTP_400_BAD_REQUEST


class BusinessRuleError(StudioError):
    """Input is well formed but breaks a studio rule (full class, expired pass...)."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(StudioError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(StudioError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(StudioError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(StudioError):
    status_code = status.HTTP_409_CONFLICT


async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    logger.info(
        f"{type(exc).__name__}: {exc.message}",
        extra={
            "endpoint": request.url.path,
            "status_code": exc.status_code,
            "error_type": type(exc).__name__,
        }
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request", "errors": errors},
    )


def server_error_body(exc: Exception, request_id: Optional[str], expose: bool) -> Dict[str, Any]:
    """Body for unexpected failures; the raw error text is only echoed when ``expose``."""
    body: Dict[str, Any] = {"message": "Server error", "requestId": request_id}
    if expose:
        body["error"] = str(exc)
    return body


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StudioError, studio_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
