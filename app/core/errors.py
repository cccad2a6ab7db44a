"""
app/core/errors.py

Purpose: HTTP error rendering

- Every error leaves the API as ErrorResponse {error, code, details}
- AgriBotError keeps its own status code; 5xx ones are logged as errors
- Collaborator and delivery details are hidden in production
"""

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import AgriBotError, ExternalServiceError
from app.core.logging import get_logger
from app.schemas.response import ErrorResponse

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


def error_response(status_code: int, error: str, code: str, details: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, code=code, details=details).model_dump(),
    )


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(AgriBotError)
    async def agribot_exception_handler(request: Request, exc: AgriBotError):
        if exc.status_code >= 500:
            logger.error(f"❌ {exc.code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.warning(f"⚠️ {exc.code} on {request.method} {request.url.path}: {exc.message}")

        details = exc.details
        if isinstance(exc, ExternalServiceError) and settings.is_production:
            details = None
        return error_response(exc.status_code, exc.message, exc.code, details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handles standard HTTP exceptions (404, 405, etc.)
        """
        return error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"⚠️ Invalid request to {request.url.path}: {len(exc.errors())} error(s)")
        return error_response(422, "Input validation failed", "VALIDATION_ERROR", jsonable_encoder(exc.errors()))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else "unknown",
            },
            exc_info=True,
        )
        message = INTERNAL_ERROR_MESSAGE if settings.is_production else str(exc)
        return error_response(500, message, "INTERNAL_ERROR")
