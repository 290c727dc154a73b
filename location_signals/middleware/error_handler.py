"""
Global Error Handler Middleware.

Provides consistent error response formatting across all endpoints.
"""

import logging
import uuid
from typing import Optional

from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..config import get_settings
from ..exceptions import InvalidInput, PersistenceFailure, SignalError, SignalUnavailable

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or f"req_{uuid.uuid4().hex[:12]}"


def format_error_response(
    code: str,
    message: str,
    request_id: str,
    details: Optional[dict] = None,
) -> dict:
    """Format a consistent error response."""
    response = {
        "error": True,
        "code": code,
        "message": message,
        "request_id": request_id,
    }
    if details:
        response["details"] = details
    return response


def signal_error_status(exc: SignalError) -> tuple:
    """Map a signal error to (HTTP status, error code)."""
    if isinstance(exc, SignalUnavailable):
        return status.HTTP_503_SERVICE_UNAVAILABLE, "SIGNAL_UNAVAILABLE"
    if isinstance(exc, InvalidInput):
        return status.HTTP_400_BAD_REQUEST, "INVALID_INPUT"
    if isinstance(exc, PersistenceFailure):
        return status.HTTP_500_INTERNAL_SERVER_ERROR, "PERSISTENCE_FAILURE"
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "SIGNAL_ERROR"


def _signal_error_details(exc: SignalError) -> Optional[dict]:
    if isinstance(exc, SignalUnavailable):
        return {"kind": exc.kind, "reason": exc.reason}
    if isinstance(exc, InvalidInput) and exc.field:
        return {"field": exc.field}
    return None


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware that catches all exceptions and returns consistent error responses.

    Adds request ID to all responses for debugging/support.
    """

    def __init__(self, app):
        super().__init__(app)
        self._settings = get_settings()

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process request and handle any errors consistently."""
        request_id = f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            logger.exception(f"Unhandled exception [request_id={request_id}]: {exc}")

            if isinstance(exc, SignalError):
                status_code, code = signal_error_status(exc)
                error_response = format_error_response(
                    code=code,
                    message=str(exc),
                    request_id=request_id,
                    details=_signal_error_details(exc),
                )
            elif isinstance(exc, HTTPException):
                status_code = exc.status_code
                error_response = format_error_response(
                    code="HTTP_ERROR",
                    message=str(exc.detail),
                    request_id=request_id,
                )
            else:
                status_code = 500
                # Only show details in debug mode
                message = str(exc) if self._settings.debug else "An internal error occurred"
                error_response = format_error_response(
                    code="INTERNAL_ERROR",
                    message=message,
                    request_id=request_id,
                )

            return JSONResponse(
                status_code=status_code,
                content=error_response,
                headers={"X-Request-ID": request_id},
            )


def create_signal_error_handler():
    """Create a handler for SignalError and its subclasses."""

    async def signal_error_handler(request: Request, exc: SignalError) -> JSONResponse:
        """Map signal errors to their HTTP status with consistent format."""
        request_id = _request_id(request)
        status_code, code = signal_error_status(exc)

        logger.warning(f"{code} [request_id={request_id}]: {exc}")

        return JSONResponse(
            status_code=status_code,
            content=format_error_response(
                code=code,
                message=str(exc),
                request_id=request_id,
                details=_signal_error_details(exc),
            ),
            headers={"X-Request-ID": request_id},
        )

    return signal_error_handler


def create_validation_error_handler():
    """Create a handler for FastAPI validation errors."""

    async def validation_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Handle validation errors with consistent format."""
        request_id = _request_id(request)

        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error.get("loc", []))
            errors.append({
                "field": field,
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "value_error"),
            })

        error_response = format_error_response(
            code="VALIDATION_ERROR",
            message="Request validation failed",
            request_id=request_id,
            details={"errors": errors},
        )

        return JSONResponse(
            status_code=422,
            content=error_response,
            headers={"X-Request-ID": request_id},
        )

    return validation_error_handler


def create_http_exception_handler():
    """Create a handler for HTTP exceptions."""

    async def http_exception_handler(
        request: Request,
        exc: HTTPException,
    ) -> JSONResponse:
        """Handle HTTP exceptions with consistent format."""
        request_id = _request_id(request)

        if isinstance(exc.detail, dict):
            error_response = {
                **exc.detail,
                "request_id": request_id,
            }
        else:
            error_response = format_error_response(
                code=f"HTTP_{exc.status_code}",
                message=str(exc.detail),
                request_id=request_id,
            )

        return JSONResponse(
            status_code=exc.status_code,
            content=error_response,
            headers={"X-Request-ID": request_id, **(exc.headers or {})},
        )

    return http_exception_handler
