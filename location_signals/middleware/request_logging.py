"""
Request Logging Middleware.

Logs all API requests in JSON format for analytics and debugging.
"""

import json
import logging
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..config import get_settings

logger = logging.getLogger(__name__)

# Dedicated request logger
request_logger = logging.getLogger("api.requests")


def setup_request_logging(log_file: str) -> None:
    """
    Set up file logging for API requests.

    Logs in JSON Lines format for easy parsing. Safe to call more than once.
    """
    log_path = Path(log_file).resolve()

    for handler in request_logger.handlers:
        if isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename) == log_path:
            return

    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(message)s"))

    request_logger.addHandler(handler)
    request_logger.setLevel(logging.INFO)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs all requests in structured JSON format.

    Captures:
    - Timestamp and request ID
    - Method, path and the location key being looked up
    - Response status and time
    - Client IP
    """

    def __init__(self, app, log_file: Optional[str] = None):
        super().__init__(app)
        self._settings = get_settings()

        log_file = log_file or self._settings.request_log_file
        if log_file:
            setup_request_logging(log_file)

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP from request."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"

    async def dispatch(self, request: Request, call_next) -> Response:
        """Log request and response details."""
        start_time = time.time()

        method = request.method
        path = request.url.path
        client_ip = self._get_client_ip(request)

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        request_id = getattr(request.state, "request_id", None)
        signal_source = response.headers.get("X-Signal-Source")
        location_key = getattr(request.state, "location_key", None)

        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "request_id": request_id,
            "method": method,
            "path": path,
            "location_key": location_key,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": client_ip,
            "signal_source": signal_source,
        }

        request_logger.info(json.dumps(log_entry))

        logger.info(
            f"{method} {path} - {response.status_code} - {duration_ms:.1f}ms"
            + (f" - source={signal_source}" if signal_source else "")
        )

        return response
