"""
Peroxide - Security Middleware

Request/response middleware for:
- Request ID injection for tracing
- Request logging with timing
- Security headers
"""

import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


logger = logging.getLogger(__name__)


class SecurityMiddleware(BaseHTTPMiddleware):
    """
    Security-focused middleware for all incoming requests.

    Responsibilities:
    1. Inject X-Request-ID header for tracing
    2. Log method, path, status and duration
    3. Add security headers to response
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"

        logger.info(
            "%s %s -> %d (%.1f ms) [%s]",
            request.method, request.url.path, response.status_code, duration_ms, request_id,
        )
        return response
