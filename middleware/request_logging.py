"""
Request logging middleware. Logs method, path, status, duration and request id.
Never logs headers, body, or query params (may contain tokens or PII).
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from config.logging_config import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request and echo its id back in ``X-Request-ID``."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        method = request.method
        # Log path only; do not log query string (may contain tokens or PII)
        path = request.scope.get("path", "")
        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "request_failed method=%s path=%s duration_ms=%.1f",
                    method, path, (time.perf_counter() - start) * 1000,
                )
                raise
            duration_ms = (time.perf_counter() - start) * 1000
            status = response.status_code
            if status >= 500:
                log = logger.error
            elif status >= 400:
                log = logger.warning
            else:
                log = logger.info
            log(
                "request_finished method=%s path=%s status=%s duration_ms=%.1f",
                method, path, status, duration_ms,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)
