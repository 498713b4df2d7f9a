"""HTTP middleware: correlation IDs, request logs and request metrics."""

import logging
import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from checkhost.core.logging import clear_correlation_id, set_correlation_id
from checkhost.core.metrics import (
    HTTP_REQUESTS_IN_PROGRESS,
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
)

CORRELATION_ID_HEADER = "X-Correlation-ID"

# (pattern, replacement) applied in order to build the metrics endpoint label
_PATH_RULES = (
    (re.compile(r"[0-9a-f]{8}(-[0-9a-f]{4}){3}-[0-9a-f]{12}", re.IGNORECASE), "{id}"),
    (re.compile(r"/agents/[^/]+"), "/agents/{id}"),
    (re.compile(r"/\d+(?=/|$)"), "/{id}"),
)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests and records their latency per normalized route."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        labels = {"method": request.method, "endpoint": self._normalize_path(request.url.path)}
        in_progress = HTTP_REQUESTS_IN_PROGRESS.labels(**labels)
        in_progress.inc()
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            in_progress.dec()
            HTTP_REQUEST_DURATION_SECONDS.labels(**labels).observe(time.perf_counter() - start)
            HTTP_REQUESTS_TOTAL.labels(status_code=str(status_code), **labels).inc()

    @staticmethod
    def _normalize_path(path: str) -> str:
        """Collapse IDs in ``path`` so the endpoint label stays low-cardinality."""
        for pattern, replacement in _PATH_RULES:
            path = pattern.sub(replacement, path)
        return path


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Takes the correlation ID from the request header, or mints one, and
    echoes it on the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line when a request finishes, or fails with an exception."""

    def __init__(self, app: ASGIApp, log_query: bool = True):
        super().__init__(app)
        self.log_query = log_query
        self.logger = logging.getLogger("checkhost.requests")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        context = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }
        if self.log_query and request.url.query:
            context["query"] = request.url.query

        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception(
                "Request failed",
                extra={**context, "duration_ms": _elapsed_ms(start)},
            )
            raise

        self.logger.info(
            "Request completed",
            extra={**context, "status_code": response.status_code, "duration_ms": _elapsed_ms(start)},
        )
        return response
