"""HTTP client for worker agents.

Performs exactly one task execution round-trip against one worker's API.
Retries and fallback are the aggregator's concern, not this module's.
"""

import asyncio
import logging
import secrets
import string
import time
from typing import Any, Optional

import httpx

from checkhost.core.config import settings
from checkhost.core.logging import log_warning
from checkhost.core.metrics import (
    WORKER_REQUESTS_TOTAL,
    WORKER_REQUEST_DURATION_SECONDS,
)
from checkhost.modules.agent.models import http_base_url

logger = logging.getLogger(__name__)

TASK_EXECUTE_PATH = "/task/execute"
API_KEY_HEADER = "X-API-Key"

_TASK_ID_ALPHABET = string.ascii_lowercase + string.digits


class CheckServiceError(Exception):
    """Base exception for check dispatch errors."""
    pass


class WorkerError(CheckServiceError):
    """A single worker invocation failed.

    ``status_code`` is set for HTTP error responses and ``None`` for
    transport failures (refused connection, DNS failure, timeout).
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


def generate_task_id(check_type: str) -> str:
    """Build a per-invocation task ID for tracing on the worker side.

    Millisecond timestamp plus 9 random base36 characters. Unique with high
    probability, but collisions are not detected.
    """
    suffix = "".join(secrets.choice(_TASK_ID_ALPHABET) for _ in range(9))
    return f"{check_type}-{int(time.time() * 1000)}-{suffix}"


def worker_url_for(agent: Any) -> str:
    """Base URL of an agent's worker API."""
    port = getattr(agent, "port", None) or settings.WORKER_DEFAULT_PORT
    return http_base_url(agent.server_ip, port)


def _check_type_value(check_type: Any) -> str:
    return getattr(check_type, "value", check_type)


class WorkerClient:
    """Client for the worker task API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize worker client.

        Args:
            api_key: Shared secret sent as X-API-Key (uses settings if not provided)
            timeout: Total seconds allowed per call (uses settings if not provided)
            transport: Optional httpx transport, mainly for tests
        """
        self.api_key = api_key if api_key is not None else settings.WORKER_API_KEY
        self.timeout = timeout if timeout is not None else settings.WORKER_REQUEST_TIMEOUT_SECONDS
        self._transport = transport

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key
        return headers

    async def invoke(
        self,
        worker_base_url: str,
        check_type: Any,
        host: str,
        options: Optional[dict] = None,
    ) -> Any:
        """Execute one check on one worker.

        Args:
            worker_base_url: Worker API root, e.g. ``http://10.0.0.5:8000``
            check_type: Check type (CheckType or its string value)
            host: Target host, IP or URL
            options: Check-specific options

        Returns:
            The worker's JSON response, unmodified

        Raises:
            WorkerError: On non-2xx response, transport failure, timeout or
                a malformed worker URL
        """
        check_type = _check_type_value(check_type)
        task_id = generate_task_id(check_type)
        url = f"{worker_base_url.rstrip('/')}{TASK_EXECUTE_PATH}"
        body = {
            "taskId": task_id,
            "checkType": check_type,
            "host": host,
            "options": options if options is not None else {},
        }

        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._post(url, body), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            self._record(check_type, "timeout", start_time)
            message = f"Worker request timed out after {self.timeout}s"
            log_warning(logger, message, worker_url=url, task_id=task_id, check_type=check_type)
            raise WorkerError(message)
        except httpx.TimeoutException as e:
            self._record(check_type, "timeout", start_time)
            message = str(e) or f"Worker request timed out after {self.timeout}s"
            log_warning(logger, "Worker request timed out", worker_url=url, task_id=task_id, check_type=check_type)
            raise WorkerError(message) from e
        except httpx.HTTPError as e:
            self._record(check_type, "transport_error", start_time)
            message = str(e) or e.__class__.__name__
            log_warning(logger, "Worker unreachable", worker_url=url, task_id=task_id, check_type=check_type, error=message)
            raise WorkerError(message) from e
        except (httpx.InvalidURL, ValueError) as e:
            # Malformed worker address, rejected before anything is sent
            self._record(check_type, "invalid_url", start_time)
            message = f"Invalid worker URL {url}: {e}"
            log_warning(logger, "Invalid worker URL", worker_url=url, task_id=task_id, check_type=check_type, error=str(e))
            raise WorkerError(message) from e

        if not response.is_success:
            self._record(check_type, "http_error", start_time)
            error_text = response.text
            log_warning(
                logger,
                "Worker returned error status",
                worker_url=url,
                task_id=task_id,
                check_type=check_type,
                status_code=response.status_code,
            )
            raise WorkerError(
                f"Worker API error: {response.status_code} {error_text}",
                status_code=response.status_code,
                body=error_text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            self._record(check_type, "invalid_response", start_time)
            raise WorkerError(
                f"Worker returned invalid JSON: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        self._record(check_type, "success", start_time)
        return payload

    async def _post(self, url: str, body: dict) -> httpx.Response:
        # Fresh client per call, no pooling across dispatches
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            return await client.post(url, json=body, headers=self._build_headers())

    @staticmethod
    def _record(check_type: str, outcome: str, start_time: float) -> None:
        WORKER_REQUESTS_TOTAL.labels(check_type=check_type, outcome=outcome).inc()
        WORKER_REQUEST_DURATION_SECONDS.labels(check_type=check_type).observe(
            time.perf_counter() - start_time
        )
