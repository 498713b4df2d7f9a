"""Prometheus metrics for the check fan-out.

Tracks HTTP traffic, per-worker call outcomes and which dispatch path
(agents, fallback worker, total failure) each check took.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

NAMESPACE = "checkhost"

# Collectors live on a private registry, not the process default
REGISTRY = CollectorRegistry()

APP_INFO = Info("app", "Build and environment", namespace=NAMESPACE, registry=REGISTRY)

# HTTP surface
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "API requests by route and status",
    ["method", "endpoint", "status_code"],
    namespace=NAMESPACE,
    registry=REGISTRY,
)
HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "API request latency",
    ["method", "endpoint"],
    namespace=NAMESPACE,
    # A check request waits for the slowest agent
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60),
    registry=REGISTRY,
)
HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "API requests being handled",
    ["method", "endpoint"],
    namespace=NAMESPACE,
    registry=REGISTRY,
)

# Outbound worker calls
WORKER_REQUESTS_TOTAL = Counter(
    "worker_requests_total",
    "Worker task executions by check type and outcome",
    ["check_type", "outcome"],
    namespace=NAMESPACE,
    registry=REGISTRY,
)
WORKER_REQUEST_DURATION_SECONDS = Histogram(
    "worker_request_duration_seconds",
    "Worker task execution round trip",
    ["check_type"],
    namespace=NAMESPACE,
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
    registry=REGISTRY,
)

# Dispatch resolution and fleet state
CHECK_DISPATCH_TOTAL = Counter(
    "check_dispatch_total",
    "Check dispatches by check type and path (agents, fallback, failed)",
    ["check_type", "path"],
    namespace=NAMESPACE,
    registry=REGISTRY,
)
AGENTS_TOTAL = Gauge(
    "agents",
    "Registered agents by status, as of the last listing",
    ["status"],
    namespace=NAMESPACE,
    registry=REGISTRY,
)


def get_metrics() -> bytes:
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def set_app_info(version: str, environment: str) -> None:
    APP_INFO.info({"version": version, "environment": environment})
