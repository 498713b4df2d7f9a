"""Check module: fan-out of network checks to worker agents."""

from checkhost.modules.check.schemas import (
    CheckType,
    CheckRequest,
    AgentRef,
    AgentOutcome,
    ResultRow,
    CheckResponse,
    FALLBACK_AGENT,
)
from checkhost.modules.check.worker_client import (
    CheckServiceError,
    WorkerClient,
    WorkerError,
    generate_task_id,
    worker_url_for,
)
from checkhost.modules.check.aggregator import (
    FanOutAggregator,
    NoAgentsAvailableError,
    select_agents,
)
from checkhost.modules.check.normalizer import normalize_outcome, normalize_outcomes
from checkhost.modules.check.router import router as check_router
from checkhost.modules.check.service import CheckService

__all__ = [
    # Schemas
    "CheckType",
    "CheckRequest",
    "AgentRef",
    "AgentOutcome",
    "ResultRow",
    "CheckResponse",
    "FALLBACK_AGENT",
    # Worker client
    "CheckServiceError",
    "WorkerClient",
    "WorkerError",
    "generate_task_id",
    "worker_url_for",
    # Aggregator
    "FanOutAggregator",
    "NoAgentsAvailableError",
    "select_agents",
    # Normalizer
    "normalize_outcome",
    "normalize_outcomes",
    # Service
    "CheckService",
    # Router
    "check_router",
]
