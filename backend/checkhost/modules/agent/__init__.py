"""Agent module for the worker registry."""

from checkhost.modules.agent.models import Agent, AgentStatus, AgentLocation
from checkhost.modules.agent.schemas import (
    AgentCreateRequest,
    AgentUpdateRequest,
    AgentInfo,
    AgentListResponse,
    AgentActionResponse,
    AgentHealthResult,
)
from checkhost.modules.agent.repository import (
    AgentRegistry,
    AgentRepository,
    InMemoryAgentRegistry,
)
from checkhost.modules.agent.router import router as agent_router
from checkhost.modules.agent.service import (
    AgentService,
    AgentServiceError,
    AgentNotFoundError,
)

__all__ = [
    # Models
    "Agent",
    "AgentStatus",
    "AgentLocation",
    # Schemas
    "AgentCreateRequest",
    "AgentUpdateRequest",
    "AgentInfo",
    "AgentListResponse",
    "AgentActionResponse",
    "AgentHealthResult",
    # Repositories
    "AgentRegistry",
    "AgentRepository",
    "InMemoryAgentRegistry",
    # Service
    "AgentService",
    "AgentServiceError",
    "AgentNotFoundError",
    # Router
    "agent_router",
]
