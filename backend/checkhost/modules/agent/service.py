"""Agent service for the worker registry.

Implements agent CRUD, visibility toggling and HTTP health probing.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from checkhost.core.config import settings
from checkhost.core.logging import log_info, log_warning
from checkhost.core.metrics import AGENTS_TOTAL
from checkhost.modules.agent.models import Agent, AgentStatus, http_base_url
from checkhost.modules.agent.repository import AgentRepository
from checkhost.modules.agent.schemas import (
    AgentCreateRequest,
    AgentUpdateRequest,
    AgentInfo,
    AgentListResponse,
    AgentActionResponse,
    AgentHealthResult,
    AgentStatus as SchemaAgentStatus,
)

logger = logging.getLogger(__name__)


class AgentServiceError(Exception):
    """Base exception for agent service errors."""
    pass


class AgentNotFoundError(AgentServiceError):
    """Exception when an agent ID is unknown."""
    pass


class AgentService:
    """Service for agent registry management."""

    def __init__(
        self,
        session: AsyncSession,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self.agent_repo = AgentRepository(session)
        self._transport = transport

    async def _get_or_raise(self, agent_id: str) -> Agent:
        agent = await self.agent_repo.get_agent_by_id(agent_id)
        if not agent:
            raise AgentNotFoundError(f"Agent not found: {agent_id}")
        return agent

    # ==================== Queries ====================

    async def list_agents(self, include_hidden: bool = False) -> AgentListResponse:
        """List agents, hiding hidden ones unless requested."""
        agents = await self.agent_repo.list_agents(include_hidden=include_hidden)

        online_count = sum(1 for a in agents if a.status == AgentStatus.ONLINE.value)
        await self.refresh_agent_gauge()

        return AgentListResponse(
            agents=[AgentInfo.model_validate(a) for a in agents],
            total=len(agents),
            online_count=online_count,
            offline_count=len(agents) - online_count,
        )

    async def refresh_agent_gauge(self) -> None:
        """Set the per-status agent gauge from the whole registry."""
        counts = await self.agent_repo.count_by_status()
        for agent_status in AgentStatus:
            AGENTS_TOTAL.labels(status=agent_status.value).set(counts.get(agent_status.value, 0))

    async def get_agent_info(self, agent_id: str) -> AgentInfo:
        agent = await self._get_or_raise(agent_id)
        return AgentInfo.model_validate(agent)

    # ==================== Mutations ====================

    async def create_agent(self, request: AgentCreateRequest) -> AgentInfo:
        data = request.model_dump(mode="json", exclude={"id", "name", "server_ip", "port", "status", "hidden"})
        agent = await self.agent_repo.create_agent(
            name=request.name,
            server_ip=request.server_ip,
            agent_id=request.id,
            port=request.port,
            status=AgentStatus(request.status.value),
            hidden=request.hidden,
            **data,
        )
        log_info(logger, "Agent registered", agent_id=agent.id, server_ip=agent.server_ip)
        return AgentInfo.model_validate(agent)

    async def update_agent(self, agent_id: str, request: AgentUpdateRequest) -> AgentInfo:
        await self._get_or_raise(agent_id)
        fields = request.model_dump(mode="json", exclude_unset=True)
        agent = await self.agent_repo.update_agent(agent_id, **fields)
        return AgentInfo.model_validate(agent)

    async def delete_agent(self, agent_id: str) -> AgentActionResponse:
        await self._get_or_raise(agent_id)
        await self.agent_repo.delete_agent(agent_id)
        log_info(logger, "Agent removed", agent_id=agent_id)
        return AgentActionResponse(success=True, message="Agent deleted successfully")

    async def hide_agent(self, agent_id: str) -> AgentActionResponse:
        """Hide an agent from default listings. Status is left untouched."""
        await self._get_or_raise(agent_id)
        agent = await self.agent_repo.set_hidden(agent_id, True)
        return AgentActionResponse(
            success=True,
            message="Agent hidden successfully",
            agent=AgentInfo.model_validate(agent),
        )

    async def show_agent(self, agent_id: str) -> AgentActionResponse:
        await self._get_or_raise(agent_id)
        agent = await self.agent_repo.set_hidden(agent_id, False)
        return AgentActionResponse(
            success=True,
            message="Agent shown successfully",
            agent=AgentInfo.model_validate(agent),
        )

    # ==================== Health ====================

    async def check_agent_health(self, agent_id: str) -> AgentHealthResult:
        """Probe ``/health`` on the agent's worker API and record its status.

        A 2xx answer marks the agent online, anything else offline.
        Disabled agents are reported as-is without being probed.
        """
        agent = await self._get_or_raise(agent_id)
        previous_status = SchemaAgentStatus(agent.status)
        checked_at = datetime.now(timezone.utc)

        if agent.status == AgentStatus.DISABLED.value:
            return AgentHealthResult(
                agent_id=agent.id,
                previous_status=previous_status,
                status=previous_status,
                is_healthy=False,
                checked_at=checked_at,
            )

        url = http_base_url(agent.server_ip, agent.port or settings.WORKER_DEFAULT_PORT) + "/health"
        status_code: Optional[int] = None
        error: Optional[str] = None

        try:
            async with httpx.AsyncClient(
                timeout=settings.AGENT_HEALTH_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
            status_code = response.status_code
            is_healthy = response.is_success
            if not is_healthy:
                error = f"Health endpoint returned {status_code}"
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            is_healthy = False
            error = str(e) or e.__class__.__name__

        new_status = AgentStatus.ONLINE if is_healthy else AgentStatus.OFFLINE
        if is_healthy:
            await self.agent_repo.update_status(agent.id, new_status, last_seen=checked_at)
        else:
            await self.agent_repo.update_status(agent.id, new_status)
            log_warning(logger, "Agent health probe failed", agent_id=agent.id, url=url, error=error)

        return AgentHealthResult(
            agent_id=agent.id,
            previous_status=previous_status,
            status=SchemaAgentStatus(new_status.value),
            is_healthy=is_healthy,
            checked_at=checked_at,
            status_code=status_code,
            error=error,
        )
