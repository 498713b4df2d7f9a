"""Tests for agent health probing.

**Feature: check-host, Property 4: Agent Health Probe**

Tests that:
- A 2xx answer from /health marks the agent online and stamps last_seen
- Any other answer or a transport failure marks it offline
- Disabled agents are never probed
"""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from checkhost.core.metrics import REGISTRY
from checkhost.modules.agent.models import Agent, AgentStatus
from checkhost.modules.agent.schemas import AgentStatus as SchemaAgentStatus
from checkhost.modules.agent.service import AgentNotFoundError, AgentService


def make_agent(status: AgentStatus = AgentStatus.OFFLINE, port: int = 8000) -> Agent:
    return Agent(
        id="agent-0123456789ab",
        name="Berlin 1",
        server_ip="10.0.0.7",
        port=port,
        status=status.value,
        hidden=False,
    )


def make_service(
    agent: Optional[Agent],
    handler,
    requests: Optional[list[httpx.Request]] = None,
) -> AgentService:
    def recording(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    service = AgentService(MagicMock(), transport=httpx.MockTransport(recording))
    service.agent_repo = MagicMock()
    service.agent_repo.get_agent_by_id = AsyncMock(return_value=agent)
    service.agent_repo.update_status = AsyncMock(return_value=agent)
    return service


class TestHealthProbe:
    """Tests for check_agent_health."""

    @pytest.mark.asyncio
    async def test_healthy_agent_marked_online(self) -> None:
        requests: list[httpx.Request] = []
        agent = make_agent(AgentStatus.OFFLINE, port=9000)
        service = make_service(agent, lambda r: httpx.Response(200, json={"status": "ok"}), requests)

        result = await service.check_agent_health(agent.id)

        assert str(requests[0].url) == "http://10.0.0.7:9000/health"
        assert result.is_healthy is True
        assert result.previous_status == SchemaAgentStatus.OFFLINE
        assert result.status == SchemaAgentStatus.ONLINE
        assert result.status_code == 200
        assert result.error is None

        service.agent_repo.update_status.assert_awaited_once()
        args, kwargs = service.agent_repo.update_status.call_args
        assert args == (agent.id, AgentStatus.ONLINE)
        assert kwargs["last_seen"] == result.checked_at

    @pytest.mark.asyncio
    async def test_connection_failure_marks_offline(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        agent = make_agent(AgentStatus.ONLINE)
        service = make_service(agent, refuse)

        result = await service.check_agent_health(agent.id)

        assert result.is_healthy is False
        assert result.status == SchemaAgentStatus.OFFLINE
        assert result.status_code is None
        assert "Connection refused" in result.error
        service.agent_repo.update_status.assert_awaited_once_with(agent.id, AgentStatus.OFFLINE)

    @pytest.mark.asyncio
    async def test_ipv6_agent_health_url_is_bracketed(self) -> None:
        requests: list[httpx.Request] = []
        agent = make_agent(AgentStatus.OFFLINE)
        agent.server_ip = "2001:db8::1"
        service = make_service(agent, lambda r: httpx.Response(200), requests)

        result = await service.check_agent_health(agent.id)

        assert str(requests[0].url) == "http://[2001:db8::1]:8000/health"
        assert result.is_healthy is True

    @pytest.mark.asyncio
    async def test_malformed_address_marks_offline(self) -> None:
        requests: list[httpx.Request] = []
        agent = make_agent(AgentStatus.ONLINE)
        agent.server_ip = "10.0.0.7:bad"
        service = make_service(agent, lambda r: httpx.Response(200), requests)

        result = await service.check_agent_health(agent.id)

        assert requests == []
        assert result.is_healthy is False
        assert result.status == SchemaAgentStatus.OFFLINE
        service.agent_repo.update_status.assert_awaited_once_with(agent.id, AgentStatus.OFFLINE)

    @pytest.mark.asyncio
    async def test_disabled_agent_not_contacted(self) -> None:
        requests: list[httpx.Request] = []
        agent = make_agent(AgentStatus.DISABLED)
        service = make_service(agent, lambda r: httpx.Response(200), requests)

        result = await service.check_agent_health(agent.id)

        assert requests == []
        assert result.status == SchemaAgentStatus.DISABLED
        assert result.is_healthy is False
        service.agent_repo.update_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_agent_raises(self) -> None:
        service = make_service(None, lambda r: httpx.Response(200))

        with pytest.raises(AgentNotFoundError):
            await service.check_agent_health("agent-missing")

    @given(status_code=st.integers(min_value=200, max_value=599))
    @settings(max_examples=100)
    def test_only_2xx_counts_as_healthy(self, status_code: int) -> None:
        """For any HTTP status, the agent is online exactly when it is 2xx."""
        agent = make_agent(AgentStatus.INSTALLING)
        service = make_service(agent, lambda r: httpx.Response(status_code))

        result = asyncio.run(service.check_agent_health(agent.id))

        expected = 200 <= status_code < 300
        assert result.is_healthy is expected, f"status {status_code}"
        assert result.status == (SchemaAgentStatus.ONLINE if expected else SchemaAgentStatus.OFFLINE)
        assert result.status_code == status_code


class TestVisibility:
    """Tests for hide/show leaving dispatch eligibility alone."""

    @pytest.mark.asyncio
    async def test_hide_keeps_status(self) -> None:
        agent = make_agent(AgentStatus.ONLINE)
        service = make_service(agent, lambda r: httpx.Response(200))

        def set_hidden(agent_id: str, hidden: bool) -> Agent:
            agent.hidden = hidden
            return agent

        service.agent_repo.set_hidden = AsyncMock(side_effect=set_hidden)

        response = await service.hide_agent(agent.id)

        assert response.success is True
        assert response.agent.hidden is True
        assert response.agent.status == SchemaAgentStatus.ONLINE
        assert agent.status == "online"

    @pytest.mark.asyncio
    async def test_hide_unknown_agent_raises(self) -> None:
        service = make_service(None, lambda r: httpx.Response(200))

        with pytest.raises(AgentNotFoundError):
            await service.hide_agent("agent-missing")


class TestAgentGauge:
    """Tests for the per-status agent gauge."""

    @pytest.mark.asyncio
    async def test_listing_sets_gauge_from_whole_registry(self) -> None:
        agent = make_agent(AgentStatus.ONLINE)
        service = make_service(agent, lambda r: httpx.Response(200))
        service.agent_repo.list_agents = AsyncMock(return_value=[agent])
        service.agent_repo.count_by_status = AsyncMock(return_value={"online": 3, "offline": 2})

        response = await service.list_agents(include_hidden=False)

        assert response.total == 1
        service.agent_repo.count_by_status.assert_awaited_once()
        assert REGISTRY.get_sample_value("checkhost_agents", {"status": "online"}) == 3
        assert REGISTRY.get_sample_value("checkhost_agents", {"status": "offline"}) == 2
        assert REGISTRY.get_sample_value("checkhost_agents", {"status": "installing"}) == 0
        assert REGISTRY.get_sample_value("checkhost_agents", {"status": "disabled"}) == 0
