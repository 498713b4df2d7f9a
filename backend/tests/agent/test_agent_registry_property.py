"""Property-based tests for the in-memory agent registry.

**Feature: check-host, Property 5: Registry Visibility**

Tests that:
- Default listings exclude hidden agents, full listings include them
- Registry order is insertion order in both listings
- Status changes are visible on the next read
"""

import asyncio

from hypothesis import given, settings, strategies as st

from checkhost.modules.agent.repository import InMemoryAgentRegistry
from checkhost.modules.agent.schemas import AgentInfo, AgentStatus


def make_agent(index: int, hidden: bool, status: AgentStatus = AgentStatus.ONLINE) -> AgentInfo:
    return AgentInfo(
        id=f"agent-{index}",
        name=f"Agent {index}",
        server_ip=f"10.1.0.{index + 1}",
        status=status,
        hidden=hidden,
    )


class TestRegistryListing:
    """Tests for list_agents filtering."""

    @given(hidden_flags=st.lists(st.booleans(), max_size=12))
    @settings(max_examples=100)
    def test_hidden_filter(self, hidden_flags: list[bool]) -> None:
        agents = [make_agent(i, hidden) for i, hidden in enumerate(hidden_flags)]
        registry = InMemoryAgentRegistry(agents)

        visible = asyncio.run(registry.list_agents())
        everything = asyncio.run(registry.list_agents(include_hidden=True))

        assert [a.id for a in everything] == [a.id for a in agents]
        assert [a.id for a in visible] == [a.id for a in agents if not a.hidden]

    def test_listing_is_a_copy(self) -> None:
        registry = InMemoryAgentRegistry([make_agent(0, False)])

        listed = asyncio.run(registry.list_agents())
        listed.clear()

        assert len(asyncio.run(registry.list_agents())) == 1


class TestRegistryMutation:
    """Tests for add, remove and set_status."""

    def test_add_appends(self) -> None:
        registry = InMemoryAgentRegistry([make_agent(0, False)])

        registry.add(make_agent(1, False))

        assert [a.id for a in asyncio.run(registry.list_agents())] == ["agent-0", "agent-1"]

    def test_remove(self) -> None:
        registry = InMemoryAgentRegistry([make_agent(0, False), make_agent(1, False)])

        assert registry.remove("agent-0") is True
        assert registry.remove("agent-0") is False
        assert [a.id for a in asyncio.run(registry.list_agents())] == ["agent-1"]

    def test_set_status(self) -> None:
        registry = InMemoryAgentRegistry([make_agent(0, False)])

        registry.set_status("agent-0", AgentStatus.OFFLINE)

        assert asyncio.run(registry.list_agents())[0].status == "offline"
