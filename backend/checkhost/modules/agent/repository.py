"""Repository for agent registry operations."""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from checkhost.modules.agent.models import (
    Agent,
    AgentStatus,
    DEFAULT_AGENT_PORT,
)


class AgentRegistry(Protocol):
    """Read capability the check fan-out depends on."""

    async def list_agents(self, include_hidden: bool = False) -> Sequence[Any]:
        """Return agents in registry order.

        Each item exposes ``id``, ``name``, ``server_ip``, ``port``, ``status``
        and the display metadata attributes of :class:`Agent`.
        """
        ...


class AgentRepository:
    """Repository for Agent database operations."""

    # Columns that may be changed through update_agent
    UPDATABLE_FIELDS = frozenset((
        "name", "server_ip", "port", "location", "status", "hidden", "last_seen",
        "agent_location", "agent_country_code", "agent_country", "agent_city",
        "agent_ip", "agent_asn", "country_emoji", "deployment_path",
    ))

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_agents(self, include_hidden: bool = False) -> list[Agent]:
        """List agents, newest first.

        Hidden agents are excluded unless ``include_hidden`` is set.
        """
        query = select(Agent)
        if not include_hidden:
            query = query.where(Agent.hidden.is_(False))
        query = query.order_by(Agent.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_agent_by_id(self, agent_id: str) -> Optional[Agent]:
        query = select(Agent).where(Agent.id == agent_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create_agent(
        self,
        name: str,
        server_ip: str,
        agent_id: Optional[str] = None,
        port: int = DEFAULT_AGENT_PORT,
        status: AgentStatus = AgentStatus.INSTALLING,
        hidden: bool = False,
        **metadata: Any,
    ) -> Agent:
        """Create a new agent.

        New agents start in ``installing`` until a health probe says otherwise.
        """
        agent = Agent(
            name=name,
            server_ip=server_ip,
            port=port,
            status=status.value,
            hidden=hidden,
            last_seen=datetime.now(timezone.utc),
            **{k: v for k, v in metadata.items() if k in self.UPDATABLE_FIELDS},
        )
        if agent_id:
            agent.id = agent_id
        self.session.add(agent)
        await self.session.flush()
        return agent

    async def update_agent(self, agent_id: str, **fields: Any) -> Optional[Agent]:
        """Apply a partial update. Unknown field names are ignored."""
        agent = await self.get_agent_by_id(agent_id)
        if not agent:
            return None

        for key, value in fields.items():
            if key not in self.UPDATABLE_FIELDS:
                continue
            if isinstance(value, AgentStatus):
                value = value.value
            setattr(agent, key, value)

        agent.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return agent

    async def update_status(
        self,
        agent_id: str,
        status: AgentStatus,
        last_seen: Optional[datetime] = None,
    ) -> Optional[Agent]:
        fields: dict[str, Any] = {"status": status}
        if last_seen is not None:
            fields["last_seen"] = last_seen
        return await self.update_agent(agent_id, **fields)

    async def set_hidden(self, agent_id: str, hidden: bool) -> Optional[Agent]:
        return await self.update_agent(agent_id, hidden=hidden)

    async def delete_agent(self, agent_id: str) -> bool:
        result = await self.session.execute(delete(Agent).where(Agent.id == agent_id))
        await self.session.flush()
        return result.rowcount > 0

    async def count_by_status(self) -> dict[str, int]:
        query = select(Agent.status, func.count(Agent.id)).group_by(Agent.status)
        result = await self.session.execute(query)
        return {status: count for status, count in result.all()}


class InMemoryAgentRegistry:
    """Registry kept in process memory, in insertion order.

    Satisfies :class:`AgentRegistry` without a database, for driving the
    fan-out in tests.
    """

    def __init__(self, agents: Optional[Iterable[Any]] = None):
        self._agents: list[Any] = list(agents or [])

    async def list_agents(self, include_hidden: bool = False) -> list[Any]:
        if include_hidden:
            return list(self._agents)
        return [a for a in self._agents if not getattr(a, "hidden", False)]

    def add(self, agent: Any) -> None:
        self._agents.append(agent)

    def remove(self, agent_id: str) -> bool:
        before = len(self._agents)
        self._agents = [a for a in self._agents if a.id != agent_id]
        return len(self._agents) < before

    def set_status(self, agent_id: str, status: AgentStatus | str) -> None:
        value = status.value if isinstance(status, AgentStatus) else status
        for agent in self._agents:
            if agent.id == agent_id:
                agent.status = value
