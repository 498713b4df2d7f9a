"""Pydantic schemas for check dispatch.

A check is one diagnostic (ping, DNS lookup, ...) fanned out to every online
agent. Each agent produces one :class:`AgentOutcome` carrying the worker's raw
response untouched.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class CheckType(str, Enum):
    """Diagnostic operations supported by workers."""
    PING = "ping"
    DNS = "dns"
    HTTP = "http"
    TCP = "tcp"
    UDP = "udp"
    IP_INFO = "ip-info"


class CheckRequest(BaseModel):
    """One diagnostic invocation. Not persisted."""
    check_type: CheckType
    host: str = Field(..., min_length=1, description="Hostname, IP or URL depending on check type")
    options: dict[str, Any] = Field(default_factory=dict)


class AgentRef(BaseModel):
    """Display identity of the agent that produced an outcome."""
    id: str
    name: Optional[str] = None
    server_ip: Optional[str] = None
    location: Optional[str] = None
    agent_location: Optional[str] = None
    agent_country_code: Optional[str] = None
    agent_country: Optional[str] = None
    agent_city: Optional[str] = None
    country_emoji: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def from_agent(cls, agent: Any) -> "AgentRef":
        """Project a registry record onto its display fields."""
        return cls(
            id=str(agent.id),
            name=getattr(agent, "name", None),
            server_ip=getattr(agent, "server_ip", None),
            location=_plain(getattr(agent, "location", None)),
            agent_location=getattr(agent, "agent_location", None),
            agent_country_code=getattr(agent, "agent_country_code", None),
            agent_country=getattr(agent, "agent_country", None),
            agent_city=getattr(agent, "agent_city", None),
            country_emoji=getattr(agent, "country_emoji", None),
        )


FALLBACK_AGENT_ID = "fallback"

FALLBACK_AGENT = AgentRef(
    id=FALLBACK_AGENT_ID,
    name="Local Worker",
    server_ip="localhost",
    location="internal",
    agent_location="Local",
    agent_country_code="",
    agent_country="",
    agent_city="",
)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class AgentOutcome(BaseModel):
    """Result of dispatching one check to one agent.

    ``result`` holds the worker response exactly as received and is only set
    when ``success`` is true; ``error`` is only set when it is false.
    """
    success: bool
    check_type: CheckType = Field(..., alias="checkType")
    agent: AgentRef
    result: Any = None
    error: Optional[str] = None
    fallback: bool = False

    class Config:
        populate_by_name = True


class ResultRow(BaseModel):
    """One agent's outcome flattened into a display table row."""
    location: str
    country_code: str = ""
    country_emoji: Optional[str] = None
    success: bool
    result: str
    time: Optional[str] = None
    rtt: Optional[str] = None
    status_code: Optional[str] = None
    ip: Optional[str] = None
    a_records: Optional[str] = None
    aaaa_records: Optional[str] = None
    ttl: Optional[str] = None
    info: Optional[list[Any]] = None
    error: Optional[str] = None


class CheckResponse(BaseModel):
    """Aggregated outcome list returned by every check route."""
    results: list[AgentOutcome]
    rows: Optional[list[ResultRow]] = None
