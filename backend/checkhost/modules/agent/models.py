"""Agent models for the worker registry.

An agent is a remote worker process reachable over HTTP that executes
diagnostic checks on behalf of the central site.
"""

import ipaddress
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from checkhost.core.database import Base


DEFAULT_AGENT_PORT = 8000


class AgentStatus(str, Enum):
    """Agent lifecycle status."""
    ONLINE = "online"
    OFFLINE = "offline"
    INSTALLING = "installing"
    DISABLED = "disabled"


class AgentLocation(str, Enum):
    """Whether the agent runs on our own network or a third-party host."""
    INTERNAL = "internal"
    EXTERNAL = "external"


def generate_agent_id() -> str:
    return f"agent-{uuid.uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Agent(Base):
    """Registered worker agent."""

    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(
        String(255), primary_key=True, default=generate_agent_id
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Network location of the worker HTTP API
    server_ip: Mapped[str] = mapped_column(String(255), nullable=False)
    port: Mapped[int] = mapped_column(Integer, default=DEFAULT_AGENT_PORT)
    location: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(
        String(50), default=AgentStatus.OFFLINE.value, nullable=False
    )
    # Visibility in listings only, independent of status
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_seen: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Display metadata
    agent_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    agent_country_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    agent_country: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    agent_city: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    agent_ip: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    agent_asn: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country_emoji: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    deployment_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Agent(id={self.id}, name={self.name}, status={self.status})>"


def http_base_url(host: str, port: int) -> str:
    """``http://host:port`` with IPv6 literals bracketed."""
    host = host.strip().strip("[]")
    try:
        is_ipv6 = ipaddress.ip_address(host).version == 6
    except ValueError:
        is_ipv6 = False  # hostname
    if is_ipv6:
        host = f"[{host}]"
    return f"http://{host}:{port}"
