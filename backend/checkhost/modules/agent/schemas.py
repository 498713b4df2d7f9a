"""Pydantic schemas for the agent registry."""

from datetime import datetime
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field


class AgentStatus(str, Enum):
    """Agent lifecycle status."""
    ONLINE = "online"
    OFFLINE = "offline"
    INSTALLING = "installing"
    DISABLED = "disabled"


class AgentLocation(str, Enum):
    """Agent placement."""
    INTERNAL = "internal"
    EXTERNAL = "external"


class AgentCreateRequest(BaseModel):
    """Request to register a new agent."""
    id: Optional[str] = Field(None, max_length=255, description="Agent ID (generated if omitted)")
    name: str = Field(..., min_length=1, max_length=255)
    server_ip: str = Field(..., min_length=1, max_length=255, description="Worker host or IP")
    port: int = Field(8000, ge=1, le=65535, description="Worker API port")
    location: Optional[AgentLocation] = None
    status: AgentStatus = Field(AgentStatus.INSTALLING, description="Initial status")
    hidden: bool = False
    agent_location: Optional[str] = None
    agent_country_code: Optional[str] = Field(None, max_length=10)
    agent_country: Optional[str] = None
    agent_city: Optional[str] = None
    agent_ip: Optional[str] = None
    agent_asn: Optional[str] = None
    country_emoji: Optional[str] = Field(None, max_length=10)
    deployment_path: Optional[str] = None


class AgentUpdateRequest(BaseModel):
    """Partial update of an agent; omitted fields are left untouched."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    server_ip: Optional[str] = Field(None, min_length=1, max_length=255)
    port: Optional[int] = Field(None, ge=1, le=65535)
    location: Optional[AgentLocation] = None
    status: Optional[AgentStatus] = None
    hidden: Optional[bool] = None
    agent_location: Optional[str] = None
    agent_country_code: Optional[str] = Field(None, max_length=10)
    agent_country: Optional[str] = None
    agent_city: Optional[str] = None
    agent_ip: Optional[str] = None
    agent_asn: Optional[str] = None
    country_emoji: Optional[str] = Field(None, max_length=10)
    deployment_path: Optional[str] = None


class AgentInfo(BaseModel):
    """Agent information."""
    id: str
    name: str
    server_ip: str
    port: int = 8000
    location: Optional[str] = None
    status: AgentStatus
    hidden: bool = False
    last_seen: Optional[datetime] = None
    agent_location: Optional[str] = None
    agent_country_code: Optional[str] = None
    agent_country: Optional[str] = None
    agent_city: Optional[str] = None
    agent_ip: Optional[str] = None
    agent_asn: Optional[str] = None
    country_emoji: Optional[str] = None
    deployment_path: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AgentListResponse(BaseModel):
    """List of agents."""
    agents: list[AgentInfo]
    total: int
    online_count: int
    offline_count: int


class AgentActionResponse(BaseModel):
    """Outcome of an admin action on an agent."""
    success: bool
    message: str
    agent: Optional[AgentInfo] = None


class AgentHealthResult(BaseModel):
    """Result of probing an agent's /health endpoint."""
    agent_id: str
    previous_status: AgentStatus
    status: AgentStatus
    is_healthy: bool
    checked_at: datetime
    status_code: Optional[int] = None
    error: Optional[str] = None
