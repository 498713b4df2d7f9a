"""API router for the agent registry."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from checkhost.core.database import get_db
from checkhost.modules.agent.service import AgentService, AgentNotFoundError
from checkhost.modules.agent.schemas import (
    AgentCreateRequest,
    AgentUpdateRequest,
    AgentInfo,
    AgentListResponse,
    AgentActionResponse,
    AgentHealthResult,
)

router = APIRouter(prefix="/agents", tags=["agents"])


async def get_agent_service(
    session: Annotated[AsyncSession, Depends(get_db)]
) -> AgentService:
    """Dependency to get AgentService instance."""
    return AgentService(session)


def _not_found(e: AgentNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "",
    response_model=AgentListResponse,
    summary="List agents",
    description="List registered agents. Hidden agents are only included when requested.",
)
async def list_agents(
    service: Annotated[AgentService, Depends(get_agent_service)],
    include_hidden: bool = Query(False, alias="includeHidden"),
) -> AgentListResponse:
    return await service.list_agents(include_hidden=include_hidden)


@router.post(
    "",
    response_model=AgentInfo,
    status_code=status.HTTP_201_CREATED,
    summary="Register an agent",
)
async def create_agent(
    request: AgentCreateRequest,
    service: Annotated[AgentService, Depends(get_agent_service)],
) -> AgentInfo:
    return await service.create_agent(request)


@router.get(
    "/{agent_id}",
    response_model=AgentInfo,
    summary="Get agent details",
)
async def get_agent(
    agent_id: str,
    service: Annotated[AgentService, Depends(get_agent_service)],
) -> AgentInfo:
    try:
        return await service.get_agent_info(agent_id)
    except AgentNotFoundError as e:
        raise _not_found(e)


@router.put(
    "/{agent_id}",
    response_model=AgentInfo,
    summary="Update an agent",
)
async def update_agent(
    agent_id: str,
    request: AgentUpdateRequest,
    service: Annotated[AgentService, Depends(get_agent_service)],
) -> AgentInfo:
    try:
        return await service.update_agent(agent_id, request)
    except AgentNotFoundError as e:
        raise _not_found(e)


@router.delete(
    "/{agent_id}",
    response_model=AgentActionResponse,
    summary="Delete an agent",
)
async def delete_agent(
    agent_id: str,
    service: Annotated[AgentService, Depends(get_agent_service)],
) -> AgentActionResponse:
    try:
        return await service.delete_agent(agent_id)
    except AgentNotFoundError as e:
        raise _not_found(e)


@router.post(
    "/{agent_id}/hide",
    response_model=AgentActionResponse,
    summary="Hide an agent from listings",
    description="Only affects visibility. A hidden online agent still receives checks.",
)
async def hide_agent(
    agent_id: str,
    service: Annotated[AgentService, Depends(get_agent_service)],
) -> AgentActionResponse:
    try:
        return await service.hide_agent(agent_id)
    except AgentNotFoundError as e:
        raise _not_found(e)


@router.post(
    "/{agent_id}/show",
    response_model=AgentActionResponse,
    summary="Show a hidden agent",
)
async def show_agent(
    agent_id: str,
    service: Annotated[AgentService, Depends(get_agent_service)],
) -> AgentActionResponse:
    try:
        return await service.show_agent(agent_id)
    except AgentNotFoundError as e:
        raise _not_found(e)


@router.post(
    "/{agent_id}/status",
    response_model=AgentHealthResult,
    summary="Probe agent health",
    description="Call the agent's /health endpoint and mark it online or offline.",
)
async def check_agent_status(
    agent_id: str,
    service: Annotated[AgentService, Depends(get_agent_service)],
) -> AgentHealthResult:
    try:
        return await service.check_agent_health(agent_id)
    except AgentNotFoundError as e:
        raise _not_found(e)
