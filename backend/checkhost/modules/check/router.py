"""API router for network checks.

Every route fans its check out to all online agents and returns the outcome
list as ``{"results": [...]}``. Pass ``table=true`` to also get the outcomes
flattened into display rows.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from checkhost.core.database import get_db
from checkhost.modules.agent.repository import AgentRegistry, AgentRepository
from checkhost.modules.check.aggregator import FanOutAggregator, NoAgentsAvailableError
from checkhost.modules.check.normalizer import normalize_outcomes
from checkhost.modules.check.schemas import AgentOutcome, CheckRequest, CheckResponse
from checkhost.modules.check.service import (
    CheckService,
    DEFAULT_DNS_RECORD_TYPE,
    DEFAULT_PING_COUNT,
    DEFAULT_TCP_PORT,
    DEFAULT_UDP_PORT,
)
from checkhost.modules.check.worker_client import WorkerClient

router = APIRouter(tags=["checks"])

HOST_REQUIRED = "Host parameter is required"
URL_REQUIRED = "URL parameter is required"


async def get_agent_registry(
    session: Annotated[AsyncSession, Depends(get_db)]
) -> AgentRegistry:
    """Dependency to get the agent registry."""
    return AgentRepository(session)


def get_worker_client() -> WorkerClient:
    """Dependency to get a WorkerClient instance."""
    return WorkerClient()


async def get_check_service(
    registry: Annotated[AgentRegistry, Depends(get_agent_registry)],
    client: Annotated[WorkerClient, Depends(get_worker_client)],
) -> CheckService:
    """Dependency to get CheckService instance."""
    return CheckService(FanOutAggregator(registry, client))


def _require(value: Optional[str], message: str) -> str:
    if not value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
    return value


def _respond(outcomes: list[AgentOutcome], table: bool) -> CheckResponse:
    return CheckResponse(
        results=outcomes,
        rows=normalize_outcomes(outcomes) if table else None,
    )


def _dispatch_failed(e: NoAgentsAvailableError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e),
    )


@router.get(
    "/ping",
    response_model=CheckResponse,
    summary="Ping a host from every agent",
)
async def ping(
    service: Annotated[CheckService, Depends(get_check_service)],
    host: Optional[str] = Query(None),
    count: int = Query(DEFAULT_PING_COUNT, ge=1, le=100),
    table: bool = Query(False),
) -> CheckResponse:
    host = _require(host, HOST_REQUIRED)
    try:
        return _respond(await service.ping(host, count=count), table)
    except NoAgentsAvailableError as e:
        raise _dispatch_failed(e)


@router.get(
    "/dns",
    response_model=CheckResponse,
    summary="Resolve a host from every agent",
)
async def dns(
    service: Annotated[CheckService, Depends(get_check_service)],
    host: Optional[str] = Query(None),
    record_type: str = Query(DEFAULT_DNS_RECORD_TYPE, alias="type"),
    table: bool = Query(False),
) -> CheckResponse:
    host = _require(host, HOST_REQUIRED)
    try:
        return _respond(await service.dns(host, record_type=record_type), table)
    except NoAgentsAvailableError as e:
        raise _dispatch_failed(e)


@router.get(
    "/http",
    response_model=CheckResponse,
    summary="Fetch a URL from every agent",
)
async def http(
    service: Annotated[CheckService, Depends(get_check_service)],
    url: Optional[str] = Query(None),
    table: bool = Query(False),
) -> CheckResponse:
    url = _require(url, URL_REQUIRED)
    try:
        return _respond(await service.http(url), table)
    except NoAgentsAvailableError as e:
        raise _dispatch_failed(e)


@router.get(
    "/tcp",
    response_model=CheckResponse,
    summary="Open a TCP connection from every agent",
)
async def tcp(
    service: Annotated[CheckService, Depends(get_check_service)],
    host: Optional[str] = Query(None),
    port: int = Query(DEFAULT_TCP_PORT, ge=1, le=65535),
    table: bool = Query(False),
) -> CheckResponse:
    host = _require(host, HOST_REQUIRED)
    try:
        return _respond(await service.tcp(host, port=port), table)
    except NoAgentsAvailableError as e:
        raise _dispatch_failed(e)


@router.get(
    "/udp",
    response_model=CheckResponse,
    summary="Probe a UDP port from every agent",
)
async def udp(
    service: Annotated[CheckService, Depends(get_check_service)],
    host: Optional[str] = Query(None),
    port: int = Query(DEFAULT_UDP_PORT, ge=1, le=65535),
    table: bool = Query(False),
) -> CheckResponse:
    host = _require(host, HOST_REQUIRED)
    try:
        return _respond(await service.udp(host, port=port), table)
    except NoAgentsAvailableError as e:
        raise _dispatch_failed(e)


@router.get(
    "/ip-info",
    response_model=CheckResponse,
    summary="Look up IP information from every agent",
)
async def ip_info(
    service: Annotated[CheckService, Depends(get_check_service)],
    host: Optional[str] = Query(None),
    table: bool = Query(False),
) -> CheckResponse:
    host = _require(host, HOST_REQUIRED)
    try:
        return _respond(await service.ip_info(host), table)
    except NoAgentsAvailableError as e:
        raise _dispatch_failed(e)


@router.post(
    "/checks",
    response_model=CheckResponse,
    summary="Run any check type",
    description="Generic form of the per-check routes, taking check type and options in the body.",
)
async def run_check(
    request: CheckRequest,
    service: Annotated[CheckService, Depends(get_check_service)],
    table: bool = Query(False),
) -> CheckResponse:
    try:
        outcomes = await service.aggregator.dispatch(
            request.check_type, request.host, request.options
        )
    except NoAgentsAvailableError as e:
        raise _dispatch_failed(e)
    return _respond(outcomes, table)
