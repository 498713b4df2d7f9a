"""Fan-out of one check to every online agent.

Selection, concurrent dispatch with per-agent failure isolation, and the
fallback to a default worker when no real agent produced a result.
"""

import asyncio
import logging
from typing import Any, Optional

from checkhost.core.config import settings
from checkhost.core.logging import log_error, log_info, log_warning
from checkhost.core.metrics import CHECK_DISPATCH_TOTAL
from checkhost.modules.agent.models import AgentStatus
from checkhost.modules.agent.repository import AgentRegistry
from checkhost.modules.check.schemas import (
    AgentOutcome,
    AgentRef,
    CheckType,
    FALLBACK_AGENT,
)
from checkhost.modules.check.worker_client import (
    CheckServiceError,
    WorkerClient,
    WorkerError,
    worker_url_for,
)

logger = logging.getLogger(__name__)


class NoAgentsAvailableError(CheckServiceError):
    """No agent is online and the fallback worker could not be reached."""
    pass


NO_AGENTS_MESSAGE = "No online agents available and fallback worker is not accessible"


def select_agents(agents: list[Any]) -> list[Any]:
    """Keep agents that can receive checks, in registry order.

    An agent qualifies when it is online and has an address. ``hidden`` is
    not consulted.
    """
    return [
        agent for agent in agents
        if agent.status == AgentStatus.ONLINE.value and agent.server_ip
    ]


class FanOutAggregator:
    """Dispatches a check to all online agents and merges their outcomes."""

    def __init__(
        self,
        registry: AgentRegistry,
        client: Optional[WorkerClient] = None,
        fallback_url: Optional[str] = None,
        max_concurrency: Optional[int] = None,
    ):
        """Initialize aggregator.

        Args:
            registry: Source of agent records
            client: Worker client (a default one is created if not provided)
            fallback_url: Default worker base URL (uses settings if not provided)
            max_concurrency: Cap on simultaneous worker calls; None means one
                concurrent call per agent (uses settings if not provided)
        """
        self.registry = registry
        self.client = client or WorkerClient()
        self.fallback_url = fallback_url or settings.WORKER_API_URL
        self.max_concurrency = (
            max_concurrency if max_concurrency is not None
            else settings.FANOUT_MAX_CONCURRENCY
        )

    async def dispatch(
        self,
        check_type: CheckType,
        host: str,
        options: Optional[dict] = None,
    ) -> list[AgentOutcome]:
        """Run a check on every online agent.

        Returns one outcome per selected agent in selection order, or a single
        fallback outcome when no agent succeeded and the fallback worker did.

        Raises:
            NoAgentsAvailableError: If no agent is online and the fallback
                worker fails
        """
        check_type = CheckType(check_type)
        options = options if options is not None else {}

        agents = select_agents(await self.registry.list_agents(include_hidden=True))

        if not agents:
            log_info(logger, "No online agents, using fallback worker", check_type=check_type.value, host=host)
            try:
                outcome = await self._call_fallback(check_type, host, options)
            except WorkerError as e:
                CHECK_DISPATCH_TOTAL.labels(check_type=check_type.value, path="failed").inc()
                raise NoAgentsAvailableError(NO_AGENTS_MESSAGE) from e
            CHECK_DISPATCH_TOTAL.labels(check_type=check_type.value, path="fallback").inc()
            return [outcome]

        outcomes = await self._fan_out(agents, check_type, host, options)
        succeeded = sum(1 for o in outcomes if o.success)

        log_info(
            logger,
            "Check dispatched to agents",
            check_type=check_type.value,
            host=host,
            agents=len(outcomes),
            succeeded=succeeded,
            failed=len(outcomes) - succeeded,
        )

        if succeeded:
            CHECK_DISPATCH_TOTAL.labels(check_type=check_type.value, path="agents").inc()
            return outcomes

        # Every agent has settled and none succeeded
        log_warning(logger, "All agents failed, trying fallback worker", check_type=check_type.value, host=host)
        try:
            outcome = await self._call_fallback(check_type, host, options)
        except WorkerError:
            CHECK_DISPATCH_TOTAL.labels(check_type=check_type.value, path="failed").inc()
            return outcomes

        CHECK_DISPATCH_TOTAL.labels(check_type=check_type.value, path="fallback").inc()
        return [outcome]

    async def _fan_out(
        self,
        agents: list[Any],
        check_type: CheckType,
        host: str,
        options: dict,
    ) -> list[AgentOutcome]:
        semaphore = (
            asyncio.Semaphore(self.max_concurrency)
            if self.max_concurrency and self.max_concurrency > 0
            else None
        )
        # gather returns results by position, not completion order
        return list(await asyncio.gather(*(
            self._call_agent(agent, check_type, host, options, semaphore)
            for agent in agents
        )))

    async def _call_agent(
        self,
        agent: Any,
        check_type: CheckType,
        host: str,
        options: dict,
        semaphore: Optional[asyncio.Semaphore],
    ) -> AgentOutcome:
        if semaphore is None:
            return await self._invoke_agent(agent, check_type, host, options)
        async with semaphore:
            return await self._invoke_agent(agent, check_type, host, options)

    async def _invoke_agent(
        self,
        agent: Any,
        check_type: CheckType,
        host: str,
        options: dict,
    ) -> AgentOutcome:
        """Call one agent. Failures become an unsuccessful outcome."""
        ref = AgentRef.from_agent(agent)
        try:
            payload = await self.client.invoke(
                worker_url_for(agent), check_type, host, options
            )
        except WorkerError as e:
            return AgentOutcome(
                success=False,
                check_type=check_type,
                agent=ref,
                error=e.message or "Failed to execute task",
            )
        except Exception as e:
            log_error(
                logger,
                "Unexpected error calling agent",
                exception=e,
                agent_id=ref.id,
                check_type=check_type.value,
            )
            return AgentOutcome(
                success=False,
                check_type=check_type,
                agent=ref,
                error=str(e) or "Failed to execute task",
            )
        return AgentOutcome(
            success=True,
            check_type=check_type,
            agent=ref,
            result=payload,
        )

    async def _call_fallback(
        self,
        check_type: CheckType,
        host: str,
        options: dict,
    ) -> AgentOutcome:
        payload = await self.client.invoke(self.fallback_url, check_type, host, options)
        return AgentOutcome(
            success=True,
            check_type=check_type,
            agent=FALLBACK_AGENT,
            result=payload,
            fallback=True,
        )
