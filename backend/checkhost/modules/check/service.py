"""Check service: one entry point per check type.

Each method fixes the check type, builds the worker options the way the
check pages expect, and returns the aggregated outcome list unchanged.
"""

from checkhost.modules.check.aggregator import FanOutAggregator
from checkhost.modules.check.schemas import AgentOutcome, CheckType


DEFAULT_PING_COUNT = 4
DEFAULT_DNS_RECORD_TYPE = "A"
DEFAULT_TCP_PORT = 80
DEFAULT_UDP_PORT = 53


class CheckService:
    """Service for running checks across the agent fleet."""

    def __init__(self, aggregator: FanOutAggregator):
        self.aggregator = aggregator

    async def ping(self, host: str, count: int = DEFAULT_PING_COUNT) -> list[AgentOutcome]:
        return await self.aggregator.dispatch(CheckType.PING, host, {"count": count})

    async def dns(
        self, host: str, record_type: str = DEFAULT_DNS_RECORD_TYPE
    ) -> list[AgentOutcome]:
        return await self.aggregator.dispatch(CheckType.DNS, host, {"type": record_type})

    async def http(self, url: str) -> list[AgentOutcome]:
        return await self.aggregator.dispatch(CheckType.HTTP, url, {})

    async def tcp(self, host: str, port: int = DEFAULT_TCP_PORT) -> list[AgentOutcome]:
        return await self.aggregator.dispatch(CheckType.TCP, host, {"port": port})

    async def udp(self, host: str, port: int = DEFAULT_UDP_PORT) -> list[AgentOutcome]:
        return await self.aggregator.dispatch(CheckType.UDP, host, {"port": port})

    async def ip_info(self, host: str) -> list[AgentOutcome]:
        return await self.aggregator.dispatch(CheckType.IP_INFO, host, {})
