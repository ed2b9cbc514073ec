"""Service health aggregation."""

import asyncio
from typing import Optional, Sequence

from .command_factory import HostCommandFactory
from .exceptions import GatewayError
from .models import ServiceStatus
from ..logging_utility import logger


ESTABLISHED_MARKER = "ESTABLISHED"


def count_established(output: str) -> int:
    """Count established SAs in ``ipsec status`` output."""
    if not output:
        return 0
    return sum(1 for line in output.splitlines() if ESTABLISHED_MARKER in line)


class HealthAggregator:
    def __init__(
            self,
            runner,
            factory: HostCommandFactory,
            monitored: Sequence[str],
            core: Sequence[str],
    ):
        self.runner = runner
        self.factory = factory
        self.core = tuple(core)
        # Core services are always probed, even if not listed for display
        self.monitored = tuple(monitored) + tuple(s for s in self.core if s not in monitored)

    async def _service_active(self, service: str) -> bool:
        try:
            result = await self.runner(self.factory.service_is_active(service))
        except GatewayError as e:
            logger.warning(f"Service probe for {service} failed: {e}")
            return False
        return result.stdout.strip() == "active"

    async def _uptime(self) -> Optional[str]:
        try:
            result = await self.runner(self.factory.uptime())
        except GatewayError as e:
            logger.warning(f"Uptime probe failed: {e}")
            return None
        if not result.ok:
            return None
        return result.stdout.strip() or None

    async def _active_connections(self) -> int:
        try:
            result = await self.runner(self.factory.ipsec_status())
        except GatewayError as e:
            logger.warning(f"Connection probe failed: {e}")
            return 0
        return count_established(result.stdout)

    async def snapshot(self) -> ServiceStatus:
        """Probe every service concurrently and join the results."""
        *states, uptime, connections = await asyncio.gather(
            *(self._service_active(s) for s in self.monitored),
            self._uptime(),
            self._active_connections(),
        )
        status = ServiceStatus(
            services=dict(zip(self.monitored, states)),
            core_services=self.core,
            active_connections=connections,
            uptime=uptime,
        )
        logger.info(f"Status: running={status.running} services={status.services} "
                    f"connections={status.active_connections}")
        return status
