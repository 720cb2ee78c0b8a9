"""Background health monitor for dependency groups"""
from typing import TYPE_CHECKING, Dict, List, Optional
import asyncio
import logging

from .groups import DependencyGroup, HealthRegistry
from .probes import ProbeResult

if TYPE_CHECKING:
    from orchestration.core.registry import ToolRegistry
    from orchestration.safety.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


class HealthMonitor:
    """
    Periodically probes every dependency group.

    Each sweep updates the groups' rolling health scores. When a group is
    at or above the health threshold, breakers of the tools that depend
    on it which are OPEN past their cooldown are moved to HALF_OPEN so
    the next real call becomes the trial.
    """

    def __init__(
        self,
        groups: HealthRegistry,
        circuit_breaker: "CircuitBreaker",
        registry: "ToolRegistry",
    ):
        self.groups = groups
        self.circuit_breaker = circuit_breaker
        self.registry = registry
        self.config = groups.config
        self._task: Optional[asyncio.Task] = None
        self.sweeps = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start the background loop on the running event loop"""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="health-monitor")
        logger.info(
            f"Health monitor started: {len(self.groups.ids())} group(s), "
            f"every {self.config.interval_seconds}s"
        )

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Health monitor stopped")

    async def _run(self):
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Health sweep failed: {e}", exc_info=True)
            await asyncio.sleep(self.config.interval_seconds)

    async def run_once(self) -> Dict[str, float]:
        """Probe every group once; returns the new scores"""
        groups = [g for g in self.groups.list_all() if g.probe is not None]
        results = await asyncio.gather(*(self._probe(g) for g in groups))

        scores: Dict[str, float] = {}
        for group, result in zip(groups, results):
            scores[group.id] = self.groups.record(group.id, result)
            if scores[group.id] >= self.config.min_health:
                await self._release_breakers(group)

        self.sweeps += 1
        logger.debug(
            f"Health sweep {self.sweeps}: aggregate {self.groups.aggregate_score():.2f}"
        )
        return scores

    async def _probe(self, group: DependencyGroup) -> ProbeResult:
        try:
            result = await asyncio.wait_for(
                group.probe.check(),
                timeout=self.config.probe_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return ProbeResult(
                healthy=False,
                detail=f"probe timed out after {self.config.probe_timeout_seconds}s",
            )
        except Exception as e:
            logger.warning(f"Probe for {group.id} raised {type(e).__name__}: {e}")
            return ProbeResult(healthy=False, detail=f"{type(e).__name__}: {e}")

        logger.debug(
            f"Probe {group.id}: healthy={result.healthy} latency={result.latency_ms}"
        )
        return result

    async def _release_breakers(self, group: DependencyGroup) -> List[str]:
        released = []
        for tool_id in self.registry.dependents_of(group.id):
            if await self.circuit_breaker.force_half_open(tool_id):
                released.append(tool_id)
        return released

    def get_status(self) -> Dict:
        status = self.groups.get_status()
        status["running"] = self.running
        status["sweeps"] = self.sweeps
        status["interval_seconds"] = self.config.interval_seconds
        return status
