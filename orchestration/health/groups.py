"""Dependency groups and their rolling health scores"""
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union
import logging
import time

from .probes import BaseProbe, ProbeFunction, ProbeResult, as_probe

logger = logging.getLogger(__name__)


@dataclass
class HealthConfig:
    """Health monitoring configuration"""
    interval_seconds: float = 30.0
    ema_weight: float = 0.3  # Weight of the newest probe sample
    min_health: float = 0.5  # Below this a group is unavailable
    probe_timeout_seconds: float = 5.0


@dataclass
class DependencyGroup:
    """A cluster of tools sharing one external dependency"""
    id: str
    name: str
    probe: Optional[BaseProbe] = None
    description: str = ""
    health_score: float = 1.0
    last_checked: Optional[float] = None
    last_latency_ms: Optional[float] = None
    last_healthy: Optional[bool] = None
    last_detail: Optional[str] = None
    consecutive_failures: int = 0
    probe_count: int = 0

    def record(self, result: ProbeResult, weight: float, now: float) -> float:
        """Fold a probe sample into the exponential moving average"""
        sample = 1.0 if result.healthy else 0.0
        self.health_score = weight * sample + (1.0 - weight) * self.health_score
        self.last_checked = now
        self.last_latency_ms = result.latency_ms
        self.last_healthy = result.healthy
        self.last_detail = result.detail
        self.probe_count += 1
        self.consecutive_failures = 0 if result.healthy else self.consecutive_failures + 1
        return self.health_score

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "health_score": round(self.health_score, 4),
            "last_checked": self.last_checked,
            "last_latency_ms": self.last_latency_ms,
            "last_healthy": self.last_healthy,
            "last_detail": self.last_detail,
            "consecutive_failures": self.consecutive_failures,
            "probe_count": self.probe_count,
        }


class HealthRegistry:
    """
    Holds every dependency group.

    Only the health monitor writes scores; the executor reads them to
    decide whether a tool's dependencies are available.
    """

    def __init__(
        self,
        config: Optional[HealthConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or HealthConfig()
        self.clock = clock
        self._groups: Dict[str, DependencyGroup] = {}

    def register(
        self,
        group_id: str,
        name: Optional[str] = None,
        probe: Optional[Union[BaseProbe, ProbeFunction]] = None,
        description: str = "",
    ) -> DependencyGroup:
        if group_id in self._groups:
            raise ValueError(f"Dependency group '{group_id}' already registered")
        group = DependencyGroup(
            id=group_id,
            name=name or group_id,
            probe=as_probe(probe) if probe is not None else None,
            description=description,
        )
        self._groups[group_id] = group
        logger.info(f"Registered dependency group: {group_id}")
        return group

    def get(self, group_id: str) -> Optional[DependencyGroup]:
        return self._groups.get(group_id)

    def __contains__(self, group_id: str) -> bool:
        return group_id in self._groups

    def list_all(self) -> List[DependencyGroup]:
        return list(self._groups.values())

    def ids(self) -> List[str]:
        return list(self._groups.keys())

    def score(self, group_id: str) -> float:
        group = self._groups.get(group_id)
        return group.health_score if group else 0.0

    def is_available(self, group_id: str, threshold: Optional[float] = None) -> bool:
        threshold = self.config.min_health if threshold is None else threshold
        group = self._groups.get(group_id)
        return group is not None and group.health_score >= threshold

    def record(self, group_id: str, result: ProbeResult) -> float:
        group = self._groups[group_id]
        previous = group.health_score
        score = group.record(result, self.config.ema_weight, self.clock())

        threshold = self.config.min_health
        if previous >= threshold > score:
            logger.warning(f"Dependency group {group_id} degraded: health {score:.2f}")
        elif previous < threshold <= score:
            logger.info(f"Dependency group {group_id} recovered: health {score:.2f}")
        return score

    def aggregate_score(self) -> float:
        if not self._groups:
            return 1.0
        return sum(g.health_score for g in self._groups.values()) / len(self._groups)

    def get_status(self) -> Dict:
        return {
            "aggregate_health": round(self.aggregate_score(), 4),
            "min_health": self.config.min_health,
            "groups": {g.id: g.to_dict() for g in self._groups.values()},
        }

    async def close(self):
        for group in self._groups.values():
            if group.probe is not None:
                await group.probe.close()
