"""Per-tool execution metrics"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional
import time

from orchestration.models import ErrorKind, ChainStatus


@dataclass
class ToolMetrics:
    """Append-only counters for one tool"""
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    total_execution_time_ms: float = 0.0
    cache_hits: int = 0
    retries: int = 0
    errors_by_kind: Counter = field(default_factory=Counter)
    last_execution_at: Optional[float] = None

    @property
    def success_rate(self) -> float:
        if not self.total_executions:
            return 0.0
        return self.successful_executions / self.total_executions

    @property
    def average_latency_ms(self) -> float:
        if not self.total_executions:
            return 0.0
        return self.total_execution_time_ms / self.total_executions

    def to_dict(self) -> Dict:
        return {
            "total_executions": self.total_executions,
            "successful_executions": self.successful_executions,
            "failed_executions": self.failed_executions,
            "total_execution_time_ms": round(self.total_execution_time_ms, 3),
            "success_rate": round(self.success_rate, 4),
            "average_latency_ms": round(self.average_latency_ms, 3),
            "cache_hits": self.cache_hits,
            "retries": self.retries,
            "errors_by_kind": dict(self.errors_by_kind),
            "last_execution_at": self.last_execution_at,
        }


class MetricsCollector:
    """
    Accumulates counters per tool id, once per completed execution.

    ``record`` performs no awaits, so updates from concurrent tasks on
    the event loop never interleave.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._tools: Dict[str, ToolMetrics] = {}
        self._chains: Counter = Counter()
        self.started_at = clock()

    def _get(self, tool_id: str) -> ToolMetrics:
        metrics = self._tools.get(tool_id)
        if metrics is None:
            metrics = ToolMetrics()
            self._tools[tool_id] = metrics
        return metrics

    def record(
        self,
        tool_id: str,
        success: bool,
        duration_ms: float,
        cache_hit: bool = False,
        error_kind: Optional[ErrorKind] = None,
        retries: int = 0,
    ):
        metrics = self._get(tool_id)
        metrics.total_executions += 1
        if success:
            metrics.successful_executions += 1
        else:
            metrics.failed_executions += 1
        metrics.total_execution_time_ms += duration_ms
        if cache_hit:
            metrics.cache_hits += 1
        metrics.retries += retries
        if error_kind is not None:
            metrics.errors_by_kind[error_kind.value] += 1
        metrics.last_execution_at = self.clock()

    def record_chain(self, status: ChainStatus):
        self._chains[status.value] += 1

    def get(self, tool_id: str) -> ToolMetrics:
        return self._tools.get(tool_id) or ToolMetrics()

    def rank(self, tool_ids: Iterable[str]) -> List[str]:
        """Order tools by success rate (desc) then average latency (asc)

        Tools without history rank as fully successful so that new tools
        are not starved of traffic.
        """
        def key(tool_id: str):
            metrics = self._tools.get(tool_id)
            if metrics is None or not metrics.total_executions:
                return (-1.0, 0.0)
            return (-metrics.success_rate, metrics.average_latency_ms)

        return sorted(tool_ids, key=key)

    def snapshot(self) -> Dict:
        """Read-only copy of every counter"""
        totals = ToolMetrics()
        for metrics in self._tools.values():
            totals.total_executions += metrics.total_executions
            totals.successful_executions += metrics.successful_executions
            totals.failed_executions += metrics.failed_executions
            totals.total_execution_time_ms += metrics.total_execution_time_ms
            totals.cache_hits += metrics.cache_hits
            totals.retries += metrics.retries
            totals.errors_by_kind.update(metrics.errors_by_kind)

        return {
            "uptime_seconds": round(self.clock() - self.started_at, 3),
            "totals": totals.to_dict(),
            "tools": {tool_id: m.to_dict() for tool_id, m in self._tools.items()},
            "chains": dict(self._chains),
        }

    def reset(self):
        self._tools.clear()
        self._chains.clear()
        self.started_at = self.clock()
