"""Audit sinks for execution records and chain results"""
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, List, Optional, Set
import asyncio
import logging

from orchestration.models import Execution, ChainResult

logger = logging.getLogger(__name__)


class BaseAuditSink(ABC):
    """Abstract base class for audit storage backends"""

    @abstractmethod
    async def record_execution(self, execution: Execution):
        """Persist a terminal execution record"""
        pass

    @abstractmethod
    async def record_chain(self, result: ChainResult):
        """Persist a chain result"""
        pass


class InMemoryAuditSink(BaseAuditSink):
    """Keeps the most recent records in memory"""

    def __init__(self, max_records: int = 1000):
        self.executions: Deque[Execution] = deque(maxlen=max_records)
        self.chains: Deque[ChainResult] = deque(maxlen=max_records)

    async def record_execution(self, execution: Execution):
        self.executions.append(execution)

    async def record_chain(self, result: ChainResult):
        self.chains.append(result)


class AuditWriter:
    """
    Fire-and-forget bridge to an audit sink.

    Writes run as background tasks; a failing sink is logged and never
    affects the invocation that produced the record.
    """

    def __init__(self, sink: Optional[BaseAuditSink] = None):
        self.sink = sink
        self._pending: Set[asyncio.Task] = set()
        self.failures = 0

    def submit_execution(self, execution: Execution):
        if self.sink is not None:
            self._spawn(self.sink.record_execution(execution.model_copy(deep=True)), "execution")

    def submit_chain(self, result: ChainResult):
        if self.sink is not None:
            self._spawn(self.sink.record_chain(result.model_copy(deep=True)), "chain")

    def _spawn(self, coro, what: str):
        task = asyncio.create_task(coro, name=f"audit-{what}")
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.failures += 1
            logger.error(
                f"Audit write failed: {error}",
                exc_info=error,
            )

    async def flush(self) -> List[BaseException]:
        """Wait for pending writes (used on shutdown and in tests)"""
        if not self._pending:
            return []
        results = await asyncio.gather(*list(self._pending), return_exceptions=True)
        return [r for r in results if isinstance(r, BaseException)]
