"""Top-level orchestrator wiring registry, executor, chains and health"""
from typing import Any, Callable, Dict, List, Optional, Union
import logging
import time

from orchestration.config import OrchestratorConfig
from orchestration.audit import AuditWriter, BaseAuditSink
from orchestration.cache import ResultCache, CacheSweeper
from orchestration.core import ExecutionContext, ToolRegistry, ToolExecutor
from orchestration.health import HealthMonitor, HealthRegistry
from orchestration.health.probes import BaseProbe, ProbeFunction
from orchestration.metrics import MetricsCollector
from orchestration.models import (
    ChainDefinition,
    ChainResult,
    ToolDescriptor,
    ToolResult,
)
from orchestration.models.chain import StepSpec
from orchestration.safety import (
    CircuitBreaker,
    RetryStrategy,
    TimeoutHandler,
    ExecutionValidator,
)
from orchestration.strategies import ChainStrategy, ParallelStrategy, ChainCatalog
from orchestration.strategies.parallel import SubChain
from orchestration.tools.base import BaseTool, ToolFunction

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Main entry point for executing tools and chains.

    Owns exactly one registry, breaker bank, cache, health registry and
    metrics collector, and exposes the read-only status used by
    dashboards. Tools and dependency groups are registered before
    ``start()``; starting freezes the registry and launches the health
    monitor and cache sweeper.
    """

    def __init__(
        self,
        config: Optional[OrchestratorConfig] = None,
        registry: Optional[ToolRegistry] = None,
        groups: Optional[HealthRegistry] = None,
        catalog: Optional[ChainCatalog] = None,
        audit_sink: Optional[BaseAuditSink] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable] = None,
    ):
        self.config = config or OrchestratorConfig()
        self.registry = registry or ToolRegistry()
        self.groups = groups or HealthRegistry(self.config.health, clock=clock)
        self.catalog = catalog or ChainCatalog()

        self.circuit_breaker = CircuitBreaker(self.config.circuit_breaker, clock=clock)
        retry_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.retry_strategy = RetryStrategy(self.config.retry, **retry_kwargs)
        for tool_id, overrides in self.config.tools.items():
            if overrides.circuit_breaker is not None:
                self.circuit_breaker.configure(tool_id, overrides.circuit_breaker)
            if overrides.retry is not None:
                self.retry_strategy.configure(tool_id, overrides.retry)

        self.cache = ResultCache(self.config.cache, clock=clock)
        self.metrics = MetricsCollector()
        self.audit = AuditWriter(audit_sink)

        self.executor = ToolExecutor(
            registry=self.registry,
            cache=self.cache,
            circuit_breaker=self.circuit_breaker,
            retry_strategy=self.retry_strategy,
            timeout_handler=TimeoutHandler(),
            validator=ExecutionValidator(strict_mode=self.config.strict_parameters),
            health=self.groups,
            metrics=self.metrics,
            audit=self.audit,
            history_size=self.config.execution_history_size,
        )
        self.chains = ChainStrategy(self.executor, audit=self.audit)
        self.parallel = ParallelStrategy(
            self.chains,
            max_concurrent=self.config.max_concurrent_chains,
        )
        self.health_monitor = HealthMonitor(self.groups, self.circuit_breaker, self.registry)
        self.cache_sweeper = CacheSweeper(self.cache)
        self._started = False

    # Setup

    def register_tool(
        self,
        descriptor: ToolDescriptor,
        handler: Union[BaseTool, ToolFunction],
    ):
        self.executor.validator.check_schema(descriptor)
        self.registry.register(descriptor, handler)

    def register_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        probe: Optional[Union[BaseProbe, ProbeFunction]] = None,
        description: str = "",
    ):
        return self.groups.register(group_id, name=name, probe=probe, description=description)

    def register_chain(self, chain: ChainDefinition):
        missing = [s.tool_id for s in chain.steps if not self.registry.exists(s.tool_id)]
        if missing:
            logger.warning(f"Chain {chain.id} references unregistered tools: {missing}")
        self.catalog.register(chain)

    # Lifecycle

    async def start(self, background: bool = True):
        """Freeze the registry and start the background loops"""
        if self._started:
            return
        unresolved = self.registry.unresolved_dependencies(self.groups.ids())
        for tool_id, dependencies in unresolved.items():
            logger.warning(f"Tool {tool_id} declares unknown dependencies: {dependencies}")

        self.registry.freeze()
        if background:
            self.health_monitor.start()
            self.cache_sweeper.start()
        self._started = True
        logger.info("Orchestrator started")

    async def stop(self):
        await self.health_monitor.stop()
        await self.cache_sweeper.stop()
        await self.audit.flush()
        await self.groups.close()
        await self.registry.close()
        self._started = False
        logger.info("Orchestrator stopped")

    async def __aenter__(self) -> "Orchestrator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    # Execution

    async def execute(
        self,
        tool_id: str,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> ToolResult:
        return await self.executor.execute(tool_id, params, context)

    async def execute_chain(
        self,
        steps: List[StepSpec],
        initial_params: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
        chain_id: Optional[str] = None,
    ) -> ChainResult:
        return await self.chains.execute(steps, initial_params, context, chain_id=chain_id)

    async def run_chain(
        self,
        chain_id: str,
        initial_params: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> ChainResult:
        """Execute a chain from the catalog"""
        chain = self.catalog.get(chain_id)
        return await self.chains.execute(chain.steps, initial_params, context, chain_id=chain.id)

    async def execute_parallel(
        self,
        sub_chains: List[SubChain],
        initial_params: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> List[ChainResult]:
        return await self.parallel.execute(sub_chains, initial_params, context)

    def recommend_chains(self, text: str, limit: int = 5) -> List[ChainDefinition]:
        return self.catalog.recommend(text, limit=limit)

    async def check_health(self) -> Dict[str, float]:
        """Run one health sweep immediately"""
        return await self.health_monitor.run_once()

    # Operational surface

    def get_status(self) -> Dict[str, Any]:
        return {
            "started": self._started,
            "registry": self.registry.get_statistics(),
            "circuit_breakers": self.circuit_breaker.get_status(),
            "open_circuits": self.circuit_breaker.get_all_open(),
            "cache": self.cache.get_status(),
            "metrics": self.metrics.snapshot(),
            "health": self.health_monitor.get_status(),
            "audit_failures": self.audit.failures,
        }
