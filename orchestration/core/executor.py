"""Tool executor with caching, breakers, timeouts and retries"""
from collections import deque
from typing import Any, Deque, Dict, List, Optional
import asyncio
import logging
import time

import httpx

from orchestration.cache import ResultCache
from orchestration.core.context import ExecutionContext
from orchestration.core.registry import ToolRegistry
from orchestration.audit import AuditWriter
from orchestration.health.groups import HealthRegistry
from orchestration.metrics import MetricsCollector
from orchestration.models import (
    ErrorKind,
    Execution,
    ExecutionStatus,
    ToolDescriptor,
    ToolResult,
    ToolStatus,
    ToolError,
    UnknownToolError,
    InvalidParameterError,
    DependencyUnavailableError,
    CircuitOpenError,
    ToolTimeoutError,
    ExternalToolError,
    ToolCancelledError,
)
from orchestration.safety import (
    CircuitBreaker,
    RetryStrategy,
    TimeoutHandler,
    ExecutionValidator,
)

logger = logging.getLogger(__name__)


_STATUS_BY_KIND = {
    ErrorKind.UNKNOWN_TOOL: ToolStatus.INVALID,
    ErrorKind.INVALID_PARAMETER: ToolStatus.INVALID,
    ErrorKind.DEPENDENCY_UNAVAILABLE: ToolStatus.DEPENDENCY_UNAVAILABLE,
    ErrorKind.CIRCUIT_OPEN: ToolStatus.CIRCUIT_OPEN,
    ErrorKind.TIMEOUT: ToolStatus.TIMEOUT,
    ErrorKind.EXTERNAL: ToolStatus.FAILED,
    ErrorKind.CANCELLED: ToolStatus.CANCELLED,
    ErrorKind.CHAIN_STEP: ToolStatus.FAILED,
}

# Failures where pointing the caller at another tool can help
_SUGGEST_FOR = frozenset({
    ErrorKind.DEPENDENCY_UNAVAILABLE,
    ErrorKind.CIRCUIT_OPEN,
    ErrorKind.TIMEOUT,
    ErrorKind.EXTERNAL,
})


def classify_error(
    error: BaseException,
    tool_id: str,
    params: Optional[Dict[str, Any]] = None,
) -> ToolError:
    """Turn whatever a tool raised into a tagged ToolError"""
    if isinstance(error, ToolError):
        if error.tool_name is None:
            error.tool_name = tool_id
        return error
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ToolTimeoutError(
            f"Tool {tool_id} timed out internally: {error}",
            tool_name=tool_id,
            params=params,
            original_error=error,
        )
    if isinstance(error, (httpx.TransportError, ConnectionError, OSError)):
        return ExternalToolError(
            f"Tool {tool_id} transport failure: {error}",
            transient=True,
            tool_name=tool_id,
            params=params,
            original_error=error,
        )
    return ExternalToolError(
        f"Tool {tool_id} failed: {type(error).__name__}: {error}",
        transient=False,
        tool_name=tool_id,
        params=params,
        original_error=error,
    )


class ToolExecutor:
    """
    Executes individual tools.

    Order of checks for every call: registry lookup, parameter
    validation, dependency health, cache, circuit breaker, then the
    handler under its deadline. The outcome is reported to the breaker,
    written through to the cache on success and recorded in metrics.
    Retryable failures get a bounded retry with exponential backoff.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        cache: Optional[ResultCache] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        retry_strategy: Optional[RetryStrategy] = None,
        timeout_handler: Optional[TimeoutHandler] = None,
        validator: Optional[ExecutionValidator] = None,
        health: Optional[HealthRegistry] = None,
        metrics: Optional[MetricsCollector] = None,
        audit: Optional[AuditWriter] = None,
        history_size: int = 500,
    ):
        self.registry = registry
        self.cache = cache or ResultCache()
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.retry_strategy = retry_strategy or RetryStrategy()
        self.timeout_handler = timeout_handler or TimeoutHandler()
        self.validator = validator or ExecutionValidator()
        self.health = health or HealthRegistry()
        self.metrics = metrics or MetricsCollector()
        self.audit = audit or AuditWriter()
        self._history: Deque[Execution] = deque(maxlen=history_size)

    async def execute(
        self,
        tool_id: str,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> ToolResult:
        """
        Execute a tool with all safety mechanisms

        Args:
            tool_id: Registered tool id
            params: Tool parameters
            context: Caller identity, deadline and cancellation

        Returns:
            ToolResult; ``error`` is set when the call failed

        Raises:
            asyncio.CancelledError: If the calling task is cancelled. The
                breaker is charged before the cancellation propagates.
        """
        params = dict(params or {})
        context = context or ExecutionContext()
        execution = Execution(
            tool_id=tool_id,
            user_id=context.user_id,
            session_id=context.session_id,
            # Non-string names are rejected by validation; the record keeps them readable
            params={str(k): v for k, v in params.items()},
        )
        start = time.monotonic()

        try:
            result = await self._execute(execution, params, context, start)
        except asyncio.CancelledError:
            error = ToolCancelledError("Calling task was cancelled", tool_name=tool_id)
            self._finish(execution, None, error, start)
            logger.warning(f"Tool {tool_id} cancelled by caller")
            raise

        context.add_result(result)
        return result

    async def _execute(
        self,
        execution: Execution,
        params: Dict[str, Any],
        context: ExecutionContext,
        start: float,
    ) -> ToolResult:
        tool_id = execution.tool_id

        # 1. Resolve descriptor
        try:
            descriptor = self.registry.get(tool_id)
        except UnknownToolError as e:
            return self._finish(execution, None, e, start)

        # 2. Validate parameters
        validation = self.validator.validate_params(descriptor, params)
        if not validation.is_valid:
            error = InvalidParameterError(
                f"Parameter validation failed for {tool_id}: {validation.errors}",
                fields=validation.fields,
                tool_name=tool_id,
                params=params,
            )
            return self._finish(execution, None, error, start)
        if validation.warnings:
            logger.warning(f"Tool {tool_id} validation warnings: {validation.warnings}")

        # 3. Dependency health
        try:
            self._check_dependencies(descriptor)
        except DependencyUnavailableError as e:
            logger.warning(f"Tool {tool_id} unavailable: {e.message}")
            return self._finish(execution, None, e, start)

        execution.transition(ExecutionStatus.RUNNING)

        # 4. Cache
        if descriptor.cacheable:
            value, hit = self.cache.get(tool_id, params)
            if hit:
                return self._finish(execution, value, None, start, cache_hit=True)

        # 5-9. Breaker, handler, retries
        return await self._run_attempts(descriptor, execution, params, context, start)

    async def _run_attempts(
        self,
        descriptor: ToolDescriptor,
        execution: Execution,
        params: Dict[str, Any],
        context: ExecutionContext,
        start: float,
    ) -> ToolResult:
        tool_id = descriptor.id
        handler = self.registry.get_handler(tool_id)
        last_error: Optional[ToolError] = None
        attempt = 0

        while True:
            attempt += 1

            ticket = await self.circuit_breaker.acquire(tool_id)
            if ticket is None:
                if last_error is not None:
                    # Our own failures opened the breaker; report what actually happened
                    return self._finish(execution, None, last_error, start)
                error = CircuitOpenError(
                    f"Circuit breaker is open for tool: {tool_id}",
                    tool_name=tool_id,
                    params=params,
                )
                return self._finish(execution, None, error, start)

            execution.attempts = attempt
            try:
                value = await self.timeout_handler.execute_with_timeout(
                    handler.run,
                    dict(params),
                    context,
                    tool_name=tool_id,
                    timeout_seconds=descriptor.effective_timeout,
                    deadline=context.deadline,
                    cancel_event=context.cancel_event,
                )
            except asyncio.CancelledError:
                await self.circuit_breaker.record_failure(tool_id, ticket)
                raise
            except Exception as e:
                error = classify_error(e, tool_id, params)
                if error.counts_against_breaker:
                    await self.circuit_breaker.record_failure(tool_id, ticket)
                else:
                    await self.circuit_breaker.release(tool_id, ticket)

                if error.kind == ErrorKind.EXTERNAL and not error.retryable:
                    logger.error(
                        f"Tool {tool_id} execution failed: {error.message}",
                        exc_info=error.original_error,
                    )

                if self.retry_strategy.should_retry(error, attempt, tool_id) and not context.cancelled:
                    last_error = error
                    await self.retry_strategy.backoff(attempt, tool_id, error)
                    continue

                return self._finish(execution, None, error, start)

            await self.circuit_breaker.record_success(tool_id, ticket)
            if descriptor.cacheable:
                self.cache.put(tool_id, params, value, descriptor.cache_ttl_seconds)
            return self._finish(execution, value, None, start)

    def _check_dependencies(self, descriptor: ToolDescriptor):
        for dependency in descriptor.dependencies:
            if dependency in self.health:
                if not self.health.is_available(dependency):
                    raise DependencyUnavailableError(
                        f"Dependency group '{dependency}' health "
                        f"{self.health.score(dependency):.2f} is below "
                        f"{self.health.config.min_health:.2f}",
                        dependency=dependency,
                        tool_name=descriptor.id,
                    )
            elif self.registry.exists(dependency):
                if self.circuit_breaker.is_rejecting(dependency):
                    raise DependencyUnavailableError(
                        f"Dependency tool '{dependency}' has an open circuit",
                        dependency=dependency,
                        tool_name=descriptor.id,
                    )
            else:
                raise DependencyUnavailableError(
                    f"Unknown dependency '{dependency}'",
                    dependency=dependency,
                    tool_name=descriptor.id,
                )

    def suggest_alternative(self, tool_id: str) -> Optional[str]:
        """
        A healthy replacement for a failing tool: the explicit fallback if
        it is usable, otherwise the best-ranked lower-complexity tool in
        the same category.
        """
        try:
            candidates = self.registry.alternatives_for(tool_id)
        except UnknownToolError:
            return None

        usable = [c for c in candidates if self._is_usable(c)]
        if not usable:
            return None

        descriptor = self.registry.get(tool_id)
        if descriptor.fallback_tool and usable[0].id == descriptor.fallback_tool:
            return usable[0].id
        return self.metrics.rank([c.id for c in usable])[0]

    def _is_usable(self, descriptor: ToolDescriptor) -> bool:
        if self.circuit_breaker.is_rejecting(descriptor.id):
            return False
        try:
            self._check_dependencies(descriptor)
        except DependencyUnavailableError:
            return False
        return True

    def _finish(
        self,
        execution: Execution,
        value: Any,
        error: Optional[ToolError],
        start: float,
        cache_hit: bool = False,
    ) -> ToolResult:
        """Close the execution record, update metrics and build the result"""
        elapsed_ms = (time.monotonic() - start) * 1000
        retries = max(execution.attempts - 1, 0)

        if error is None:
            execution.complete(value, cache_hit=cache_hit)
            result = ToolResult(
                tool_id=execution.tool_id,
                execution_id=execution.execution_id,
                status=ToolStatus.SUCCESS,
                data=value,
                execution_time_ms=elapsed_ms,
                retry_count=retries,
                cache_hit=cache_hit,
            )
        else:
            suggested = None
            if isinstance(error, CircuitOpenError) and error.suggested_tool:
                suggested = error.suggested_tool
            elif error.kind in _SUGGEST_FOR:
                suggested = self.suggest_alternative(execution.tool_id)
                if isinstance(error, CircuitOpenError):
                    error.suggested_tool = suggested
            result = ToolResult.failure(
                tool_id=execution.tool_id,
                status=_STATUS_BY_KIND[error.kind],
                error=error,
                execution_time_ms=elapsed_ms,
                suggested_tool=suggested,
                execution_id=execution.execution_id,
                retry_count=retries,
            )
            execution.fail(result.error)

        if not isinstance(error, UnknownToolError):
            self.metrics.record(
                execution.tool_id,
                success=error is None,
                duration_ms=elapsed_ms,
                cache_hit=cache_hit,
                error_kind=error.kind if error is not None else None,
                retries=retries,
            )
        self._history.append(execution)
        self.audit.submit_execution(execution)
        return result

    def recent_executions(self, limit: Optional[int] = None) -> List[Execution]:
        """Most recent execution records, oldest first"""
        history = list(self._history)
        return history[-limit:] if limit else history

    def get_execution(self, execution_id: str) -> Optional[Execution]:
        for execution in reversed(self._history):
            if execution.execution_id == execution_id:
                return execution
        return None
