"""Sequential chain execution with partial-failure recovery"""
from typing import Any, Dict, List, Optional, Tuple
import logging
import time
import uuid

from orchestration.core.context import ExecutionContext
from orchestration.core.executor import ToolExecutor
from orchestration.audit import AuditWriter
from orchestration.models import (
    PREVIOUS_RESULT_KEY,
    ChainResult,
    ChainStatus,
    ChainStep,
    ChainStepError,
    ChainStepResult,
    ChainSynthesis,
    ErrorKind,
    StepStatus,
    ToolError,
    ToolResult,
    normalize_steps,
)
from orchestration.models.chain import StepSpec

logger = logging.getLogger(__name__)

# Failures that mean the chain itself is malformed; dropping the step cannot help
_STRUCTURAL_ERRORS = frozenset({
    ErrorKind.UNKNOWN_TOOL,
    ErrorKind.INVALID_PARAMETER,
})


def step_confidence(data: Any) -> float:
    """Confidence reported by a step's output, 1.0 if it reports none"""
    if isinstance(data, dict):
        value = data.get("confidence")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return min(max(float(value), 0.0), 1.0)
    return 1.0


class ChainStrategy:
    """
    Execute tools one after another, threading each output into the next
    step's parameters under ``previous_result``.

    When a step fails, the chain drops it and runs the next step with
    parameters derived from the last successful output. The chain fails
    outright (keeping every completed result) when the failed step is
    required, when the failure is a caller mistake, when the recovery
    step also fails, or when no later step is left to recover with.
    """

    def __init__(
        self,
        executor: ToolExecutor,
        audit: Optional[AuditWriter] = None,
    ):
        self.executor = executor
        self.audit = audit or executor.audit

    async def execute(
        self,
        steps: List[StepSpec],
        initial_params: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
        chain_id: Optional[str] = None,
    ) -> ChainResult:
        """
        Execute a chain

        Args:
            steps: Tool ids or ChainStep objects, in order
            initial_params: Caller parameters passed to every step
            context: Execution context shared by every step
            chain_id: Identifier recorded on the result

        Returns:
            ChainResult with every step result and the synthesis record
        """
        chain_steps = normalize_steps(steps)
        initial_params = dict(initial_params or {})
        context = context or ExecutionContext()
        chain_id = chain_id or f"chain-{uuid.uuid4().hex[:12]}"
        start = time.monotonic()

        logger.info(f"Starting chain {chain_id}: {len(chain_steps)} step(s)")

        data: Dict[str, Any] = dict(initial_params)  # Accumulated chain data
        mapped: Dict[str, Any] = {}  # Outputs projected by output_mapping
        last_output: Any = None
        step_results: List[ChainStepResult] = []
        pending_failure: Optional[Tuple[int, ChainStep, ToolResult]] = None
        recovered = False

        for index, step in enumerate(chain_steps):
            if step.condition is not None and not step.condition(data):
                logger.info(f"Chain {chain_id}: skipping step {index + 1} ({step.tool_id}), condition not met")
                step_results.append(ChainStepResult(
                    index=index,
                    tool_id=step.tool_id,
                    status=StepStatus.SKIPPED,
                ))
                continue

            params = self._build_params(step, initial_params, mapped, last_output)
            logger.info(f"Chain {chain_id}: executing step {index + 1}/{len(chain_steps)}: {step.tool_id}")
            result = await self.executor.execute(step.tool_id, params, context)

            if result.success:
                status = StepStatus.RECOVERED if pending_failure else StepStatus.COMPLETED
                step_results.append(ChainStepResult(
                    index=index,
                    tool_id=step.tool_id,
                    status=status,
                    data=result.data,
                    execution_time_ms=result.execution_time_ms,
                    cache_hit=result.cache_hit,
                    confidence=step_confidence(result.data),
                ))
                if pending_failure:
                    logger.info(
                        f"Chain {chain_id}: recovered from failed step "
                        f"{pending_failure[0] + 1} ({pending_failure[1].tool_id})"
                    )
                    pending_failure = None
                    recovered = True
                last_output = result.data
                self._merge_output(step, result.data, data, mapped)
                continue

            step_results.append(ChainStepResult(
                index=index,
                tool_id=step.tool_id,
                status=StepStatus.FAILED,
                error=result.error,
                execution_time_ms=result.execution_time_ms,
            ))
            logger.warning(
                f"Chain {chain_id}: step {index + 1} ({step.tool_id}) failed: "
                f"{result.error.kind.value}: {result.error.message}"
            )

            reason = self._unrecoverable_reason(step, result, pending_failure, context)
            if reason is not None:
                return self._fail(
                    chain_id, chain_steps, step_results, index, step, result,
                    reason, data, start,
                )
            pending_failure = (index, step, result)

        if pending_failure is not None:
            index, step, result = pending_failure
            return self._fail(
                chain_id, chain_steps, step_results, index, step, result,
                "no later step to recover with", data, start,
            )

        status = ChainStatus.PARTIAL if recovered else ChainStatus.COMPLETED
        chain_result = ChainResult(
            chain_id=chain_id,
            status=status,
            steps=step_results,
            synthesis=self._synthesize(chain_steps, step_results, data, start),
        )
        logger.info(
            f"Chain {chain_id} {status.value} in "
            f"{chain_result.synthesis.total_duration_ms:.2f}ms"
        )
        self._record(chain_result)
        return chain_result

    def _build_params(
        self,
        step: ChainStep,
        initial_params: Dict[str, Any],
        mapped: Dict[str, Any],
        last_output: Any,
    ) -> Dict[str, Any]:
        """Caller-supplied fields always win over anything derived"""
        params = dict(mapped)
        params.update(initial_params)
        params.update(step.params)
        if last_output is not None and PREVIOUS_RESULT_KEY not in initial_params \
                and PREVIOUS_RESULT_KEY not in step.params:
            params[PREVIOUS_RESULT_KEY] = last_output
        return params

    @staticmethod
    def _merge_output(
        step: ChainStep,
        output: Any,
        data: Dict[str, Any],
        mapped: Dict[str, Any],
    ):
        if not isinstance(output, dict):
            return
        if step.output_mapping:
            for output_key, data_key in step.output_mapping.items():
                if output_key in output:
                    data[data_key] = output[output_key]
                    mapped[data_key] = output[output_key]
        else:
            data.update(output)

    @staticmethod
    def _unrecoverable_reason(
        step: ChainStep,
        result: ToolResult,
        pending_failure: Optional[Tuple[int, ChainStep, ToolResult]],
        context: ExecutionContext,
    ) -> Optional[str]:
        kind = result.error.kind
        if kind == ErrorKind.CANCELLED or context.cancelled:
            return "chain cancelled"
        if step.required:
            return "required step failed"
        if kind in _STRUCTURAL_ERRORS:
            return f"{kind.value} is not recoverable"
        if pending_failure is not None:
            return f"recovery after step {pending_failure[0] + 1} failed"
        return None

    def _fail(
        self,
        chain_id: str,
        chain_steps: List[ChainStep],
        step_results: List[ChainStepResult],
        index: int,
        step: ChainStep,
        result: ToolResult,
        reason: str,
        data: Dict[str, Any],
        start: float,
    ) -> ChainResult:
        cause = result.exception or ToolError(result.error.message, tool_name=step.tool_id)
        wrapped = ChainStepError(
            f"Chain {chain_id} stopped at step {index + 1} ({step.tool_id}): {reason}",
            step_index=index,
            cause=cause,
            tool_name=step.tool_id,
        )
        error = result.error.model_copy(update={
            "details": {
                **result.error.details,
                "step_index": index,
                "failed_at": step.tool_id,
                "reason": reason,
            },
        })
        chain_result = ChainResult(
            chain_id=chain_id,
            status=ChainStatus.FAILED,
            steps=step_results,
            failed_at=step.tool_id,
            failed_index=index,
            error=error,
            synthesis=self._synthesize(chain_steps, step_results, data, start),
        )
        chain_result._exception = wrapped
        logger.warning(wrapped.message)
        self._record(chain_result)
        return chain_result

    @staticmethod
    def _synthesize(
        chain_steps: List[ChainStep],
        step_results: List[ChainStepResult],
        data: Dict[str, Any],
        start: float,
    ) -> ChainSynthesis:
        skipped = sum(1 for s in step_results if s.status == StepStatus.SKIPPED)
        counted = len(chain_steps) - skipped
        confidence = 0.0
        if counted > 0:
            confidence = sum(s.confidence for s in step_results if s.succeeded) / counted

        return ChainSynthesis(
            results=[s.data for s in step_results if s.succeeded],
            confidence=round(confidence, 4),
            total_duration_ms=(time.monotonic() - start) * 1000,
            final_output=data,
        )

    def _record(self, chain_result: ChainResult):
        self.executor.metrics.record_chain(chain_result.status)
        self.audit.submit_chain(chain_result)

