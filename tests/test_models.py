"""Models and the error taxonomy"""
import pytest
from pydantic import ValidationError

from orchestration.models import (
    CircuitOpenError,
    ComplexityTier,
    DependencyUnavailableError,
    ErrorKind,
    Execution,
    ExecutionError,
    ExecutionStatus,
    ExternalToolError,
    InvalidParameterError,
    InvalidTransitionError,
    ToolCancelledError,
    ToolTimeoutError,
    UnknownToolError,
)

from tests.helpers import make_descriptor


class TestErrorTaxonomy:
    @pytest.mark.parametrize("error, counts, retryable", [
        (UnknownToolError("x"), False, False),
        (InvalidParameterError("x"), False, False),
        (DependencyUnavailableError("x"), False, False),
        (CircuitOpenError("x"), False, False),
        (ToolTimeoutError("x"), True, True),
        (ExternalToolError("x", transient=True), True, True),
        (ExternalToolError("x"), True, False),
        (ToolCancelledError("x"), True, False),
    ])
    def test_breaker_and_retry_flags(self, error, counts, retryable):
        assert error.counts_against_breaker is counts
        assert error.retryable is retryable

    def test_error_code_defaults_to_kind(self):
        assert ToolTimeoutError("x").error_code == "TIMEOUT"

    def test_execution_error_from_exception(self):
        error = InvalidParameterError("bad zip", fields=["zip_code"], tool_name="hud_vacancy")

        record = ExecutionError.from_exception(error)

        assert record.kind == ErrorKind.INVALID_PARAMETER
        assert record.tool_id == "hud_vacancy"
        assert record.details == {"fields": ["zip_code"]}


class TestExecution:
    def test_lifecycle(self):
        execution = Execution(tool_id="census_demographics")
        execution.transition(ExecutionStatus.RUNNING)
        execution.complete({"ok": True})

        assert execution.is_terminal
        assert execution.duration_ms is not None

    def test_terminal_states_are_final(self):
        execution = Execution(tool_id="census_demographics")
        execution.transition(ExecutionStatus.RUNNING)
        execution.complete(None)

        with pytest.raises(InvalidTransitionError):
            execution.transition(ExecutionStatus.RUNNING)

    def test_cannot_complete_without_running(self):
        with pytest.raises(InvalidTransitionError):
            Execution(tool_id="census_demographics").complete(None)


class TestDescriptor:
    def test_timeout_defaults_by_complexity(self):
        assert make_descriptor("a", complexity=ComplexityTier.SIMPLE).effective_timeout == 3
        assert make_descriptor("b").effective_timeout == 15
        assert make_descriptor("c", complexity=ComplexityTier.RESEARCH).effective_timeout == 30
        assert make_descriptor("d", timeout_seconds=2).effective_timeout == 2

    def test_descriptor_is_immutable(self):
        descriptor = make_descriptor("a")

        with pytest.raises(ValidationError):
            descriptor.cacheable = True
