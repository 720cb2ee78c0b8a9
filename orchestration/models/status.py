"""Status enums and state machines"""
from enum import Enum


class ExecutionStatus(str, Enum):
    """Lifecycle of a single execution record"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ToolStatus(str, Enum):
    """Outcome of a single tool invocation"""
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    CIRCUIT_OPEN = "circuit_open"
    DEPENDENCY_UNAVAILABLE = "dependency_unavailable"
    INVALID = "invalid"


class StepStatus(str, Enum):
    """Outcome of a single chain step"""
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    RECOVERED = "recovered"  # Ran with params re-derived after a failed step


class ChainStatus(str, Enum):
    """Overall chain outcome"""
    COMPLETED = "completed"
    PARTIAL = "partial"  # A step failed but the chain recovered
    FAILED = "failed"


_EXECUTION_TRANSITIONS = {
    ExecutionStatus.PENDING: {ExecutionStatus.RUNNING, ExecutionStatus.FAILED},
    ExecutionStatus.RUNNING: {ExecutionStatus.COMPLETED, ExecutionStatus.FAILED},
    ExecutionStatus.COMPLETED: set(),
    ExecutionStatus.FAILED: set(),
}


def can_transition(current: ExecutionStatus, target: ExecutionStatus) -> bool:
    """Check whether an execution may move from current to target"""
    return target in _EXECUTION_TRANSITIONS[current]
