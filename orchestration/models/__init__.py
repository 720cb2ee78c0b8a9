"""Orchestration models"""
from .status import ExecutionStatus, ToolStatus, StepStatus, ChainStatus
from .errors import (
    ErrorKind,
    ToolError,
    UnknownToolError,
    InvalidParameterError,
    DependencyUnavailableError,
    CircuitOpenError,
    ToolTimeoutError,
    ExternalToolError,
    ToolCancelledError,
    ChainStepError,
    RegistryError,
    DuplicateToolError,
    RegistryFrozenError,
    InvalidTransitionError,
    ExecutionError,
)
from .tool import ToolCategory, ComplexityTier, ToolDescriptor, ToolResult
from .execution import Execution
from .chain import (
    PREVIOUS_RESULT_KEY,
    ChainStep,
    ChainDefinition,
    ChainStepResult,
    ChainSynthesis,
    ChainResult,
    normalize_steps,
)

__all__ = [
    # Status
    "ExecutionStatus",
    "ToolStatus",
    "StepStatus",
    "ChainStatus",
    # Errors
    "ErrorKind",
    "ToolError",
    "UnknownToolError",
    "InvalidParameterError",
    "DependencyUnavailableError",
    "CircuitOpenError",
    "ToolTimeoutError",
    "ExternalToolError",
    "ToolCancelledError",
    "ChainStepError",
    "RegistryError",
    "DuplicateToolError",
    "RegistryFrozenError",
    "InvalidTransitionError",
    "ExecutionError",
    # Tool
    "ToolCategory",
    "ComplexityTier",
    "ToolDescriptor",
    "ToolResult",
    # Execution
    "Execution",
    # Chain
    "PREVIOUS_RESULT_KEY",
    "ChainStep",
    "ChainDefinition",
    "ChainStepResult",
    "ChainSynthesis",
    "ChainResult",
    "normalize_steps",
]
