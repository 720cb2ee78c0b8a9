"""Error models for the orchestration layer"""
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorKind(str, Enum):
    """Tag attached to every classified failure"""
    UNKNOWN_TOOL = "unknown_tool"
    INVALID_PARAMETER = "invalid_parameter"
    DEPENDENCY_UNAVAILABLE = "dependency_unavailable"
    CIRCUIT_OPEN = "circuit_open"
    TIMEOUT = "timeout"
    EXTERNAL = "external"
    CANCELLED = "cancelled"
    CHAIN_STEP = "chain_step"


class ToolError(Exception):
    """Base exception for tool execution errors"""

    kind: ErrorKind = ErrorKind.EXTERNAL
    counts_against_breaker: bool = True

    def __init__(
        self,
        message: str,
        tool_name: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.tool_name = tool_name
        self.params = params
        self.original_error = original_error
        self.error_code = error_code or self.kind.value.upper()
        self.timestamp = utcnow()

    @property
    def retryable(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "tool_name": self.tool_name,
            "params": self.params,
            "error_code": self.error_code,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class UnknownToolError(ToolError):
    """No tool registered under the requested id"""
    kind = ErrorKind.UNKNOWN_TOOL
    counts_against_breaker = False


class InvalidParameterError(ToolError):
    """Parameters do not satisfy the tool's schema"""
    kind = ErrorKind.INVALID_PARAMETER
    counts_against_breaker = False

    def __init__(self, message: str, fields: Optional[List[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.fields = list(fields or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["fields"] = self.fields
        return data


class DependencyUnavailableError(ToolError):
    """A declared dependency is below the health threshold"""
    kind = ErrorKind.DEPENDENCY_UNAVAILABLE
    counts_against_breaker = False

    def __init__(self, message: str, dependency: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.dependency = dependency


class CircuitOpenError(ToolError):
    """Circuit breaker rejected the call"""
    kind = ErrorKind.CIRCUIT_OPEN
    counts_against_breaker = False

    def __init__(self, message: str, suggested_tool: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.suggested_tool = suggested_tool


class ToolTimeoutError(ToolError):
    """Execution exceeded the tool's deadline"""
    kind = ErrorKind.TIMEOUT

    @property
    def retryable(self) -> bool:
        return True


class ExternalToolError(ToolError):
    """The collaborator itself failed"""
    kind = ErrorKind.EXTERNAL

    def __init__(self, message: str, transient: bool = False, **kwargs):
        super().__init__(message, **kwargs)
        self.transient = transient

    @property
    def retryable(self) -> bool:
        return self.transient


class ToolCancelledError(ToolError):
    """Execution was cancelled by the caller or its deadline"""
    kind = ErrorKind.CANCELLED


class ChainStepError(ToolError):
    """Wraps a step failure with its position in the chain"""
    kind = ErrorKind.CHAIN_STEP
    counts_against_breaker = False

    def __init__(self, message: str, step_index: int, cause: ToolError, **kwargs):
        super().__init__(message, original_error=cause, **kwargs)
        self.step_index = step_index
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["step_index"] = self.step_index
        data["cause"] = self.cause.to_dict()
        return data


class RegistryError(Exception):
    """Registry setup mistake"""
    pass


class DuplicateToolError(RegistryError):
    """A tool with the same id is already registered"""
    pass


class RegistryFrozenError(RegistryError):
    """The registry no longer accepts registrations"""
    pass


class InvalidTransitionError(Exception):
    """Execution status moved backwards or skipped a state"""
    pass


class ExecutionError(BaseModel):
    """Structured error information"""
    kind: ErrorKind
    message: str
    tool_id: Optional[str] = None
    error_code: Optional[str] = None
    retryable: bool = False
    suggested_tool: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(
        cls,
        error: ToolError,
        suggested_tool: Optional[str] = None,
    ) -> "ExecutionError":
        details: Dict[str, Any] = {}
        if isinstance(error, InvalidParameterError):
            details["fields"] = error.fields
        if isinstance(error, DependencyUnavailableError):
            details["dependency"] = error.dependency
        if isinstance(error, ChainStepError):
            details["step_index"] = error.step_index
            details["cause"] = error.cause.kind.value
        if error.original_error is not None:
            details["original_error"] = repr(error.original_error)
        return cls(
            kind=error.kind,
            message=error.message,
            tool_id=error.tool_name,
            error_code=error.error_code,
            retryable=error.retryable,
            suggested_tool=suggested_tool,
            timestamp=error.timestamp,
            details=details,
        )
