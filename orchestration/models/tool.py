"""Tool-related models"""
from typing import Dict, Any, Optional, List
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .status import ToolStatus
from .errors import ExecutionError, ToolError, utcnow


class ToolCategory(str, Enum):
    """Tool categories"""
    DATA = "data"
    ANALYSIS = "analysis"
    COMMUNICATION = "communication"
    AUTOMATION = "automation"
    INTEGRATION = "integration"


class ComplexityTier(str, Enum):
    """Complexity tiers with their default deadlines"""
    SIMPLE = "simple"
    STANDARD = "standard"
    RESEARCH = "research"

    @property
    def default_timeout_seconds(self) -> float:
        return _TIER_TIMEOUTS[self]

    @property
    def weight(self) -> int:
        return _TIER_WEIGHTS[self]


_TIER_TIMEOUTS = {
    ComplexityTier.SIMPLE: 3.0,
    ComplexityTier.STANDARD: 15.0,
    ComplexityTier.RESEARCH: 30.0,
}

_TIER_WEIGHTS = {
    ComplexityTier.SIMPLE: 1,
    ComplexityTier.STANDARD: 2,
    ComplexityTier.RESEARCH: 3,
}


class ToolDescriptor(BaseModel):
    """Immutable definition of a registered tool"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    category: ToolCategory
    parameter_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    dependencies: List[str] = Field(default_factory=list)
    cacheable: bool = False
    cache_ttl_seconds: float = 300.0
    timeout_seconds: Optional[float] = None
    complexity: ComplexityTier = ComplexityTier.STANDARD
    fallback_tool: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @property
    def effective_timeout(self) -> float:
        """Declared timeout, or the default for the complexity tier"""
        if self.timeout_seconds is not None:
            return self.timeout_seconds
        return self.complexity.default_timeout_seconds


class ToolResult(BaseModel):
    """Result from a tool execution"""
    tool_id: str
    execution_id: Optional[str] = None
    status: ToolStatus
    data: Any = None
    error: Optional[ExecutionError] = None
    execution_time_ms: float = 0.0
    retry_count: int = 0
    cache_hit: bool = False
    suggested_tool: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    _exception: Optional[ToolError] = PrivateAttr(default=None)

    @property
    def success(self) -> bool:
        return self.status == ToolStatus.SUCCESS

    @property
    def exception(self) -> Optional[ToolError]:
        return self._exception

    def raise_for_error(self) -> "ToolResult":
        """Re-raise the classified failure, if any"""
        if self._exception is not None:
            raise self._exception
        return self

    @classmethod
    def failure(
        cls,
        tool_id: str,
        status: ToolStatus,
        error: ToolError,
        execution_time_ms: float = 0.0,
        suggested_tool: Optional[str] = None,
        **kwargs,
    ) -> "ToolResult":
        result = cls(
            tool_id=tool_id,
            status=status,
            error=ExecutionError.from_exception(error, suggested_tool=suggested_tool),
            execution_time_ms=execution_time_ms,
            suggested_tool=suggested_tool,
            **kwargs,
        )
        result._exception = error
        return result
