"""Chain definition and result models"""
from typing import Any, Callable, Dict, List, Optional, Union
from pydantic import BaseModel, Field, PrivateAttr

from .status import ChainStatus, StepStatus
from .errors import ChainStepError, ExecutionError
from .tool import ToolCategory

# Key under which step n's output is handed to step n+1
PREVIOUS_RESULT_KEY = "previous_result"


class ChainStep(BaseModel):
    """A single step of a chain"""
    tool_id: str
    params: Dict[str, Any] = Field(default_factory=dict)
    required: bool = False  # Chain cannot recover if this step fails
    condition: Optional[Callable[[Dict[str, Any]], bool]] = None
    output_mapping: Optional[Dict[str, str]] = None  # output key -> chain data key


class ChainDefinition(BaseModel):
    """A named, reusable chain"""
    id: str
    name: str
    description: str = ""
    category: ToolCategory = ToolCategory.ANALYSIS
    steps: List[ChainStep]
    triggers: List[str] = Field(default_factory=list)


StepSpec = Union[str, ChainStep]


def normalize_steps(steps: List[StepSpec]) -> List[ChainStep]:
    """Accept bare tool ids or ChainStep objects"""
    return [
        step if isinstance(step, ChainStep) else ChainStep(tool_id=step)
        for step in steps
    ]


class ChainStepResult(BaseModel):
    """Outcome of one chain step"""
    index: int
    tool_id: str
    status: StepStatus
    data: Any = None
    error: Optional[ExecutionError] = None
    execution_time_ms: float = 0.0
    cache_hit: bool = False
    confidence: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status in (StepStatus.COMPLETED, StepStatus.RECOVERED)


class ChainSynthesis(BaseModel):
    """Summary record produced by every chain run"""
    results: List[Any] = Field(default_factory=list)
    confidence: float = 0.0
    total_duration_ms: float = 0.0
    final_output: Dict[str, Any] = Field(default_factory=dict)


class ChainResult(BaseModel):
    """Response from a chain run"""
    chain_id: str
    status: ChainStatus
    steps: List[ChainStepResult] = Field(default_factory=list)
    failed_at: Optional[str] = None
    failed_index: Optional[int] = None
    error: Optional[ExecutionError] = None
    synthesis: ChainSynthesis = Field(default_factory=ChainSynthesis)

    _exception: Optional[ChainStepError] = PrivateAttr(default=None)

    @property
    def exception(self) -> Optional[ChainStepError]:
        return self._exception

    def raise_for_error(self) -> "ChainResult":
        if self._exception is not None:
            raise self._exception
        return self

    @property
    def success(self) -> bool:
        return self.status != ChainStatus.FAILED

    @property
    def completed_results(self) -> List[Any]:
        return [s.data for s in self.steps if s.succeeded]

    def step(self, tool_id: str) -> Optional[ChainStepResult]:
        for step in self.steps:
            if step.tool_id == tool_id:
                return step
        return None
