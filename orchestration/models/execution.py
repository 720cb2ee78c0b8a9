"""Execution records"""
from typing import Any, Dict, Optional
from datetime import datetime
import uuid
from pydantic import BaseModel, Field

from .status import ExecutionStatus, can_transition
from .errors import ExecutionError, InvalidTransitionError, utcnow


class Execution(BaseModel):
    """One invocation record, owned by the executor"""
    execution_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tool_id: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    status: ExecutionStatus = ExecutionStatus.PENDING
    result: Any = None
    error: Optional[ExecutionError] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    attempts: int = 0
    cache_hit: bool = False

    def transition(self, status: ExecutionStatus):
        """Move to a new status; completed and failed are terminal"""
        if not can_transition(self.status, status):
            raise InvalidTransitionError(
                f"Execution {self.execution_id}: "
                f"{self.status.value} -> {status.value} is not allowed"
            )
        self.status = status
        if status == ExecutionStatus.RUNNING:
            self.started_at = utcnow()
        elif status in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED):
            if self.started_at is None:
                self.started_at = utcnow()
            self.ended_at = utcnow()

    def complete(self, result: Any, cache_hit: bool = False):
        self.result = result
        self.cache_hit = cache_hit
        self.transition(ExecutionStatus.COMPLETED)

    def fail(self, error: ExecutionError):
        self.error = error
        self.transition(ExecutionStatus.FAILED)

    @property
    def is_terminal(self) -> bool:
        return self.status in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)

    @property
    def duration_ms(self) -> Optional[float]:
        if self.started_at and self.ended_at:
            return (self.ended_at - self.started_at).total_seconds() * 1000
        return None
