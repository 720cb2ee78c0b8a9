"""Execution context passed through every invocation"""
from collections import deque
from typing import Deque, Dict, Any, Optional
import asyncio
import time
import uuid

from orchestration.models import ToolResult


class ExecutionContext:
    """
    Caller identity, cancellation and deadline for an invocation or chain.

    The context is opaque to tools: they may read ``user_id``,
    ``session_id`` and ``shared_context`` but never need to honor the
    deadline or cancellation themselves; the executor does that.
    """

    def __init__(
        self,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        shared_context: Optional[Dict[str, Any]] = None,
        deadline: Optional[float] = None,
        max_results: int = 100,
    ):
        self.request_id = request_id or str(uuid.uuid4())
        self.user_id = user_id
        self.session_id = session_id
        self.metadata = metadata or {}
        self.shared_context = shared_context or {}
        self.deadline = deadline  # time.monotonic() based
        self._cancel_event: Optional[asyncio.Event] = None
        self._cancelled = False

        # Most recent results only; session-scoped contexts live long
        self.results: Deque[ToolResult] = deque(maxlen=max_results)

    @classmethod
    def with_timeout(cls, seconds: float, **kwargs) -> "ExecutionContext":
        """Create a context whose deadline is ``seconds`` from now"""
        return cls(deadline=time.monotonic() + seconds, **kwargs)

    @property
    def cancel_event(self) -> asyncio.Event:
        # Created lazily so contexts can be built outside a running loop
        if self._cancel_event is None:
            self._cancel_event = asyncio.Event()
            if self._cancelled:
                self._cancel_event.set()
        return self._cancel_event

    def cancel(self):
        """Request cancellation of every in-flight call using this context"""
        self._cancelled = True
        if self._cancel_event is not None:
            self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline"""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def add_result(self, result: ToolResult):
        self.results.append(result)

    def get_last_result(self) -> Optional[ToolResult]:
        return self.results[-1] if self.results else None

    def set_context_value(self, key: str, value: Any):
        self.shared_context[key] = value

    def get_context_value(self, key: str, default: Any = None) -> Any:
        return self.shared_context.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "metadata": self.metadata,
            "cancelled": self._cancelled,
            "remaining_seconds": self.remaining(),
        }
