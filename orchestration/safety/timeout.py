"""Timeout and cancellation handling for tool executions"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from orchestration.models import ToolTimeoutError, ToolCancelledError

logger = logging.getLogger(__name__)


class TimeoutHandler:
    """
    Runs a coroutine under a deadline and an optional cancel event.

    The tool's own timeout and the caller's deadline are combined: the
    tighter one wins. Overrunning the tool timeout raises
    ``ToolTimeoutError``; hitting the caller's deadline or cancel event
    raises ``ToolCancelledError``. Either way the in-flight call is
    cancelled before returning.
    """

    def __init__(self, default_timeout_seconds: float = 15.0):
        self.default_timeout_seconds = default_timeout_seconds

    async def execute_with_timeout(
        self,
        func: Callable[..., Awaitable[Any]],
        *args,
        tool_name: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        deadline: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
        **kwargs,
    ) -> Any:
        """
        Execute function with timeout

        Args:
            func: Async function to execute
            tool_name: Tool name used in error messages
            timeout_seconds: Tool deadline
            deadline: Caller deadline (``time.monotonic()`` based)
            cancel_event: Set by the caller to abort the call

        Raises:
            ToolTimeoutError: Tool deadline exceeded
            ToolCancelledError: Caller deadline reached or cancel requested
        """
        timeout = timeout_seconds if timeout_seconds is not None else self.default_timeout_seconds
        budget = timeout
        caller_bound = False

        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= timeout:
                budget = remaining
                caller_bound = True

        if cancel_event is not None and cancel_event.is_set():
            raise ToolCancelledError("Cancelled before start", tool_name=tool_name)
        if budget <= 0:
            raise ToolCancelledError("Caller deadline already passed", tool_name=tool_name)

        start = time.monotonic()
        task = asyncio.ensure_future(func(*args, **kwargs))
        waiters = {task}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=budget,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        elapsed = time.monotonic() - start
        logger.debug(f"Aborted in-flight call to {tool_name} after {elapsed:.2f}s")

        if cancel_waiter is not None and cancel_waiter in done:
            raise ToolCancelledError(
                f"Cancelled by caller after {elapsed:.2f}s",
                tool_name=tool_name,
            )
        if caller_bound:
            raise ToolCancelledError(
                f"Caller deadline reached after {elapsed:.2f}s",
                tool_name=tool_name,
            )
        raise ToolTimeoutError(
            f"Execution exceeded timeout of {timeout}s (elapsed: {elapsed:.2f}s)",
            tool_name=tool_name,
        )
