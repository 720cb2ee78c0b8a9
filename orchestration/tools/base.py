"""Tool contract implemented by collaborators"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Union
import inspect

if TYPE_CHECKING:
    from orchestration.core.context import ExecutionContext


class BaseTool(ABC):
    """
    A collaborator tool.

    Given validated parameters and an opaque execution context, return a
    result value or raise. Caching, breakers, retries and chaining are
    applied around ``run`` by the executor.
    """

    @abstractmethod
    async def run(
        self,
        params: Dict[str, Any],
        context: Optional["ExecutionContext"] = None,
    ) -> Any:
        pass

    async def close(self):
        """Release any resources held by the tool"""
        return None


ToolFunction = Callable[..., Union[Any, Awaitable[Any]]]


class FunctionTool(BaseTool):
    """Adapts a plain (async) function ``fn(params, context)`` to BaseTool"""

    def __init__(self, fn: ToolFunction):
        self.fn = fn

    async def run(
        self,
        params: Dict[str, Any],
        context: Optional["ExecutionContext"] = None,
    ) -> Any:
        result = self.fn(params, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionTool({getattr(self.fn, '__name__', self.fn)!r})"


def as_tool(handler: Union[BaseTool, ToolFunction]) -> BaseTool:
    """Wrap a callable handler in a BaseTool if needed"""
    if isinstance(handler, BaseTool):
        return handler
    if not callable(handler):
        raise TypeError(f"Tool handler must be a BaseTool or callable, got {handler!r}")
    return FunctionTool(handler)
