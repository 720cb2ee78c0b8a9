"""Mock tool for testing"""
from typing import Any, Callable, Dict, List, Optional, Union
import asyncio
import logging

from orchestration.tools.base import BaseTool

logger = logging.getLogger(__name__)

Response = Union[Any, BaseException, Callable[[Dict[str, Any]], Any]]


class MockTool(BaseTool):
    """
    Scripted tool for testing without external dependencies.

    Each call consumes the next scripted response; once the script is
    exhausted ``default`` is returned. A response that is an exception is
    raised, a callable is invoked with the parameters.
    """

    def __init__(
        self,
        responses: Optional[List[Response]] = None,
        default: Response = None,
        latency_seconds: float = 0.0,
        name: str = "mock",
    ):
        self.name = name
        self.responses = list(responses or [])
        self.default = default if default is not None else {"ok": True}
        self.latency_seconds = latency_seconds
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def fail_next(self, error: BaseException, times: int = 1):
        self.responses.extend([error] * times)

    async def run(self, params: Dict[str, Any], context=None) -> Any:
        self.calls.append(dict(params))

        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        response = self.responses.pop(0) if self.responses else self.default
        if isinstance(response, BaseException):
            logger.debug(f"Mock tool {self.name} raising {type(response).__name__}")
            raise response
        if callable(response):
            return response(params)
        return response

    async def close(self):
        self.closed = True
