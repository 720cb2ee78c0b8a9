"""Retry policy with exponential backoff"""
from typing import Awaitable, Callable, Dict, Optional
import asyncio
import logging
import random

from orchestration.models import ToolError

logger = logging.getLogger(__name__)


class RetryConfig:
    """Retry configuration"""

    def __init__(
        self,
        max_attempts: int = 2,
        initial_delay_seconds: float = 1.0,
        max_delay_seconds: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = False,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts  # Includes the first call
        self.initial_delay_seconds = initial_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self.exponential_base = exponential_base
        self.jitter = jitter

    def to_dict(self) -> Dict:
        return {
            "max_attempts": self.max_attempts,
            "initial_delay_seconds": self.initial_delay_seconds,
            "max_delay_seconds": self.max_delay_seconds,
            "exponential_base": self.exponential_base,
            "jitter": self.jitter,
        }


class RetryStrategy:
    """
    Decides whether a classified failure is retried and how long to wait.

    Only errors whose ``retryable`` flag is set (timeouts and transient
    external failures) are retried. Caller mistakes, open circuits,
    unavailable dependencies and cancellations never are.
    """

    def __init__(
        self,
        default_config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.default_config = default_config or RetryConfig()
        self._tool_configs: Dict[str, RetryConfig] = {}
        self._sleep = sleep

    def configure(self, tool_id: str, config: RetryConfig):
        """Configure retry strategy for specific tool"""
        self._tool_configs[tool_id] = config

    def get_config(self, tool_id: Optional[str] = None) -> RetryConfig:
        if tool_id and tool_id in self._tool_configs:
            return self._tool_configs[tool_id]
        return self.default_config

    def max_attempts(self, tool_id: Optional[str] = None) -> int:
        return self.get_config(tool_id).max_attempts

    def calculate_delay(self, attempt: int, tool_id: Optional[str] = None) -> float:
        """Delay before retry number ``attempt`` (1-based)"""
        config = self.get_config(tool_id)
        delay = config.initial_delay_seconds * (config.exponential_base ** (attempt - 1))
        delay = min(delay, config.max_delay_seconds)

        if config.jitter:
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, delay)

    def should_retry(
        self,
        error: ToolError,
        attempt: int,
        tool_id: Optional[str] = None,
    ) -> bool:
        """Whether a failure on attempt number ``attempt`` (1-based) gets another try"""
        if not error.retryable:
            return False
        return attempt < self.get_config(tool_id).max_attempts

    async def backoff(self, attempt: int, tool_id: Optional[str] = None, error: Optional[ToolError] = None):
        """Sleep before retry number ``attempt``"""
        delay = self.calculate_delay(attempt, tool_id)
        logger.warning(
            f"Retrying {tool_id or 'unknown'} "
            f"(attempt {attempt + 1}/{self.max_attempts(tool_id)}) "
            f"after {error.kind.value if error else 'error'}; waiting {delay:.2f}s"
        )
        await self._sleep(delay)
