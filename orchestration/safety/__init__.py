"""Safety and resilience mechanisms"""
from .circuit_breaker import (
    BreakerTicket,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitState,
)
from .retries import RetryStrategy, RetryConfig
from .timeout import TimeoutHandler
from .validators import ExecutionValidator, ValidationResult

__all__ = [
    "BreakerTicket",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "CircuitState",
    "RetryStrategy",
    "RetryConfig",
    "TimeoutHandler",
    "ExecutionValidator",
    "ValidationResult",
]
