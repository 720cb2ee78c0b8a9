"""Circuit breaker implementation for tool resilience"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from enum import Enum
import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states"""
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Blocking requests
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass(frozen=True)
class BreakerTicket:
    """
    Admission handed out by ``acquire``.

    Only the ticket that claimed the current half-open trial may close or
    reopen a half-open breaker. Outcomes reported with any other ticket
    (or none) only update the counters.
    """
    generation: int
    trial: bool = False


class CircuitBreakerConfig:
    """Circuit breaker configuration"""

    def __init__(
        self,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60.0,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.failure_threshold = failure_threshold  # Consecutive failures before opening
        self.cooldown_seconds = cooldown_seconds  # Time in OPEN before a trial call

    def to_dict(self) -> Dict:
        return {
            "failure_threshold": self.failure_threshold,
            "cooldown_seconds": self.cooldown_seconds,
        }


class CircuitBreakerState:
    """
    State for a single tool's breaker.

    Transitions:
        CLOSED -> OPEN        after ``failure_threshold`` consecutive failures
        OPEN -> HALF_OPEN     on the first call after the cooldown
        HALF_OPEN -> CLOSED   when the single trial call succeeds
        HALF_OPEN -> OPEN     when the trial fails (cooldown restarts)

    The methods here are not synchronized; ``CircuitBreaker`` serializes
    access through ``lock``.
    """

    def __init__(self, config: CircuitBreakerConfig, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self.clock = clock
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self.opened_at: Optional[float] = None
        self.trial_in_flight = False
        self.generation = 0  # Bumped on every trial claim
        self.lock = asyncio.Lock()

    def cooldown_elapsed(self) -> bool:
        if self.opened_at is None:
            return True
        return self.clock() - self.opened_at >= self.config.cooldown_seconds

    def try_acquire(self) -> Optional[BreakerTicket]:
        """Admit a call, claiming the trial slot when half-open; None if rejected"""
        if self.state == CircuitState.CLOSED:
            return BreakerTicket(self.generation)

        if self.state == CircuitState.OPEN:
            if not self.cooldown_elapsed():
                return None
            self.state = CircuitState.HALF_OPEN
            return self._claim_trial()

        # HALF_OPEN: one trial at a time
        if self.trial_in_flight:
            return None
        return self._claim_trial()

    def holds_trial(self, ticket: Optional[BreakerTicket]) -> bool:
        return (
            ticket is not None
            and ticket.trial
            and self.state == CircuitState.HALF_OPEN
            and self.trial_in_flight
            and ticket.generation == self.generation
        )

    def record_success(self, ticket: Optional[BreakerTicket] = None):
        if self.state == CircuitState.CLOSED:
            self.failure_count = 0
        elif self.holds_trial(ticket):
            self._close()
        # Late success from a call admitted before the breaker opened: no verdict

    def record_failure(self, ticket: Optional[BreakerTicket] = None):
        self.last_failure_time = self.clock()

        if self.state == CircuitState.CLOSED:
            self.failure_count += 1
            if self.failure_count >= self.config.failure_threshold:
                self._open()
        elif self.holds_trial(ticket):
            self._open()
        else:
            # Late result from a call admitted before the breaker opened
            self.failure_count += 1

    def release_trial(self, ticket: Optional[BreakerTicket] = None):
        """Give back the trial slot when the outcome says nothing about health"""
        if self.holds_trial(ticket):
            self.trial_in_flight = False

    def _claim_trial(self) -> BreakerTicket:
        self.generation += 1
        self.trial_in_flight = True
        return BreakerTicket(self.generation, trial=True)

    def force_half_open(self) -> bool:
        """Let the next call through as a trial, if OPEN past its cooldown"""
        if self.state != CircuitState.OPEN or not self.cooldown_elapsed():
            return False
        self.state = CircuitState.HALF_OPEN
        self.trial_in_flight = False
        return True

    def is_rejecting(self) -> bool:
        """True while calls would be rejected without side effects"""
        if self.state == CircuitState.OPEN:
            return not self.cooldown_elapsed()
        if self.state == CircuitState.HALF_OPEN:
            return self.trial_in_flight
        return False

    def _open(self):
        self.state = CircuitState.OPEN
        self.opened_at = self.clock()
        self.trial_in_flight = False

    def _close(self):
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.opened_at = None
        self.trial_in_flight = False

    def get_status(self) -> Dict:
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.config.failure_threshold,
            "cooldown_seconds": self.config.cooldown_seconds,
            "last_failure_time": self.last_failure_time,
            "opened_at": self.opened_at,
            "trial_in_flight": self.trial_in_flight,
        }


class CircuitBreaker:
    """Breaker bank: one breaker per tool id"""

    def __init__(
        self,
        default_config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_config = default_config or CircuitBreakerConfig()
        self.clock = clock
        self._breakers: Dict[str, CircuitBreakerState] = {}
        self._configs: Dict[str, CircuitBreakerConfig] = {}

    def configure(self, tool_id: str, config: CircuitBreakerConfig):
        """Configure circuit breaker for specific tool"""
        self._configs[tool_id] = config
        if tool_id in self._breakers:
            self._breakers[tool_id].config = config

    def _get_breaker(self, tool_id: str) -> CircuitBreakerState:
        """Get or create circuit breaker for tool"""
        breaker = self._breakers.get(tool_id)
        if breaker is None:
            config = self._configs.get(tool_id, self.default_config)
            breaker = CircuitBreakerState(config, clock=self.clock)
            self._breakers[tool_id] = breaker
        return breaker

    async def acquire(self, tool_id: str) -> Optional[BreakerTicket]:
        """
        Check if tool execution is allowed; claims the half-open trial slot

        Returns:
            A ticket to hand back with the call's outcome, or None if the
            call is rejected
        """
        breaker = self._get_breaker(tool_id)
        async with breaker.lock:
            previous = breaker.state
            ticket = breaker.try_acquire()
            if previous == CircuitState.OPEN and breaker.state == CircuitState.HALF_OPEN:
                logger.info(f"Circuit for {tool_id} half-open: admitting trial call")
            return ticket

    async def record_success(self, tool_id: str, ticket: Optional[BreakerTicket] = None):
        breaker = self._get_breaker(tool_id)
        async with breaker.lock:
            previous = breaker.state
            breaker.record_success(ticket)
            if previous != CircuitState.CLOSED and breaker.state == CircuitState.CLOSED:
                logger.info(f"Circuit for {tool_id} closed after successful trial")

    async def record_failure(self, tool_id: str, ticket: Optional[BreakerTicket] = None):
        breaker = self._get_breaker(tool_id)
        async with breaker.lock:
            previous = breaker.state
            breaker.record_failure(ticket)
            if breaker.state == CircuitState.OPEN and previous != CircuitState.OPEN:
                logger.warning(
                    f"Circuit for {tool_id} opened "
                    f"({breaker.failure_count} failure(s), was {previous.value})"
                )

    async def release(self, tool_id: str, ticket: Optional[BreakerTicket] = None):
        """Release a claimed trial slot without judging the dependency"""
        breaker = self._get_breaker(tool_id)
        async with breaker.lock:
            breaker.release_trial(ticket)

    async def force_half_open(self, tool_id: str) -> bool:
        breaker = self._get_breaker(tool_id)
        async with breaker.lock:
            forced = breaker.force_half_open()
        if forced:
            logger.info(f"Circuit for {tool_id} forced half-open after dependency recovery")
        return forced

    async def reset(self, tool_id: str):
        """Reset circuit breaker for tool"""
        breaker = self._get_breaker(tool_id)
        async with breaker.lock:
            breaker._close()
            breaker.last_failure_time = None

    def state(self, tool_id: str) -> CircuitState:
        return self._get_breaker(tool_id).state

    def failure_count(self, tool_id: str) -> int:
        return self._get_breaker(tool_id).failure_count

    def is_rejecting(self, tool_id: str) -> bool:
        if tool_id not in self._breakers:
            return False
        return self._breakers[tool_id].is_rejecting()

    def get_status(self, tool_id: Optional[str] = None) -> Dict:
        """Get circuit breaker status"""
        if tool_id:
            return {tool_id: self._get_breaker(tool_id).get_status()}

        return {
            name: breaker.get_status()
            for name, breaker in self._breakers.items()
        }

    def get_all_open(self) -> List[str]:
        """Get all tools with open circuit breakers"""
        return [
            name
            for name, breaker in self._breakers.items()
            if breaker.state == CircuitState.OPEN
        ]
