from unittest.mock import AsyncMock

import pytest

from orchestration import Orchestrator, OrchestratorConfig
from orchestration.audit import InMemoryAuditSink
from orchestration.safety import CircuitBreakerConfig

from tests.helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    """Replaces asyncio.sleep in retry backoff"""
    return AsyncMock()


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def config():
    return OrchestratorConfig(
        circuit_breaker=CircuitBreakerConfig(failure_threshold=2, cooldown_seconds=60),
    )


@pytest.fixture
def orchestrator(config, clock, sleep, audit_sink):
    return Orchestrator(config=config, clock=clock, sleep=sleep, audit_sink=audit_sink)
