"""Health probes for dependency groups"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Union
import inspect
import logging
import time

import httpx

logger = logging.getLogger(__name__)


@dataclass
class ProbeResult:
    """Outcome of a single probe"""
    healthy: bool
    latency_ms: Optional[float] = None
    detail: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class BaseProbe(ABC):
    """
    A cheap, side-effect free check of an external dependency.

    Probes are used only by the health monitor and never go through the
    executor, so probing cannot trip a tool's circuit breaker.
    """

    @abstractmethod
    async def check(self) -> ProbeResult:
        pass

    async def close(self):
        return None


ProbeFunction = Callable[[], Union[bool, ProbeResult, Awaitable[Union[bool, ProbeResult]]]]


class CallableProbe(BaseProbe):
    """Wraps a function returning a bool or a ProbeResult"""

    def __init__(self, fn: ProbeFunction):
        self.fn = fn

    async def check(self) -> ProbeResult:
        start = time.monotonic()
        outcome = self.fn()
        if inspect.isawaitable(outcome):
            outcome = await outcome
        latency_ms = (time.monotonic() - start) * 1000

        if isinstance(outcome, ProbeResult):
            if outcome.latency_ms is None:
                outcome.latency_ms = latency_ms
            return outcome
        return ProbeResult(healthy=bool(outcome), latency_ms=latency_ms)


class HttpProbe(BaseProbe):
    """
    Issues a lightweight HTTP request against an upstream API.

    Any response below ``unhealthy_status`` counts as healthy: a 401 or
    404 still proves the upstream is reachable and answering.
    """

    def __init__(
        self,
        url: str,
        method: str = "HEAD",
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: float = 5.0,
        unhealthy_status: int = 500,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.method = method
        self.headers = headers or {}
        self.timeout_seconds = timeout_seconds
        self.unhealthy_status = unhealthy_status
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_seconds,
                follow_redirects=True,
            )
        return self._client

    async def check(self) -> ProbeResult:
        start = time.monotonic()
        try:
            response = await self.client.request(self.method, self.url, headers=self.headers)
        except httpx.HTTPError as e:
            latency_ms = (time.monotonic() - start) * 1000
            logger.debug(f"Probe {self.method} {self.url} failed: {e}")
            return ProbeResult(
                healthy=False,
                latency_ms=latency_ms,
                detail=f"{type(e).__name__}: {e}",
            )

        latency_ms = (time.monotonic() - start) * 1000
        return ProbeResult(
            healthy=response.status_code < self.unhealthy_status,
            latency_ms=latency_ms,
            detail=f"HTTP {response.status_code}",
            metadata={"status_code": response.status_code},
        )

    async def close(self):
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def as_probe(probe: Union[BaseProbe, ProbeFunction]) -> BaseProbe:
    if isinstance(probe, BaseProbe):
        return probe
    if not callable(probe):
        raise TypeError(f"Probe must be a BaseProbe or callable, got {probe!r}")
    return CallableProbe(probe)
