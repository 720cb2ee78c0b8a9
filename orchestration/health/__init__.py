"""Dependency-group health tracking"""
from .probes import ProbeResult, BaseProbe, CallableProbe, HttpProbe
from .groups import HealthConfig, DependencyGroup, HealthRegistry
from .monitor import HealthMonitor

__all__ = [
    "ProbeResult",
    "BaseProbe",
    "CallableProbe",
    "HttpProbe",
    "HealthConfig",
    "DependencyGroup",
    "HealthRegistry",
    "HealthMonitor",
]
