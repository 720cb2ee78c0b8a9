"""Orchestrator configuration"""
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

from orchestration.cache import CacheConfig
from orchestration.health import HealthConfig
from orchestration.safety import CircuitBreakerConfig, RetryConfig


@dataclass
class ToolOverrides:
    """Per-tool breaker and retry settings"""
    circuit_breaker: Optional[CircuitBreakerConfig] = None
    retry: Optional[RetryConfig] = None


@dataclass
class OrchestratorConfig:
    """Configuration for every orchestration component"""
    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    tools: Dict[str, ToolOverrides] = field(default_factory=dict)
    max_concurrent_chains: int = 10
    execution_history_size: int = 500
    strict_parameters: bool = False  # Reject parameters missing from a tool's schema

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrchestratorConfig":
        """
        Build from a plain mapping, e.g. parsed JSON or YAML:

            {
                "circuit_breaker": {"failure_threshold": 5, "cooldown_seconds": 60},
                "retry": {"max_attempts": 2, "initial_delay_seconds": 1.0},
                "cache": {"default_ttl_seconds": 300},
                "health": {"interval_seconds": 30, "min_health": 0.5},
                "tools": {"bls_employment": {"circuit_breaker": {"failure_threshold": 3}}},
                "max_concurrent_chains": 10
            }
        """
        data = dict(data or {})
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        tools = {
            tool_id: ToolOverrides(
                circuit_breaker=(
                    CircuitBreakerConfig(**overrides["circuit_breaker"])
                    if "circuit_breaker" in overrides else None
                ),
                retry=RetryConfig(**overrides["retry"]) if "retry" in overrides else None,
            )
            for tool_id, overrides in (data.pop("tools", None) or {}).items()
        }

        return cls(
            circuit_breaker=CircuitBreakerConfig(**data.pop("circuit_breaker", {})),
            retry=RetryConfig(**data.pop("retry", {})),
            cache=CacheConfig(**data.pop("cache", {})),
            health=HealthConfig(**data.pop("health", {})),
            tools=tools,
            **data,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "circuit_breaker": self.circuit_breaker.to_dict(),
            "retry": self.retry.to_dict(),
            "cache": vars(self.cache).copy(),
            "health": vars(self.health).copy(),
            "tools": {
                tool_id: {
                    key: value.to_dict()
                    for key, value in (
                        ("circuit_breaker", overrides.circuit_breaker),
                        ("retry", overrides.retry),
                    )
                    if value is not None
                }
                for tool_id, overrides in self.tools.items()
            },
            "max_concurrent_chains": self.max_concurrent_chains,
            "execution_history_size": self.execution_history_size,
            "strict_parameters": self.strict_parameters,
        }
