"""Fault-tolerant tool orchestration"""
from orchestration.config import OrchestratorConfig, ToolOverrides
from orchestration.core import ExecutionContext, ToolRegistry, ToolExecutor
from orchestration.orchestrator import Orchestrator

__version__ = "0.1.0"

__all__ = [
    "Orchestrator",
    "OrchestratorConfig",
    "ToolOverrides",
    "ExecutionContext",
    "ToolRegistry",
    "ToolExecutor",
]
