"""Core execution components"""
from .context import ExecutionContext
from .registry import ToolRegistry
from .executor import ToolExecutor, classify_error

__all__ = [
    "ExecutionContext",
    "ToolRegistry",
    "ToolExecutor",
    "classify_error",
]
