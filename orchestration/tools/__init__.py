"""Tool contract and test doubles"""
from .base import BaseTool, FunctionTool, ToolFunction, as_tool
from .mock import MockTool

__all__ = ["BaseTool", "FunctionTool", "ToolFunction", "as_tool", "MockTool"]
