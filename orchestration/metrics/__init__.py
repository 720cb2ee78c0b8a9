"""Execution metrics"""
from .collector import ToolMetrics, MetricsCollector

__all__ = ["ToolMetrics", "MetricsCollector"]
