"""Audit persistence"""
from .sink import BaseAuditSink, InMemoryAuditSink, AuditWriter

__all__ = ["BaseAuditSink", "InMemoryAuditSink", "AuditWriter"]
