"""Operational HTTP surface"""
from .routes import create_router
from .app import create_app

__all__ = ["create_router", "create_app"]
