"""Routers module - FastAPI route handlers"""

from . import chat, config, sources

__all__ = ["chat", "config", "sources"]
