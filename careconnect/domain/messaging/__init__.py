"""Messaging domain - conversations and live feeds"""

from .router import router, ws_router

__all__ = ["router", "ws_router"]
