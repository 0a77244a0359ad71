"""API routers."""

from convsync.routers.agents import router as agents_router
from convsync.routers.conversations import router as conversations_router
from convsync.routers.health import router as health_router

__all__ = ["agents_router", "conversations_router", "health_router"]
