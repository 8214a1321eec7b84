"""
API V1 Endpoints

FastAPI routers for the relay HTTP surface.
"""

from .health import router as health_router
from .sessions import router as sessions_router

__all__ = [
    "health_router",
    "sessions_router",
]
