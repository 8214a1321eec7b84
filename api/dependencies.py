"""
API Dependencies

FastAPI dependency injection functions for:
- Settings management
- WebSocket hub access
- Lifecycle sweeper access

@.architecture
Incoming: app.py (startup_event, shutdown_event), api/v1/endpoints/*.py --- {set_hub/set_sweeper calls, Depends() injections from endpoints}
Processing: get_settings(), get_hub(), get_sweeper(), reset_services() --- {2 jobs: dependency_injection, resource_management}
Outgoing: api/v1/endpoints/*.py, app.py --- {Settings instance, WebSocketHub instance, LifecycleSweeper instance}
"""

from typing import Optional
from fastapi import HTTPException

from config.settings import Settings, get_settings as load_settings
from monitoring import get_logger
from ws.hub import WebSocketHub
from ws.sweeper import LifecycleSweeper

logger = get_logger(__name__)


# =============================================================================
# Settings Dependencies
# =============================================================================

def get_settings() -> Settings:
    """
    Get application settings.

    Returns:
        Settings: Application configuration (cached by the loader)
    """
    return load_settings()


# =============================================================================
# Relay Dependencies
# =============================================================================

_hub: Optional[WebSocketHub] = None
_sweeper: Optional[LifecycleSweeper] = None


def set_hub(hub: Optional[WebSocketHub]) -> None:
    """Set the global WebSocket hub instance."""
    global _hub
    _hub = hub


def set_sweeper(sweeper: Optional[LifecycleSweeper]) -> None:
    """Set the global lifecycle sweeper instance."""
    global _sweeper
    _sweeper = sweeper


def get_hub() -> WebSocketHub:
    """
    Get the WebSocket hub instance.

    The hub owns the SessionStore and ConnectionRegistry for the process.

    Raises:
        HTTPException: If the hub is not initialized
    """
    if _hub is None:
        logger.error("WebSocket hub not initialized")
        raise HTTPException(
            status_code=503,
            detail="Relay not initialized. Server is starting up."
        )
    return _hub


def get_sweeper() -> Optional[LifecycleSweeper]:
    """Get the lifecycle sweeper, or None before startup."""
    return _sweeper


def reset_services() -> None:
    """Drop all service handles (shutdown)."""
    set_hub(None)
    set_sweeper(None)
