"""
API V1 Schemas

Pydantic models for response validation.
"""

from .health import (
    HealthStatus,
    HealthCheckResponse,
    ComponentHealth,
    SimpleHealthResponse,
    SessionStatsResponse,
)

__all__ = [
    "HealthStatus",
    "HealthCheckResponse",
    "ComponentHealth",
    "SimpleHealthResponse",
    "SessionStatsResponse",
]
