"""
Health Check Schemas

Pydantic models for health, readiness and relay stats endpoints.

@.architecture
Incoming: api/v1/endpoints/health.py, api/v1/endpoints/sessions.py, monitoring/health.py --- {health check results, component status, relay counters}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/v1/endpoints/health.py, api/v1/endpoints/sessions.py --- {HealthCheckResponse, ComponentHealth, SimpleHealthResponse, SessionStatsResponse validated models}
"""

from enum import Enum
from typing import Dict, List, Optional, Any
from pydantic import BaseModel


class HealthStatus(str, Enum):
    """Health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


# =============================================================================
# Component Health Models
# =============================================================================

class ComponentHealth(BaseModel):
    """Health status of a single component."""
    component: str
    status: HealthStatus
    message: Optional[str] = None
    response_time_ms: Optional[float] = None
    details: Optional[Dict[str, Any]] = None


# =============================================================================
# Health Check Response Models
# =============================================================================

class HealthCheckResponse(BaseModel):
    """Comprehensive health check response."""
    status: HealthStatus
    timestamp: str
    uptime_seconds: float
    check_duration_ms: float
    components: List[ComponentHealth]

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-11-04T12:00:00Z",
                "uptime_seconds": 3600,
                "check_duration_ms": 3.1,
                "components": [
                    {
                        "component": "system",
                        "status": "healthy",
                        "message": "System resources healthy",
                        "response_time_ms": None
                    },
                    {
                        "component": "relay",
                        "status": "healthy",
                        "message": "Relay healthy",
                        "response_time_ms": 0.1,
                        "details": {"sessions": 3, "connections": 5}
                    }
                ]
            }
        }


class SimpleHealthResponse(BaseModel):
    """Simple health check response."""
    status: str = "ok"
    timestamp: float
    uptime_seconds: float


class SessionStatsResponse(BaseModel):
    """Aggregate relay counters. Never carries topics or names."""
    sessions: int
    participants: int
    connections: int
    bound_connections: int
    session_ttl_seconds: float
