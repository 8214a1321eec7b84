"""
Health Check Endpoints

Health checks integrating with monitoring layer.

@.architecture
Incoming: api/v1/router.py, Load Balancers, Monitoring --- {HTTP requests to /v1/health, /v1/health/detailed, /v1/health/component/{name}, /v1/health/ready, /v1/health/live}
Processing: health_check(), detailed_health_check(), check_component_health(), readiness_probe(), liveness_probe() --- {3 jobs: component_checking, health_monitoring, resource_monitoring}
Outgoing: monitoring/health.py, api/dependencies.py, HTTP clients --- {HealthCheckResponse, SimpleHealthResponse, ComponentHealth schemas}
"""

import time
from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException, Response, status

from api.dependencies import get_hub, get_sweeper
from api.v1.schemas.health import (
    HealthCheckResponse,
    SimpleHealthResponse,
    ComponentHealth,
    HealthStatus,
)
from monitoring import get_health_checker, get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["health"])

# Track startup time
START_TIME = time.time()


# =============================================================================
# Simple Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=SimpleHealthResponse,
    summary="Simple health check",
    description="Quick health check endpoint for load balancers and monitoring"
)
async def health_check() -> SimpleHealthResponse:
    """
    Simple health check.

    Returns basic status and uptime. Use for load balancer health checks.
    """
    return SimpleHealthResponse(
        status="ok",
        timestamp=time.time(),
        uptime_seconds=time.time() - START_TIME
    )


# =============================================================================
# Comprehensive Health Check
# =============================================================================

@router.get(
    "/health/detailed",
    response_model=HealthCheckResponse,
    summary="Detailed health check",
    description="Health of the relay and host resources"
)
async def detailed_health_check() -> HealthCheckResponse:
    """
    Comprehensive health check.

    Checks:
    - System resources (CPU, memory)
    - Relay (session store, open connections, sweeper tasks)
    """
    start_time = time.time()

    try:
        health_data = await get_health_checker().check_all()

        components = [
            ComponentHealth(
                component=comp["component"],
                status=HealthStatus(comp["status"]),
                message=comp.get("message"),
                response_time_ms=comp.get("response_time_ms"),
                details=comp.get("details"),
            )
            for comp in health_data.get("components", [])
        ]

        return HealthCheckResponse(
            status=HealthStatus(health_data["status"]),
            timestamp=health_data["timestamp"],
            uptime_seconds=health_data.get("uptime_seconds", time.time() - START_TIME),
            check_duration_ms=health_data.get("check_duration_ms", (time.time() - start_time) * 1000),
            components=components,
        )

    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)

        return HealthCheckResponse(
            status=HealthStatus.UNHEALTHY,
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime_seconds=time.time() - START_TIME,
            check_duration_ms=(time.time() - start_time) * 1000,
            components=[
                ComponentHealth(
                    component="system",
                    status=HealthStatus.UNHEALTHY,
                    message=f"Health check error: {str(e)}"
                )
            ]
        )


# =============================================================================
# Component-Specific Health Checks
# =============================================================================

@router.get(
    "/health/component/{component_name}",
    response_model=ComponentHealth,
    summary="Check specific component",
    description="Check health of a single component (relay, system)"
)
async def check_component_health(component_name: str) -> ComponentHealth:
    """
    Check specific component health.

    Raises:
        HTTPException: 404 if the component is not registered
    """
    result = await get_health_checker().check_component(component_name)

    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Component '{component_name}' not found"
        )

    return ComponentHealth(
        component=result.component,
        status=HealthStatus(result.status),
        message=result.message,
        response_time_ms=result.response_time_ms,
        details=result.details
    )


# =============================================================================
# Readiness and Liveness Probes
# =============================================================================

@router.get(
    "/health/ready",
    summary="Readiness probe",
    description="Check if the relay is ready to accept connections"
)
async def readiness_probe(response: Response) -> dict:
    """
    Returns 200 once the hub exists and the sweeper is running, 503 otherwise.
    """
    try:
        get_hub()
    except HTTPException as e:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"ready": False, "reason": e.detail}

    sweeper = get_sweeper()
    if sweeper is None or not sweeper.is_running():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"ready": False, "reason": "Lifecycle sweeper not running"}

    return {"ready": True}


@router.get(
    "/health/live",
    summary="Liveness probe",
    description="Check if application is alive"
)
async def liveness_probe() -> dict:
    return {
        "alive": True,
        "uptime_seconds": time.time() - START_TIME
    }
