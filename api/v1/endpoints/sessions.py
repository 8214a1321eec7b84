"""
Relay Stats and Metrics Endpoints

@.architecture
Incoming: api/v1/router.py, Monitoring --- {HTTP requests to /v1/sessions/stats, /v1/metrics}
Processing: session_stats(), metrics() --- {2 jobs: stats_aggregation, metrics_export}
Outgoing: ws/hub.py, monitoring/metrics.py, HTTP clients --- {SessionStatsResponse, Prometheus text}
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse

from api.dependencies import get_hub, get_settings
from api.v1.schemas.health import SessionStatsResponse
from config.settings import Settings
from monitoring import get_registry, get_relay_metrics
from ws.hub import WebSocketHub

router = APIRouter(tags=["sessions"])


@router.get(
    "/sessions/stats",
    response_model=SessionStatsResponse,
    summary="Relay statistics",
    description="Aggregate session and connection counts"
)
async def session_stats(hub: WebSocketHub = Depends(get_hub)) -> SessionStatsResponse:
    return SessionStatsResponse(**hub.get_stats())


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics",
    description="Relay counters and gauges in Prometheus text format"
)
async def metrics(
    hub: WebSocketHub = Depends(get_hub),
    settings: Settings = Depends(get_settings),
) -> PlainTextResponse:
    """Export relay metrics, sampling the gauges first."""
    if not settings.monitoring.metrics_enabled:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Metrics disabled"
        )

    get_relay_metrics().refresh(hub.store, hub.registry)
    return PlainTextResponse(
        get_registry().export_prometheus(),
        media_type="text/plain; version=0.0.4"
    )
