"""
API V1 Router

Aggregates all v1 endpoint routers into a single versioned API.

@.architecture
Incoming: app.py, api/v1/endpoints/*.py --- {app.include_router() call, 2 endpoint router instances}
Processing: api_v1_router.include_router() for 2 endpoints --- {1 job: router_aggregation}
Outgoing: app.py --- {APIRouter with /v1 prefix, HTTP request routing to endpoints}
"""

from fastapi import APIRouter

from .endpoints import health_router, sessions_router

# Create v1 router
api_v1_router = APIRouter(prefix="/v1")

# Health
api_v1_router.include_router(health_router)

# Relay stats and metrics
api_v1_router.include_router(sessions_router)
