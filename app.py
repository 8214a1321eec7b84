"""
FastAPI Application Factory

Creates and configures the FastAPI application with:
- API versioning
- CORS middleware
- Root WebSocket relay endpoint
- Lifecycle management (startup/shutdown)

@.architecture
Incoming: main.py, config/settings.py, api/v1/router.py, ws/hub.py, ws/sweeper.py --- {Settings object, APIRouter instances, relay service constructors}
Processing: create_app(), startup_event(), shutdown_event(), websocket_endpoint() --- {7 jobs: application_creation, cleanup, connection_management, dependency_injection, health_monitoring, lifecycle_management, message_routing}
Outgoing: main.py, Clients (HTTP/WebSocket) --- {FastAPI application instance, HTTP responses, WebSocket frames}
"""

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from api.v1.router import api_v1_router
from api.dependencies import set_hub, set_sweeper, reset_services
from core.sessions import SessionStore
from ws import ConnectionRegistry, LifecycleSweeper, WebSocketHub
from ws import protocols
from monitoring import (
    configure_from_preset,
    get_logger,
    initialize_health_checks,
)

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    # Configure logging based on environment
    if settings.environment == "test":
        configure_from_preset("testing")
    else:
        overrides = {"level": settings.monitoring.log_level}
        if settings.monitoring.log_format:
            overrides["format_type"] = settings.monitoring.log_format
        configure_from_preset(settings.logging_preset, **overrides)

    logger.info(f"Creating {settings.app_name} application (environment: {settings.environment})")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Two-party negotiation session relay",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        redirect_slashes=False
    )

    # ==========================================================================
    # Middleware Configuration
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.allowed_origins,
        allow_credentials=settings.security.cors_allow_credentials,
        allow_methods=settings.security.cors_allow_methods,
        allow_headers=settings.security.cors_allow_headers,
    )

    # ==========================================================================
    # API Routers
    # ==========================================================================

    app.include_router(api_v1_router)

    # Relay services (initialized at startup)
    ws_hub = None
    sweeper = None

    @app.get("/health")
    async def health_check():
        """Root-level health check with the open connection count."""
        return JSONResponse({
            "status": "healthy",
            "connections": ws_hub.get_connection_count() if ws_hub else 0
        })

    # ==========================================================================
    # WebSocket Endpoint
    # ==========================================================================

    @app.websocket("/")
    async def websocket_endpoint(websocket: WebSocket):
        """
        Root WebSocket endpoint for session relay.

        Every text frame is one JSON message; the connection is released
        from its session when the transport closes.
        """
        await websocket.accept()

        if ws_hub is None:
            await websocket.send_text(
                protocols.encode_frame(protocols.error_frame("Server is starting up"))
            )
            await websocket.close(code=protocols.STARTUP_CLOSE_CODE, reason="Service unavailable")
            return

        hub = ws_hub
        connection = await hub.register(websocket)

        try:
            while True:
                try:
                    message = await websocket.receive()
                except RuntimeError as e:
                    if "disconnect" in str(e).lower():
                        logger.debug(f"Connection {connection.id} disconnected")
                        break
                    raise

                if message.get("type") == "websocket.disconnect":
                    break

                data = message.get("text")
                if data is None and message.get("bytes") is not None:
                    data = message["bytes"]

                if data is not None:
                    await hub.handle_json(connection, data)
                else:
                    logger.warning(f"Received message without payload: {message.get('type')}")

        except WebSocketDisconnect:
            logger.debug(f"Connection {connection.id} disconnected normally")
        except Exception as e:
            logger.error(f"WebSocket error for connection {connection.id}: {e}", exc_info=True)
        finally:
            await hub.unregister(connection)

    # ==========================================================================
    # Lifecycle Events
    # ==========================================================================

    @app.on_event("startup")
    async def startup_event():
        """
        Application startup.

        Initializes:
        - Connection registry and session store
        - WebSocket hub
        - Lifecycle sweeper (expiry and keep-alive)
        - Health checks
        """
        nonlocal ws_hub, sweeper

        logger.info("=== Application Startup ===")

        relay = settings.relay
        registry = ConnectionRegistry(send_timeout=relay.send_timeout_seconds)
        store = SessionStore(
            registry,
            ttl_seconds=relay.session_ttl_seconds,
            max_participants=relay.max_participants,
        )
        hub = WebSocketHub(store, registry)
        lifecycle = LifecycleSweeper(
            store,
            hub,
            sweep_interval=relay.sweep_interval_seconds,
            keepalive_interval=relay.keepalive_interval_seconds,
            keepalive_enabled=relay.keepalive_enabled,
        )

        await lifecycle.start()
        initialize_health_checks(hub=hub, sweeper=lifecycle)

        app.state.registry = registry
        app.state.store = store
        app.state.hub = hub
        app.state.sweeper = lifecycle
        set_hub(hub)
        set_sweeper(lifecycle)

        ws_hub = hub
        sweeper = lifecycle

        logger.info(
            f"Relay ready (session TTL {relay.session_ttl_seconds}s, "
            f"port {settings.security.bind_port})"
        )
        logger.info("=== Startup Complete ===")

    @app.on_event("shutdown")
    async def shutdown_event():
        """
        Application shutdown.

        Cleanup:
        - Stop sweeper tasks
        - Close all WebSocket connections
        - Drop sessions and connection bindings
        """
        nonlocal ws_hub, sweeper

        logger.info("=== Application Shutdown ===")

        try:
            if sweeper:
                await sweeper.stop()
        except Exception as e:
            logger.error(f"Error stopping lifecycle sweeper: {e}")

        try:
            if ws_hub:
                await ws_hub.close_all(code=protocols.SHUTDOWN_CLOSE_CODE)
        except Exception as e:
            logger.error(f"Error closing WebSocket connections: {e}")

        ws_hub = None
        sweeper = None
        reset_services()

        logger.info("=== Shutdown Complete ===")

    return app
