"""
Main entry point for the negotiation relay

Imports the FastAPI app from app.py for uvicorn to run.

@.architecture
Incoming: none --- {entry point for uvicorn server}
Processing: create_app() import, uvicorn.run() --- {2 jobs: config_loading, server_startup}
Outgoing: uvicorn server, Network (HTTP/WebSocket) --- {FastAPI application instance, HTTP/WebSocket server}
"""

import os
from app import create_app
from config.settings import get_settings

# Create app instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    # Host and port come from settings (RELAY_HOST / PORT already applied)
    reload = os.getenv("RELAY_RELOAD", "false").lower() == "true"

    uvicorn.run(
        "main:app",
        host=settings.security.bind_host,
        port=settings.security.bind_port,
        reload=reload,
        log_level=settings.monitoring.log_level.lower()
    )
