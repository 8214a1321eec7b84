"""
WebSocket Hub - Connection lifecycle and message routing

Central hub owning the ConnectionRegistry and SessionStore for the process.

@.architecture
Incoming: app.py (websocket_endpoint), ws/sweeper.py --- {WebSocket connection objects, JSON text from clients, keep-alive ticks}
Processing: register(), unregister(), handle_json(), broadcast_keepalive(), close_all() --- {5 jobs: connection_management, message_routing, keepalive_broadcast, cleanup, error_handling}
Outgoing: ws/handlers.py, ws/registry.py, Frontend (WebSocket) --- {Connection instances, routed frames, keep-alive pings, close frames}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import WebSocket

from core.sessions import SessionStore
from monitoring import clear_connection_context, get_relay_metrics, set_connection_context
from ws import protocols
from ws.handlers import MessageHandler
from ws.registry import Connection, ConnectionRegistry


class WebSocketHub:
    """
    Central hub for WebSocket connection management and frame routing.

    Constructed once at startup and shared by the endpoint, the sweeper and
    the HTTP health surface.
    """

    def __init__(self, store: SessionStore, registry: ConnectionRegistry):
        """
        Initialize WebSocket hub.

        Args:
            store: SessionStore instance
            registry: ConnectionRegistry instance (must be the one the store binds with)
        """
        self.store = store
        self.registry = registry
        self.metrics = get_relay_metrics()
        self._logger = logging.getLogger(__name__)

        self.message_handler = MessageHandler(store, registry)

    async def register(self, ws: WebSocket) -> Connection:
        """
        Register an accepted WebSocket.

        Args:
            ws: Accepted WebSocket connection

        Returns:
            Unbound Connection
        """
        connection = self.registry.add(ws)
        self.metrics.connections_open.set(self.registry.count())
        self._logger.info(f"New WebSocket connection: {connection.id}")
        return connection

    async def unregister(self, connection: Connection) -> None:
        """
        Tear down a closed connection and release its session seat.

        Idempotent and never raises; runs during transport teardown.

        Args:
            connection: Connection that closed
        """
        if self.registry.get(connection.id) is None:
            return

        self.registry.remove(connection)
        self.metrics.connections_open.set(self.registry.count())

        try:
            await self.message_handler.handle_disconnect(connection)
        except Exception as e:
            self._logger.error(f"Error cleaning up connection {connection.id}: {e}", exc_info=True)
        finally:
            self.metrics.sessions_active.set(len(self.store))

        self._logger.info(f"WebSocket connection closed: {connection.id}")

    async def handle_json(self, connection: Connection, text: str) -> None:
        """
        Handle an inbound text frame.

        Args:
            connection: Sending connection
            text: Raw JSON text
        """
        set_connection_context(connection.id, connection.session_id, connection.user_name)
        try:
            await self.message_handler.handle_json(connection, text)
        finally:
            self.metrics.sessions_active.set(len(self.store))
            clear_connection_context()

    async def broadcast_keepalive(self, timestamp: Optional[int] = None) -> int:
        """
        Send a ping frame to every open connection, bound or not.

        Each send is guarded on its own so one dead socket does not stop the rest.

        Returns:
            Number of connections the ping was written to
        """
        frame = protocols.keepalive_ping(timestamp)
        delivered = 0

        for connection in self.registry.all():
            try:
                if await self.registry.send(connection, frame):
                    delivered += 1
            except Exception as e:
                self._logger.error(f"Error sending keep-alive ping: {e}")

        self.metrics.keepalive_pings.inc(delivered)
        return delivered

    def get_connection_count(self) -> int:
        return self.registry.count()

    def get_stats(self) -> Dict[str, Any]:
        """Relay counters for health and stats endpoints."""
        stats = self.store.stats()
        stats.update({
            "connections": self.registry.count(),
            "bound_connections": self.registry.bound_count(),
        })
        return stats

    async def close_all(self, code: int = protocols.SHUTDOWN_CLOSE_CODE) -> None:
        """
        Close every open connection and drop all state (for shutdown).
        """
        connections = self.registry.all()
        self.registry.clear()

        for connection in connections:
            try:
                if self.registry.is_open(connection):
                    await connection.ws.close(code=code, reason="Server shutting down")
            except Exception as e:
                self._logger.debug(f"Error closing connection {connection.id}: {e}")

        self.store.clear()
        self.metrics.refresh(self.store, self.registry)
        self._logger.info(f"Closed {len(connections)} connections")
