"""
Connection Registry

Tracks every live WebSocket connection together with the session binding and
display name currently associated with it, and owns outbound sends.

@.architecture
Incoming: ws/hub.py, core/sessions/store.py, ws/handlers.py --- {WebSocket objects, bind() calls, outbound frame dicts}
Processing: add(), remove(), bind(), send(), is_open() --- {4 jobs: connection_tracking, binding, serialization, guarded_delivery}
Outgoing: Frontend (WebSocket), ws/hub.py, api/v1/endpoints/health.py --- {JSON text frames, Connection instances, connection counts}
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from ws.protocols import WS_SEND_TIMEOUT, encode_frame


@dataclass(eq=False)
class Connection:
    """
    WebSocket connection and its current binding.

    Attributes:
        ws: WebSocket transport
        id: Unique connection identifier
        session_id: Bound session, None while unbound
        user_name: Bound display name, None while unbound
        connected_at: Accept time in epoch seconds
    """
    ws: WebSocket
    id: str = field(default_factory=lambda: str(uuid4()))
    session_id: Optional[str] = None
    user_name: Optional[str] = None
    connected_at: float = field(default_factory=time.time)

    @property
    def is_bound(self) -> bool:
        return bool(self.session_id and self.user_name)


class ConnectionRegistry:
    """
    Registry of open connections.

    Sends never raise: a peer that is closing or gone is not an error for the
    sender, so failed writes are logged and dropped.
    """

    def __init__(self, send_timeout: float = WS_SEND_TIMEOUT):
        self.send_timeout = send_timeout
        self._connections: Dict[str, Connection] = {}
        self._logger = logging.getLogger(__name__)

    def add(self, ws: WebSocket) -> Connection:
        connection = Connection(ws=ws)
        self._connections[connection.id] = connection
        return connection

    def remove(self, connection: Connection) -> None:
        """Forget a connection. Idempotent."""
        self._connections.pop(connection.id, None)

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def all(self) -> List[Connection]:
        return list(self._connections.values())

    def count(self) -> int:
        return len(self._connections)

    def bound_count(self) -> int:
        return sum(1 for c in self._connections.values() if c.is_bound)

    def bind(self, connection: Connection, session_id: str, user_name: str) -> None:
        """
        Associate a connection with a session seat.

        No validation; the SessionStore enforces the invariants.
        """
        connection.session_id = session_id
        connection.user_name = user_name

    @staticmethod
    def is_open(connection: Connection) -> bool:
        """True if the transport can currently be written to."""
        ws = connection.ws
        return (
            getattr(ws, "application_state", None) == WebSocketState.CONNECTED
            and getattr(ws, "client_state", None) == WebSocketState.CONNECTED
        )

    async def send(self, connection: Optional[Connection], frame: Dict[str, Any]) -> bool:
        """
        Serialize and write a frame if the transport is open.

        Args:
            connection: Target connection (None is a no-op)
            frame: Outbound frame dict

        Returns:
            True if the frame was written, False otherwise
        """
        if connection is None or not self.is_open(connection):
            self._logger.debug(f"Skipping send of {frame.get('type')} to closed connection")
            return False

        try:
            await asyncio.wait_for(
                connection.ws.send_text(encode_frame(frame)),
                timeout=self.send_timeout
            )
            return True
        except Exception as e:
            self._logger.debug(f"Failed to send to connection {connection.id}: {e}")
            return False

    def clear(self) -> None:
        self._connections.clear()
