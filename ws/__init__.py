"""
WebSocket Layer - Real-time relay for negotiation sessions

Components:
- registry.py: ConnectionRegistry tracking open connections and their bindings
- protocols.py: Inbound frame models and outbound frame builders
- handlers.py: MessageHandler dispatching frames to session operations
- hub.py: WebSocketHub for connection lifecycle and routing
- sweeper.py: LifecycleSweeper running TTL expiry and keep-alive pings

Usage:
    from ws import WebSocketHub

    @app.websocket("/")
    async def websocket_endpoint(ws: WebSocket):
        await ws.accept()
        connection = await hub.register(ws)
        try:
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    break
                await hub.handle_json(connection, message.get("text"))
        finally:
            await hub.unregister(connection)
"""

from .registry import Connection, ConnectionRegistry
from .protocols import (
    InboundType,
    OutboundType,
    CreateSessionMessage,
    JoinSessionMessage,
    RelayMessage,
    PingMessage,
    UnknownFrame,
    decode_frame,
    encode_frame,
)
from .handlers import MessageHandler
from .hub import WebSocketHub
from .sweeper import LifecycleSweeper

__all__ = [
    # Connections
    "Connection",
    "ConnectionRegistry",

    # Message Processing
    "MessageHandler",
    "WebSocketHub",
    "LifecycleSweeper",

    # Protocols
    "InboundType",
    "OutboundType",
    "CreateSessionMessage",
    "JoinSessionMessage",
    "RelayMessage",
    "PingMessage",
    "UnknownFrame",
    "decode_frame",
    "encode_frame",
]
