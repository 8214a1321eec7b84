"""
WebSocket Message Handlers

Decodes inbound frames, dispatches them to the session operations and fans the
resulting notifications out to the affected connections.

@.architecture
Incoming: ws/hub.py --- {Connection objects, raw JSON text from clients, disconnect notifications}
Processing: handle_json(), handle_disconnect(), _leave_previous(), _handle_create_session(), _handle_join_session(), _handle_relay_message(), _handle_ping() --- {6 jobs: message_parsing, message_routing, session_mutation, fan_out, error_handling, disconnect_cleanup}
Outgoing: core/sessions/store.py, ws/registry.py, Frontend (WebSocket) --- {SessionStore operations, outbound frames}

Dispatch table:
- create_session -> SessionStore.create_session, reply session_created
- join_session   -> SessionStore.join_session, participant_joined to every participant
- relay_message  -> message_received to peers, message_sent to sender
- ping           -> pong
- anything else  -> logged and dropped

Every RelayError becomes a single error frame to the sender only.
"""

import logging
from typing import List, Optional

from core.sessions import Departure, Participant, RelayError, SessionStore
from monitoring import get_relay_metrics
from ws import protocols
from ws.protocols import (
    CreateSessionMessage,
    JoinSessionMessage,
    PingMessage,
    RelayMessage,
    UnknownFrame,
    decode_frame,
)
from ws.registry import Connection, ConnectionRegistry


class MessageHandler:
    """
    Routes inbound frames to session operations.

    Store operations are synchronous and complete before any send is awaited,
    so a frame's state change is never interleaved with another frame's.
    """

    def __init__(self, store: SessionStore, registry: ConnectionRegistry):
        """
        Initialize message handler.

        Args:
            store: SessionStore instance
            registry: ConnectionRegistry used for all sends
        """
        self.store = store
        self.registry = registry
        self.metrics = get_relay_metrics()
        self._logger = logging.getLogger(f"{__name__}.MessageHandler")

    async def handle_json(self, connection: Connection, text: str) -> None:
        """
        Handle one inbound frame.

        Never raises: protocol and session failures are answered with an error
        frame, unexpected failures are logged.

        Args:
            connection: Sending connection
            text: Raw frame payload
        """
        try:
            frame = decode_frame(text)
        except RelayError as e:
            self._logger.warning(f"Invalid message from connection {connection.id}")
            await self._reply_error(connection, e)
            return

        self.metrics.frames_received.inc(type=frame.type)

        try:
            if isinstance(frame, CreateSessionMessage):
                await self._handle_create_session(connection, frame)
            elif isinstance(frame, JoinSessionMessage):
                await self._handle_join_session(connection, frame)
            elif isinstance(frame, RelayMessage):
                await self._handle_relay_message(connection, frame)
            elif isinstance(frame, PingMessage):
                await self._handle_ping(connection)
            elif isinstance(frame, UnknownFrame):
                self._logger.info(f"Unknown message type: {frame.type}")
        except RelayError as e:
            self._logger.info(f"{frame.type} rejected for connection {connection.id}: {e.message}")
            await self._reply_error(connection, e)
        except Exception as e:
            self._logger.error(f"Error processing {frame.type} message: {e}", exc_info=True)
            self.metrics.errors.inc(code="internal_error")
            await self.registry.send(
                connection,
                protocols.error_frame("Invalid message format", code="internal_error")
            )

    async def handle_disconnect(self, connection: Connection) -> None:
        """
        Vacate the closing connection's seats and notify the remaining participants.

        Args:
            connection: Connection that closed
        """
        await self._notify_departure(self.store.remove_connection(connection))

    # Private handlers

    async def _handle_create_session(
        self,
        connection: Connection,
        message: CreateSessionMessage,
    ) -> None:
        previous_session_id = connection.session_id
        session = self.store.create_session(
            session_id=message.session_id,
            topic=message.topic,
            user_name=message.user_name,
            connection=connection,
        )
        await self._leave_previous(connection, previous_session_id, session.session_id)
        await self.registry.send(
            connection,
            protocols.session_created(session.session_id, session.topic)
        )

    async def _handle_join_session(
        self,
        connection: Connection,
        message: JoinSessionMessage,
    ) -> None:
        previous_session_id = connection.session_id
        session = self.store.join_session(
            session_id=message.session_id,
            user_name=message.user_name,
            connection=connection,
            topic=message.topic,
        )
        await self._leave_previous(connection, previous_session_id, session.session_id)
        await self._fan_out(
            list(session.participants),
            protocols.participant_joined(
                message.user_name,
                session.topic,
                session.participant_count,
            )
        )

    async def _handle_relay_message(
        self,
        connection: Connection,
        message: RelayMessage,
    ) -> None:
        _session, peers = self.store.resolve_relay(connection)
        timestamp = protocols.now_ms()

        await self._fan_out(
            peers,
            protocols.message_received(
                message.message_type,
                message.content,
                connection.user_name,
                timestamp,
            )
        )
        self.metrics.messages_relayed.inc()

        await self.registry.send(
            connection,
            protocols.message_sent(message.message_type, message.content, timestamp)
        )

    async def _handle_ping(self, connection: Connection) -> None:
        await self.registry.send(connection, protocols.pong())

    async def _fan_out(self, participants: List[Participant], frame: dict) -> None:
        """Send ``frame`` to each participant's live connection, one guarded send each."""
        for participant in participants:
            await self.registry.send(participant.connection, frame)

    async def _reply_error(self, connection: Connection, error: RelayError) -> None:
        self.metrics.errors.inc(code=error.code)
        await self.registry.send(
            connection,
            protocols.error_frame(error.message, code=error.code)
        )

    async def _leave_previous(
        self,
        connection: Connection,
        previous_session_id: Optional[str],
        session_id: str,
    ) -> None:
        """Vacate the seats left behind when a connection moves to another session."""
        if not previous_session_id or previous_session_id == session_id:
            return

        self._logger.info(f"Connection {connection.id} moved from {previous_session_id} to {session_id}")
        await self._notify_departure(self.store.release_session(connection, previous_session_id))

    async def _notify_departure(self, departure: Optional[Departure]) -> None:
        """Send participant_left for each vacated seat to whoever is still seated."""
        if departure is None:
            return

        for participant in departure.vacated:
            await self._fan_out(
                departure.remaining,
                protocols.participant_left(participant.user_name)
            )
