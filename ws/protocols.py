"""
WebSocket Protocol Definitions

Defines the relay wire protocol: inbound frame schemas with validation and
builders for every outbound frame.

@.architecture
Incoming: ws/handlers.py, ws/hub.py --- {raw UTF-8 JSON text from WebSocket messages}
Processing: decode_frame(), Pydantic model validation, outbound frame builders --- {3 jobs: data_validation, message_parsing, serialization}
Outgoing: ws/handlers.py, ws/hub.py, ws/registry.py --- {CreateSessionMessage, JoinSessionMessage, RelayMessage, PingMessage models, outbound frame dicts}

Inbound (client -> server):
- create_session: sessionId, topic, userName
- join_session: sessionId, userName, topic?
- relay_message: messageType, content
- ping

Outbound (server -> client):
- session_created, participant_joined, participant_left
- message_received, message_sent
- error, pong, ping (keep-alive)

Every frame is a flat JSON object with a mandatory ``type`` field.
"""

import json
import time
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from core.sessions.errors import MalformedFrame


class InboundType(str, Enum):
    """Client-to-server frame kinds"""
    CREATE_SESSION = "create_session"
    JOIN_SESSION = "join_session"
    RELAY_MESSAGE = "relay_message"
    PING = "ping"


class OutboundType(str, Enum):
    """Server-to-client frame kinds"""
    SESSION_CREATED = "session_created"
    PARTICIPANT_JOINED = "participant_joined"
    PARTICIPANT_LEFT = "participant_left"
    MESSAGE_RECEIVED = "message_received"
    MESSAGE_SENT = "message_sent"
    ERROR = "error"
    PONG = "pong"
    PING = "ping"


class InboundMessage(BaseModel):
    """Base inbound frame"""

    class Config:
        populate_by_name = True


class CreateSessionMessage(InboundMessage):
    """
    Create a session, or reconnect as its creator.

    Example:
        {"type": "create_session", "sessionId": "s1", "topic": "Rent split", "userName": "Alice"}
    """
    type: Literal["create_session"] = "create_session"
    session_id: str = Field(alias="sessionId", min_length=1)
    topic: str
    user_name: str = Field(alias="userName", min_length=1)


class JoinSessionMessage(InboundMessage):
    """
    Join a session, reconnect to a seat, or recreate an expired session.

    Example:
        {"type": "join_session", "sessionId": "s1", "userName": "Bob", "topic": "Rent split"}
    """
    type: Literal["join_session"] = "join_session"
    session_id: str = Field(alias="sessionId", min_length=1)
    user_name: str = Field(alias="userName", min_length=1)
    topic: Optional[str] = None


class RelayMessage(InboundMessage):
    """
    Opaque application payload forwarded to the other participant.

    Example:
        {"type": "relay_message", "messageType": "topicAgreed", "content": {"userName": "Bob"}}
    """
    type: Literal["relay_message"] = "relay_message"
    message_type: str = Field(alias="messageType")
    content: Any = None


class PingMessage(InboundMessage):
    """Client heartbeat, answered with pong."""
    type: Literal["ping"] = "ping"


Frame = Union[CreateSessionMessage, JoinSessionMessage, RelayMessage, PingMessage]

_FRAME_MODELS = {
    InboundType.CREATE_SESSION.value: CreateSessionMessage,
    InboundType.JOIN_SESSION.value: JoinSessionMessage,
    InboundType.RELAY_MESSAGE.value: RelayMessage,
    InboundType.PING.value: PingMessage,
}


class UnknownFrame(BaseModel):
    """Well-formed frame with a type this server does not handle."""
    type: str


def decode_frame(text: Union[str, bytes]) -> Union[Frame, UnknownFrame]:
    """
    Decode an inbound frame.

    Args:
        text: Raw frame payload

    Returns:
        Parsed frame model, or UnknownFrame for an unrecognised type

    Raises:
        MalformedFrame: If the payload is not a JSON object with a string ``type``
            or fails validation for its declared type
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedFrame() from e

    if not isinstance(payload, dict):
        raise MalformedFrame()

    frame_type = payload.get("type")
    if not isinstance(frame_type, str):
        raise MalformedFrame()

    model = _FRAME_MODELS.get(frame_type)
    if model is None:
        return UnknownFrame(type=frame_type)

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedFrame() from e


def encode_frame(frame: Dict[str, Any]) -> str:
    """Serialize an outbound frame to UTF-8 JSON text."""
    return json.dumps(frame, ensure_ascii=False)


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


# Outbound frame builders

def session_created(session_id: str, topic: str) -> Dict[str, Any]:
    return {
        "type": OutboundType.SESSION_CREATED.value,
        "sessionId": session_id,
        "topic": topic,
    }


def participant_joined(user_name: str, topic: str, participant_count: int) -> Dict[str, Any]:
    return {
        "type": OutboundType.PARTICIPANT_JOINED.value,
        "userName": user_name,
        "topic": topic,
        "participantCount": participant_count,
    }


def participant_left(user_name: str) -> Dict[str, Any]:
    return {
        "type": OutboundType.PARTICIPANT_LEFT.value,
        "userName": user_name,
    }


def message_received(
    message_type: str,
    content: Any,
    sender: str,
    timestamp: Optional[int] = None,
) -> Dict[str, Any]:
    return {
        "type": OutboundType.MESSAGE_RECEIVED.value,
        "messageType": message_type,
        "content": content,
        "from": sender,
        "timestamp": timestamp if timestamp is not None else now_ms(),
    }


def message_sent(message_type: str, content: Any, timestamp: Optional[int] = None) -> Dict[str, Any]:
    return {
        "type": OutboundType.MESSAGE_SENT.value,
        "messageType": message_type,
        "content": content,
        "timestamp": timestamp if timestamp is not None else now_ms(),
    }


def error_frame(message: str, code: Optional[str] = None) -> Dict[str, Any]:
    """
    Error reply.

    ``message`` is the compatibility contract; ``code`` is an optional
    machine-readable kind.
    """
    frame = {
        "type": OutboundType.ERROR.value,
        "message": message,
    }
    if code:
        frame["code"] = code
    return frame


def pong() -> Dict[str, Any]:
    return {"type": OutboundType.PONG.value}


def keepalive_ping(timestamp: Optional[int] = None) -> Dict[str, Any]:
    return {
        "type": OutboundType.PING.value,
        "timestamp": timestamp if timestamp is not None else now_ms(),
    }


# Protocol constants
WS_SEND_TIMEOUT = 3.0  # Timeout for sending to single client
KEEPALIVE_INTERVAL = 45.0  # Unsolicited ping interval in seconds
SHUTDOWN_CLOSE_CODE = 1001  # Going away
STARTUP_CLOSE_CODE = 1011  # Server not ready
