"""
Session Relay Core

Ephemeral, in-memory registry of two-party negotiation sessions.

Modules:
- models.py: Session and Participant records
- store.py: SessionStore with create/join/reconnect/leave/expiry rules
- errors.py: Connection-scoped error taxonomy
"""

from .errors import (
    RelayError,
    MalformedFrame,
    SessionAlreadyExists,
    SessionNotFound,
    SessionFull,
    NotInSession,
)
from .models import Participant, Session
from .store import SessionStore, Departure, MAX_PARTICIPANTS, DEFAULT_SESSION_TTL

__all__ = [
    # Store
    "SessionStore",
    "Departure",
    "MAX_PARTICIPANTS",
    "DEFAULT_SESSION_TTL",

    # Models
    "Session",
    "Participant",

    # Errors
    "RelayError",
    "MalformedFrame",
    "SessionAlreadyExists",
    "SessionNotFound",
    "SessionFull",
    "NotInSession",
]
