"""
Relay Errors

Connection-scoped failure taxonomy for the session relay. Every error carries a
stable machine-readable ``code`` and the human-readable ``message`` that is sent
to the client verbatim inside an ``error`` frame.

@.architecture
Incoming: core/sessions/store.py, ws/protocols.py --- {failure conditions detected during decode or session mutation}
Processing: RelayError construction --- {1 job: error_classification}
Outgoing: ws/handlers.py --- {RelayError instances converted to error frames}
"""

from typing import Optional


class RelayError(Exception):
    """Base class for all non-fatal relay failures."""

    code: str = "relay_error"
    default_message: str = "Relay error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MalformedFrame(RelayError):
    """Inbound payload could not be decoded into a known frame."""

    code = "malformed_frame"
    default_message = "Invalid message format"


class SessionAlreadyExists(RelayError):
    """Create attempted on a live session without a matching creator."""

    code = "session_already_exists"
    default_message = "Session already exists"


class SessionNotFound(RelayError):
    """Referenced session is unknown and cannot be recovered."""

    code = "session_not_found"
    default_message = "Session not found"


class SessionFull(RelayError):
    """Session already holds the maximum number of participants."""

    code = "session_full"
    default_message = "Session is full"


class NotInSession(RelayError):
    """Relay attempted on a connection with no session binding."""

    code = "not_in_session"
    default_message = "Not connected to a session"
