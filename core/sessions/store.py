"""
Session Store

Process-wide registry of ephemeral negotiation sessions with create, join,
reconnect, departure and expiry rules.

@.architecture
Incoming: ws/handlers.py, ws/hub.py, ws/sweeper.py --- {session ids, display names, topics, Connection objects, clock readings}
Processing: create_session(), join_session(), resolve_relay(), remove_connection(), release_session(), sweep() --- {5 jobs: capacity_enforcement, reconnect_resolution, binding, cleanup, expiry}
Outgoing: ws/handlers.py, ws/hub.py, api/v1/endpoints/health.py --- {Session records, Departure results, expired session ids, stats dicts}

Every operation is a synchronous state transition. Callers run on a single
event loop and perform their sends only after the operation returns, so no
mutation is ever interleaved with another.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.sessions.errors import (
    NotInSession,
    SessionAlreadyExists,
    SessionFull,
    SessionNotFound,
)
from core.sessions.models import Participant, Session
from monitoring import get_logger

logger = get_logger(__name__)

MAX_PARTICIPANTS = 2
DEFAULT_SESSION_TTL = 4 * 60 * 60


@dataclass
class Departure:
    """
    Outcome of a connection leaving its session.

    Attributes:
        session: Session the connection left
        vacated: Seats the connection held, empty if it was superseded everywhere
        session_closed: True if the session became empty and was deleted
    """
    session: Session
    vacated: List[Participant]
    session_closed: bool

    @property
    def remaining(self) -> List[Participant]:
        return list(self.session.participants)


class SessionStore:
    """
    In-memory session registry.

    Sessions hold at most two participants. A display name already seated in a
    session is treated as the same person returning and takes over the seat.
    Sessions are deleted as soon as they are empty, or unconditionally once
    older than the TTL.
    """

    def __init__(
        self,
        registry: Any,
        ttl_seconds: float = DEFAULT_SESSION_TTL,
        max_participants: int = MAX_PARTICIPANTS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize session store.

        Args:
            registry: ConnectionRegistry used to bind connections
            ttl_seconds: Hard session lifetime
            max_participants: Seat limit per session
            clock: Time source in epoch seconds
        """
        self.registry = registry
        self.ttl_seconds = ttl_seconds
        self.max_participants = max_participants
        self._clock = clock
        self._sessions: Dict[str, Session] = {}

    # Lookup

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def session_ids(self) -> List[str]:
        return list(self._sessions.keys())

    # Operations

    def create_session(
        self,
        session_id: str,
        topic: str,
        user_name: str,
        connection: Any,
    ) -> Session:
        """
        Create a session or reconnect its creator.

        Args:
            session_id: Session key
            topic: Topic for a new session (ignored on creator reconnect)
            user_name: Creator display name
            connection: Connection issuing the request

        Returns:
            The new or existing Session

        Raises:
            SessionAlreadyExists: If the session exists and ``user_name`` is not its creator
        """
        session = self._sessions.get(session_id)

        if session is not None:
            creator = session.find_creator(user_name)
            if creator is None:
                raise SessionAlreadyExists()

            logger.info(f"Creator {user_name} reconnecting to session: {session_id}")
            creator.connection = connection
            self.registry.bind(connection, session_id, user_name)
            return session

        session = Session(
            session_id=session_id,
            topic=topic,
            created_at=self._clock(),
            participants=[
                Participant(user_name=user_name, is_creator=True, connection=connection)
            ],
        )
        self._sessions[session_id] = session
        self.registry.bind(connection, session_id, user_name)

        logger.info(f"Session created: {session_id} by {user_name}")
        return session

    def join_session(
        self,
        session_id: str,
        user_name: str,
        connection: Any,
        topic: Optional[str] = None,
    ) -> Session:
        """
        Join a session, reconnect to an existing seat, or recreate an expired session.

        Args:
            session_id: Session key
            user_name: Joiner display name
            connection: Connection issuing the request
            topic: When given and the session is absent, the session is recreated

        Returns:
            Session the connection is now seated in

        Raises:
            SessionNotFound: If the session is absent and no topic was supplied
            SessionFull: If a new identity joins a session at capacity
        """
        session = self._sessions.get(session_id)

        if session is None:
            if not topic:
                raise SessionNotFound("Session not found or expired")

            logger.info(f"Recreating session {session_id} for {user_name}")
            session = Session(session_id=session_id, topic=topic, created_at=self._clock())
            self._sessions[session_id] = session

        participant = session.find_participant(user_name)

        if participant is not None:
            logger.info(f"{user_name} reconnecting to session: {session_id}")
            participant.connection = connection
        else:
            if session.participant_count >= self.max_participants:
                raise SessionFull()

            session.participants.append(
                Participant(user_name=user_name, is_creator=False, connection=connection)
            )
            logger.info(f"{user_name} joined session: {session_id}")

        self.registry.bind(connection, session_id, user_name)
        return session

    def resolve_relay(self, connection: Any) -> Tuple[Session, List[Participant]]:
        """
        Resolve the session and peers for a relay from ``connection``.

        Returns:
            Tuple of (session, participants other than the sender)

        Raises:
            NotInSession: If the connection has no binding
            SessionNotFound: If the bound session no longer exists
        """
        if not connection.session_id or not connection.user_name:
            raise NotInSession()

        session = self._sessions.get(connection.session_id)
        if session is None:
            raise SessionNotFound("Session not found")

        peers = [p for p in session.participants if p.connection is not connection]
        return session, peers

    def remove_connection(self, connection: Any) -> Optional[Departure]:
        """
        Vacate every seat held by a closing connection.

        Matching is by connection identity, so a connection superseded by a
        reconnect leaves the returning participant seated.

        Returns:
            Departure, or None if the connection was unbound or its session is gone
        """
        if not connection.session_id or not connection.user_name:
            return None

        return self.release_session(connection, connection.session_id)

    def release_session(self, connection: Any, session_id: str) -> Optional[Departure]:
        """
        Vacate every seat ``connection`` holds in ``session_id``.

        Used on disconnect and when a connection moves to another session.
        The session is deleted if this leaves it empty.

        Returns:
            Departure, or None if the session is gone
        """
        session = self._sessions.get(session_id)
        if session is None:
            return None

        vacated = session.seats_held_by(connection)
        if vacated:
            session.participants = [
                p for p in session.participants if p.connection is not connection
            ]

        closed = not session.participants
        if closed:
            logger.info(f"Removing empty session: {session_id}")
            self._sessions.pop(session_id, None)

        return Departure(session=session, vacated=vacated, session_closed=closed)

    def sweep(self, now: Optional[float] = None) -> List[str]:
        """
        Delete every session older than the TTL, regardless of participants.

        Args:
            now: Reference time in epoch seconds (defaults to the store clock)

        Returns:
            Ids of the deleted sessions
        """
        now = self._clock() if now is None else now
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.age(now) > self.ttl_seconds
        ]

        for session_id in expired:
            logger.info(f"Cleaning up expired session: {session_id}")
            del self._sessions[session_id]

        return expired

    def clear(self) -> None:
        """Drop all sessions (shutdown)."""
        self._sessions.clear()

    def stats(self) -> Dict[str, Any]:
        """Aggregate counts, without topics or names."""
        return {
            "sessions": len(self._sessions),
            "participants": sum(s.participant_count for s in self._sessions.values()),
            "session_ttl_seconds": self.ttl_seconds,
        }
