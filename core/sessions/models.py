"""
Session Models

In-memory records owned by the SessionStore.

A Participant references (never owns) the live connection currently bound to
its seat; the reference is swapped in place on reconnect.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(eq=False)
class Participant:
    """
    One identity seated in a session.

    Attributes:
        user_name: Display name, also the reconnect key
        is_creator: True only for the first-ever creator of the session
        connection: Live connection currently holding the seat
    """
    user_name: str
    is_creator: bool = False
    connection: Any = None


@dataclass(eq=False)
class Session:
    """
    Ephemeral two-party negotiation session.

    Attributes:
        session_id: Caller-supplied opaque key
        topic: Free-text negotiation topic
        created_at: Creation time in epoch seconds (TTL reference)
        participants: Seats in join order
    """
    session_id: str
    topic: str
    created_at: float
    participants: List[Participant] = field(default_factory=list)

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    def find_participant(self, user_name: str) -> Optional[Participant]:
        """Find a participant by display name."""
        for participant in self.participants:
            if participant.user_name == user_name:
                return participant
        return None

    def find_creator(self, user_name: str) -> Optional[Participant]:
        """Find the creator seat if it is held under ``user_name``."""
        for participant in self.participants:
            if participant.is_creator and participant.user_name == user_name:
                return participant
        return None

    def seats_held_by(self, connection: Any) -> List[Participant]:
        """
        Seats whose live connection is ``connection``.

        Reconnect-by-name lets one connection take over more than one seat,
        so this can return several participants.
        """
        return [p for p in self.participants if p.connection is connection]

    def age(self, now: float) -> float:
        return now - self.created_at
