from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Optional

from ..utils.errors import Forbidden

if TYPE_CHECKING:
    from .state_machine import StateMachine


class Party(str, enum.Enum):
    """Who drives a transition: one of the booking's two users, or the system."""

    ARTIST = "artist"
    VENUE = "venue"
    SYSTEM = "system"

    def can_transition(self, machine: "StateMachine", source, target) -> bool:
        return machine.allows(self, source, target)

    @property
    def counterpart(self) -> Optional["Party"]:
        if self is Party.ARTIST:
            return Party.VENUE
        if self is Party.VENUE:
            return Party.ARTIST
        return None


def party_of(record, user_id: int) -> Optional[Party]:
    """Return the caller's side on any record carrying ``artist_id``/``venue_id``."""
    if user_id is None:
        return None
    if record.artist_id == user_id:
        return Party.ARTIST
    if record.venue_id == user_id:
        return Party.VENUE
    return None


def require_party(record, user_id: int, what: str = "record") -> Party:
    party = party_of(record, user_id)
    if party is None:
        raise Forbidden(f"You are not a party to this {what}")
    return party


def user_id_for(record, party: Party) -> Optional[int]:
    if party is Party.ARTIST:
        return record.artist_id
    if party is Party.VENUE:
        return record.venue_id
    return None
