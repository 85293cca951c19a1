from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import CardBinding, MemberProfile, Team


class MemberRepository(Protocol):
    """Member directory lookups.

    The directory is owned by another system; this engine only reads it.
    """

    def list_members(self) -> Sequence[MemberProfile]:
        """Every member not deleted from the directory, alumni included."""
        raise NotImplementedError

    def list_teams(self) -> Sequence[Team]:
        raise NotImplementedError


class CardBindingRepository(Protocol):
    def get_by_card(self, card_id: str) -> Optional[CardBinding]:
        raise NotImplementedError

    def get_by_user(self, user_id: str) -> Optional[CardBinding]:
        raise NotImplementedError

    def rebind(self, *, user_id: str, card_id: str, now: datetime) -> bool:
        """Point the user's existing binding at ``card_id``.

        Returns False when the user has no binding. Raises
        ``DuplicateCardBinding`` when the card belongs to another user.
        """

        raise NotImplementedError


class DisplayNameResolver(Protocol):
    """Maps a user id to a human display name. May return None."""

    def resolve(self, user_id: str) -> Optional[str]:
        raise NotImplementedError
