from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..members.model import CardBinding
from .model import RegistrationToken


class RegistrationRepository(Protocol):
    def replace_for_card(self, token: RegistrationToken) -> RegistrationToken:
        """Delete every unconsumed token of ``token.card_id`` and store ``token``, atomically."""

        raise NotImplementedError

    def get(self, token: str) -> Optional[RegistrationToken]:
        raise NotImplementedError

    def mark_accessed(self, token: str, *, now: datetime) -> bool:
        """Set accessed_at only if it is still empty."""

        raise NotImplementedError

    def mark_used_and_bind(self, token: str, *, user_id: str, now: datetime) -> Optional[CardBinding]:
        """Consume the token and bind its card to ``user_id`` in one transaction.

        The token is consumed only while ``used_at IS NULL AND expires_at > now``;
        otherwise nothing changes and None is returned. Raises
        ``DuplicateCardBinding`` (nothing changes) when the card already belongs
        to another user.
        """

        raise NotImplementedError

    def list_recent(self, *, limit: int) -> Sequence[RegistrationToken]:
        raise NotImplementedError

    def delete(self, token: str) -> bool:
        raise NotImplementedError
