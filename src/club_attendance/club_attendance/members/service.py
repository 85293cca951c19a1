from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_utc
from ..common.validators import normalize_card_id
from ..core.constants import FALLBACK_DISPLAY_NAME
from ..core.enums import BindingStatus
from ..core.exceptions import DuplicateCardBinding, StoreUnavailable
from ..core.messages import BINDING_MESSAGES
from .model import BindingResult, CardBinding
from .repository import CardBindingRepository, DisplayNameResolver

logger = logging.getLogger(__name__)


class DisplayNames:
    """Best-effort display names.

    Name resolution is an external collaborator; a failing or empty lookup
    yields the placeholder name and never blocks attendance logic.
    """

    def __init__(self, resolver: Optional[DisplayNameResolver] = None, *, fallback: str = FALLBACK_DISPLAY_NAME):
        self._resolver = resolver
        self._fallback = fallback

    def for_user(self, user_id: str) -> str:
        if self._resolver is None:
            return self._fallback
        try:
            name = self._resolver.resolve(user_id)
        except Exception:
            logger.warning("display name lookup failed for user %s", user_id, exc_info=True)
            return self._fallback
        return name or self._fallback


class CardBindingService:
    def __init__(self, bindings: CardBindingRepository):
        self._bindings = bindings

    def lookup(self, raw_card_id: str) -> Optional[CardBinding]:
        card_id = normalize_card_id(raw_card_id)
        if not card_id:
            return None
        return self._bindings.get_by_card(card_id)

    def rebind(self, user_id: str, raw_card_id: str, *, now: datetime | None = None) -> BindingResult:
        """Admin override: move a user's binding to another card."""
        now = now or now_utc()
        card_id = normalize_card_id(raw_card_id)
        if not card_id:
            return self._result(BindingStatus.INVALID_CARD)

        try:
            updated = self._bindings.rebind(user_id=user_id, card_id=card_id, now=now)
        except DuplicateCardBinding as exc:
            logger.info("rebind of user %s refused: card %s owned by %s", user_id, card_id, exc.owner_user_id)
            return self._result(BindingStatus.DUPLICATE_CARD)
        except StoreUnavailable:
            logger.exception("rebind of user %s failed", user_id)
            return self._result(BindingStatus.FAILURE)

        if not updated:
            return self._result(BindingStatus.NOT_FOUND)
        logger.info("user %s rebound to card %s", user_id, card_id)
        return self._result(BindingStatus.OK, CardBinding(user_id=user_id, card_id=card_id, updated_at=now))

    @staticmethod
    def _result(status: BindingStatus, binding: Optional[CardBinding] = None) -> BindingResult:
        return BindingResult(status=status, message=BINDING_MESSAGES[status], binding=binding)
