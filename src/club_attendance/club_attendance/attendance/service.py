from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Optional

from ..common.datetime_utils import ORG_TIMEZONE, as_utc, now_utc
from ..common.validators import normalize_card_id
from ..core.constants import PUNCH_MAX_ATTEMPTS
from ..core.enums import PunchKind, PunchStatus
from ..core.exceptions import ConcurrentAppendError, StoreUnavailable
from ..core.messages import punch_message
from ..members.repository import CardBindingRepository
from ..members.service import DisplayNames
from .model import AttendanceEvent, PunchDraft, PunchResult
from .repository import EventRepository

logger = logging.getLogger(__name__)


def next_kind(last: Optional[AttendanceEvent]) -> PunchKind:
    """Toggle rule: no prior event counts as OUT, so the first punch is IN."""
    if last is None or last.kind == PunchKind.OUT:
        return PunchKind.IN
    return PunchKind.OUT


class PunchService:
    """Turns card taps into alternating IN/OUT ledger events.

    Current presence is never stored; it is always the kind of the user's
    last event.
    """

    def __init__(
        self,
        events: EventRepository,
        bindings: CardBindingRepository,
        *,
        names: DisplayNames | None = None,
        tz: tzinfo = ORG_TIMEZONE,
        max_attempts: int = PUNCH_MAX_ATTEMPTS,
    ):
        self._events = events
        self._bindings = bindings
        self._names = names or DisplayNames()
        self._tz = tz
        self._max_attempts = max(1, int(max_attempts))

    def record_punch(self, raw_card_id: str, *, now: datetime | None = None) -> PunchResult:
        card_id = normalize_card_id(raw_card_id)
        if not card_id:
            return PunchResult(status=PunchStatus.UNKNOWN_CARD, message=punch_message(PunchStatus.UNKNOWN_CARD))

        try:
            binding = self._bindings.get_by_card(card_id)
            if binding is None:
                logger.info("punch with unknown card %s", card_id)
                return PunchResult(status=PunchStatus.UNKNOWN_CARD, message=punch_message(PunchStatus.UNKNOWN_CARD))
            event = self._toggle(binding.user_id, card_id, now)
        except (StoreUnavailable, ConcurrentAppendError):
            logger.exception("punch for card %s failed", card_id)
            return PunchResult(status=PunchStatus.FAILURE, message=punch_message(PunchStatus.FAILURE))

        return self._ok(event)

    def force_toggle(self, user_id: str, *, now: datetime | None = None) -> PunchResult:
        """Admin override: flip the user's state as if their card was tapped."""
        try:
            binding = self._bindings.get_by_user(user_id)
            if binding is None:
                return PunchResult(
                    status=PunchStatus.UNKNOWN_CARD,
                    message=punch_message(PunchStatus.UNKNOWN_CARD),
                    user_id=user_id,
                )
            event = self._toggle(user_id, binding.card_id, now)
        except (StoreUnavailable, ConcurrentAppendError):
            logger.exception("forced toggle for user %s failed", user_id)
            return PunchResult(status=PunchStatus.FAILURE, message=punch_message(PunchStatus.FAILURE), user_id=user_id)

        logger.info("user %s forced %s", user_id, event.kind.value)
        return self._ok(event, forced=True)

    def current_status(self, user_id: str) -> Optional[PunchKind]:
        last = self._events.get_last_for_user(user_id)
        return last.kind if last else None

    def currently_present(self) -> list[AttendanceEvent]:
        return [e for e in self._events.list_latest_per_user() if e.kind == PunchKind.IN]

    def _toggle(self, user_id: str, card_id: str, now: datetime | None) -> AttendanceEvent:
        instant = as_utc(now) if now else None
        for attempt in range(1, self._max_attempts + 1):
            last = self._events.get_last_for_user(user_id)
            draft = PunchDraft.at(
                user_id=user_id,
                card_id=card_id,
                kind=next_kind(last),
                occurred_at=instant or now_utc(),
                tz=self._tz,
            )
            event = self._events.append_if_last(draft, expected_last_id=last.event_id if last else None)
            if event is not None:
                return event
            logger.info("punch for user %s raced with another writer (attempt %d)", user_id, attempt)
        raise ConcurrentAppendError(user_id)

    def _ok(self, event: AttendanceEvent, *, forced: bool = False) -> PunchResult:
        return PunchResult(
            status=PunchStatus.OK,
            message=punch_message(PunchStatus.OK, event.kind, forced=forced),
            kind=event.kind,
            user_id=event.user_id,
            display_name=self._names.for_user(event.user_id),
            event=event,
        )
