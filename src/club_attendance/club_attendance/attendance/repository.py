from __future__ import annotations

from datetime import date
from typing import Collection, Mapping, Optional, Protocol, Sequence

from .model import AttendanceEvent, PunchDraft


class EventRepository(Protocol):
    """Append-only punch ledger.

    Writers never read-then-insert in two calls; they use the conditional
    appends below, which compare the user's current last event id with the
    one the caller based its decision on.
    """

    def get_last_for_user(self, user_id: str) -> Optional[AttendanceEvent]:
        raise NotImplementedError

    def append_if_last(self, draft: PunchDraft, *, expected_last_id: Optional[int]) -> Optional[AttendanceEvent]:
        """Append ``draft`` only if the user's last event is still ``expected_last_id``.

        Returns the stored event, or None when a concurrent writer got there first.
        """

        raise NotImplementedError

    def append_batch(
        self,
        drafts: Sequence[PunchDraft],
        *,
        expected_last_ids: Mapping[str, Optional[int]],
        timeout: Optional[float] = None,
    ) -> Sequence[AttendanceEvent]:
        """All-or-nothing conditional append of several users' events.

        Raises ``ConcurrentAppendError`` (nothing applied) when any user's last
        event moved, or when a draft is not later than that last event.
        """

        raise NotImplementedError

    def list_for_user(self, user_id: str, *, start: date, end: date) -> Sequence[AttendanceEvent]:
        """Events whose local_date is within [start, end], oldest first."""

        raise NotImplementedError

    def list_in_range(
        self,
        *,
        start: date,
        end: date,
        user_ids: Optional[Collection[str]] = None,
        timeout: Optional[float] = None,
    ) -> Sequence[AttendanceEvent]:
        raise NotImplementedError

    def list_latest_per_user(
        self,
        *,
        before: Optional[date] = None,
        user_ids: Optional[Collection[str]] = None,
        timeout: Optional[float] = None,
    ) -> Sequence[AttendanceEvent]:
        """Each user's last event, optionally among events dated before ``before``."""

        raise NotImplementedError
