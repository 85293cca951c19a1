from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Collection, Iterable, Iterator, Optional

from ..attendance.model import AttendanceEvent
from ..attendance.repository import EventRepository
from ..common.datetime_utils import as_utc
from ..core.enums import PunchKind
from .model import Session, SessionTimeline

logger = logging.getLogger(__name__)

# An OUT on the day after the range may still close a session opened inside it.
_LOOKAHEAD = timedelta(days=1)


def reconstruct(
    user_id: str,
    events: Iterable[AttendanceEvent],
    *,
    live_now: Optional[datetime] = None,
) -> SessionTimeline:
    """Pair a user's punches into sessions.

    Pure function of the given events: they are sorted by
    (occurred_at, event_id) first, so arrival order does not matter.
    A second IN while a session is open is ignored for pairing (the earlier
    IN wins); an OUT with no open session is an orphan and yields nothing.
    """
    ordered = sorted((e for e in events if e.user_id == user_id), key=lambda e: e.sort_key)

    sessions: list[Session] = []
    presence: set[date] = set()
    ignored_ins: list[AttendanceEvent] = []
    orphan_outs: list[AttendanceEvent] = []
    open_in: Optional[AttendanceEvent] = None

    for event in ordered:
        if event.kind == PunchKind.IN:
            presence.add(event.local_date)
            if open_in is None:
                open_in = event
            else:
                ignored_ins.append(event)
        elif open_in is not None:
            sessions.append(
                Session(
                    user_id=user_id,
                    date=open_in.local_date,
                    start=open_in,
                    end=event,
                    duration=max(event.occurred_at - open_in.occurred_at, timedelta(0)),
                )
            )
            open_in = None
        else:
            orphan_outs.append(event)

    if open_in is not None:
        estimate = None
        if live_now is not None:
            estimate = max(as_utc(live_now) - open_in.occurred_at, timedelta(0))
        sessions.append(Session(user_id=user_id, date=open_in.local_date, start=open_in, duration=estimate))

    return SessionTimeline(
        user_id=user_id,
        sessions=tuple(sessions),
        presence_dates=frozenset(presence),
        ignored_ins=tuple(ignored_ins),
        orphan_outs=tuple(orphan_outs),
    )


class SessionReconstructor:
    """Read-only replay of the ledger. Tolerates slightly stale reads.

    Every replay starts from the user's last event before the range, so the
    sessions of a date do not depend on how wide the queried range is.
    """

    def __init__(self, events: EventRepository):
        self._events = events

    def timeline_for(
        self,
        user_id: str,
        start: date,
        end: date,
        *,
        live_now: Optional[datetime] = None,
    ) -> SessionTimeline:
        events = list(self._events.list_latest_per_user(before=start, user_ids=[user_id]))
        events.extend(self._events.list_for_user(user_id, start=start, end=end + _LOOKAHEAD))
        return reconstruct(user_id, events, live_now=live_now).within(start, end)

    def sessions_for(
        self,
        user_id: str,
        start: date,
        end: date,
        *,
        live_now: Optional[datetime] = None,
    ) -> Iterator[Session]:
        """Sessions whose IN falls in [start, end], by date ascending. Lazy."""
        if end < start:
            return
        yield from self.timeline_for(user_id, start, end, live_now=live_now).sessions

    def timelines_in_range(
        self,
        start: date,
        end: date,
        *,
        user_ids: Optional[Collection[str]] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, SessionTimeline]:
        if end < start:
            return {}
        by_user: dict[str, list[AttendanceEvent]] = defaultdict(list)
        for event in self._events.list_in_range(
            start=start, end=end + _LOOKAHEAD, user_ids=user_ids, timeout=timeout
        ):
            by_user[event.user_id].append(event)
        if not by_user:
            return {}

        # Only users active in the range need their earlier state.
        for event in self._events.list_latest_per_user(before=start, user_ids=user_ids, timeout=timeout):
            if event.user_id in by_user:
                by_user[event.user_id].append(event)

        timelines = {uid: reconstruct(uid, evs).within(start, end) for uid, evs in by_user.items()}
        logger.debug("replayed %d users between %s and %s", len(timelines), start, end)
        return timelines

    def total_hours(self, user_id: str, start: date, end: date) -> float:
        seconds = self.timeline_for(user_id, start, end).closed_duration.total_seconds()
        return seconds / 3600

    def attended_dates(self, user_id: str, start: date, end: date) -> list[date]:
        return sorted(self.timeline_for(user_id, start, end).presence_dates)
