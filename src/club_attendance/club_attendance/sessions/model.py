from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Optional

from ..attendance.model import AttendanceEvent


@dataclass(frozen=True)
class Session:
    """Derived IN -> OUT interval. Never stored.

    ``date`` is the local date of the IN event, also for sessions that end
    after midnight. ``duration`` is None for an open session unless a live
    estimate was requested.
    """

    user_id: str
    date: date
    start: AttendanceEvent
    end: Optional[AttendanceEvent] = None
    duration: Optional[timedelta] = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    @property
    def closed_duration(self) -> timedelta:
        if self.is_open or self.duration is None:
            return timedelta(0)
        return self.duration

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "date": self.date.isoformat(),
            "start": self.start.occurred_at.isoformat(),
            "end": self.end.occurred_at.isoformat() if self.end else None,
            "duration_seconds": int(self.duration.total_seconds()) if self.duration is not None else None,
            "open": self.is_open,
        }


@dataclass(frozen=True)
class SessionTimeline:
    """Result of one replay over a user's events."""

    user_id: str
    sessions: tuple[Session, ...] = ()
    presence_dates: frozenset[date] = field(default_factory=frozenset)
    ignored_ins: tuple[AttendanceEvent, ...] = ()
    orphan_outs: tuple[AttendanceEvent, ...] = ()

    @property
    def open_session(self) -> Optional[Session]:
        if self.sessions and self.sessions[-1].is_open:
            return self.sessions[-1]
        return None

    @property
    def closed_duration(self) -> timedelta:
        return sum((s.closed_duration for s in self.sessions), timedelta(0))

    def within(self, start: date, end: date) -> "SessionTimeline":
        def in_range(d: date) -> bool:
            return start <= d <= end

        return replace(
            self,
            sessions=tuple(s for s in self.sessions if in_range(s.date)),
            presence_dates=frozenset(d for d in self.presence_dates if in_range(d)),
            ignored_ins=tuple(e for e in self.ignored_ins if in_range(e.local_date)),
            orphan_outs=tuple(e for e in self.orphan_outs if in_range(e.local_date)),
        )
