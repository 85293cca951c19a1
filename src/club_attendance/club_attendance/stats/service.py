from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import asdict
from datetime import date, timedelta, tzinfo
from typing import Optional

from ..attendance.repository import EventRepository
from ..common.datetime_utils import ORG_TIMEZONE, local_today
from ..core.constants import DEFAULT_STATS_DAYS, UNASSIGNED_TEAM, UNKNOWN_GRADE
from ..core.enums import Grouping, PunchKind
from ..members.model import MemberProfile
from ..members.repository import MemberRepository
from ..sessions.model import SessionTimeline
from ..sessions.service import SessionReconstructor
from .model import DailyRollup, OverallStats, TeamPresence, TeamStats

logger = logging.getLogger(__name__)


def attendance_rate(attended_days: int, possible_days: int) -> float:
    """Percentage of possible attendance days actually attended; 0 when nothing was possible."""
    if possible_days <= 0:
        return 0.0
    return attended_days / possible_days * 100


def _team_label(profile: Optional[MemberProfile]) -> str:
    if profile is None or not profile.team_id:
        return UNASSIGNED_TEAM
    return profile.team_name or profile.team_id


def _grade_label(profile: Optional[MemberProfile]) -> str:
    if profile is None or profile.grade is None:
        return UNKNOWN_GRADE
    return str(profile.grade)


def _activity_days(timelines: dict[str, SessionTimeline]) -> set[date]:
    days: set[date] = set()
    for timeline in timelines.values():
        days.update(timeline.presence_dates)
    return days


class AttendanceAggregator:
    """Team/grade/day rollups built on reconstructed timelines, never raw rows.

    Membership is read once per call and reflects the directory as of now.
    """

    def __init__(
        self,
        sessions: SessionReconstructor,
        members: MemberRepository,
        events: EventRepository,
        *,
        tz: tzinfo = ORG_TIMEZONE,
    ):
        self._sessions = sessions
        self._members = members
        self._events = events
        self._tz = tz

    def rollup(
        self,
        start: date,
        end: date,
        grouping: Grouping = Grouping.TEAM,
        *,
        timeout: Optional[float] = None,
    ) -> dict[date, DailyRollup]:
        profiles = {m.user_id: m for m in self._members.list_members()}
        timelines = self._sessions.timelines_in_range(start, end, timeout=timeout)

        totals: Counter[date] = Counter()
        by_team: dict[date, Counter[str]] = defaultdict(Counter)
        by_grade: dict[date, Counter[str]] = defaultdict(Counter)
        by_team_grade: dict[date, dict[str, Counter[str]]] = defaultdict(lambda: defaultdict(Counter))

        for user_id, timeline in timelines.items():
            profile = profiles.get(user_id)
            team, grade = _team_label(profile), _grade_label(profile)
            for day in timeline.presence_dates:
                totals[day] += 1
                if grouping == Grouping.TEAM:
                    by_team[day][team] += 1
                    by_team_grade[day][team][grade] += 1
                if grouping in (Grouping.TEAM, Grouping.GRADE):
                    by_grade[day][grade] += 1

        return {
            day: DailyRollup(
                total=totals[day],
                by_team=dict(by_team.get(day, {})),
                by_grade=dict(by_grade.get(day, {})),
                by_team_and_grade={t: dict(g) for t, g in by_team_grade.get(day, {}).items()},
            )
            for day in sorted(totals)
        }

    def daily_counts(self, start: date, end: date) -> dict[date, int]:
        return {day: r.total for day, r in self.rollup(start, end, Grouping.NONE).items()}

    def team_stats(self, team_id: str, *, today: Optional[date] = None, days: int = DEFAULT_STATS_DAYS) -> TeamStats:
        """Today's turnout and the average rate over the last ``days`` days.

        ``average_rate`` is attended member-days over team size times the days
        on which anyone in the club attended, not a mean of the daily rates.
        """
        today = today or local_today(self._tz)
        start = today - timedelta(days=max(days, 1) - 1)

        member_ids = {
            m.user_id for m in self._members.list_members() if m.counts_in_stats and m.team_id == team_id
        }
        timelines = self._sessions.timelines_in_range(start, today)

        today_attendees = sum(1 for uid in member_ids if uid in timelines and today in timelines[uid].presence_dates)
        attended = sum(len(timelines[uid].presence_dates) for uid in member_ids if uid in timelines)
        possible = len(member_ids) * len(_activity_days(timelines))

        return TeamStats(
            team_id=team_id,
            total_members=len(member_ids),
            today_attendees=today_attendees,
            today_rate=attendance_rate(today_attendees, len(member_ids)),
            average_rate=attendance_rate(attended, possible),
        )

    def team_presence(self) -> list[TeamPresence]:
        members = [m for m in self._members.list_members() if m.counts_in_stats]
        latest = {e.user_id: e.kind for e in self._events.list_latest_per_user()}

        out = []
        for team in self._members.list_teams():
            team_members = [m for m in members if m.team_id == team.team_id]
            out.append(
                TeamPresence(
                    team_id=team.team_id,
                    team_name=team.team_name,
                    current=sum(1 for m in team_members if latest.get(m.user_id) == PunchKind.IN),
                    total=len(team_members),
                )
            )
        return out

    def overall_stats(self, *, today: Optional[date] = None, days: int = DEFAULT_STATS_DAYS) -> OverallStats:
        today = today or local_today(self._tz)
        start = today - timedelta(days=max(days, 1) - 1)
        timelines = self._sessions.timelines_in_range(start, today)

        hours = sum(t.closed_duration.total_seconds() for t in timelines.values()) / 3600
        stats = OverallStats(
            today_attendees=sum(1 for t in timelines.values() if today in t.presence_dates),
            total_members=sum(1 for m in self._members.list_members() if m.counts_in_stats),
            active_days=len(_activity_days(timelines)),
            total_hours=round(hours, 1),
        )
        logger.debug("overall stats %s", asdict(stats))
        return stats
