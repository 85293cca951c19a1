from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DailyRollup:
    """Attendee counts for one local date. Each present user counts once."""

    total: int = 0
    by_team: dict[str, int] = field(default_factory=dict)
    by_grade: dict[str, int] = field(default_factory=dict)
    by_team_and_grade: dict[str, dict[str, int]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "by_team": dict(self.by_team),
            "by_grade": dict(self.by_grade),
            "by_team_and_grade": {team: dict(grades) for team, grades in self.by_team_and_grade.items()},
        }


@dataclass(frozen=True)
class TeamStats:
    team_id: str
    total_members: int
    today_attendees: int
    today_rate: float
    average_rate: float


@dataclass(frozen=True)
class TeamPresence:
    team_id: str
    team_name: str
    current: int
    total: int


@dataclass(frozen=True)
class OverallStats:
    today_attendees: int
    total_members: int
    active_days: int
    total_hours: float
