from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import MemberStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import MemberProfile, Team
from .repository import DisplayNameResolver, MemberRepository

_MEMBER_COLUMNS = """
    m.user_id, m.display_name, m.team_id, t.team_name, m.grade, m.status
"""


def _row_to_member(r: dict) -> MemberProfile:
    return MemberProfile(
        user_id=str(r["user_id"]),
        display_name=r.get("display_name"),
        team_id=r.get("team_id"),
        team_name=r.get("team_name"),
        grade=int(r["grade"]) if r.get("grade") is not None else None,
        status=MemberStatus(r.get("status") or MemberStatus.ACTIVE.value),
    )


class MySQLMemberRepository(MemberRepository, DisplayNameResolver):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_members(self) -> Sequence[MemberProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_MEMBER_COLUMNS}
                FROM members m
                LEFT JOIN teams t ON t.team_id = m.team_id
                WHERE m.deleted_at IS NULL
                ORDER BY m.user_id
                """
            )
            return [_row_to_member(r) for r in fetchall(cur)]

    def list_teams(self) -> Sequence[Team]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT team_id, team_name FROM teams ORDER BY team_name")
            return [Team(team_id=str(r["team_id"]), team_name=r["team_name"]) for r in fetchall(cur)]

    def resolve(self, user_id: str) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT display_name FROM members WHERE user_id=%s", (user_id,))
            r = fetchone(cur)
            return (r.get("display_name") or None) if r else None
