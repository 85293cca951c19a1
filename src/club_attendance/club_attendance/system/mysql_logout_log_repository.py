from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ..core.enums import LogoutStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_db_instant, to_db_instant
from .model import DailyLogoutLogEntry
from .repository import LogoutLogRepository


class MySQLLogoutLogRepository(LogoutLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, *, executed_at: datetime, affected_count: int, status: LogoutStatus) -> DailyLogoutLogEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO daily_logout_logs(executed_at, affected_count, status)
                VALUES(%s,%s,%s)
                """,
                (to_db_instant(executed_at), int(affected_count), status.value),
            )
            return DailyLogoutLogEntry(
                log_id=int(cur.lastrowid),
                executed_at=executed_at,
                affected_count=int(affected_count),
                status=status,
            )

    def list_recent(self, *, limit: int) -> Sequence[DailyLogoutLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT log_id, executed_at, affected_count, status
                FROM daily_logout_logs
                ORDER BY executed_at DESC, log_id DESC
                LIMIT %s
                """,
                (int(limit),),
            )
            return [
                DailyLogoutLogEntry(
                    log_id=int(r["log_id"]),
                    executed_at=from_db_instant(r["executed_at"]),
                    affected_count=int(r["affected_count"]),
                    status=LogoutStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]
