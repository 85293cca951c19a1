from __future__ import annotations

from datetime import date
from typing import Collection, Mapping, Optional, Sequence

from ..core.enums import PunchKind
from ..core.exceptions import ConcurrentAppendError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_instant, to_db_instant
from .model import AttendanceEvent, PunchDraft
from .repository import EventRepository

_EVENT_COLUMNS = "event_id, user_id, card_id, kind, occurred_at, local_date"


def _row_to_event(r: dict) -> AttendanceEvent:
    return AttendanceEvent(
        event_id=int(r["event_id"]),
        user_id=str(r["user_id"]),
        card_id=r["card_id"],
        kind=PunchKind(r["kind"]),
        occurred_at=from_db_instant(r["occurred_at"]),
        local_date=r["local_date"],
    )


class MySQLAttendanceRepository(EventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _last_event(cur, user_id: str) -> Optional[dict]:
        cur.execute(
            """
            SELECT event_id, occurred_at FROM attendance_events
            WHERE user_id=%s
            ORDER BY occurred_at DESC, event_id DESC
            LIMIT 1
            FOR SHARE
            """,
            (user_id,),
        )
        return fetchone(cur)

    def _lock_user(self, cur, user_id: str) -> Optional[dict]:
        """Lock the user's writers out and return their last event row."""
        # The punch_locks row serializes writers of one user, including the
        # very first punch when no event row exists yet.
        cur.execute("INSERT IGNORE INTO punch_locks(user_id) VALUES(%s)", (user_id,))
        cur.execute("SELECT user_id FROM punch_locks WHERE user_id=%s FOR UPDATE", (user_id,))
        fetchall(cur)
        return self._last_event(cur, user_id)

    @staticmethod
    def _insert(cur, draft: PunchDraft) -> AttendanceEvent:
        cur.execute(
            """
            INSERT INTO attendance_events(user_id, card_id, kind, occurred_at, local_date)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (draft.user_id, draft.card_id, draft.kind.value, to_db_instant(draft.occurred_at), draft.local_date),
        )
        return draft.saved_as(int(cur.lastrowid))

    def get_last_for_user(self, user_id: str) -> Optional[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EVENT_COLUMNS}
                FROM attendance_events
                WHERE user_id=%s
                ORDER BY occurred_at DESC, event_id DESC
                LIMIT 1
                """,
                (user_id,),
            )
            r = fetchone(cur)
            return _row_to_event(r) if r else None

    def append_if_last(self, draft: PunchDraft, *, expected_last_id: Optional[int]) -> Optional[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            last = self._lock_user(cur, draft.user_id)
            if (int(last["event_id"]) if last else None) != expected_last_id:
                return None
            return self._insert(cur, draft)

    def append_batch(
        self,
        drafts: Sequence[PunchDraft],
        *,
        expected_last_ids: Mapping[str, Optional[int]],
        timeout: Optional[float] = None,
    ) -> Sequence[AttendanceEvent]:
        if not drafts:
            return []

        # Lock in a stable order so two batches cannot deadlock each other.
        ordered = sorted(drafts, key=lambda d: d.user_id)
        with db_cursor(self._conn_factory, timeout=timeout) as (_, cur):
            for draft in ordered:
                last = self._lock_user(cur, draft.user_id)
                if (int(last["event_id"]) if last else None) != expected_last_ids.get(draft.user_id):
                    raise ConcurrentAppendError(draft.user_id)
                # A draft stamped before the locked last event would sort ahead of it.
                if last and draft.occurred_at <= from_db_instant(last["occurred_at"]):
                    raise ConcurrentAppendError(draft.user_id)
            return [self._insert(cur, draft) for draft in ordered]

    def list_for_user(self, user_id: str, *, start: date, end: date) -> Sequence[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EVENT_COLUMNS}
                FROM attendance_events
                WHERE user_id=%s AND local_date BETWEEN %s AND %s
                ORDER BY occurred_at ASC, event_id ASC
                """,
                (user_id, start, end),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

    def list_in_range(
        self,
        *,
        start: date,
        end: date,
        user_ids: Optional[Collection[str]] = None,
        timeout: Optional[float] = None,
    ) -> Sequence[AttendanceEvent]:
        clauses = ["local_date BETWEEN %s AND %s"]
        params: list[object] = [start, end]

        if user_ids is not None:
            if not user_ids:
                return []
            clauses.append(f"user_id IN ({', '.join(['%s'] * len(user_ids))})")
            params.extend(user_ids)

        with db_cursor(self._conn_factory, timeout=timeout) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EVENT_COLUMNS}
                FROM attendance_events
                WHERE {" AND ".join(clauses)}
                ORDER BY user_id ASC, occurred_at ASC, event_id ASC
                """,
                tuple(params),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

    def list_latest_per_user(
        self,
        *,
        before: Optional[date] = None,
        user_ids: Optional[Collection[str]] = None,
        timeout: Optional[float] = None,
    ) -> Sequence[AttendanceEvent]:
        clauses = ["1=1"]
        params: list[object] = []
        if before is not None:
            clauses.append("e.local_date < %s")
            params.append(before)
        if user_ids is not None:
            if not user_ids:
                return []
            clauses.append(f"e.user_id IN ({', '.join(['%s'] * len(user_ids))})")
            params.extend(user_ids)

        with db_cursor(self._conn_factory, timeout=timeout) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EVENT_COLUMNS}
                FROM (
                    SELECT e.*, ROW_NUMBER() OVER (
                        PARTITION BY e.user_id ORDER BY e.occurred_at DESC, e.event_id DESC
                    ) AS rn
                    FROM attendance_events e
                    WHERE {" AND ".join(clauses)}
                ) ranked
                WHERE rn = 1
                ORDER BY user_id
                """,
                tuple(params),
            )
            return [_row_to_event(r) for r in fetchall(cur)]
