from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_instant, to_db_instant
from ..members.model import CardBinding
from ..members.mysql_card_binding_repository import bind_card
from .model import RegistrationToken
from .repository import RegistrationRepository

_TOKEN_COLUMNS = "token, card_id, created_at, expires_at, used_at, accessed_at"


def _row_to_token(r: dict) -> RegistrationToken:
    return RegistrationToken(
        token=r["token"],
        card_id=r["card_id"],
        created_at=from_db_instant(r["created_at"]),
        expires_at=from_db_instant(r["expires_at"]),
        used_at=from_db_instant(r.get("used_at")),
        accessed_at=from_db_instant(r.get("accessed_at")),
    )


class MySQLRegistrationRepository(RegistrationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def replace_for_card(self, token: RegistrationToken) -> RegistrationToken:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM registration_tokens WHERE card_id=%s AND used_at IS NULL",
                (token.card_id,),
            )
            cur.execute(
                f"""
                INSERT INTO registration_tokens({_TOKEN_COLUMNS})
                VALUES(%s,%s,%s,%s,NULL,NULL)
                """,
                (token.token, token.card_id, to_db_instant(token.created_at), to_db_instant(token.expires_at)),
            )
            return token

    def get(self, token: str) -> Optional[RegistrationToken]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TOKEN_COLUMNS} FROM registration_tokens WHERE token=%s", (token,))
            r = fetchone(cur)
            return _row_to_token(r) if r else None

    def mark_accessed(self, token: str, *, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE registration_tokens SET accessed_at=%s WHERE token=%s AND accessed_at IS NULL",
                (to_db_instant(now), token),
            )
            return cur.rowcount > 0

    def mark_used_and_bind(self, token: str, *, user_id: str, now: datetime) -> Optional[CardBinding]:
        ts = to_db_instant(now)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE registration_tokens
                SET used_at=%s
                WHERE token=%s AND used_at IS NULL AND expires_at > %s
                """,
                (ts, token, ts),
            )
            if cur.rowcount != 1:
                return None

            cur.execute("SELECT card_id FROM registration_tokens WHERE token=%s", (token,))
            card_id = fetchone(cur)["card_id"]
            # DuplicateCardBinding raised here rolls the used_at update back too.
            return bind_card(cur, user_id=user_id, card_id=card_id, now=now)

    def list_recent(self, *, limit: int) -> Sequence[RegistrationToken]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TOKEN_COLUMNS} FROM registration_tokens ORDER BY created_at DESC LIMIT %s",
                (int(limit),),
            )
            return [_row_to_token(r) for r in fetchall(cur)]

    def delete(self, token: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM registration_tokens WHERE token=%s", (token,))
            return cur.rowcount > 0
