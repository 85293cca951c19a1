from __future__ import annotations

from datetime import datetime
from typing import Optional

from mysql.connector import errors

from ..core.exceptions import DuplicateCardBinding
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, from_db_instant, to_db_instant
from .model import CardBinding
from .repository import CardBindingRepository


def _row_to_binding(r: dict) -> CardBinding:
    return CardBinding(
        user_id=str(r["user_id"]),
        card_id=r["card_id"],
        created_at=from_db_instant(r.get("created_at")),
        updated_at=from_db_instant(r.get("updated_at")),
    )


def lock_card_owner(cur, card_id: str) -> Optional[str]:
    cur.execute("SELECT user_id FROM card_bindings WHERE card_id=%s FOR UPDATE", (card_id,))
    r = fetchone(cur)
    return str(r["user_id"]) if r else None


def bind_card(cur, *, user_id: str, card_id: str, now: datetime) -> CardBinding:
    """Create or replace the user's binding inside the caller's transaction.

    The card row is locked first so a concurrent binder of the same card
    waits for this transaction.
    """
    owner = lock_card_owner(cur, card_id)
    if owner is not None and owner != user_id:
        raise DuplicateCardBinding(card_id, owner)

    ts = to_db_instant(now)
    if owner is None:
        try:
            # Only the user_id primary key should collide here.
            cur.execute(
                """
                INSERT INTO card_bindings(user_id, card_id, created_at, updated_at)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE card_id=VALUES(card_id), updated_at=VALUES(updated_at)
                """,
                (user_id, card_id, ts, ts),
            )
        except errors.IntegrityError as exc:
            # A concurrent transaction inserted the same card first.
            raise DuplicateCardBinding(card_id) from exc
    return CardBinding(user_id=user_id, card_id=card_id, updated_at=now)


class MySQLCardBindingRepository(CardBindingRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_card(self, card_id: str) -> Optional[CardBinding]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id, card_id, created_at, updated_at FROM card_bindings WHERE card_id=%s",
                (card_id,),
            )
            r = fetchone(cur)
            return _row_to_binding(r) if r else None

    def get_by_user(self, user_id: str) -> Optional[CardBinding]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id, card_id, created_at, updated_at FROM card_bindings WHERE user_id=%s",
                (user_id,),
            )
            r = fetchone(cur)
            return _row_to_binding(r) if r else None

    def rebind(self, *, user_id: str, card_id: str, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM card_bindings WHERE user_id=%s FOR UPDATE", (user_id,))
            if not fetchone(cur):
                return False
            bind_card(cur, user_id=user_id, card_id=card_id, now=now)
            return True
