from __future__ import annotations

import math
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errors

from ..common.datetime_utils import as_utc
from ..core.exceptions import StoreUnavailable
from .connection import DatabaseConnection

# Integrity and programming errors are not transient; repositories handle
# the former and the latter are bugs.
_PASSTHROUGH_ERRORS = (errors.IntegrityError, errors.ProgrammingError)


def _apply_timeout(cur, timeout: float) -> None:
    seconds = max(1, int(math.ceil(timeout)))
    cur.execute("SET SESSION innodb_lock_wait_timeout = %s", (seconds,))
    cur.execute("SET SESSION MAX_EXECUTION_TIME = %s", (seconds * 1000,))


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True, timeout: Optional[float] = None):
    """One transaction: commit on success, rollback on any exception.

    Connector failures other than integrity/programming errors surface as
    ``StoreUnavailable``.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise StoreUnavailable(str(exc)) from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            if timeout is not None:
                _apply_timeout(cur, timeout)
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except _PASSTHROUGH_ERRORS:
        conn.rollback()
        raise
    except mysql.connector.Error as exc:
        _safe_rollback(conn)
        raise StoreUnavailable(str(exc)) from exc
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        # The connection is already gone; the server discards the transaction.
        pass


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def to_db_instant(instant: datetime) -> datetime:
    """Instants are stored as naive UTC DATETIME(6)."""
    return as_utc(instant).replace(tzinfo=None)


def from_db_instant(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return as_utc(value)
