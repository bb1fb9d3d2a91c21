from __future__ import annotations

from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError, StoreError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, operation: str, dictionary: bool = True):
    """Yield ``(conn, cursor)`` and commit on success.

    Driver errors are rolled back and re-raised as domain errors: a duplicate
    key becomes ``ConflictError``, anything else ``StoreError``. The driver
    message stays on ``__cause__`` only.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise StoreError(f"{operation}: database unavailable") from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as exc:
        conn.rollback()
        if exc.errno == errorcode.ER_DUP_ENTRY:
            raise ConflictError(f"{operation}: conflicting row already exists") from exc
        raise StoreError(f"{operation}: integrity check failed") from exc
    except mysql.connector.Error as exc:
        conn.rollback()
        raise StoreError(f"{operation}: store operation failed") from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values; the connector may hand back a timedelta or a string."""

    if value is None or isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total = int(value.total_seconds()) % 86400
        return time(hour=total // 3600, minute=(total % 3600) // 60, second=total % 60)

    if isinstance(value, str):
        parts = [int(p) for p in value.strip().split(":") if p]
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        return time(*parts[:3])

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
