from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AttendanceType, ScopeType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import Event
from .repository import EventRepository

_COLUMNS = """
    event_id, title, event_date, start_time, end_time,
    scope_type, scope_college, scope_course, attendance_type
"""


def _to_event(row: dict) -> Event:
    return Event(
        event_id=int(row["event_id"]),
        title=row["title"],
        scope_type=ScopeType(row["scope_type"]),
        scope_college=row.get("scope_college"),
        scope_course=row.get("scope_course"),
        attendance_type=AttendanceType(row["attendance_type"]),
        event_date=row.get("event_date"),
        start_time=normalize_mysql_time(row.get("start_time")),
        end_time=normalize_mysql_time(row.get("end_time")),
    )


class MySQLEventRepository(EventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, event_id: int) -> Optional[Event]:
        with db_cursor(self._conn_factory, operation="event.get_by_id") as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM events WHERE event_id=%s AND deleted_at IS NULL",
                (int(event_id),),
            )
            row = fetchone(cur)
            return _to_event(row) if row else None

    def list_applicable(self, *, college: Optional[str], course: Optional[str]) -> Sequence[Event]:
        with db_cursor(self._conn_factory, operation="event.list_applicable") as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM events
                WHERE deleted_at IS NULL
                  AND (
                    scope_type='UNIVERSITY_WIDE'
                    OR (scope_type='COLLEGE_WIDE' AND scope_college=%s)
                    OR (scope_type='COURSE_SPECIFIC' AND scope_college=%s AND scope_course=%s)
                  )
                ORDER BY event_date DESC, event_id DESC
                """,
                (college, college, course),
            )
            return [_to_event(r) for r in fetchall(cur)]
