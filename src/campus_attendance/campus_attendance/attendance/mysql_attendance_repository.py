from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus, ScanMode
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .legacy_notes import decode_time_notes
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, event_id, student_id, time_in, time_out, status, mode,
    notes, scanned_at, created_at, updated_at, deleted_at
"""


def _to_record(r: dict) -> AttendanceRecord:
    time_in = r.get("time_in")
    time_out = r.get("time_out")
    if time_in is None and time_out is None and r.get("notes"):
        time_in, time_out = decode_time_notes(r["notes"], r["created_at"].date())

    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        event_id=int(r["event_id"]),
        student_id=int(r["student_id"]),
        time_in=time_in,
        time_out=time_out,
        status=AttendanceStatus(r["status"]),
        created_at=r["created_at"],
        mode=ScanMode(r["mode"]) if r.get("mode") else None,
        notes=r.get("notes"),
        scanned_at=r.get("scanned_at"),
        updated_at=r.get("updated_at"),
        deleted_at=r.get("deleted_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory, operation="attendance.get_by_id") as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_latest_for_pair(self, *, event_id: int, student_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory, operation="attendance.get_latest_for_pair") as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE event_id=%s AND student_id=%s AND deleted_at IS NULL
                ORDER BY created_at DESC, attendance_id DESC
                LIMIT 1
                """,
                (int(event_id), int(student_id)),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create_record(
        self,
        *,
        event_id: int,
        student_id: int,
        time_in: Optional[datetime],
        time_out: Optional[datetime],
        status: AttendanceStatus,
        mode: Optional[ScanMode],
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory, operation="attendance.create_record") as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    event_id, student_id, time_in, time_out, status, mode, scanned_at, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(event_id),
                    int(student_id),
                    time_in,
                    time_out,
                    status.value,
                    mode.value if mode else None,
                    created_at if mode else None,
                    created_at,
                    created_at,
                ),
            )
            return int(cur.lastrowid)

    def close_record(
        self,
        *,
        attendance_id: int,
        time_in: datetime,
        time_out: datetime,
        status: AttendanceStatus,
        updated_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory, operation="attendance.close_record") as (_, cur):
            # A notes-only row gets its sign-in moved into the time_in column here.
            cur.execute(
                """
                UPDATE attendance_records
                SET time_in=COALESCE(time_in, %s), time_out=%s, status=%s, mode='SIGN_OUT',
                    scanned_at=%s, updated_at=%s
                WHERE attendance_id=%s
                  AND time_out IS NULL AND deleted_at IS NULL
                """,
                (time_in, time_out, status.value, time_out, updated_at, int(attendance_id)),
            )
            return cur.rowcount > 0

    def admin_update_record(
        self,
        *,
        attendance_id: int,
        time_in: Optional[datetime],
        time_out: Optional[datetime],
        status: AttendanceStatus,
        scanned_at: Optional[datetime],
        updated_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory, operation="attendance.admin_update_record") as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET time_in=%s, time_out=%s, status=%s, scanned_at=%s, updated_at=%s
                WHERE attendance_id=%s AND deleted_at IS NULL
                """,
                (time_in, time_out, status.value, scanned_at, updated_at, int(attendance_id)),
            )
            return cur.rowcount > 0

    def soft_delete(self, *, attendance_id: int, deleted_at: datetime) -> bool:
        with db_cursor(self._conn_factory, operation="attendance.soft_delete") as (_, cur):
            # Assigning updated_at to itself keeps ON UPDATE from touching it.
            cur.execute(
                """
                UPDATE attendance_records
                SET deleted_at=%s, updated_at=updated_at
                WHERE attendance_id=%s AND deleted_at IS NULL
                """,
                (deleted_at, int(attendance_id)),
            )
            return cur.rowcount > 0

    def list_event_page(self, *, event_id: int, offset: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory, operation="attendance.list_event_page") as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE event_id=%s AND deleted_at IS NULL
                ORDER BY created_at ASC, attendance_id ASC
                LIMIT %s OFFSET %s
                """,
                (int(event_id), int(limit), int(offset)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_student_page(self, *, student_id: int, offset: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory, operation="attendance.list_student_page") as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND deleted_at IS NULL
                ORDER BY created_at ASC, attendance_id ASC
                LIMIT %s OFFSET %s
                """,
                (int(student_id), int(limit), int(offset)),
            )
            return [_to_record(r) for r in fetchall(cur)]
