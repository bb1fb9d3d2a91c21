from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, ScanMode
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """Record store for attendance rows.

    Reads other than ``get_by_id`` skip soft-deleted rows. Page reads are
    ordered by ``(created_at, attendance_id)`` ascending and may return at
    most the store's page ceiling, whatever ``limit`` asks for.
    """

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        """Includes soft-deleted rows; callers check ``is_deleted``."""

        raise NotImplementedError

    def get_latest_for_pair(self, *, event_id: int, student_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

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
        """Insert a row; raises ``ConflictError`` if it would be a second open row for the pair."""

        raise NotImplementedError

    def close_record(
        self,
        *,
        attendance_id: int,
        time_in: datetime,
        time_out: datetime,
        status: AttendanceStatus,
        updated_at: datetime,
    ) -> bool:
        """Close a row that is still open; False if it no longer is.

        ``time_in`` is the sign-in the caller read. It is written only when the
        row holds none in its own column (times decoded from legacy ``notes``).
        """

        raise NotImplementedError

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
        """Admin-only override, independent of scan order."""

        raise NotImplementedError

    def soft_delete(self, *, attendance_id: int, deleted_at: datetime) -> bool:
        raise NotImplementedError

    def list_event_page(self, *, event_id: int, offset: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_student_page(self, *, student_id: int, offset: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
