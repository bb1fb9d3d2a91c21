from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus, ScanMode


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance row for an (event, student) pair.

    A student may have several rows per event; the most recently created one
    (``order_key``) is the one that counts.
    """

    attendance_id: int
    event_id: int
    student_id: int
    time_in: Optional[datetime]
    time_out: Optional[datetime]
    status: AttendanceStatus
    created_at: datetime
    mode: Optional[ScanMode] = ScanMode.SIGN_IN
    notes: Optional[str] = None
    scanned_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.time_in is not None and self.time_out is None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def order_key(self) -> tuple[datetime, int]:
        # created_at can tie under fast scanning; the id breaks the tie.
        return (self.created_at, self.attendance_id)


def classify_times(time_in: Optional[datetime], time_out: Optional[datetime]) -> AttendanceStatus:
    """Display status derived from the times alone, independent of the event."""

    if time_in and time_out:
        return AttendanceStatus.PRESENT
    if time_in:
        return AttendanceStatus.SIGNED_IN_ONLY
    return AttendanceStatus.INCOMPLETE
