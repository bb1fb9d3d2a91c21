from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Union

from ..common.datetime_utils import now_local, parse_clock, parse_iso_datetime
from ..common.validators import require_non_empty
from ..core.exceptions import NotFoundError, StoreError, ValidationError
from ..events.model import Event
from ..events.repository import EventRepository
from ..students.repository import StudentRepository
from .factory import CompletionRuleFactory
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

PatchTime = Union[datetime, time, None]


def _parse_patch_time(value, field_name: str) -> PatchTime:
    if value is None or value == "":
        return None
    if isinstance(value, (datetime, time)):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")

    clock = parse_clock(value)
    if clock is not None:
        return clock
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be an ISO timestamp or HH:MM")


@dataclass(frozen=True)
class RecordPatch:
    """Admin-supplied times. ``None`` keeps the stored value.

    A bare clock time is placed on the event date (or the record's creation
    date when the event has none).
    """

    time_in: PatchTime = None
    time_out: PatchTime = None

    @classmethod
    def from_payload(cls, payload: dict) -> "RecordPatch":
        payload = payload or {}
        return cls(
            time_in=_parse_patch_time(payload.get("timeIn", payload.get("time_in")), "timeIn"),
            time_out=_parse_patch_time(payload.get("timeOut", payload.get("time_out")), "timeOut"),
        )

    @property
    def is_empty(self) -> bool:
        return self.time_in is None and self.time_out is None


def _resolve(value: PatchTime, base_date: date) -> Optional[datetime]:
    if isinstance(value, time):
        return datetime.combine(base_date, value)
    return value


class RecordEditor:
    """Administrative override path.

    Edits write times directly, regardless of scan order, so a missed scan can
    be repaired. Status is recomputed with the same completion rule the scan
    path uses.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        events: EventRepository,
        students: StudentRepository,
        *,
        rule_factory: CompletionRuleFactory | None = None,
    ):
        self._attendance = attendance
        self._events = events
        self._students = students
        self._rules = rule_factory or CompletionRuleFactory()

    def update_record(
        self,
        event_id: int,
        record_id: int,
        patch: RecordPatch | dict,
        *,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        if isinstance(patch, dict):
            patch = RecordPatch.from_payload(patch)
        now = now or now_local()

        event = self._require_event(event_id)
        record = self._require_active_record(record_id, event_id=event.event_id)

        base_date = event.event_date or record.created_at.date()
        time_in = _resolve(patch.time_in, base_date) or record.time_in
        time_out = _resolve(patch.time_out, base_date) or record.time_out
        self._check_times(time_in, time_out)

        updated = self._attendance.admin_update_record(
            attendance_id=record.attendance_id,
            time_in=time_in,
            time_out=time_out,
            status=self._rules.for_event(event).status_for(time_in, time_out),
            scanned_at=record.scanned_at if patch.is_empty else now,
            updated_at=now,
        )
        if not updated:
            logger.error("admin update not applied event_id=%s record_id=%s", event.event_id, record.attendance_id)
            raise StoreError("Attendance record update was not applied")

        logger.info(
            "admin updated record_id=%s event_id=%s time_in=%s time_out=%s",
            record.attendance_id,
            event.event_id,
            time_in,
            time_out,
        )
        return self._reload(record.attendance_id)

    def create_record(
        self,
        event_id: int,
        student_number: str,
        patch: RecordPatch | dict,
        *,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        """Manual entry for a student who never scanned."""

        if isinstance(patch, dict):
            patch = RecordPatch.from_payload(patch)
        now = now or now_local()

        event = self._require_event(event_id)
        student = self._students.get_by_number(require_non_empty(student_number, "Student ID"))
        if not student:
            raise NotFoundError("student", "Student not found")

        base_date = event.event_date or now.date()
        time_in = _resolve(patch.time_in, base_date)
        time_out = _resolve(patch.time_out, base_date)
        self._check_times(time_in, time_out)

        record_id = self._attendance.create_record(
            event_id=event.event_id,
            student_id=student.student_id,
            time_in=time_in,
            time_out=time_out,
            status=self._rules.for_event(event).status_for(time_in, time_out),
            mode=None,
            created_at=now,
        )
        logger.info(
            "admin created record_id=%s event_id=%s student_id=%s",
            record_id,
            event.event_id,
            student.student_id,
        )
        return self._reload(record_id)

    def soft_delete_record(
        self,
        record_id: int,
        *,
        event_id: int | None = None,
        now: datetime | None = None,
    ) -> None:
        record = self._require_active_record(record_id, event_id=event_id)
        deleted = self._attendance.soft_delete(attendance_id=record.attendance_id, deleted_at=now or now_local())
        if not deleted:
            logger.error("soft delete not applied record_id=%s event_id=%s", record.attendance_id, record.event_id)
            raise StoreError("Attendance record delete was not applied")
        logger.info("admin soft-deleted record_id=%s event_id=%s", record.attendance_id, record.event_id)

    def _require_event(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("event", "Event not found")
        return event

    def _require_active_record(self, record_id: int, *, event_id: int | None) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(record_id))
        if not record or record.is_deleted:
            raise NotFoundError("record", "Attendance record not found")
        if event_id is not None and record.event_id != int(event_id):
            raise NotFoundError("record", "Attendance record not found")
        return record

    def _reload(self, record_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(record_id)
        if record is None:
            raise StoreError("Attendance record could not be read back")
        return record

    @staticmethod
    def _check_times(time_in: Optional[datetime], time_out: Optional[datetime]) -> None:
        if time_out is not None and time_in is None:
            raise ValidationError("Time out requires a time in")
        if time_in and time_out and time_out < time_in:
            raise ValidationError("Time out cannot be earlier than time in")
