from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from ..attendance.factory import CompletionRuleFactory
from ..attendance.model import AttendanceRecord, classify_times
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..common.pagination import fetch_all_pages
from ..core.constants import HISTORY_FILTERS, READ_PAGE_SIZE
from ..core.enums import AttendanceStatus, HistoryStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..events.eligibility import EligibilityResolver
from ..events.model import Event
from ..events.repository import EventRepository
from ..students.model import Student
from ..students.repository import StudentRepository


@dataclass(frozen=True)
class EventStats:
    event_id: int
    total_eligible: int
    attended: int
    percentage: int
    scope_details: dict


@dataclass(frozen=True)
class EventRecordRow:
    """Read-model for record listings: one retained row per student."""

    id: int
    student_id: int
    student_number: str
    student_name: str
    college: Optional[str]
    course: Optional[str]
    time_in: Optional[datetime]
    time_out: Optional[datetime]
    status: AttendanceStatus
    created_at: datetime


@dataclass(frozen=True)
class EventRecordList:
    event: Event
    records: List[EventRecordRow]

    @property
    def total(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class StudentHistory:
    student: Student
    events: List[dict]
    stats: dict


def latest_per_key(
    records: Iterable[AttendanceRecord],
    key: Callable[[AttendanceRecord], Hashable],
) -> Dict[Hashable, AttendanceRecord]:
    """Latest-wins reduction: keep the most recently created record per key."""

    latest: Dict[Hashable, AttendanceRecord] = {}
    for r in records:
        k = key(r)
        current = latest.get(k)
        if current is None or r.order_key > current.order_key:
            latest[k] = r
    return latest


def percent(part: int, whole: int) -> int:
    """Whole-number percentage, rounded half up; 0 when ``whole`` is 0."""

    if whole <= 0:
        return 0
    return (part * 200 + whole) // (2 * whole)


class AttendanceReportService:
    """Attendance aggregator: statistics and listings over every record of an event.

    The record store caps each read at ``page_size`` rows, so event and student
    records are always read page by page until a short page comes back.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        events: EventRepository,
        students: StudentRepository,
        eligibility: EligibilityResolver,
        *,
        rule_factory: CompletionRuleFactory | None = None,
        page_size: int = READ_PAGE_SIZE,
    ):
        self._attendance = attendance
        self._events = events
        self._students = students
        self._eligibility = eligibility
        self._rules = rule_factory or CompletionRuleFactory()
        self._page_size = int(page_size)

    def fetch_event_records(self, event_id: int) -> List[AttendanceRecord]:
        return fetch_all_pages(
            lambda offset, limit: self._attendance.list_event_page(event_id=event_id, offset=offset, limit=limit),
            page_size=self._page_size,
        )

    def compute_event_stats(self, event_id: int) -> EventStats:
        event = self._require_event(event_id)
        latest = latest_per_key(self.fetch_event_records(event.event_id), key=lambda r: r.student_id)

        # Rows written for students outside the scope (toggle scans, admin entries) are not counted.
        students = self._students.get_many(list(latest.keys()))
        rule = self._rules.for_event(event)
        attended = sum(
            1
            for r in latest.values()
            if rule.counts(r)
            and r.student_id in students
            and self._eligibility.is_eligible(students[r.student_id], event)
        )
        total_eligible = self._eligibility.count_eligible(event)

        return EventStats(
            event_id=event.event_id,
            total_eligible=total_eligible,
            attended=attended,
            percentage=percent(attended, total_eligible),
            scope_details=event.scope_details,
        )

    def list_event_records(self, event_id: int) -> EventRecordList:
        event = self._require_event(event_id)
        latest = latest_per_key(self.fetch_event_records(event.event_id), key=lambda r: r.student_id)
        students = self._students.get_many(list(latest.keys()))

        rows = [self._to_row(r, students.get(r.student_id)) for r in latest.values()]
        rows.sort(key=lambda row: (row.created_at, row.id), reverse=True)
        return EventRecordList(event=event, records=rows)

    def export_event_rows(self, event_id: int) -> Tuple[Event, List[dict]]:
        listing = self.list_event_records(event_id)

        out: List[dict] = []
        for row in sorted(listing.records, key=lambda x: x.student_name.lower()):
            out.append(
                {
                    "student_number": row.student_number,
                    "student_name": row.student_name,
                    "college": row.college or "-",
                    "course": row.course or "-",
                    "status": row.status.value,
                    "time_in": row.time_in.strftime("%H:%M:%S") if row.time_in else "Not Recorded",
                    "time_out": row.time_out.strftime("%H:%M:%S") if row.time_out else "-",
                    "date_recorded": row.created_at.strftime("%Y-%m-%d"),
                }
            )
        return listing.event, out

    def student_history(
        self,
        student_number: str,
        *,
        filter: str = "all",
        today: date | None = None,
    ) -> StudentHistory:
        if filter not in HISTORY_FILTERS:
            raise ValidationError(f"filter must be one of: {', '.join(HISTORY_FILTERS)}")
        today = today or now_local().date()

        student = self._students.get_by_number(student_number)
        if not student:
            raise NotFoundError("student", "Student not found")

        events = self._events.list_applicable(college=student.college, course=student.course)
        records = fetch_all_pages(
            lambda offset, limit: self._attendance.list_student_page(
                student_id=student.student_id, offset=offset, limit=limit
            ),
            page_size=self._page_size,
        )
        latest = latest_per_key(records, key=lambda r: r.event_id)

        items: List[dict] = []
        for event in events:
            record = latest.get(event.event_id)
            if record is not None:
                counted = self._rules.for_event(event).counts(record)
                status = HistoryStatus.ATTENDED if counted else HistoryStatus.MISSED
                details = {
                    "time_in": record.time_in,
                    "time_out": record.time_out,
                    "recorded_at": record.created_at,
                }
            elif event.event_date is not None and event.event_date < today:
                status = HistoryStatus.MISSED
                details = None
            else:
                # Not held yet; nothing to miss.
                continue

            items.append({"event": event, "attendance_status": status, "status_details": details})

        attended = sum(1 for i in items if i["attendance_status"] == HistoryStatus.ATTENDED)
        stats = {
            "total": len(items),
            "attended": attended,
            "missed": len(items) - attended,
            "attendance_rate": percent(attended, len(items)),
        }

        if filter == "attended":
            items = [i for i in items if i["attendance_status"] == HistoryStatus.ATTENDED]
        elif filter == "missed":
            items = [i for i in items if i["attendance_status"] == HistoryStatus.MISSED]

        return StudentHistory(student=student, events=items, stats=stats)

    def _require_event(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("event", "Event not found")
        return event

    @staticmethod
    def _to_row(record: AttendanceRecord, student: Optional[Student]) -> EventRecordRow:
        return EventRecordRow(
            id=record.attendance_id,
            student_id=record.student_id,
            student_number=student.student_number if student else "Unknown",
            student_name=student.name if student else "Unknown Student",
            college=student.college if student else None,
            course=student.course if student else None,
            time_in=record.time_in,
            time_out=record.time_out,
            status=classify_times(record.time_in, record.time_out),
            created_at=record.created_at,
        )
