from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time
from typing import Dict, List, Optional, Sequence

import pytest

from src.campus_attendance.campus_attendance.attendance.model import AttendanceRecord
from src.campus_attendance.campus_attendance.container import build_services
from src.campus_attendance.campus_attendance.core.enums import (
    AttendanceStatus,
    AttendanceType,
    ScanMode,
    ScopeType,
)
from src.campus_attendance.campus_attendance.core.exceptions import ConflictError, StoreError
from src.campus_attendance.campus_attendance.events.model import Event
from src.campus_attendance.campus_attendance.students.model import Student

# The real store never returns more than this many rows from one read.
STORE_PAGE_CEILING = 1000


class InMemoryStudents:
    def __init__(self, students: Sequence[Student] = ()):
        self._by_id: Dict[int, Student] = {s.student_id: s for s in students}
        self.page_reads = 0

    def add(self, student: Student) -> Student:
        self._by_id[student.student_id] = student
        return student

    def get_by_id(self, student_id: int) -> Optional[Student]:
        return self._by_id.get(student_id)

    def get_by_number(self, student_number: str) -> Optional[Student]:
        for s in self._by_id.values():
            if s.student_number == student_number:
                return s
        return None

    def get_many(self, student_ids: Sequence[int]) -> Dict[int, Student]:
        return {i: self._by_id[i] for i in student_ids if i in self._by_id}

    def _active(self, college: Optional[str], course: Optional[str]) -> List[Student]:
        rows = [
            s
            for s in self._by_id.values()
            if s.is_active
            and (college is None or s.college == college)
            and (course is None or s.course == course)
        ]
        return sorted(rows, key=lambda s: s.student_id)

    def count_active(self, *, college: Optional[str] = None, course: Optional[str] = None) -> int:
        return len(self._active(college, course))

    def list_active_page(
        self,
        *,
        college: Optional[str] = None,
        course: Optional[str] = None,
        offset: int,
        limit: int,
    ) -> Sequence[Student]:
        self.page_reads += 1
        limit = min(limit, STORE_PAGE_CEILING)
        return self._active(college, course)[offset : offset + limit]


class InMemoryEvents:
    def __init__(self, events: Sequence[Event] = ()):
        self._by_id: Dict[int, Event] = {e.event_id: e for e in events}

    def add(self, event: Event) -> Event:
        self._by_id[event.event_id] = event
        return event

    def get_by_id(self, event_id: int) -> Optional[Event]:
        return self._by_id.get(event_id)

    def list_applicable(self, *, college: Optional[str], course: Optional[str]) -> Sequence[Event]:
        out = []
        for e in self._by_id.values():
            if e.scope_type == ScopeType.UNIVERSITY_WIDE:
                out.append(e)
            elif e.scope_type == ScopeType.COLLEGE_WIDE and e.scope_college == college:
                out.append(e)
            elif (
                e.scope_type == ScopeType.COURSE_SPECIFIC
                and e.scope_college == college
                and e.scope_course == course
            ):
                out.append(e)
        return sorted(out, key=lambda e: (e.event_date or date.min, e.event_id), reverse=True)


class InMemoryAttendance:
    """Record store fake: one-open-row-per-pair constraint and the read ceiling included."""

    def __init__(self):
        self.rows: Dict[int, AttendanceRecord] = {}
        self._next_id = 1
        self.page_reads = 0
        # Test hooks.
        self.conflicts_to_raise = 0
        self.fail_writes = False

    def add(self, **fields) -> AttendanceRecord:
        """Seed a row directly, bypassing the scan path."""

        fields.setdefault("status", AttendanceStatus.PRESENT)
        fields.setdefault("time_out", None)
        record = AttendanceRecord(attendance_id=self._next_id, **fields)
        self.rows[record.attendance_id] = record
        self._next_id += 1
        return record

    def _active(self):
        return [r for r in self.rows.values() if not r.is_deleted]

    def _has_other_open(self, event_id: int, student_id: int, exclude: Optional[int] = None) -> bool:
        return any(
            r.is_open and r.event_id == event_id and r.student_id == student_id and r.attendance_id != exclude
            for r in self._active()
        )

    def _check_write(self):
        if self.fail_writes:
            raise StoreError("attendance.write: store operation failed")

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self.rows.get(attendance_id)

    def get_latest_for_pair(self, *, event_id: int, student_id: int) -> Optional[AttendanceRecord]:
        rows = [r for r in self._active() if r.event_id == event_id and r.student_id == student_id]
        return max(rows, key=lambda r: r.order_key) if rows else None

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
        self._check_write()
        if self.conflicts_to_raise > 0:
            self.conflicts_to_raise -= 1
            raise ConflictError("attendance.create_record: conflicting row already exists")
        if time_in is not None and time_out is None and self._has_other_open(event_id, student_id):
            raise ConflictError("attendance.create_record: conflicting row already exists")

        record = self.add(
            event_id=event_id,
            student_id=student_id,
            time_in=time_in,
            time_out=time_out,
            status=status,
            mode=mode,
            created_at=created_at,
            scanned_at=created_at if mode else None,
        )
        return record.attendance_id

    def close_record(
        self,
        *,
        attendance_id: int,
        time_in: datetime,
        time_out: datetime,
        status: AttendanceStatus,
        updated_at: datetime,
    ) -> bool:
        self._check_write()
        r = self.rows.get(attendance_id)
        if r is None or r.is_deleted or not r.is_open:
            return False
        self.rows[attendance_id] = replace(
            r,
            time_in=r.time_in or time_in,
            time_out=time_out, status=status, mode=ScanMode.SIGN_OUT, scanned_at=time_out, updated_at=updated_at
        )
        return True

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
        self._check_write()
        r = self.rows.get(attendance_id)
        if r is None or r.is_deleted:
            return False
        if time_in is not None and time_out is None and self._has_other_open(r.event_id, r.student_id, r.attendance_id):
            raise ConflictError("attendance.admin_update_record: conflicting row already exists")
        self.rows[attendance_id] = replace(
            r, time_in=time_in, time_out=time_out, status=status, scanned_at=scanned_at, updated_at=updated_at
        )
        return True

    def soft_delete(self, *, attendance_id: int, deleted_at: datetime) -> bool:
        self._check_write()
        r = self.rows.get(attendance_id)
        if r is None or r.is_deleted:
            return False
        self.rows[attendance_id] = replace(r, deleted_at=deleted_at)
        return True

    def _page(self, rows, offset: int, limit: int) -> List[AttendanceRecord]:
        self.page_reads += 1
        limit = min(limit, STORE_PAGE_CEILING)
        return sorted(rows, key=lambda r: r.order_key)[offset : offset + limit]

    def list_event_page(self, *, event_id: int, offset: int, limit: int) -> Sequence[AttendanceRecord]:
        return self._page([r for r in self._active() if r.event_id == event_id], offset, limit)

    def list_student_page(self, *, student_id: int, offset: int, limit: int) -> Sequence[AttendanceRecord]:
        return self._page([r for r in self._active() if r.student_id == student_id], offset, limit)


def make_event(
    event_id: int = 1,
    *,
    title: str = "Freshmen Orientation",
    scope_type: ScopeType = ScopeType.UNIVERSITY_WIDE,
    college: Optional[str] = None,
    course: Optional[str] = None,
    attendance_type: AttendanceType = AttendanceType.IN_OUT,
    event_date: Optional[date] = date(2025, 3, 10),
    start_time: Optional[time] = time(8, 0),
    end_time: Optional[time] = time(17, 0),
) -> Event:
    return Event(
        event_id=event_id,
        title=title,
        scope_type=scope_type,
        scope_college=college,
        scope_course=course,
        attendance_type=attendance_type,
        event_date=event_date,
        start_time=start_time,
        end_time=end_time,
    )


def make_student(
    student_id: int,
    *,
    number: Optional[str] = None,
    name: Optional[str] = None,
    college: Optional[str] = "CCS",
    course: Optional[str] = "BSCS",
    is_active: bool = True,
) -> Student:
    return Student(
        student_id=student_id,
        student_number=number or f"2021-{student_id:05d}",
        name=name or f"Student {student_id}",
        college=college,
        course=course,
        is_active=is_active,
    )


def at(hour: int, minute: int = 0, second: int = 0) -> datetime:
    """A moment on the default event date."""

    return datetime(2025, 3, 10, hour, minute, second)


@pytest.fixture
def students() -> InMemoryStudents:
    return InMemoryStudents(
        [
            make_student(1, number="2021-00001", name="Ana Reyes"),
            make_student(2, number="2021-00002", name="Ben Cruz"),
            make_student(3, number="2021-00003", name="Carla Diaz", course="BSIT"),
            make_student(4, number="2021-00004", name="Dan Lim", college="CBA", course="BSA"),
            make_student(5, number="2021-00005", name="Eve Tan", is_active=False),
        ]
    )


@pytest.fixture
def events() -> InMemoryEvents:
    return InMemoryEvents(
        [
            make_event(1, title="Freshmen Orientation"),
            make_event(2, title="Quick Assembly", attendance_type=AttendanceType.IN_ONLY),
            make_event(3, title="CCS Week", scope_type=ScopeType.COLLEGE_WIDE, college="CCS"),
            make_event(
                4,
                title="BSCS Seminar",
                scope_type=ScopeType.COURSE_SPECIFIC,
                college="CCS",
                course="BSCS",
            ),
        ]
    )


@pytest.fixture
def attendance() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def container(students, events, attendance):
    return build_services(students_repo=students, events_repo=events, attendance_repo=attendance)
