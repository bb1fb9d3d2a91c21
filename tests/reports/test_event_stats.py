from datetime import datetime, timedelta

import pytest

from conftest import InMemoryAttendance, InMemoryEvents, InMemoryStudents, at, make_event, make_student
from src.campus_attendance.campus_attendance.container import build_services
from src.campus_attendance.campus_attendance.core.enums import AttendanceStatus, AttendanceType, ScopeType
from src.campus_attendance.campus_attendance.core.exceptions import NotFoundError
from src.campus_attendance.campus_attendance.reports.service import latest_per_key, percent


def _scan(container, event_id, number, *times):
    for t in times:
        container.scan_service.record_scan(event_id, number, now=t)


def test_in_out_event_counts_only_completed_records(container):
    _scan(container, 1, "2021-00001", at(8, 0), at(11, 0))
    _scan(container, 1, "2021-00002", at(8, 5))

    stats = container.report_service.compute_event_stats(1)

    assert stats.total_eligible == 4
    assert stats.attended == 1
    assert stats.percentage == 25
    assert stats.scope_details == {"scope_type": "UNIVERSITY_WIDE", "college": None, "course": None}


def test_in_only_event_counts_sign_ins(container):
    _scan(container, 2, "2021-00001", at(8, 0), at(11, 0))
    _scan(container, 2, "2021-00002", at(8, 5))

    stats = container.report_service.compute_event_stats(2)

    assert stats.attended == 2
    assert stats.percentage == 50


def test_latest_record_wins(container):
    # Completed once, then signed in again: only the open latest row is judged.
    _scan(container, 1, "2021-00001", at(8, 0), at(9, 0), at(10, 0))

    assert container.report_service.compute_event_stats(1).attended == 0

    _scan(container, 1, "2021-00001", at(11, 0))

    assert container.report_service.compute_event_stats(1).attended == 1


def test_college_scope_statistics(container):
    _scan(container, 3, "2021-00003", at(9, 0), at(10, 0))

    stats = container.report_service.compute_event_stats(3)

    assert stats.total_eligible == 3
    assert stats.attended == 1
    assert stats.percentage == 33
    assert stats.scope_details["college"] == "CCS"


def test_out_of_scope_and_inactive_students_are_not_counted(container, attendance):
    # Event 4 is BSCS only: students 1 and 2 are eligible.
    for number in ("2021-00001", "2021-00003", "2021-00004", "2021-00005"):
        _scan(container, 4, number, at(9, 0), at(10, 0))
    attendance.add(event_id=4, student_id=99, time_in=at(9, 0), time_out=at(10, 0), created_at=at(9, 0))

    stats = container.report_service.compute_event_stats(4)

    assert stats.total_eligible == 2
    assert stats.attended == 1
    assert stats.percentage == 50
    assert container.report_service.list_event_records(4).total == 5


def test_zero_eligible_gives_zero_percent(container, events):
    events.add(make_event(20, scope_type=ScopeType.COLLEGE_WIDE, college="CEN", attendance_type=AttendanceType.IN_ONLY))
    # The toggle path does not check scope, so a record can exist for nobody eligible.
    _scan(container, 20, "2021-00001", at(9, 0))

    stats = container.report_service.compute_event_stats(20)

    assert stats.total_eligible == 0
    assert stats.attended == 0
    assert stats.percentage == 0


def test_soft_deleted_records_do_not_count(container):
    _scan(container, 1, "2021-00001", at(8, 0), at(9, 0))
    record_id = container.report_service.list_event_records(1).records[0].id

    container.record_editor.soft_delete_record(record_id, event_id=1, now=at(10, 0))

    assert container.report_service.compute_event_stats(1).attended == 0


def test_stats_are_stable_without_new_writes(container):
    _scan(container, 1, "2021-00001", at(8, 0), at(9, 0))
    _scan(container, 1, "2021-00003", at(8, 30))

    first = container.report_service.compute_event_stats(1)
    second = container.report_service.compute_event_stats(1)

    assert first == second


def test_unknown_event(container):
    with pytest.raises(NotFoundError):
        container.report_service.compute_event_stats(404)


def test_records_beyond_the_store_ceiling_are_counted():
    students = InMemoryStudents([make_student(i) for i in range(1, 1501)])
    events = InMemoryEvents([make_event(1, attendance_type=AttendanceType.IN_ONLY)])
    attendance = InMemoryAttendance()
    start = datetime(2025, 3, 10, 8, 0)
    for i in range(1, 1501):
        moment = start + timedelta(seconds=i)
        attendance.add(event_id=1, student_id=i, time_in=moment, created_at=moment)
    container = build_services(students_repo=students, events_repo=events, attendance_repo=attendance)

    stats = container.report_service.compute_event_stats(1)

    assert stats.total_eligible == 1500
    assert stats.attended == 1500
    assert stats.percentage == 100
    assert attendance.page_reads == 2


def test_latest_wins_across_page_boundaries():
    students = InMemoryStudents([make_student(i) for i in range(1, 1201)])
    events = InMemoryEvents([make_event(1)])
    attendance = InMemoryAttendance()
    start = datetime(2025, 3, 10, 8, 0)
    # Student 1: completed on page one, re-opened on page two.
    attendance.add(event_id=1, student_id=1, time_in=start, time_out=start + timedelta(minutes=1), created_at=start)
    for i in range(2, 1201):
        moment = start + timedelta(seconds=i)
        attendance.add(event_id=1, student_id=i, time_in=moment, time_out=moment + timedelta(hours=1), created_at=moment)
    late = start + timedelta(hours=2)
    attendance.add(
        event_id=1, student_id=1, time_in=late, created_at=late, status=AttendanceStatus.SIGNED_IN_ONLY
    )
    container = build_services(students_repo=students, events_repo=events, attendance_repo=attendance)

    stats = container.report_service.compute_event_stats(1)
    listing = container.report_service.list_event_records(1)

    assert stats.attended == 1199
    assert listing.total == 1200
    assert listing.records[0].student_id == 1
    assert listing.records[0].status == AttendanceStatus.SIGNED_IN_ONLY


def test_listing_shows_latest_row_per_student_newest_first(container, attendance):
    _scan(container, 1, "2021-00001", at(8, 0), at(9, 0))
    _scan(container, 1, "2021-00002", at(8, 30))
    container.record_editor.create_record(1, "2021-00003", {}, now=at(10, 0))
    attendance.add(event_id=1, student_id=99, time_in=at(7, 0), created_at=at(7, 0))

    listing = container.report_service.list_event_records(1)

    assert listing.total == 4
    assert [r.student_name for r in listing.records] == ["Carla Diaz", "Ben Cruz", "Ana Reyes", "Unknown Student"]
    assert [r.status for r in listing.records] == [
        AttendanceStatus.INCOMPLETE,
        AttendanceStatus.SIGNED_IN_ONLY,
        AttendanceStatus.PRESENT,
        AttendanceStatus.SIGNED_IN_ONLY,
    ]
    assert listing.records[2].time_out == at(9, 0)


def test_export_rows_sorted_by_name(container):
    _scan(container, 1, "2021-00002", at(8, 30))
    _scan(container, 1, "2021-00001", at(8, 0), at(9, 15))

    event, rows = container.report_service.export_event_rows(1)

    assert event.title == "Freshmen Orientation"
    assert rows == [
        {
            "student_number": "2021-00001",
            "student_name": "Ana Reyes",
            "college": "CCS",
            "course": "BSCS",
            "status": "PRESENT",
            "time_in": "08:00:00",
            "time_out": "09:15:00",
            "date_recorded": "2025-03-10",
        },
        {
            "student_number": "2021-00002",
            "student_name": "Ben Cruz",
            "college": "CCS",
            "course": "BSCS",
            "status": "SIGNED_IN_ONLY",
            "time_in": "08:30:00",
            "time_out": "-",
            "date_recorded": "2025-03-10",
        },
    ]


@pytest.mark.parametrize(
    "part, whole, expected",
    [(0, 0, 0), (5, 0, 0), (1, 8, 13), (1, 3, 33), (2, 3, 67), (3, 3, 100), (1, 200, 1), (1, 201, 0)],
)
def test_percent_rounds_half_up(part, whole, expected):
    assert percent(part, whole) == expected


def test_latest_per_key_breaks_created_at_ties_by_id(attendance):
    a = attendance.add(event_id=1, student_id=1, time_in=at(8, 0), created_at=at(8, 0))
    b = attendance.add(event_id=1, student_id=1, time_in=at(8, 0), created_at=at(8, 0))

    assert latest_per_key([b, a], key=lambda r: r.student_id)[1] is b
