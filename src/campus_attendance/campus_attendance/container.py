from __future__ import annotations

from dataclasses import dataclass

from .attendance.editor import RecordEditor
from .attendance.factory import CompletionRuleFactory
from .attendance.locks import KeyedLocks
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import ScanService
from .core.constants import READ_PAGE_SIZE, SCAN_CONFLICT_RETRIES
from .database.bootstrap import as_db_config
from .database.connection import DatabaseConnection
from .events.eligibility import EligibilityResolver
from .events.mysql_event_repository import MySQLEventRepository
from .events.repository import EventRepository
from .reports.service import AttendanceReportService
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentRepository


@dataclass(frozen=True)
class Container:
    students_repo: StudentRepository
    events_repo: EventRepository
    attendance_repo: AttendanceRepository

    eligibility: EligibilityResolver
    scan_service: ScanService
    report_service: AttendanceReportService
    record_editor: RecordEditor


def build_services(
    *,
    students_repo: StudentRepository,
    events_repo: EventRepository,
    attendance_repo: AttendanceRepository,
    page_size: int = READ_PAGE_SIZE,
    conflict_retries: int = SCAN_CONFLICT_RETRIES,
) -> Container:
    """Wire services over any repository implementations (MySQL or in-memory)."""

    rule_factory = CompletionRuleFactory()
    eligibility = EligibilityResolver(students_repo, page_size=page_size)

    scan_service = ScanService(
        attendance_repo,
        events_repo,
        students_repo,
        eligibility,
        rule_factory=rule_factory,
        locks=KeyedLocks(),
        conflict_retries=conflict_retries,
    )
    report_service = AttendanceReportService(
        attendance_repo,
        events_repo,
        students_repo,
        eligibility,
        rule_factory=rule_factory,
        page_size=page_size,
    )
    record_editor = RecordEditor(attendance_repo, events_repo, students_repo, rule_factory=rule_factory)

    return Container(
        students_repo=students_repo,
        events_repo=events_repo,
        attendance_repo=attendance_repo,
        eligibility=eligibility,
        scan_service=scan_service,
        report_service=report_service,
        record_editor=record_editor,
    )


def build_container(
    *,
    db_config: dict,
    page_size: int = READ_PAGE_SIZE,
    conflict_retries: int = SCAN_CONFLICT_RETRIES,
) -> Container:
    conn = DatabaseConnection.get_instance(as_db_config(db_config))

    return build_services(
        students_repo=MySQLStudentRepository(conn),
        events_repo=MySQLEventRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        page_size=page_size,
        conflict_retries=conflict_retries,
    )
