from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import SCAN_CONFLICT_RETRIES
from ..core.enums import ScanMode
from ..core.exceptions import (
    ConflictError,
    NotEligibleError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from ..events.eligibility import EligibilityResolver
from ..events.model import Event
from ..events.repository import EventRepository
from ..events.window import check_event_window
from ..students.model import Student
from ..students.repository import StudentRepository
from .factory import CompletionRuleFactory
from .locks import KeyedLocks
from .model import AttendanceRecord
from .repository import AttendanceRepository
from .scan_state import ScanAction, decide_scan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    student_name: str
    student_number: str
    student_id: int
    event_title: str
    action: ScanAction
    timestamp: datetime
    record: AttendanceRecord


@dataclass
class BulkScanResult:
    success: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.success) + len(self.failed)

    @property
    def successful(self) -> int:
        return len(self.success)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


class ScanService:
    """Scan reconciler: turns barcode scans into sign-in/sign-out writes.

    The read-decide-write sequence for one (event, student) pair runs under a
    per-pair lock; a ``ConflictError`` from the store (another process won the
    race) re-runs the sequence up to ``conflict_retries`` more times.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        events: EventRepository,
        students: StudentRepository,
        eligibility: EligibilityResolver,
        *,
        rule_factory: CompletionRuleFactory | None = None,
        locks: KeyedLocks | None = None,
        conflict_retries: int = SCAN_CONFLICT_RETRIES,
    ):
        self._attendance = attendance
        self._events = events
        self._students = students
        self._eligibility = eligibility
        self._rules = rule_factory or CompletionRuleFactory()
        self._locks = locks or KeyedLocks()
        self._conflict_retries = max(0, int(conflict_retries))

    def record_scan(self, event_id: int, barcode: str, *, now: datetime | None = None) -> ScanResult:
        """Toggle scan: the direction is inferred from the pair's latest record."""

        barcode = require_non_empty(barcode, "Barcode/Student ID")
        event = self._require_event(event_id)
        student = self._require_student(barcode)
        return self._apply(event, student, expected=None, now=now or now_local())

    def record_directed_scan(
        self,
        event_id: int,
        barcode: str,
        mode: ScanMode | str,
        *,
        admin_override: bool = False,
        now: datetime | None = None,
    ) -> ScanResult:
        """Scan with an explicit direction, checked against the event window and scope."""

        barcode = require_non_empty(barcode, "Student ID")
        mode = self._parse_mode(mode)
        now = now or now_local()

        event = self._require_event(event_id)
        self._require_open_window(event, now, admin_override=admin_override)
        student = self._require_student(barcode)
        if not self._eligibility.is_eligible(student, event):
            raise NotEligibleError("Student not eligible for this event. Nothing was saved.")

        return self._apply(event, student, expected=mode, now=now)

    def record_bulk_scan(
        self,
        event_id: int,
        barcodes: Sequence[str],
        mode: ScanMode | str,
        *,
        admin_override: bool = False,
        now: datetime | None = None,
    ) -> BulkScanResult:
        cleaned = [str(b).strip() for b in (barcodes or []) if str(b).strip()]
        if not cleaned:
            raise ValidationError("At least one student ID is required")
        mode = self._parse_mode(mode)
        now = now or now_local()

        event = self._require_event(event_id)
        self._require_open_window(event, now, admin_override=admin_override)

        result = BulkScanResult()
        for barcode in cleaned:
            try:
                student = self._students.get_by_number(barcode)
                if not student:
                    result.failed.append((barcode, "Student not found"))
                    continue
                if not self._eligibility.is_eligible(student, event):
                    result.failed.append((barcode, "Not eligible for this event"))
                    continue
                self._apply(event, student, expected=mode, now=now)
            except ValidationError as e:
                result.failed.append((barcode, str(e)))
                continue
            except (ConflictError, StoreError):
                logger.exception("bulk scan failed event_id=%s barcode=%s", event.event_id, barcode)
                result.failed.append((barcode, "Processing error"))
                continue

            result.success.append(f"{student.name} ({barcode})")

        logger.info(
            "bulk scan event_id=%s mode=%s total=%d ok=%d failed=%d",
            event.event_id,
            mode.value,
            result.total,
            result.successful,
            result.failed_count,
        )
        return result

    def _parse_mode(self, mode: ScanMode | str) -> ScanMode:
        try:
            return ScanMode(mode)
        except ValueError:
            raise ValidationError("Mode must be either SIGN_IN or SIGN_OUT")

    def _require_event(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("event", "Event not found")
        return event

    def _require_student(self, barcode: str) -> Student:
        student = self._students.get_by_number(barcode)
        if not student:
            raise NotFoundError("student", "Student not found")
        return student

    def _require_open_window(self, event: Event, now: datetime, *, admin_override: bool) -> None:
        if admin_override:
            return
        window = check_event_window(event, now)
        if not window.is_active:
            raise ValidationError(window.message)

    def _apply(self, event: Event, student: Student, *, expected: Optional[ScanMode], now: datetime) -> ScanResult:
        key = (event.event_id, student.student_id)
        with self._locks.hold(key):
            attempt = 0
            while True:
                try:
                    return self._decide_and_write(event, student, expected=expected, now=now)
                except ConflictError:
                    if attempt >= self._conflict_retries:
                        logger.error(
                            "scan conflict not resolved event_id=%s student_id=%s attempts=%d",
                            event.event_id,
                            student.student_id,
                            attempt + 1,
                        )
                        raise
                    attempt += 1
                    logger.warning(
                        "open-record conflict event_id=%s student_id=%s; retrying (%d/%d)",
                        event.event_id,
                        student.student_id,
                        attempt,
                        self._conflict_retries,
                    )
                except StoreError:
                    logger.exception(
                        "scan write failed event_id=%s student_id=%s op=record_scan",
                        event.event_id,
                        student.student_id,
                    )
                    raise

    def _decide_and_write(
        self,
        event: Event,
        student: Student,
        *,
        expected: Optional[ScanMode],
        now: datetime,
    ) -> ScanResult:
        latest = self._attendance.get_latest_for_pair(event_id=event.event_id, student_id=student.student_id)
        decision = decide_scan(latest)

        if expected is not None and decision.action.mode != expected:
            if expected == ScanMode.SIGN_IN:
                raise ValidationError("Student already signed in. Nothing was saved.")
            raise ValidationError("Student must sign in first or is already signed out. Nothing was saved.")

        rule = self._rules.for_event(event)
        if decision.action is ScanAction.IN:
            record_id = self._attendance.create_record(
                event_id=event.event_id,
                student_id=student.student_id,
                time_in=now,
                time_out=None,
                status=rule.status_for(now, None),
                mode=ScanMode.SIGN_IN,
                created_at=now,
            )
        else:
            target = decision.record
            closed = self._attendance.close_record(
                attendance_id=target.attendance_id,
                time_in=target.time_in,
                time_out=now,
                status=rule.status_for(target.time_in, now),
                updated_at=now,
            )
            if not closed:
                raise ConflictError("open record changed before sign-out was written")
            record_id = target.attendance_id

        record = self._attendance.get_by_id(record_id)
        if record is None:
            raise StoreError("scan write could not be read back")

        logger.info(
            "scan event_id=%s student_id=%s state=%s action=%s record_id=%s",
            event.event_id,
            student.student_id,
            decision.state.value,
            decision.action.value,
            record_id,
        )
        return ScanResult(
            student_name=student.name,
            student_number=student.student_number,
            student_id=student.student_id,
            event_title=event.title,
            action=decision.action,
            timestamp=now,
            record=record,
        )
