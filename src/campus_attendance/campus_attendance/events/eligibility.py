from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..common.pagination import fetch_all_pages
from ..core.constants import READ_PAGE_SIZE
from ..core.enums import ScopeType
from ..students.model import Student
from ..students.repository import StudentRepository
from .model import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeFilter:
    """Equality filters on the student population; ``None`` leaves a field unfiltered."""

    college: Optional[str] = None
    course: Optional[str] = None

    def matches(self, student: Student) -> bool:
        if not student.is_active:
            return False
        if self.college is not None and student.college != self.college:
            return False
        if self.course is not None and student.course != self.course:
            return False
        return True


class EligibilityResolver:
    """Decides which students an event's statistics are computed over.

    UNIVERSITY_WIDE covers every active student, COLLEGE_WIDE narrows to one
    college and COURSE_SPECIFIC to one course (and its college when the event
    names it). A scope missing the field it needs falls back to the next wider
    population and logs a warning.
    """

    def __init__(self, students: StudentRepository, *, page_size: int = READ_PAGE_SIZE):
        self._students = students
        self._page_size = int(page_size)

    def scope_filter(self, event: Event) -> ScopeFilter:
        if event.scope_type == ScopeType.UNIVERSITY_WIDE:
            return ScopeFilter()

        if event.scope_type == ScopeType.COLLEGE_WIDE:
            if not event.scope_college:
                logger.warning(
                    "event %s is COLLEGE_WIDE without scope_college; counting all active students",
                    event.event_id,
                )
                return ScopeFilter()
            return ScopeFilter(college=event.scope_college)

        if event.scope_course:
            return ScopeFilter(college=event.scope_college or None, course=event.scope_course)

        if event.scope_college:
            logger.warning(
                "event %s is COURSE_SPECIFIC without scope_course; counting college %r",
                event.event_id,
                event.scope_college,
            )
            return ScopeFilter(college=event.scope_college)

        logger.warning(
            "event %s is COURSE_SPECIFIC without scope_course or scope_college; counting all active students",
            event.event_id,
        )
        return ScopeFilter()

    def count_eligible(self, event: Event) -> int:
        scope = self.scope_filter(event)
        return self._students.count_active(college=scope.college, course=scope.course)

    def list_eligible(self, event: Event) -> List[Student]:
        scope = self.scope_filter(event)
        return fetch_all_pages(
            lambda offset, limit: self._students.list_active_page(
                college=scope.college,
                course=scope.course,
                offset=offset,
                limit=limit,
            ),
            page_size=self._page_size,
        )

    def is_eligible(self, student: Student, event: Event) -> bool:
        return self.scope_filter(event).matches(student)
