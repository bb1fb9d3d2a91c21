from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from ..core.enums import AttendanceType, ScopeType


@dataclass(frozen=True)
class Event:
    """Domain entity: the attendance-relevant view of an event.

    The scope fields decide who may be counted; ``attendance_type`` decides
    what counts as a completed attendance.
    """

    event_id: int
    title: str
    scope_type: ScopeType
    scope_college: Optional[str]
    scope_course: Optional[str]
    attendance_type: AttendanceType
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @property
    def scope_details(self) -> dict:
        return {
            "scope_type": self.scope_type.value,
            "college": self.scope_college,
            "course": self.scope_course,
        }
