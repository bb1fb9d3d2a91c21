from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import AttendanceType
from ..events.model import Event
from .rules.base import CompletionRule
from .rules.in_only_rule import InOnlyRule
from .rules.in_out_rule import InOutRule


@dataclass
class CompletionRuleFactory:
    """Factory Pattern: one completion rule per event attendance type.

    Scans, admin edits, statistics and student history all go through here,
    so a record is judged the same way everywhere.
    """

    def for_type(self, attendance_type: AttendanceType) -> CompletionRule:
        if attendance_type == AttendanceType.IN_ONLY:
            return InOnlyRule()
        return InOutRule()

    def for_event(self, event: Event) -> CompletionRule:
        return self.for_type(event.attendance_type)
