from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus


class CompletionRule(ABC):
    """Strategy Pattern: decides when a record counts as attended."""

    @abstractmethod
    def is_complete(self, *, time_in: Optional[datetime], time_out: Optional[datetime]) -> bool:
        raise NotImplementedError

    def status_for(self, time_in: Optional[datetime], time_out: Optional[datetime]) -> AttendanceStatus:
        """Status to store on a row with these times."""

        if self.is_complete(time_in=time_in, time_out=time_out):
            return AttendanceStatus.PRESENT
        if time_in is not None:
            return AttendanceStatus.SIGNED_IN_ONLY
        return AttendanceStatus.ABSENT

    def counts(self, record) -> bool:
        return self.is_complete(time_in=record.time_in, time_out=record.time_out)
