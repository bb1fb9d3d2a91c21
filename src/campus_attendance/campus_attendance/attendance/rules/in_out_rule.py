from __future__ import annotations

from datetime import datetime
from typing import Optional

from .base import CompletionRule


class InOutRule(CompletionRule):
    """Attended only after both signing in and signing out."""

    def is_complete(self, *, time_in: Optional[datetime], time_out: Optional[datetime]) -> bool:
        return time_in is not None and time_out is not None
