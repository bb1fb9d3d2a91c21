from __future__ import annotations

from datetime import datetime
from typing import Optional

from .base import CompletionRule


class InOnlyRule(CompletionRule):
    """Signing in is enough; a time-out is optional."""

    def is_complete(self, *, time_in: Optional[datetime], time_out: Optional[datetime]) -> bool:
        return time_in is not None
