from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.enums import ScanMode
from .model import AttendanceRecord


class ScanState(str, Enum):
    """State of a (event, student) pair as seen through its latest record."""

    ABSENT = "ABSENT"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ScanAction(str, Enum):
    IN = "in"
    OUT = "out"

    @property
    def mode(self) -> ScanMode:
        return ScanMode.SIGN_IN if self is ScanAction.IN else ScanMode.SIGN_OUT


@dataclass(frozen=True)
class ScanDecision:
    state: ScanState
    action: ScanAction
    # The open record to close; only set for ScanAction.OUT.
    record: Optional[AttendanceRecord] = None


def state_of(latest: Optional[AttendanceRecord]) -> ScanState:
    # A row with no time-in (admin-entered absence) cannot be signed out of.
    if latest is None or latest.is_deleted or latest.time_in is None:
        return ScanState.ABSENT
    if latest.time_out is not None:
        return ScanState.CLOSED
    return ScanState.OPEN


def decide_scan(latest: Optional[AttendanceRecord]) -> ScanDecision:
    """Infer the direction of a scan from the latest record of the pair.

    ABSENT and CLOSED start a new sign-in row; OPEN closes that row.
    """

    state = state_of(latest)
    if state is ScanState.OPEN:
        return ScanDecision(state=state, action=ScanAction.OUT, record=latest)
    return ScanDecision(state=state, action=ScanAction.IN)
