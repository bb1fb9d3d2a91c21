from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .model import Event


@dataclass(frozen=True)
class WindowCheck:
    is_active: bool
    message: str


def check_event_window(event: Event, now: datetime) -> WindowCheck:
    """Is ``now`` inside the event's scheduled time window?

    The end time is inclusive up to the end of that minute.
    """

    if event.event_date is None or event.start_time is None or event.end_time is None:
        return WindowCheck(False, "Event schedule is incomplete. Please contact an administrator.")

    day = event.event_date.strftime("%Y-%m-%d")
    if now.date() < event.event_date:
        return WindowCheck(False, f"Attendance not yet available. Event is scheduled for {day}.")
    if now.date() > event.event_date:
        return WindowCheck(False, f"Attendance is no longer available. Event was on {day}.")

    starts = datetime.combine(event.event_date, event.start_time)
    ends = datetime.combine(event.event_date, event.end_time.replace(second=0, microsecond=0)) + timedelta(
        minutes=1
    )

    if now < starts:
        minutes = math.ceil((starts - now).total_seconds() / 60)
        return WindowCheck(
            False,
            f"Attendance not yet available. Event starts at {event.start_time:%H:%M} ({minutes} minutes from now).",
        )
    if now >= ends:
        minutes = math.ceil((now - ends).total_seconds() / 60)
        return WindowCheck(
            False,
            f"Attendance is no longer available. Event ended at {event.end_time:%H:%M} ({minutes} minutes ago).",
        )

    remaining = math.ceil((ends - now).total_seconds() / 60)
    return WindowCheck(True, f"Event is currently active. Time remaining: {remaining} minutes.")
