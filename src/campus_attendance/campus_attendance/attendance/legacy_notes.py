"""Read-path decoder for rows that kept their times in ``notes``.

Older rows stored ``{"timeIn": ..., "timeOut": ...}`` as JSON text in the
notes column instead of the time columns. Values are ISO timestamps or bare
``HH:MM`` clock times. Nothing writes this form any more.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Optional, Tuple

from ..common.datetime_utils import parse_clock, parse_iso_datetime

logger = logging.getLogger(__name__)


def _decode_value(value, base_date: date) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        pass
    clock = parse_clock(value)
    return datetime.combine(base_date, clock) if clock else None


def decode_time_notes(notes: Optional[str], base_date: date) -> Tuple[Optional[datetime], Optional[datetime]]:
    if not notes:
        return None, None

    try:
        payload = json.loads(notes)
    except ValueError:
        logger.debug("notes are not a time payload: %r", notes[:80])
        return None, None

    if not isinstance(payload, dict):
        return None, None

    time_in = _decode_value(payload.get("timeIn"), base_date)
    time_out = _decode_value(payload.get("timeOut"), base_date)
    if time_in is None:
        # A sign-out without a sign-in is never valid.
        time_out = None
    return time_in, time_out
