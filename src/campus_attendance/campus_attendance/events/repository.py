from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Event


class EventRepository(Protocol):
    def get_by_id(self, event_id: int) -> Optional[Event]:
        raise NotImplementedError

    def list_applicable(self, *, college: Optional[str], course: Optional[str]) -> Sequence[Event]:
        """Events whose scope contains a student of ``college``/``course``, newest first."""

        raise NotImplementedError
