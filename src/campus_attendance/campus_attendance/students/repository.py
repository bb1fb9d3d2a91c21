from __future__ import annotations

from typing import Dict, Optional, Protocol, Sequence

from .model import Student


class StudentRepository(Protocol):
    """Student lookups consumed by attendance tracking.

    ``college``/``course`` filters are equality filters; ``None`` means no filter.
    """

    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_by_number(self, student_number: str) -> Optional[Student]:
        raise NotImplementedError

    def get_many(self, student_ids: Sequence[int]) -> Dict[int, Student]:
        raise NotImplementedError

    def count_active(self, *, college: Optional[str] = None, course: Optional[str] = None) -> int:
        raise NotImplementedError

    def list_active_page(
        self,
        *,
        college: Optional[str] = None,
        course: Optional[str] = None,
        offset: int,
        limit: int,
    ) -> Sequence[Student]:
        raise NotImplementedError
