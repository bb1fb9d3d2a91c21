from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Student:
    """Domain entity: a student as seen by attendance tracking.

    ``student_id`` is the store key; ``student_number`` is what the ID barcode encodes.
    """

    student_id: int
    student_number: str
    name: str
    college: Optional[str]
    course: Optional[str]
    is_active: bool = True
