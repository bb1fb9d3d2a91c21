from __future__ import annotations

from typing import Dict, Optional, Sequence

from ..core.constants import READ_PAGE_SIZE
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Student
from .repository import StudentRepository

_COLUMNS = "student_id, student_number, name, college, course, is_active"


def _to_student(row: dict) -> Student:
    return Student(
        student_id=int(row["student_id"]),
        student_number=str(row["student_number"]),
        name=row["name"],
        college=row.get("college"),
        course=row.get("course"),
        is_active=bool(row.get("is_active", True)),
    )


def _scope_where(college: Optional[str], course: Optional[str]) -> tuple[str, list[object]]:
    clauses = ["is_active=1"]
    params: list[object] = []
    if college is not None:
        clauses.append("college=%s")
        params.append(college)
    if course is not None:
        clauses.append("course=%s")
        params.append(course)
    return " AND ".join(clauses), params


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory, operation="student.get_by_id") as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_id=%s", (int(student_id),))
            row = fetchone(cur)
            return _to_student(row) if row else None

    def get_by_number(self, student_number: str) -> Optional[Student]:
        with db_cursor(self._conn_factory, operation="student.get_by_number") as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_number=%s", (student_number,))
            row = fetchone(cur)
            return _to_student(row) if row else None

    def get_many(self, student_ids: Sequence[int]) -> Dict[int, Student]:
        ids = sorted({int(i) for i in student_ids})
        out: Dict[int, Student] = {}
        if not ids:
            return out

        with db_cursor(self._conn_factory, operation="student.get_many") as (_, cur):
            for start in range(0, len(ids), READ_PAGE_SIZE):
                chunk = ids[start:start + READ_PAGE_SIZE]
                placeholders = ",".join(["%s"] * len(chunk))
                cur.execute(
                    f"SELECT {_COLUMNS} FROM students WHERE student_id IN ({placeholders})",
                    tuple(chunk),
                )
                for row in fetchall(cur):
                    student = _to_student(row)
                    out[student.student_id] = student
        return out

    def count_active(self, *, college: Optional[str] = None, course: Optional[str] = None) -> int:
        where, params = _scope_where(college, course)
        with db_cursor(self._conn_factory, operation="student.count_active") as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM students WHERE {where}", tuple(params))
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def list_active_page(
        self,
        *,
        college: Optional[str] = None,
        course: Optional[str] = None,
        offset: int,
        limit: int,
    ) -> Sequence[Student]:
        where, params = _scope_where(college, course)
        params.extend([int(limit), int(offset)])
        with db_cursor(self._conn_factory, operation="student.list_active_page") as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM students
                WHERE {where}
                ORDER BY student_id ASC
                LIMIT %s OFFSET %s
                """,
                tuple(params),
            )
            return [_to_student(r) for r in fetchall(cur)]
