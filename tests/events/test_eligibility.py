import logging

import pytest

from conftest import InMemoryStudents, make_event, make_student
from src.campus_attendance.campus_attendance.core.enums import ScopeType
from src.campus_attendance.campus_attendance.events.eligibility import EligibilityResolver


@pytest.fixture
def resolver(students):
    return EligibilityResolver(students)


def test_university_wide_counts_every_active_student(resolver):
    assert resolver.count_eligible(make_event(scope_type=ScopeType.UNIVERSITY_WIDE)) == 4


def test_college_wide(resolver):
    event = make_event(scope_type=ScopeType.COLLEGE_WIDE, college="CCS")

    assert resolver.count_eligible(event) == 3
    assert [s.student_id for s in resolver.list_eligible(event)] == [1, 2, 3]


def test_course_specific_uses_college_and_course(resolver):
    event = make_event(scope_type=ScopeType.COURSE_SPECIFIC, college="CCS", course="BSCS")

    assert resolver.count_eligible(event) == 2


def test_course_specific_without_college_filters_by_course_only(resolver):
    assert resolver.count_eligible(make_event(scope_type=ScopeType.COURSE_SPECIFIC, course="BSA")) == 1


def test_college_wide_without_college_falls_back_to_everyone(resolver, caplog):
    with caplog.at_level(logging.WARNING):
        total = resolver.count_eligible(make_event(scope_type=ScopeType.COLLEGE_WIDE))

    assert total == 4
    assert "COLLEGE_WIDE without scope_college" in caplog.text


def test_course_specific_without_course_falls_back_to_college(resolver, caplog):
    with caplog.at_level(logging.WARNING):
        total = resolver.count_eligible(make_event(scope_type=ScopeType.COURSE_SPECIFIC, college="CCS"))

    assert total == 3
    assert "without scope_course" in caplog.text


def test_course_specific_without_course_or_college_falls_back_to_everyone(resolver):
    assert resolver.count_eligible(make_event(scope_type=ScopeType.COURSE_SPECIFIC)) == 4


def test_is_eligible(resolver, students):
    seminar = make_event(scope_type=ScopeType.COURSE_SPECIFIC, college="CCS", course="BSCS")

    assert resolver.is_eligible(students.get_by_id(1), seminar)
    assert not resolver.is_eligible(students.get_by_id(3), seminar)
    assert not resolver.is_eligible(students.get_by_id(4), seminar)


def test_inactive_students_are_never_eligible(resolver, students):
    assert not resolver.is_eligible(students.get_by_id(5), make_event())


def test_list_eligible_reads_past_the_store_ceiling():
    students = InMemoryStudents([make_student(i) for i in range(1, 2501)])
    resolver = EligibilityResolver(students)

    eligible = resolver.list_eligible(make_event())

    assert len(eligible) == 2500
    assert len({s.student_id for s in eligible}) == 2500
    assert students.page_reads == 3
