from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles resolved by the auth collaborator and stored in the session."""

    ADMIN = "ADMIN"
    COLLEGE_ORG = "COLLEGE_ORG"
    COURSE_ORG = "COURSE_ORG"
    STUDENT = "STUDENT"


class AttendanceStatus(str, Enum):
    """Status tag stored on attendance rows and shown in record listings."""

    PRESENT = "PRESENT"
    SIGNED_IN_ONLY = "SIGNED_IN_ONLY"
    INCOMPLETE = "INCOMPLETE"
    ABSENT = "ABSENT"


class ScanMode(str, Enum):
    SIGN_IN = "SIGN_IN"
    SIGN_OUT = "SIGN_OUT"


class ScopeType(str, Enum):
    """Breadth of the student population an event applies to."""

    UNIVERSITY_WIDE = "UNIVERSITY_WIDE"
    COLLEGE_WIDE = "COLLEGE_WIDE"
    COURSE_SPECIFIC = "COURSE_SPECIFIC"


class AttendanceType(str, Enum):
    IN_ONLY = "IN_ONLY"
    IN_OUT = "IN_OUT"


class HistoryStatus(str, Enum):
    ATTENDED = "ATTENDED"
    MISSED = "MISSED"
