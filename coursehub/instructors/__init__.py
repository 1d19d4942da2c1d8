"""Instructor applications: students apply, admins approve or reject."""

from coursehub.instructors.models import (
    INSTRUCTORS_TABLES_CQL,
    ApplicationStatus,
    InstructorApplication,
)


__all__ = [
    "INSTRUCTORS_TABLES_CQL",
    "ApplicationStatus",
    "InstructorApplication",
]
