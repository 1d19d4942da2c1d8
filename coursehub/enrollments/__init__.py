"""Enrollments: capacity-bounded course membership with progress tracking."""

from coursehub.enrollments.models import (
    ENROLLMENTS_TABLES_CQL,
    Enrollment,
    EnrollmentStatus,
)


__all__ = ["ENROLLMENTS_TABLES_CQL", "Enrollment", "EnrollmentStatus"]
