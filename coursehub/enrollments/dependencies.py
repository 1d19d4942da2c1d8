"""FastAPI dependencies for enrollments."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends

from coursehub.enrollments.service import EnrollmentService


_enrollment_service_getter: Callable[[], EnrollmentService] | None = None


def set_enrollment_service_getter(getter: Callable[[], EnrollmentService]) -> None:
    """Set the enrollment service getter function."""
    global _enrollment_service_getter  # noqa: PLW0603 - Required for DI pattern
    _enrollment_service_getter = getter


def get_enrollment_service() -> EnrollmentService:
    if _enrollment_service_getter is None:
        msg = "EnrollmentService not configured"
        raise RuntimeError(msg)
    return _enrollment_service_getter()


EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]
