"""FastAPI dependencies for instructor applications."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends

from coursehub.instructors.service import InstructorService


_instructor_service_getter: Callable[[], InstructorService] | None = None


def set_instructor_service_getter(getter: Callable[[], InstructorService]) -> None:
    """Set the instructor service getter function."""
    global _instructor_service_getter  # noqa: PLW0603 - Required for DI pattern
    _instructor_service_getter = getter


def get_instructor_service() -> InstructorService:
    if _instructor_service_getter is None:
        msg = "InstructorService not configured"
        raise RuntimeError(msg)
    return _instructor_service_getter()


InstructorServiceDep = Annotated[InstructorService, Depends(get_instructor_service)]
