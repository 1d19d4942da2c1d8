"""FastAPI dependencies for the course catalog.

Service getters are set by main.py at startup (tests swap them for fakes).
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends

from coursehub.courses.service import CourseService, LessonService, ModuleService


# ==============================================================================
# Service Getters (set by main.py)
# ==============================================================================

_course_service_getter: Callable[[], CourseService] | None = None
_module_service_getter: Callable[[], ModuleService] | None = None
_lesson_service_getter: Callable[[], LessonService] | None = None


def set_course_service_getter(getter: Callable[[], CourseService]) -> None:
    """Set the course service getter function."""
    global _course_service_getter  # noqa: PLW0603 - Required for DI pattern
    _course_service_getter = getter


def set_module_service_getter(getter: Callable[[], ModuleService]) -> None:
    """Set the module service getter function."""
    global _module_service_getter  # noqa: PLW0603 - Required for DI pattern
    _module_service_getter = getter


def set_lesson_service_getter(getter: Callable[[], LessonService]) -> None:
    """Set the lesson service getter function."""
    global _lesson_service_getter  # noqa: PLW0603 - Required for DI pattern
    _lesson_service_getter = getter


def get_course_service() -> CourseService:
    if _course_service_getter is None:
        msg = "CourseService not configured"
        raise RuntimeError(msg)
    return _course_service_getter()


def get_module_service() -> ModuleService:
    if _module_service_getter is None:
        msg = "ModuleService not configured"
        raise RuntimeError(msg)
    return _module_service_getter()


def get_lesson_service() -> LessonService:
    if _lesson_service_getter is None:
        msg = "LessonService not configured"
        raise RuntimeError(msg)
    return _lesson_service_getter()


# ==============================================================================
# Type Aliases for Dependencies
# ==============================================================================

CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
ModuleServiceDep = Annotated[ModuleService, Depends(get_module_service)]
LessonServiceDep = Annotated[LessonService, Depends(get_lesson_service)]
