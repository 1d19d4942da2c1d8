"""Course catalog module.

Courses with a review lifecycle (DRAFT -> PENDING_REVIEW -> APPROVED ->
PUBLISHED, or REJECTED), ordered modules and lessons, and lesson resources.

Note: Services and router are imported directly from their modules.
"""

from coursehub.courses.models import (
    COURSES_TABLES_CQL,
    Course,
    CourseLevel,
    CourseStatus,
    Lesson,
    LessonContentType,
    LessonResource,
    LessonStatus,
    Module,
    ResourceType,
)


__all__ = [
    "COURSES_TABLES_CQL",
    "Course",
    "CourseLevel",
    "CourseStatus",
    "Lesson",
    "LessonContentType",
    "LessonResource",
    "LessonStatus",
    "Module",
    "ResourceType",
]
