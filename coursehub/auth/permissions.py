"""Roles and capability checks.

Every authorization decision that depends on more than the caller's role goes
through one of the named capability checks below, so routers and services
never compare role strings ad hoc.

- ADMIN: reviews instructor applications and courses, sees everything
- INSTRUCTOR: owns and manages their own courses
- STUDENT: enrolls, pays, reviews
"""

from enum import Enum
from typing import Protocol
from uuid import UUID


class UserRole(str, Enum):
    """Closed set of user roles."""

    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    """Account verification state."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"


class InstructorStatus(str, Enum):
    """Instructor application sub-state kept on the user record."""

    NOT_APPLIED = "not_applied"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Actor(Protocol):
    """Anything identifying the caller (token identity or stored user)."""

    id: UUID
    role: UserRole | str


class OwnedCourse(Protocol):
    instructor_id: UUID


def _role(value: UserRole | str) -> UserRole | None:
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(value)
    except ValueError:
        return None


def is_admin(actor: Actor) -> bool:
    """Check if the caller is an administrator."""
    return _role(actor.role) == UserRole.ADMIN


def is_instructor(actor: Actor) -> bool:
    """Check if the caller holds the (approved) INSTRUCTOR role."""
    return _role(actor.role) == UserRole.INSTRUCTOR


def owns_course(actor: Actor, course: OwnedCourse) -> bool:
    """Check if the caller is the course's owning instructor."""
    return str(actor.id) == str(course.instructor_id)


def can_create_course(actor: Actor) -> bool:
    """Only approved instructors create courses."""
    return is_instructor(actor)


def can_manage_course(actor: Actor, course: OwnedCourse) -> bool:
    """Owner or admin may edit a course and its modules/lessons.

    Examples:
        >>> can_manage_course(admin, course)
        True
        >>> can_manage_course(other_instructor, course)
        False
    """
    return is_admin(actor) or owns_course(actor, course)


def can_view_course_enrollments(actor: Actor, course: OwnedCourse) -> bool:
    """Owner or admin may list a course's enrollments, payments and activity."""
    return is_admin(actor) or owns_course(actor, course)
