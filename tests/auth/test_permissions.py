"""Tests for auth permissions."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from coursehub.auth.permissions import (
    UserRole,
    can_create_course,
    can_manage_course,
    can_view_course_enrollments,
    is_admin,
    is_instructor,
    owns_course,
)


def _actor(role: UserRole | str):
    return SimpleNamespace(id=uuid4(), role=role)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        assert UserRole.STUDENT.value == "STUDENT"
        assert UserRole.INSTRUCTOR.value == "INSTRUCTOR"
        assert UserRole.ADMIN.value == "ADMIN"

    def test_closed_set(self) -> None:
        with pytest.raises(ValueError):
            UserRole("TEACHER")


class TestRoleChecks:
    @pytest.mark.parametrize("role", [UserRole.ADMIN, "ADMIN"])
    def test_is_admin(self, role) -> None:
        assert is_admin(_actor(role)) is True

    @pytest.mark.parametrize("role", [UserRole.STUDENT, UserRole.INSTRUCTOR, "bogus"])
    def test_is_not_admin(self, role) -> None:
        assert is_admin(_actor(role)) is False

    def test_is_instructor(self) -> None:
        assert is_instructor(_actor(UserRole.INSTRUCTOR)) is True
        assert is_instructor(_actor(UserRole.STUDENT)) is False

    def test_only_instructors_create_courses(self) -> None:
        assert can_create_course(_actor(UserRole.INSTRUCTOR)) is True
        assert can_create_course(_actor(UserRole.ADMIN)) is False
        assert can_create_course(_actor(UserRole.STUDENT)) is False


class TestCourseCapabilities:
    """Owner-or-admin checks."""

    def test_owner_manages_course(self) -> None:
        owner = _actor(UserRole.INSTRUCTOR)
        course = SimpleNamespace(instructor_id=owner.id)
        assert owns_course(owner, course) is True
        assert can_manage_course(owner, course) is True
        assert can_view_course_enrollments(owner, course) is True

    def test_owner_matches_across_id_types(self) -> None:
        owner = _actor(UserRole.INSTRUCTOR)
        course = SimpleNamespace(instructor_id=str(owner.id))
        assert owns_course(owner, course) is True

    def test_admin_manages_any_course(self) -> None:
        course = SimpleNamespace(instructor_id=uuid4())
        assert can_manage_course(_actor(UserRole.ADMIN), course) is True
        assert can_view_course_enrollments(_actor(UserRole.ADMIN), course) is True

    @pytest.mark.parametrize("role", [UserRole.INSTRUCTOR, UserRole.STUDENT])
    def test_others_cannot_manage(self, role: UserRole) -> None:
        course = SimpleNamespace(instructor_id=uuid4())
        assert can_manage_course(_actor(role), course) is False
        assert can_view_course_enrollments(_actor(role), course) is False
