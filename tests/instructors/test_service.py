"""Tests for the instructor application workflow."""

import asyncio
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from coursehub.activity.models import ActivityType
from coursehub.auth.permissions import InstructorStatus, UserRole
from coursehub.core.errors import BadRequestError, ForbiddenError
from coursehub.instructors.models import ApplicationStatus
from coursehub.instructors.service import (
    AlreadyInstructorError,
    ApplicationAlreadyReviewedError,
    ApplicationNotFoundError,
    ApplicationPendingError,
)
from tests.fakes import FakeStack, actor_for, seed_user


class TestApply:
    @pytest.mark.asyncio
    async def test_apply_marks_user_pending(self, stack: FakeStack, student) -> None:
        application = await stack.instructors.apply(
            actor_for(student), bio="Lecturer", expertise="Python"
        )

        assert application.status == ApplicationStatus.PENDING.value
        assert application.expertise == "Python"
        user = await stack.users.get_by_id(student.id)
        assert user.instructor_status == InstructorStatus.PENDING.value
        assert user.role == UserRole.STUDENT.value

    @pytest.mark.asyncio
    async def test_second_pending_application_conflicts(self, stack: FakeStack, student) -> None:
        await stack.instructors.apply(actor_for(student))

        with pytest.raises(ApplicationPendingError):
            await stack.instructors.apply(actor_for(student))

    @pytest.mark.asyncio
    async def test_instructor_cannot_apply(self, stack: FakeStack, instructor) -> None:
        with pytest.raises(AlreadyInstructorError):
            await stack.instructors.apply(actor_for(instructor))

    @pytest.mark.asyncio
    async def test_admin_cannot_apply(self, stack: FakeStack, admin) -> None:
        with pytest.raises(ForbiddenError):
            await stack.instructors.apply(actor_for(admin))

    @pytest.mark.asyncio
    async def test_reapply_after_rejection(self, stack: FakeStack, student, admin) -> None:
        first = await stack.instructors.apply(actor_for(student))
        await stack.instructors.review(
            actor_for(admin), first.id, ApplicationStatus.REJECTED, "Not enough detail"
        )

        second = await stack.instructors.apply(actor_for(student))

        assert second.id != first.id
        assert len(await stack.instructors.get_my_applications(actor_for(student))) == 2


class TestReview:
    @pytest.mark.asyncio
    async def test_approval_grants_instructor_role(
        self, stack: FakeStack, student, admin
    ) -> None:
        application = await stack.instructors.apply(actor_for(student))

        reviewed = await stack.instructors.review(
            actor_for(admin), application.id, ApplicationStatus.APPROVED
        )

        assert reviewed.status == ApplicationStatus.APPROVED.value
        assert reviewed.reviewed_by == admin.id
        assert reviewed.reviewed_at is not None
        user = await stack.users.get_by_id(student.id)
        assert user.role == UserRole.INSTRUCTOR.value
        assert user.instructor_status == InstructorStatus.APPROVED.value

        entry = next(
            e
            for e in stack.activity_repo.entries
            if e.type == ActivityType.INSTRUCTOR_APPROVED.value
        )
        assert entry.actor_id == admin.id
        assert entry.target_user_id == student.id

    @pytest.mark.asyncio
    async def test_rejection_keeps_role_and_records_reason(
        self, stack: FakeStack, student, admin
    ) -> None:
        application = await stack.instructors.apply(actor_for(student))

        reviewed = await stack.instructors.review(
            actor_for(admin), application.id, ApplicationStatus.REJECTED, "  Too vague  "
        )

        assert reviewed.reason == "Too vague"
        user = await stack.users.get_by_id(student.id)
        assert user.role == UserRole.STUDENT.value
        assert user.instructor_status == InstructorStatus.REJECTED.value

    @pytest.mark.asyncio
    async def test_rejection_requires_reason(self, stack: FakeStack, student, admin) -> None:
        application = await stack.instructors.apply(actor_for(student))

        with pytest.raises(BadRequestError):
            await stack.instructors.review(
                actor_for(admin), application.id, ApplicationStatus.REJECTED, "   "
            )

    @pytest.mark.asyncio
    async def test_reviewed_application_is_final(
        self, stack: FakeStack, student, admin
    ) -> None:
        application = await stack.instructors.apply(actor_for(student))
        await stack.instructors.review(
            actor_for(admin), application.id, ApplicationStatus.REJECTED, "No"
        )

        with pytest.raises(ApplicationAlreadyReviewedError):
            await stack.instructors.review(
                actor_for(admin), application.id, ApplicationStatus.APPROVED
            )

    @pytest.mark.asyncio
    async def test_unknown_application(self, stack: FakeStack, admin) -> None:
        with pytest.raises(ApplicationNotFoundError):
            await stack.instructors.review(
                actor_for(admin), uuid4(), ApplicationStatus.APPROVED
            )

    @pytest.mark.asyncio
    async def test_decision_email(self) -> None:
        email_service = Mock()
        email_service.send_application_decision = AsyncMock(return_value=True)
        stack = FakeStack(email_service=email_service)
        applicant = seed_user(stack, UserRole.STUDENT)
        reviewer = seed_user(stack, UserRole.ADMIN)
        application = await stack.instructors.apply(actor_for(applicant))

        await stack.instructors.review(
            actor_for(reviewer), application.id, ApplicationStatus.APPROVED
        )
        await asyncio.sleep(0)

        email_service.send_application_decision.assert_awaited_once_with(
            to=applicant.email, user_name=applicant.name, approved=True, reason=None
        )


class TestListApplications:
    @pytest.mark.asyncio
    async def test_filter_by_status(self, stack: FakeStack, admin) -> None:
        pending_user = seed_user(stack)
        approved_user = seed_user(stack)
        await stack.instructors.apply(actor_for(pending_user))
        approved = await stack.instructors.apply(actor_for(approved_user))
        await stack.instructors.review(
            actor_for(admin), approved.id, ApplicationStatus.APPROVED
        )

        pending = await stack.instructors.list_applications(ApplicationStatus.PENDING)
        everything = await stack.instructors.list_applications()

        assert [a.user_id for a in pending] == [pending_user.id]
        assert len(everything) == 2
