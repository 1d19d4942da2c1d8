"""Tests for EnrollmentService: capacity, uniqueness, progress and cancellation."""

import asyncio
from uuid import uuid4

import pytest

from coursehub.activity.models import ActivityType
from coursehub.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from coursehub.courses.models import CourseStatus
from coursehub.courses.service import CourseNotFoundError
from coursehub.enrollments.models import EnrollmentStatus, progress_from_lessons
from coursehub.enrollments.service import (
    AlreadyEnrolledError,
    CourseFullError,
    CourseNotPublishedError,
    EnrollmentCancelledError,
    NotEnrolledUserError,
)
from tests.fakes import FakeStack, actor_for, seed_course, seed_lesson, seed_user


class TestProgressFromLessons:
    @pytest.mark.parametrize(
        "completed,total,expected",
        [(0, 0, 0), (0, 4, 0), (1, 4, 25), (1, 3, 33), (2, 3, 66), (3, 3, 100), (5, 3, 100)],
    )
    def test_floor_percentage(self, completed, total, expected) -> None:
        assert progress_from_lessons(completed, total) == expected


class TestEnroll:
    @pytest.mark.asyncio
    async def test_enroll_in_published_course(
        self, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)

        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)

        assert enrollment.status == EnrollmentStatus.ACTIVE.value
        assert enrollment.progress == 0
        assert enrollment.completed is False
        assert (await stack.courses.get(course.id)).enrollment_count == 1
        assert ActivityType.ENROLLMENT_CREATED.value in stack.activity_repo.types()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [
            CourseStatus.DRAFT,
            CourseStatus.PENDING_REVIEW,
            CourseStatus.APPROVED,
            CourseStatus.REJECTED,
        ],
    )
    async def test_unpublished_course_rejected(
        self, stack: FakeStack, instructor, student, status
    ) -> None:
        course = seed_course(stack, instructor, status=status)

        with pytest.raises(CourseNotPublishedError):
            await stack.enrollment_service.enroll(actor_for(student), course.id)

    @pytest.mark.asyncio
    async def test_unknown_course(self, stack: FakeStack, student) -> None:
        with pytest.raises(CourseNotFoundError):
            await stack.enrollment_service.enroll(actor_for(student), uuid4())

    @pytest.mark.asyncio
    async def test_duplicate_enrollment_conflicts(
        self, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        await stack.enrollment_service.enroll(actor_for(student), course.id)

        with pytest.raises(AlreadyEnrolledError):
            await stack.enrollment_service.enroll(actor_for(student), course.id)

        assert (await stack.courses.get(course.id)).enrollment_count == 1
        assert len(await stack.enrollments.list_by_course(course.id)) == 1

    @pytest.mark.asyncio
    async def test_concurrent_duplicates_yield_one(
        self, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        actor = actor_for(student)

        results = await asyncio.gather(
            *(stack.enrollment_service.enroll(actor, course.id) for _ in range(5)),
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, Exception)]
        assert len(created) == 1
        assert all(isinstance(r, AlreadyEnrolledError) for r in results if r not in created)
        assert (await stack.courses.get(course.id)).enrollment_count == 1

    @pytest.mark.asyncio
    async def test_capacity_is_enforced(self, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor, capacity=1)
        await stack.enrollment_service.enroll(actor_for(student), course.id)
        latecomer = seed_user(stack)

        with pytest.raises(CourseFullError):
            await stack.enrollment_service.enroll(actor_for(latecomer), course.id)

        # the failed attempt releases its claim
        assert await stack.enrollments.find_id(latecomer.id, course.id) is None
        assert (await stack.courses.get(course.id)).enrollment_count == 1

    @pytest.mark.asyncio
    async def test_cancel_frees_the_seat(self, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor, capacity=1)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)

        cancelled = await stack.enrollment_service.cancel(actor_for(student), enrollment.id)

        assert cancelled.status == EnrollmentStatus.CANCELLED.value
        assert cancelled.cancelled_at is not None
        assert (await stack.courses.get(course.id)).enrollment_count == 0

        newcomer = seed_user(stack)
        await stack.enrollment_service.enroll(actor_for(newcomer), course.id)
        assert (await stack.courses.get(course.id)).enrollment_count == 1

    @pytest.mark.asyncio
    async def test_reenroll_after_cancel_conflicts(
        self, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)
        await stack.enrollment_service.cancel(actor_for(student), enrollment.id)

        with pytest.raises(AlreadyEnrolledError):
            await stack.enrollment_service.enroll(actor_for(student), course.id)

    @pytest.mark.asyncio
    async def test_cancel_twice(self, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)
        await stack.enrollment_service.cancel(actor_for(student), enrollment.id)

        with pytest.raises(EnrollmentCancelledError):
            await stack.enrollment_service.cancel(actor_for(student), enrollment.id)

    @pytest.mark.asyncio
    async def test_only_enrolled_user_cancels(
        self, stack: FakeStack, instructor, student, admin
    ) -> None:
        course = seed_course(stack, instructor)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)

        with pytest.raises(NotEnrolledUserError):
            await stack.enrollment_service.cancel(actor_for(admin), enrollment.id)

    @pytest.mark.asyncio
    async def test_failed_release_keeps_enrollment_and_seat(
        self, stack: FakeStack, instructor, student, monkeypatch
    ) -> None:
        course = seed_course(stack, instructor, capacity=1)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)
        adjust = stack.courses.adjust_enrollment_count

        async def contended(course_id, delta, capacity=None):
            if delta < 0:
                raise ConflictError("Enrollment counter is contended")
            return await adjust(course_id, delta, capacity=capacity)

        monkeypatch.setattr(stack.courses, "adjust_enrollment_count", contended)
        with pytest.raises(ConflictError):
            await stack.enrollment_service.cancel(actor_for(student), enrollment.id)

        stored = await stack.enrollments.get(enrollment.id)
        assert stored.status == EnrollmentStatus.ACTIVE.value
        assert stored.cancelled_at is None
        assert (await stack.courses.get(course.id)).enrollment_count == 1

        monkeypatch.setattr(stack.courses, "adjust_enrollment_count", adjust)
        cancelled = await stack.enrollment_service.cancel(actor_for(student), enrollment.id)
        assert cancelled.status == EnrollmentStatus.CANCELLED.value
        assert (await stack.courses.get(course.id)).enrollment_count == 0

    @pytest.mark.asyncio
    async def test_failed_status_write_restores_the_seat(
        self, stack: FakeStack, instructor, student, monkeypatch
    ) -> None:
        course = seed_course(stack, instructor)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)

        async def unavailable(enrollment):
            raise RuntimeError("write timeout")

        monkeypatch.setattr(stack.enrollments, "save", unavailable)
        with pytest.raises(RuntimeError):
            await stack.enrollment_service.cancel(actor_for(student), enrollment.id)

        stored = await stack.enrollments.get(enrollment.id)
        assert stored.status == EnrollmentStatus.ACTIVE.value
        assert (await stack.courses.get(course.id)).enrollment_count == 1

    @pytest.mark.asyncio
    async def test_failed_insert_gives_back_seat_and_claim(
        self, stack: FakeStack, instructor, student, monkeypatch
    ) -> None:
        course = seed_course(stack, instructor, capacity=1)
        create = stack.enrollments.create

        async def unavailable(enrollment):
            raise RuntimeError("write timeout")

        monkeypatch.setattr(stack.enrollments, "create", unavailable)
        with pytest.raises(RuntimeError):
            await stack.enrollment_service.enroll(actor_for(student), course.id)

        assert (await stack.courses.get(course.id)).enrollment_count == 0
        assert await stack.enrollments.find_id(student.id, course.id) is None

        monkeypatch.setattr(stack.enrollments, "create", create)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)
        assert enrollment.status == EnrollmentStatus.ACTIVE.value
        assert (await stack.courses.get(course.id)).enrollment_count == 1


class TestEnsureEnrollment:
    @pytest.mark.asyncio
    async def test_reuses_existing(self, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)

        ensured = await stack.enrollment_service.ensure_enrollment(student.id, course.id)

        assert ensured.id == enrollment.id
        assert (await stack.courses.get(course.id)).enrollment_count == 1

    @pytest.mark.asyncio
    async def test_reactivates_cancelled(self, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)
        await stack.enrollment_service.cancel(actor_for(student), enrollment.id)

        ensured = await stack.enrollment_service.ensure_enrollment(student.id, course.id)

        assert ensured.id == enrollment.id
        assert ensured.status == EnrollmentStatus.ACTIVE.value
        assert ensured.cancelled_at is None
        assert (await stack.courses.get(course.id)).enrollment_count == 1

    @pytest.mark.asyncio
    async def test_creates_when_missing(self, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor)

        ensured = await stack.enrollment_service.ensure_enrollment(student.id, course.id)

        assert ensured.user_id == student.id
        assert await stack.enrollments.find_id(student.id, course.id) == ensured.id


class TestProgress:
    @pytest.mark.asyncio
    async def test_lessons_drive_progress_to_completion(
        self, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        first = seed_lesson(stack, course)
        second = seed_lesson(stack, course)
        seed_lesson(stack, course, published=False)
        actor = actor_for(student)
        enrollment = await stack.enrollment_service.enroll(actor, course.id)

        enrollment, done, total = await stack.enrollment_service.complete_lesson(
            actor, enrollment.id, first.id
        )
        assert (enrollment.progress, done, total) == (50, 1, 2)
        assert enrollment.completed is False

        # completing the same lesson again changes nothing
        enrollment, done, _ = await stack.enrollment_service.complete_lesson(
            actor, enrollment.id, first.id
        )
        assert (enrollment.progress, done) == (50, 1)

        enrollment, done, _ = await stack.enrollment_service.complete_lesson(
            actor, enrollment.id, second.id
        )
        assert enrollment.progress == 100
        assert enrollment.completed is True
        assert enrollment.status == EnrollmentStatus.COMPLETED.value
        assert enrollment.completed_at is not None

        types = stack.activity_repo.types()
        assert types.count(ActivityType.LESSON_COMPLETED.value) == 3
        assert types.count(ActivityType.ENROLLMENT_COMPLETED.value) == 1

    @pytest.mark.asyncio
    async def test_draft_or_foreign_lesson_is_not_found(
        self, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        other = seed_course(stack, instructor, title="Other")
        draft = seed_lesson(stack, course, published=False)
        foreign = seed_lesson(stack, other)
        actor = actor_for(student)
        enrollment = await stack.enrollment_service.enroll(actor, course.id)

        for lesson in (draft, foreign):
            with pytest.raises(NotFoundError):
                await stack.enrollment_service.complete_lesson(actor, enrollment.id, lesson.id)

    @pytest.mark.asyncio
    async def test_manual_progress(self, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor)
        actor = actor_for(student)
        enrollment = await stack.enrollment_service.enroll(actor, course.id)

        updated = await stack.enrollment_service.update_progress(actor, enrollment.id, 100)
        assert updated.completed is True

        updated = await stack.enrollment_service.update_progress(actor, enrollment.id, 40)
        assert updated.completed is False
        assert updated.status == EnrollmentStatus.ACTIVE.value
        assert updated.completed_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("progress", [-1, 101])
    async def test_progress_out_of_range(
        self, stack: FakeStack, instructor, student, progress
    ) -> None:
        course = seed_course(stack, instructor)
        actor = actor_for(student)
        enrollment = await stack.enrollment_service.enroll(actor, course.id)

        with pytest.raises(BadRequestError):
            await stack.enrollment_service.update_progress(actor, enrollment.id, progress)

    @pytest.mark.asyncio
    async def test_cancelled_enrollment_cannot_progress(
        self, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        lesson = seed_lesson(stack, course)
        actor = actor_for(student)
        enrollment = await stack.enrollment_service.enroll(actor, course.id)
        await stack.enrollment_service.cancel(actor, enrollment.id)

        with pytest.raises(EnrollmentCancelledError):
            await stack.enrollment_service.complete_lesson(actor, enrollment.id, lesson.id)


class TestReads:
    @pytest.mark.asyncio
    async def test_owner_and_admin_see_enrollment(
        self, stack: FakeStack, instructor, other_instructor, student, admin
    ) -> None:
        course = seed_course(stack, instructor)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)

        for viewer in (student, instructor, admin):
            found = await stack.enrollment_service.get_enrollment(
                actor_for(viewer), enrollment.id
            )
            assert found.id == enrollment.id

        with pytest.raises(ForbiddenError):
            await stack.enrollment_service.get_enrollment(
                actor_for(other_instructor), enrollment.id
            )

    @pytest.mark.asyncio
    async def test_course_enrollments_for_owner_only(
        self, stack: FakeStack, instructor, other_instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        await stack.enrollment_service.enroll(actor_for(student), course.id)

        listed = await stack.enrollment_service.list_course_enrollments(
            actor_for(instructor), course.id
        )
        assert [e.user_id for e in listed] == [student.id]

        with pytest.raises(ForbiddenError):
            await stack.enrollment_service.list_course_enrollments(
                actor_for(other_instructor), course.id
            )


class TestCourseAnalytics:
    async def _seed_progress(self, stack: FakeStack, instructor, students):
        course = seed_course(stack, instructor)
        first = seed_lesson(stack, course)
        second = seed_lesson(stack, course, module=stack.modules.modules[first.module_id])
        service = stack.enrollment_service

        done, half, gone = (actor_for(s) for s in students)
        enrollments = {}
        for actor in (done, half, gone):
            enrollments[actor.id] = await service.enroll(actor, course.id)
        for lesson in (first, second):
            await service.complete_lesson(done, enrollments[done.id].id, lesson.id)
        await service.complete_lesson(half, enrollments[half.id].id, first.id)
        await service.complete_lesson(gone, enrollments[gone.id].id, first.id)
        await service.cancel(gone, enrollments[gone.id].id)
        return course, first, second

    @pytest.mark.asyncio
    async def test_stats_skip_cancelled_enrollments(
        self, stack: FakeStack, instructor, student, other_student
    ) -> None:
        students = (student, other_student, seed_user(stack))
        course, _, _ = await self._seed_progress(stack, instructor, students)

        stats = await stack.enrollment_service.course_stats(actor_for(instructor), course.id)

        assert stats.total_enrollments == 2
        assert stats.completed_enrollments == 1
        assert stats.completion_rate == 50.0
        assert stats.average_progress == 75.0

    @pytest.mark.asyncio
    async def test_empty_course_has_zero_stats(
        self, stack: FakeStack, instructor, admin
    ) -> None:
        course = seed_course(stack, instructor)

        stats = await stack.enrollment_service.course_stats(actor_for(admin), course.id)

        assert stats.total_enrollments == 0
        assert stats.completion_rate == 0.0

    @pytest.mark.asyncio
    async def test_lesson_counts_and_student_activity(
        self, stack: FakeStack, instructor, student, other_student
    ) -> None:
        students = (student, other_student, seed_user(stack))
        course, first, second = await self._seed_progress(stack, instructor, students)

        analytics = await stack.enrollment_service.course_analytics(
            actor_for(instructor), course.id
        )

        assert analytics.course_id == course.id
        assert analytics.enrollments.total_enrollments == 2
        counts = {lesson.lesson_id: lesson.completed_count for lesson in analytics.lessons}
        assert counts == {first.id: 2, second.id: 1}
        by_user = {s.user_id: s for s in analytics.students}
        assert set(by_user) == {student.id, other_student.id}
        assert by_user[student.id].completed is True
        assert by_user[student.id].lessons_completed == 2
        assert by_user[other_student.id].progress == 50
        assert by_user[other_student.id].last_activity is not None

    @pytest.mark.asyncio
    async def test_only_owner_or_admin(
        self, stack: FakeStack, instructor, other_instructor
    ) -> None:
        course = seed_course(stack, instructor)

        with pytest.raises(ForbiddenError):
            await stack.enrollment_service.course_stats(actor_for(other_instructor), course.id)
        with pytest.raises(ForbiddenError):
            await stack.enrollment_service.course_analytics(
                actor_for(other_instructor), course.id
            )
        with pytest.raises(CourseNotFoundError):
            await stack.enrollment_service.course_stats(actor_for(instructor), uuid4())
