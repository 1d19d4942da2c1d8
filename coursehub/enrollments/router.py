"""Enrollment API endpoints.

Provides routes for:
- Enrolling in a published course
- Listing own enrollments and a course's enrollments
- Course completion stats and per-lesson analytics for owners
- Progress (per lesson, or a raw percentage for older clients)
- Cancellation
"""

from uuid import UUID

from fastapi import APIRouter, status

from coursehub.auth.dependencies import CurrentUser, StaffUser
from coursehub.enrollments.dependencies import EnrollmentServiceDep
from coursehub.enrollments.models import Enrollment
from coursehub.enrollments.schemas import (
    CourseAnalyticsResponse,
    EnrollmentResponse,
    EnrollmentStatsResponse,
    EnrollRequest,
    LessonCompletionResponse,
    UpdateProgressRequest,
)


router = APIRouter(prefix="/enrollments", tags=["enrollments"])


def _to_response(enrollment: Enrollment, course_title: str | None = None) -> EnrollmentResponse:
    return EnrollmentResponse(**enrollment.to_dict(), course_title=course_title)


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
    responses={
        400: {"description": "Course not published or full"},
        409: {"description": "Already enrolled"},
    },
)
async def enroll(
    data: EnrollRequest,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    enrollment = await enrollment_service.enroll(user, data.course_id)
    return _to_response(enrollment)


@router.get(
    "/my",
    response_model=list[EnrollmentResponse],
    summary="List my enrollments",
)
async def list_my_enrollments(
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> list[EnrollmentResponse]:
    enrollments = await enrollment_service.list_my_enrollments(user)
    titles = await enrollment_service.course_titles(enrollments)
    return [_to_response(e, titles.get(e.course_id)) for e in enrollments]


@router.get(
    "/course/{course_id}",
    response_model=list[EnrollmentResponse],
    summary="List a course's enrollments (owner or admin)",
)
async def list_course_enrollments(
    course_id: UUID,
    user: StaffUser,
    enrollment_service: EnrollmentServiceDep,
) -> list[EnrollmentResponse]:
    enrollments = await enrollment_service.list_course_enrollments(user, course_id)
    return [_to_response(e) for e in enrollments]


@router.get(
    "/course/{course_id}/stats",
    response_model=EnrollmentStatsResponse,
    summary="Completion stats of a course (owner or admin)",
)
async def course_enrollment_stats(
    course_id: UUID,
    user: StaffUser,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentStatsResponse:
    return await enrollment_service.course_stats(user, course_id)


@router.get(
    "/course/{course_id}/analytics",
    response_model=CourseAnalyticsResponse,
    summary="Per-lesson and per-student progress of a course (owner or admin)",
)
async def course_analytics(
    course_id: UUID,
    user: StaffUser,
    enrollment_service: EnrollmentServiceDep,
) -> CourseAnalyticsResponse:
    return await enrollment_service.course_analytics(user, course_id)


@router.get(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment",
    responses={404: {"description": "Enrollment not found"}},
)
async def get_enrollment(
    enrollment_id: UUID,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    enrollment = await enrollment_service.get_enrollment(user, enrollment_id)
    titles = await enrollment_service.course_titles([enrollment])
    return _to_response(enrollment, titles.get(enrollment.course_id))


@router.patch(
    "/{enrollment_id}/progress",
    response_model=EnrollmentResponse,
    summary="Set progress percentage",
    deprecated=True,
)
async def update_progress(
    enrollment_id: UUID,
    data: UpdateProgressRequest,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    """Prefer the lesson completion endpoint, which derives progress."""
    enrollment = await enrollment_service.update_progress(user, enrollment_id, data.progress)
    return _to_response(enrollment)


@router.post(
    "/{enrollment_id}/lessons/{lesson_id}/complete",
    response_model=LessonCompletionResponse,
    summary="Mark a lesson complete",
)
async def complete_lesson(
    enrollment_id: UUID,
    lesson_id: UUID,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> LessonCompletionResponse:
    enrollment, done, total = await enrollment_service.complete_lesson(
        user, enrollment_id, lesson_id
    )
    return LessonCompletionResponse(
        enrollment=_to_response(enrollment),
        lesson_id=lesson_id,
        completed_lessons=done,
        total_lessons=total,
    )


@router.patch(
    "/{enrollment_id}/cancel",
    response_model=EnrollmentResponse,
    summary="Cancel enrollment",
)
async def cancel_enrollment(
    enrollment_id: UUID,
    user: CurrentUser,
    enrollment_service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    enrollment = await enrollment_service.cancel(user, enrollment_id)
    return _to_response(enrollment)
