"""Activity log API endpoints (read only)."""

from uuid import UUID

from fastapi import APIRouter, Query

from coursehub.activity.dependencies import ActivityServiceDep
from coursehub.activity.models import ActivityLog
from coursehub.activity.schemas import ActivityListResponse, ActivityResponse
from coursehub.activity.service import DEFAULT_LIMIT, MAX_LIMIT
from coursehub.auth.dependencies import AdminUser, CurrentUser, StaffUser
from coursehub.courses.dependencies import CourseServiceDep


router = APIRouter(prefix="/activity", tags=["activity"])


def _to_list(entries: list[ActivityLog]) -> ActivityListResponse:
    return ActivityListResponse(
        items=[ActivityResponse(**e.to_dict()) for e in entries],
        total=len(entries),
    )


@router.get("/me", response_model=ActivityListResponse, summary="My recent activity")
async def my_activity(
    user: CurrentUser,
    activity_service: ActivityServiceDep,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
) -> ActivityListResponse:
    """Entries the caller performed or that were addressed to them."""
    return _to_list(await activity_service.get_user_activities(user.id, limit))


@router.get(
    "/course/{course_id}",
    response_model=ActivityListResponse,
    summary="Activity of a course (owner or admin)",
)
async def course_activity(
    course_id: UUID,
    user: StaffUser,
    activity_service: ActivityServiceDep,
    course_service: CourseServiceDep,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
) -> ActivityListResponse:
    course = await course_service.require_managed_course(user, course_id)
    return _to_list(await activity_service.get_course_activities(course.id, limit))


@router.get("", response_model=ActivityListResponse, summary="Platform activity (admin)")
async def platform_activity(
    _admin: AdminUser,
    activity_service: ActivityServiceDep,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
) -> ActivityListResponse:
    return _to_list(await activity_service.get_platform_activities(limit))
