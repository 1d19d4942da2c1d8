"""Instructor application endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from coursehub.auth.dependencies import AdminUser, CurrentUser
from coursehub.instructors.dependencies import InstructorServiceDep
from coursehub.instructors.models import ApplicationStatus
from coursehub.instructors.schemas import (
    ApplicationResponse,
    ApplyRequest,
    ReviewApplicationRequest,
)


router = APIRouter(prefix="/instructors", tags=["instructors"])


@router.post(
    "/apply",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to become an instructor",
    responses={409: {"description": "Pending application or already instructor"}},
)
async def apply(
    data: ApplyRequest,
    user: CurrentUser,
    service: InstructorServiceDep,
) -> ApplicationResponse:
    application = await service.apply(user, data.bio, data.expertise)
    return ApplicationResponse.model_validate(application)


@router.get(
    "/applications/me",
    response_model=list[ApplicationResponse],
    summary="List my applications",
)
async def my_applications(
    user: CurrentUser,
    service: InstructorServiceDep,
) -> list[ApplicationResponse]:
    applications = await service.get_my_applications(user)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.get(
    "/applications",
    response_model=list[ApplicationResponse],
    summary="List applications (admin)",
)
async def list_applications(
    _admin: AdminUser,
    service: InstructorServiceDep,
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
) -> list[ApplicationResponse]:
    applications = await service.list_applications(status_filter)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.patch(
    "/applications/{application_id}/review",
    response_model=ApplicationResponse,
    summary="Approve or reject an application (admin)",
    responses={
        400: {"description": "Already reviewed or missing rejection reason"},
        404: {"description": "Application not found"},
    },
)
async def review_application(
    application_id: UUID,
    data: ReviewApplicationRequest,
    admin: AdminUser,
    service: InstructorServiceDep,
) -> ApplicationResponse:
    """Approval grants the INSTRUCTOR role; the applicant must sign in again."""
    application = await service.review(
        admin, application_id, ApplicationStatus(data.status), data.reason
    )
    return ApplicationResponse.model_validate(application)
