"""Instructor application workflow.

A user becomes an INSTRUCTOR only when an admin approves their application;
the role is never self-assigned.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.activity.models import ActivityType
from coursehub.auth.permissions import InstructorStatus, UserRole
from coursehub.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from coursehub.core.logging import get_logger
from coursehub.core.tasks import spawn
from coursehub.instructors.models import ApplicationStatus, InstructorApplication


if TYPE_CHECKING:
    from coursehub.activity.service import ActivityService
    from coursehub.auth.repository import UserRepository
    from coursehub.auth.schemas import AuthenticatedUser
    from coursehub.email.service import EmailService
    from coursehub.instructors.repository import ApplicationRepository


logger = get_logger(__name__)


class ApplicationNotFoundError(NotFoundError):
    default_message = "Application not found"
    default_code = "application_not_found"


class ApplicationPendingError(ConflictError):
    default_message = "You already have a pending application"
    default_code = "application_pending"


class AlreadyInstructorError(ConflictError):
    default_message = "You are already an instructor"
    default_code = "already_instructor"


class ApplicationAlreadyReviewedError(BadRequestError):
    default_message = "Application has already been reviewed"
    default_code = "application_reviewed"


class InstructorService:
    """File and review instructor applications."""

    def __init__(
        self,
        applications: "ApplicationRepository",
        users: "UserRepository",
        activity: "ActivityService",
        email_service: "EmailService | None" = None,
    ):
        self.applications = applications
        self.users = users
        self.activity = activity
        self.email_service = email_service

    async def apply(
        self,
        actor: "AuthenticatedUser",
        bio: str | None = None,
        expertise: str | None = None,
    ) -> InstructorApplication:
        """File an application for the caller.

        Raises:
            AlreadyInstructorError: Caller is already an approved instructor
            ApplicationPendingError: Caller has an application awaiting review
        """
        if actor.role == UserRole.ADMIN:
            raise ForbiddenError("Administrators cannot apply to be instructors")

        user = await self.users.get_by_id(actor.id)
        if not user:
            raise NotFoundError("User not found")

        if (
            user.role == UserRole.INSTRUCTOR.value
            or user.instructor_status == InstructorStatus.APPROVED.value
        ):
            raise AlreadyInstructorError

        existing = await self.applications.list_by_user(user.id)
        if any(app.is_pending for app in existing):
            raise ApplicationPendingError

        application = InstructorApplication(user_id=user.id, bio=bio, expertise=expertise)
        await self.applications.create(application)

        user.instructor_status = InstructorStatus.PENDING.value
        await self.users.save(user)

        logger.info("instructor_applied", application_id=str(application.id))
        await self.activity.log_activity(
            ActivityType.INSTRUCTOR_APPLIED,
            user.id,
            details={"application_id": application.id},
        )
        return application

    async def get_my_applications(
        self, actor: "AuthenticatedUser"
    ) -> list[InstructorApplication]:
        return await self.applications.list_by_user(actor.id)

    async def list_applications(
        self, status: ApplicationStatus | None = None
    ) -> list[InstructorApplication]:
        """Applications in one status, or all of them newest first."""
        if status:
            return await self.applications.list_by_status(status.value)

        apps: list[InstructorApplication] = []
        for each in ApplicationStatus:
            apps.extend(await self.applications.list_by_status(each.value))
        return sorted(apps, key=lambda a: a.created_at, reverse=True)

    async def review(
        self,
        admin: "AuthenticatedUser",
        application_id: UUID,
        status: ApplicationStatus,
        reason: str | None = None,
    ) -> InstructorApplication:
        """Approve or reject a pending application.

        Approval makes the applicant an INSTRUCTOR; rejection keeps the role and
        records the reason.

        Raises:
            ApplicationNotFoundError: Unknown application
            ApplicationAlreadyReviewedError: Application is not PENDING
            BadRequestError: Rejection without a reason
        """
        application = await self.applications.get(application_id)
        if not application:
            raise ApplicationNotFoundError
        if not application.is_pending:
            raise ApplicationAlreadyReviewedError

        approved = status == ApplicationStatus.APPROVED
        if not approved and not (reason and reason.strip()):
            raise BadRequestError("A reason is required when rejecting an application")

        user = await self.users.get_by_id(application.user_id)
        if not user:
            raise NotFoundError("Applicant not found")

        previous_status = application.status
        application.status = status.value
        application.reason = None if approved else reason.strip()
        application.reviewed_by = admin.id
        application.reviewed_at = datetime.now(UTC)
        await self.applications.save(application, previous_status)

        if approved:
            user.role = UserRole.INSTRUCTOR.value
            user.instructor_status = InstructorStatus.APPROVED.value
        else:
            user.instructor_status = InstructorStatus.REJECTED.value
        await self.users.save(user)

        logger.info(
            "instructor_application_reviewed",
            application_id=str(application.id),
            status=application.status,
        )
        await self.activity.log_activity(
            ActivityType.INSTRUCTOR_APPROVED if approved else ActivityType.INSTRUCTOR_REJECTED,
            admin.id,
            target_user_id=user.id,
            details={"application_id": application.id, "reason": application.reason},
        )

        if self.email_service is None:
            logger.info(
                "email_skipped", reason="email_disabled", template="application_decision"
            )
        else:
            spawn(
                self.email_service.send_application_decision(
                    to=user.email,
                    user_name=user.name,
                    approved=approved,
                    reason=application.reason,
                ),
                name="send_application_decision",
            )

        return application
