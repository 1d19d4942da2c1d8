"""Activity log service.

Audit entries are best effort: ``log_activity`` never raises, so an outage of
the log store cannot fail the operation being audited.
"""

from typing import TYPE_CHECKING, Any
from uuid import UUID

from coursehub.activity.models import ActivityLog, ActivityType
from coursehub.core.logging import get_logger


if TYPE_CHECKING:
    from coursehub.activity.repository import ActivityRepository

logger = get_logger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


class ActivityService:
    """Append and read audit entries."""

    def __init__(self, repository: "ActivityRepository"):
        self.repository = repository

    async def log_activity(
        self,
        activity_type: ActivityType,
        actor_id: UUID | None,
        *,
        target_user_id: UUID | None = None,
        course_id: UUID | None = None,
        enrollment_id: UUID | None = None,
        payment_id: UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> ActivityLog | None:
        """Record an event; failures are logged and swallowed.

        Returns:
            The stored entry, or None if it could not be written
        """
        entry = ActivityLog(
            type=activity_type.value,
            actor_id=actor_id,
            target_user_id=target_user_id,
            course_id=course_id,
            enrollment_id=enrollment_id,
            payment_id=payment_id,
            details={k: str(v) for k, v in (details or {}).items() if v is not None},
        )

        try:
            await self.repository.insert(entry)
        except Exception as e:
            logger.exception(
                "activity_log_failed",
                activity_type=activity_type.value,
                error=str(e),
            )
            return None

        return entry

    async def get_user_activities(
        self, user_id: UUID, limit: int = DEFAULT_LIMIT
    ) -> list[ActivityLog]:
        return await self.repository.list_by_user(user_id, _clamp(limit))

    async def get_course_activities(
        self, course_id: UUID, limit: int = DEFAULT_LIMIT
    ) -> list[ActivityLog]:
        return await self.repository.list_by_course(course_id, _clamp(limit))

    async def get_platform_activities(
        self, limit: int = DEFAULT_LIMIT
    ) -> list[ActivityLog]:
        return await self.repository.list_recent(_clamp(limit))


def _clamp(limit: int) -> int:
    return max(1, min(limit, MAX_LIMIT))
