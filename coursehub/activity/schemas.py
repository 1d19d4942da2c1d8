"""Pydantic schemas for the activity log."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from coursehub.activity.models import ActivityType


class ActivityResponse(BaseModel):
    """Activity log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: ActivityType
    actor_id: UUID | None = None
    target_user_id: UUID | None = None
    course_id: UUID | None = None
    enrollment_id: UUID | None = None
    payment_id: UUID | None = None
    details: dict[str, str] = {}
    created_at: datetime


class ActivityListResponse(BaseModel):
    items: list[ActivityResponse]
    total: int
