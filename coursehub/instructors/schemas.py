"""Pydantic schemas for instructor applications."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from coursehub.instructors.models import ApplicationStatus


class ApplyRequest(BaseModel):
    bio: str | None = Field(None, max_length=2000, description="Short biography")
    expertise: str | None = Field(None, max_length=500, description="Areas of expertise")


class ReviewApplicationRequest(BaseModel):
    """Admin decision on a pending application."""

    status: Literal["APPROVED", "REJECTED"]
    reason: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def reason_required_on_reject(self) -> "ReviewApplicationRequest":
        if self.status == ApplicationStatus.REJECTED.value and not (
            self.reason and self.reason.strip()
        ):
            msg = "A reason is required when rejecting an application"
            raise ValueError(msg)
        return self


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    bio: str | None = None
    expertise: str | None = None
    status: ApplicationStatus
    reason: str | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
