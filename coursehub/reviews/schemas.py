"""Pydantic schemas for course reviews."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from coursehub.core.pagination import PaginationMeta
from coursehub.reviews.models import MAX_RATING, MIN_RATING


class CreateReviewRequest(BaseModel):
    course_id: UUID
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING, description="Stars, 1 to 5")
    comment: str | None = Field(None, max_length=2000)


class UpdateReviewRequest(BaseModel):
    rating: int | None = Field(None, ge=MIN_RATING, le=MAX_RATING)
    comment: str | None = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    user_id: UUID
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    pagination: PaginationMeta
    average_rating: float | None = None
    total_reviews: int = 0


class RatingStatsResponse(BaseModel):
    """Rating statistics of a course."""

    course_id: UUID
    total_reviews: int
    average_rating: float | None = None
    rating_distribution: dict[int, int]
    percentage_by_star: dict[int, float]
