"""Course review API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from coursehub.auth.dependencies import CurrentUser
from coursehub.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from coursehub.reviews.dependencies import ReviewServiceDep
from coursehub.reviews.schemas import (
    CreateReviewRequest,
    RatingStatsResponse,
    ReviewListResponse,
    ReviewResponse,
    UpdateReviewRequest,
)


router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post(
    "",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Review a course",
    responses={
        400: {"description": "Not enrolled in the course"},
        409: {"description": "Course already reviewed"},
    },
)
async def add_review(
    data: CreateReviewRequest,
    user: CurrentUser,
    review_service: ReviewServiceDep,
) -> ReviewResponse:
    review = await review_service.add_review(user, data.course_id, data.rating, data.comment)
    return ReviewResponse.model_validate(review)


@router.get("/my", response_model=list[ReviewResponse], summary="List my reviews")
async def list_my_reviews(
    user: CurrentUser,
    review_service: ReviewServiceDep,
) -> list[ReviewResponse]:
    reviews = await review_service.list_user_reviews(user)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.put(
    "/{review_id}",
    response_model=ReviewResponse,
    summary="Update my review",
    responses={409: {"description": "Review changed concurrently"}},
)
async def update_review(
    review_id: UUID,
    data: UpdateReviewRequest,
    user: CurrentUser,
    review_service: ReviewServiceDep,
) -> ReviewResponse:
    review = await review_service.update_review(user, review_id, data.rating, data.comment)
    return ReviewResponse.model_validate(review)


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete review (author or admin)",
    responses={409: {"description": "Review changed concurrently"}},
)
async def delete_review(
    review_id: UUID,
    user: CurrentUser,
    review_service: ReviewServiceDep,
) -> None:
    await review_service.delete_review(user, review_id)


@router.get(
    "/course/{course_id}",
    response_model=ReviewListResponse,
    summary="List a course's reviews",
)
async def list_course_reviews(
    course_id: UUID,
    review_service: ReviewServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> ReviewListResponse:
    items, meta, average, total = await review_service.list_course_reviews(
        course_id, page, limit
    )
    return ReviewListResponse(
        items=[ReviewResponse.model_validate(r) for r in items],
        pagination=meta,
        average_rating=average,
        total_reviews=total,
    )


@router.get(
    "/course/{course_id}/stats",
    response_model=RatingStatsResponse,
    summary="Rating statistics of a course",
)
async def course_rating_stats(
    course_id: UUID,
    review_service: ReviewServiceDep,
) -> RatingStatsResponse:
    return await review_service.get_stats(course_id)
