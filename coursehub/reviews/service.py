"""Review service layer.

One review per (user, course), only from users holding a live enrollment.
Every change adjusts the per-course rating counters and drops the cached
statistics, so the catalog average and the stats endpoint agree.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.activity.models import ActivityType
from coursehub.auth.permissions import is_admin
from coursehub.config import Settings, get_settings
from coursehub.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from coursehub.core.logging import get_logger
from coursehub.core.pagination import PaginationMeta, paginate
from coursehub.core.redis import rating_stats_key
from coursehub.courses.service import CourseNotFoundError
from coursehub.reviews.models import MAX_RATING, MIN_RATING, Review, average_rating
from coursehub.reviews.schemas import RatingStatsResponse


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from coursehub.activity.service import ActivityService
    from coursehub.auth.schemas import AuthenticatedUser
    from coursehub.courses.repository import CourseRepository
    from coursehub.enrollments.repository import EnrollmentRepository
    from coursehub.reviews.repository import ReviewRepository


logger = get_logger(__name__)


class ReviewNotFoundError(NotFoundError):
    default_message = "Review not found"
    default_code = "review_not_found"


class AlreadyReviewedError(ConflictError):
    default_message = "You have already reviewed this course"
    default_code = "already_reviewed"


class NotEnrolledError(BadRequestError):
    default_message = "You must be enrolled in this course to review it"
    default_code = "not_enrolled"


class InvalidRatingError(BadRequestError):
    default_message = f"Rating must be between {MIN_RATING} and {MAX_RATING}"
    default_code = "invalid_rating"


class NotReviewAuthorError(ForbiddenError):
    default_message = "Only the author can change this review"
    default_code = "not_review_author"


class ReviewChangedError(ConflictError):
    default_message = "Review changed concurrently, please retry"
    default_code = "review_changed"


def _check_rating(rating: int) -> None:
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRatingError


class ReviewService:
    def __init__(
        self,
        reviews: "ReviewRepository",
        enrollments: "EnrollmentRepository",
        courses: "CourseRepository",
        activity: "ActivityService",
        redis: "Redis | None" = None,
        settings: Settings | None = None,
    ):
        self.reviews = reviews
        self.enrollments = enrollments
        self.courses = courses
        self.activity = activity
        self.redis = redis
        self.settings = settings or get_settings()

    async def add_review(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        rating: int,
        comment: str | None = None,
    ) -> Review:
        """Review a course the caller is enrolled in.

        Raises:
            InvalidRatingError: Rating outside 1..5
            CourseNotFoundError: Unknown course
            NotEnrolledError: No enrollment, or a cancelled one
            AlreadyReviewedError: The caller already reviewed the course
        """
        _check_rating(rating)
        course = await self.courses.get(course_id)
        if not course:
            raise CourseNotFoundError

        enrollment_id = await self.enrollments.find_id(actor.id, course_id)
        enrollment = await self.enrollments.get(enrollment_id) if enrollment_id else None
        if not enrollment or enrollment.is_cancelled:
            raise NotEnrolledError

        review = Review(course_id=course_id, user_id=actor.id, rating=rating, comment=comment)
        if not await self.reviews.create(review):
            raise AlreadyReviewedError

        await self.reviews.adjust_totals(course_id, 1, rating)
        await self._invalidate(course_id)

        logger.info("review_added", review_id=str(review.id), course_id=str(course_id))
        await self.activity.log_activity(
            ActivityType.REVIEW_ADDED,
            actor.id,
            target_user_id=course.instructor_id,
            course_id=course_id,
            details={"rating": rating},
        )
        return review

    async def _require(self, review_id: UUID) -> Review:
        review = await self.reviews.get(review_id)
        if not review:
            raise ReviewNotFoundError
        return review

    async def update_review(
        self,
        actor: "AuthenticatedUser",
        review_id: UUID,
        rating: int | None = None,
        comment: str | None = None,
    ) -> Review:
        """Change the caller's review.

        The write is conditioned on the rating just read, so the totals only
        move by a delta that was actually stored.

        Raises:
            ReviewChangedError: The review changed or vanished since it was read
        """
        review = await self._require(review_id)
        if str(review.user_id) != str(actor.id):
            raise NotReviewAuthorError

        old_rating = review.rating
        if rating is not None:
            _check_rating(rating)
            review.rating = rating
        if comment is not None:
            review.comment = comment
        if not await self.reviews.save(review, old_rating):
            raise ReviewChangedError

        if review.rating != old_rating:
            await self.reviews.adjust_totals(review.course_id, 0, review.rating - old_rating)
        await self._invalidate(review.course_id)

        await self.activity.log_activity(
            ActivityType.REVIEW_UPDATED,
            actor.id,
            course_id=review.course_id,
            details={"rating": review.rating},
        )
        return review

    async def delete_review(self, actor: "AuthenticatedUser", review_id: UUID) -> None:
        """Remove a review; allowed for its author and admins.

        The delete is conditioned on the rating just read, so only the caller
        whose delete applied adjusts the totals, by the rating actually removed.

        Raises:
            ReviewNotFoundError: Unknown review, or already deleted concurrently
            ReviewChangedError: The rating changed since it was read
        """
        review = await self._require(review_id)
        if str(review.user_id) != str(actor.id) and not is_admin(actor):
            raise ForbiddenError("Only the author or an admin can delete this review")

        if not await self.reviews.delete(review):
            if await self.reviews.get_for_user(review.course_id, review.user_id):
                raise ReviewChangedError
            raise ReviewNotFoundError
        await self.reviews.adjust_totals(review.course_id, -1, -review.rating)
        await self._invalidate(review.course_id)

        logger.info("review_deleted", review_id=str(review.id))
        await self.activity.log_activity(
            ActivityType.REVIEW_DELETED,
            actor.id,
            target_user_id=review.user_id,
            course_id=review.course_id,
        )

    async def list_user_reviews(self, actor: "AuthenticatedUser") -> list[Review]:
        """Reviews the caller wrote, newest first.

        Reviews are keyed by course, so the caller's enrollments (cancelled
        ones included) name the courses to look in.
        """
        reviews = []
        for enrollment in await self.enrollments.list_by_user(actor.id):
            review = await self.reviews.get_for_user(enrollment.course_id, actor.id)
            if review:
                reviews.append(review)
        return sorted(reviews, key=lambda r: r.created_at, reverse=True)

    async def list_course_reviews(
        self, course_id: UUID, page: int, limit: int
    ) -> tuple[list[Review], PaginationMeta, float | None, int]:
        """One page of a course's reviews, newest first, with its average."""
        if not await self.courses.get(course_id):
            raise CourseNotFoundError
        items, meta = paginate(await self.reviews.list_by_course(course_id), page, limit)
        count, total = await self.reviews.get_totals(course_id)
        return items, meta, average_rating(count, total), count

    async def get_stats(self, course_id: UUID) -> RatingStatsResponse:
        """Rating statistics, served from Redis when cached."""
        key = rating_stats_key(course_id)
        if self.redis is not None:
            cached = await self.redis.get(key)
            if cached:
                return RatingStatsResponse.model_validate_json(cached)

        if not await self.courses.get(course_id):
            raise CourseNotFoundError

        count, total = await self.reviews.get_totals(course_id)
        distribution = dict.fromkeys(range(MIN_RATING, MAX_RATING + 1), 0)
        for review in await self.reviews.list_by_course(course_id):
            distribution[review.rating] = distribution.get(review.rating, 0) + 1

        rated = sum(distribution.values())
        stats = RatingStatsResponse(
            course_id=course_id,
            total_reviews=count,
            average_rating=average_rating(count, total),
            rating_distribution=distribution,
            percentage_by_star={
                star: round(n * 100 / rated, 1) if rated else 0.0
                for star, n in distribution.items()
            },
        )

        if self.redis is not None:
            await self.redis.setex(
                key,
                self.settings.reviews_stats_cache_ttl_seconds,
                stats.model_dump_json(),
            )
        return stats

    async def _invalidate(self, course_id: UUID) -> None:
        if self.redis is not None:
            await self.redis.delete(rating_stats_key(course_id))
