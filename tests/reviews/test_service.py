"""Tests for ReviewService: enrollment gate, rating totals and the stats cache."""

import asyncio
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from coursehub.activity.models import ActivityType
from coursehub.core.errors import ForbiddenError
from coursehub.core.redis import rating_stats_key
from coursehub.courses.service import CourseNotFoundError
from coursehub.reviews.models import average_rating
from coursehub.reviews.service import (
    AlreadyReviewedError,
    InvalidRatingError,
    NotEnrolledError,
    NotReviewAuthorError,
    ReviewChangedError,
    ReviewNotFoundError,
)
from tests.fakes import FakeStack, actor_for, seed_course, seed_user


class DictRedis:
    """Just enough of redis.asyncio.Redis for the stats cache."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.get = AsyncMock(side_effect=self._get)

    async def _get(self, key: str):
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


async def _enrolled(stack: FakeStack, course, user=None):
    user = user or seed_user(stack)
    await stack.enrollment_service.enroll(actor_for(user), course.id)
    return user


class TestAverageRating:
    @pytest.mark.parametrize(
        "count,total,expected",
        [(0, 0, None), (1, 5, 5.0), (3, 13, 4.3), (2, 3, 1.5), (3, 10, 3.3)],
    )
    def test_one_decimal(self, count, total, expected) -> None:
        assert average_rating(count, total) == expected


class TestAddReview:
    @pytest.mark.asyncio
    async def test_enrolled_user_reviews(self, stack: FakeStack, instructor) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)

        review = await stack.review_service.add_review(
            actor_for(reviewer), course.id, 4, "Solid"
        )

        assert review.rating == 4
        assert await stack.reviews.get_totals(course.id) == (1, 4)
        assert ActivityType.REVIEW_ADDED.value in stack.activity_repo.types()

    @pytest.mark.asyncio
    async def test_not_enrolled(self, stack: FakeStack, instructor, student) -> None:
        course = seed_course(stack, instructor)

        with pytest.raises(NotEnrolledError):
            await stack.review_service.add_review(actor_for(student), course.id, 5)

    @pytest.mark.asyncio
    async def test_cancelled_enrollment_cannot_review(
        self, stack: FakeStack, instructor, student
    ) -> None:
        course = seed_course(stack, instructor)
        enrollment = await stack.enrollment_service.enroll(actor_for(student), course.id)
        await stack.enrollment_service.cancel(actor_for(student), enrollment.id)

        with pytest.raises(NotEnrolledError):
            await stack.review_service.add_review(actor_for(student), course.id, 5)

    @pytest.mark.asyncio
    async def test_one_review_per_course(self, stack: FakeStack, instructor) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)
        await stack.review_service.add_review(actor_for(reviewer), course.id, 4)

        with pytest.raises(AlreadyReviewedError):
            await stack.review_service.add_review(actor_for(reviewer), course.id, 2)
        assert await stack.reviews.get_totals(course.id) == (1, 4)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6, -1])
    async def test_rating_bounds(self, stack: FakeStack, instructor, rating) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)

        with pytest.raises(InvalidRatingError):
            await stack.review_service.add_review(actor_for(reviewer), course.id, rating)


class TestUpdateDelete:
    @pytest.mark.asyncio
    async def test_update_adjusts_sum(self, stack: FakeStack, instructor) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)
        review = await stack.review_service.add_review(actor_for(reviewer), course.id, 2)

        updated = await stack.review_service.update_review(
            actor_for(reviewer), review.id, rating=5, comment="Grew on me"
        )

        assert updated.rating == 5
        assert updated.comment == "Grew on me"
        assert await stack.reviews.get_totals(course.id) == (1, 5)

    @pytest.mark.asyncio
    async def test_only_author_updates(self, stack: FakeStack, instructor, admin) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)
        review = await stack.review_service.add_review(actor_for(reviewer), course.id, 3)

        with pytest.raises(NotReviewAuthorError):
            await stack.review_service.update_review(actor_for(admin), review.id, rating=1)

    @pytest.mark.asyncio
    async def test_admin_deletes(self, stack: FakeStack, instructor, admin) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)
        review = await stack.review_service.add_review(actor_for(reviewer), course.id, 3)

        await stack.review_service.delete_review(actor_for(admin), review.id)

        assert await stack.reviews.get_totals(course.id) == (0, 0)
        with pytest.raises(ReviewNotFoundError):
            await stack.review_service.delete_review(actor_for(admin), review.id)

    @pytest.mark.asyncio
    async def test_stranger_cannot_delete(self, stack: FakeStack, instructor) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)
        review = await stack.review_service.add_review(actor_for(reviewer), course.id, 3)

        with pytest.raises(ForbiddenError):
            await stack.review_service.delete_review(actor_for(instructor), review.id)


class TestConcurrentChanges:
    @staticmethod
    def _interleave_reads(stack: FakeStack, monkeypatch) -> None:
        get = stack.reviews.get

        async def get_then_yield(review_id):
            review = await get(review_id)
            await asyncio.sleep(0)
            return review

        monkeypatch.setattr(stack.reviews, "get", get_then_yield)

    @pytest.mark.asyncio
    async def test_double_delete_counts_once(
        self, stack: FakeStack, instructor, admin, monkeypatch
    ) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)
        other = await _enrolled(stack, course)
        review = await stack.review_service.add_review(actor_for(reviewer), course.id, 4)
        await stack.review_service.add_review(actor_for(other), course.id, 2)
        self._interleave_reads(stack, monkeypatch)

        results = await asyncio.gather(
            stack.review_service.delete_review(actor_for(reviewer), review.id),
            stack.review_service.delete_review(actor_for(admin), review.id),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ReviewNotFoundError) for r in results) == 1
        assert await stack.reviews.get_totals(course.id) == (1, 2)
        assert stack.activity_repo.types().count(ActivityType.REVIEW_DELETED.value) == 1

    @pytest.mark.asyncio
    async def test_racing_updates_keep_sum_consistent(
        self, stack: FakeStack, instructor, monkeypatch
    ) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)
        review = await stack.review_service.add_review(actor_for(reviewer), course.id, 2)
        self._interleave_reads(stack, monkeypatch)

        results = await asyncio.gather(
            stack.review_service.update_review(actor_for(reviewer), review.id, rating=5),
            stack.review_service.update_review(actor_for(reviewer), review.id, rating=4),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ReviewChangedError) for r in results) == 1
        stored = await stack.reviews.get_for_user(course.id, reviewer.id)
        assert await stack.reviews.get_totals(course.id) == (1, stored.rating)

    @pytest.mark.asyncio
    async def test_delete_racing_an_update_conflicts(
        self, stack: FakeStack, instructor, admin, monkeypatch
    ) -> None:
        course = seed_course(stack, instructor)
        reviewer = await _enrolled(stack, course)
        review = await stack.review_service.add_review(actor_for(reviewer), course.id, 3)
        self._interleave_reads(stack, monkeypatch)

        results = await asyncio.gather(
            stack.review_service.update_review(actor_for(reviewer), review.id, rating=5),
            stack.review_service.delete_review(actor_for(admin), review.id),
            return_exceptions=True,
        )

        assert results[0].rating == 5
        assert isinstance(results[1], ReviewChangedError)
        assert await stack.reviews.get_totals(course.id) == (1, 5)

        await stack.review_service.delete_review(actor_for(admin), review.id)
        assert await stack.reviews.get_totals(course.id) == (0, 0)


class TestListingAndStats:
    @pytest.mark.asyncio
    async def test_list_newest_first_with_average(self, stack: FakeStack, instructor) -> None:
        course = seed_course(stack, instructor)
        for rating in (5, 4, 4):
            reviewer = await _enrolled(stack, course)
            await stack.review_service.add_review(actor_for(reviewer), course.id, rating)

        items, meta, average, count = await stack.review_service.list_course_reviews(
            course.id, page=1, limit=2
        )

        assert len(items) == 2
        assert items[0].created_at >= items[1].created_at
        assert (meta.total, meta.total_pages) == (3, 2)
        assert (average, count) == (4.3, 3)

    @pytest.mark.asyncio
    async def test_stats_distribution(self, stack: FakeStack, instructor) -> None:
        course = seed_course(stack, instructor)
        for rating in (5, 5, 3, 1):
            reviewer = await _enrolled(stack, course)
            await stack.review_service.add_review(actor_for(reviewer), course.id, rating)

        stats = await stack.review_service.get_stats(course.id)

        assert stats.total_reviews == 4
        assert stats.average_rating == 3.5
        assert stats.rating_distribution == {1: 1, 2: 0, 3: 1, 4: 0, 5: 2}
        assert stats.percentage_by_star[5] == 50.0
        assert stats.percentage_by_star[2] == 0.0

    @pytest.mark.asyncio
    async def test_stats_without_reviews(self, stack: FakeStack, instructor) -> None:
        course = seed_course(stack, instructor)

        stats = await stack.review_service.get_stats(course.id)

        assert stats.total_reviews == 0
        assert stats.average_rating is None
        assert set(stats.percentage_by_star.values()) == {0.0}

    @pytest.mark.asyncio
    async def test_unknown_course(self, stack: FakeStack) -> None:
        with pytest.raises(CourseNotFoundError):
            await stack.review_service.get_stats(uuid4())


class TestStatsCache:
    @pytest.mark.asyncio
    async def test_cached_then_invalidated(self) -> None:
        redis = DictRedis()
        stack = FakeStack(redis=redis)
        owner = seed_user(stack)
        course = seed_course(stack, owner)
        first = await _enrolled(stack, course)
        await stack.review_service.add_review(actor_for(first), course.id, 5)

        stats = await stack.review_service.get_stats(course.id)
        key = rating_stats_key(course.id)
        assert key in redis.data
        assert redis.ttls[key] == 1800

        # served from the cache
        cached = await stack.review_service.get_stats(course.id)
        assert cached == stats

        second = await _enrolled(stack, course)
        await stack.review_service.add_review(actor_for(second), course.id, 3)
        assert key not in redis.data

        fresh = await stack.review_service.get_stats(course.id)
        assert fresh.total_reviews == 2
        assert fresh.average_rating == 4.0
