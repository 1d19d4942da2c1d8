"""Database models for course reviews.

Cassandra table definitions for:
- reviews: one row per (course, user); the primary key is the uniqueness
  guarantee, claimed with ``IF NOT EXISTS``
- reviews_by_id: lookup from review id to its (course, user) key
- course_rating_totals: counter aggregate (count, sum) per course, kept in
  step with every insert, update and delete so listings and stats agree
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from coursehub.auth.models import ensure_utc_aware


MIN_RATING = 1
MAX_RATING = 5


REVIEWS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.reviews (
    course_id UUID,
    user_id UUID,
    id UUID,
    rating INT,
    comment TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, user_id)
)
"""

REVIEWS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.reviews_by_id (
    id UUID PRIMARY KEY,
    course_id UUID,
    user_id UUID
)
"""

RATING_TOTALS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_rating_totals (
    course_id UUID PRIMARY KEY,
    rating_count COUNTER,
    rating_sum COUNTER
)
"""

REVIEWS_TABLES_CQL = [
    REVIEWS_TABLE_CQL,
    REVIEWS_BY_ID_TABLE_CQL,
    RATING_TOTALS_TABLE_CQL,
]


def average_rating(count: int, total: int) -> float | None:
    """Mean rating rounded to one decimal, None when there are no reviews.

    Examples:
        >>> average_rating(3, 13)
        4.3
        >>> average_rating(0, 0) is None
        True
    """
    if count <= 0:
        return None
    return round(total / count, 1)


class Review:
    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        rating: int,
        comment: str | None = None,
        id: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.user_id = user_id
        self.rating = rating
        self.comment = comment
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Review":
        return cls(
            id=row.id,
            course_id=row.course_id,
            user_id=row.user_id,
            rating=row.rating,
            comment=row.comment,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "user_id": self.user_id,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Review {self.rating}* course={self.course_id} user={self.user_id}>"
