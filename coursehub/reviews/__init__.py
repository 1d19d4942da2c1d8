"""Course reviews and rating aggregates."""

from coursehub.reviews.models import REVIEWS_TABLES_CQL, Review, average_rating


__all__ = ["REVIEWS_TABLES_CQL", "Review", "average_rating"]
