"""FastAPI dependencies for reviews."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends

from coursehub.reviews.service import ReviewService


_review_service_getter: Callable[[], ReviewService] | None = None


def set_review_service_getter(getter: Callable[[], ReviewService]) -> None:
    """Set the review service getter function."""
    global _review_service_getter  # noqa: PLW0603 - Required for DI pattern
    _review_service_getter = getter


def get_review_service() -> ReviewService:
    if _review_service_getter is None:
        msg = "ReviewService not configured"
        raise RuntimeError(msg)
    return _review_service_getter()


ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]
