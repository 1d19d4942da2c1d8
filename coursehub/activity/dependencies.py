"""FastAPI dependencies for the activity log."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends

from coursehub.activity.service import ActivityService


_activity_service_getter: Callable[[], ActivityService] | None = None


def set_activity_service_getter(getter: Callable[[], ActivityService]) -> None:
    """Set the activity service getter function."""
    global _activity_service_getter  # noqa: PLW0603 - Required for DI pattern
    _activity_service_getter = getter


def get_activity_service() -> ActivityService:
    if _activity_service_getter is None:
        msg = "ActivityService not configured"
        raise RuntimeError(msg)
    return _activity_service_getter()


ActivityServiceDep = Annotated[ActivityService, Depends(get_activity_service)]
