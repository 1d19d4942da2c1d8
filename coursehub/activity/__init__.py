"""Append-only, best-effort audit log."""

from coursehub.activity.models import ACTIVITY_TABLES_CQL, ActivityLog, ActivityType


__all__ = ["ACTIVITY_TABLES_CQL", "ActivityLog", "ActivityType"]
