"""Append-only activity feed. Writes are best effort and never fail the caller."""

import logging
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

import models

logger = logging.getLogger(__name__)

EXPENSE_CREATED = "expense_created"
EXPENSE_UPDATED = "expense_updated"
EXPENSE_DELETED = "expense_deleted"
GROUP_CREATED = "group_created"
GROUP_UPDATED = "group_updated"
GROUP_JOINED = "group_joined"
GROUP_LEFT = "group_left"
GROUP_DELETED = "group_deleted"
MEMBER_REMOVED = "member_removed"
SETTLEMENT_RECORDED = "settlement_recorded"

ACTIVITY_TYPES = [
    EXPENSE_CREATED, EXPENSE_UPDATED, EXPENSE_DELETED,
    GROUP_CREATED, GROUP_UPDATED, GROUP_JOINED, GROUP_LEFT, GROUP_DELETED,
    MEMBER_REMOVED, SETTLEMENT_RECORDED,
]


def _jsonable(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def diff_fields(old: dict[str, Any], new: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Return {field: {"old": ..., "new": ...}} for every field whose value changed."""
    changes = {}
    for key, new_value in new.items():
        old_value = old.get(key)
        if old_value != new_value:
            changes[key] = {"old": _jsonable(old_value), "new": _jsonable(new_value)}
    return changes


def log_activity(
    db: Session,
    user_id: int,
    activity_type: str,
    action: str,
    group_id: Optional[int] = None,
    details: Optional[dict[str, Any]] = None
) -> None:
    """
    Record an activity entry.

    Called after the business operation has been committed. Any failure here
    is logged and rolled back so audit trail problems never surface to the
    caller or undo the operation that triggered them.
    """
    try:
        if activity_type not in ACTIVITY_TYPES:
            raise ValueError(f"Unknown activity type: {activity_type}")
        db.add(models.Activity(
            user_id=user_id,
            group_id=group_id,
            type=activity_type,
            action=action,
            details={k: _jsonable(v) for k, v in details.items()} if details else None
        ))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to log activity {activity_type} for user {user_id}: {e}")
