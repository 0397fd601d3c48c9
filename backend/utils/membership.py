"""
Group membership lifecycle.

A user is, relative to a group, a non-member, a pending member or a member.
Join requests are created from a join code and expire after
JOIN_REQUEST_TTL_HOURS. Expired requests are purged lazily: every read of
group state calls purge_expired_requests first, there is no scheduler.

Only the group creator may accept or reject requests, remove members,
rename the group, regenerate its join code or delete it. The creator is
always a member and can neither leave nor be removed.
"""

import logging
import os
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

import models
from exceptions import ConflictError, NotFoundError, ValidationError
from utils.validation import get_group_or_404, get_membership, verify_group_ownership

logger = logging.getLogger(__name__)

JOIN_REQUEST_TTL = timedelta(hours=int(os.environ.get("JOIN_REQUEST_TTL_HOURS", "24")))
JOIN_CODE_BYTES = 4
JOIN_CODE_MAX_ATTEMPTS = 5


def display_name(user: models.User) -> str:
    return user.username or user.email


def generate_join_code(db: Session) -> str:
    """Generate an 8 character uppercase hex code not used by any other group."""
    for _ in range(JOIN_CODE_MAX_ATTEMPTS):
        code = secrets.token_hex(JOIN_CODE_BYTES).upper()
        exists = db.query(models.Group.id).filter(models.Group.join_code == code).first()
        if not exists:
            return code
        logger.warning(f"Join code collision on {code}, retrying")
    raise ConflictError("Could not generate a unique join code, please retry")


def purge_expired_requests(db: Session, group_id: int, now: Optional[datetime] = None) -> int:
    """Delete pending requests of a group whose expiry has passed. Idempotent."""
    now = now or datetime.utcnow()
    removed = db.query(models.PendingMember).filter(
        models.PendingMember.group_id == group_id,
        models.PendingMember.expires_at <= now
    ).delete(synchronize_session=False)
    if removed:
        db.commit()
        logger.info(f"Purged {removed} expired join request(s) from group {group_id}")
    return removed


def get_pending_request(db: Session, group_id: int, user_id: int):
    return db.query(models.PendingMember).filter(
        models.PendingMember.group_id == group_id,
        models.PendingMember.user_id == user_id
    ).first()


def create_group(db: Session, name: str, creator: models.User) -> models.Group:
    group = models.Group(
        name=name,
        created_by_id=creator.id,
        join_code=generate_join_code(db)
    )
    db.add(group)
    db.commit()
    db.refresh(group)

    # Creator is always the first member
    db.add(models.GroupMember(group_id=group.id, user_id=creator.id, username=display_name(creator)))
    db.commit()
    return group


def request_join(
    db: Session,
    join_code: str,
    user: models.User,
    now: Optional[datetime] = None
) -> tuple[models.Group, models.PendingMember]:
    """Move a user from non-member to pending for the group owning join_code."""
    now = now or datetime.utcnow()
    group = db.query(models.Group).filter(
        models.Group.join_code == join_code.strip().upper()
    ).first()
    if not group:
        raise NotFoundError("Invalid join code")

    purge_expired_requests(db, group.id, now)

    if get_membership(db, group.id, user.id):
        raise ConflictError("Already a member of this group")
    if get_pending_request(db, group.id, user.id):
        raise ConflictError("A join request for this group is already pending")

    pending = models.PendingMember(
        group_id=group.id,
        user_id=user.id,
        username=display_name(user),
        requested_at=now,
        expires_at=now + JOIN_REQUEST_TTL
    )
    db.add(pending)
    db.commit()
    db.refresh(pending)
    logger.info(f"User {user.id} requested to join group {group.id}")
    return group, pending


def accept_join(
    db: Session,
    group_id: int,
    user_id: int,
    acting_user_id: int,
    now: Optional[datetime] = None
) -> models.GroupMember:
    """Move a pending user to member. Creator only."""
    now = now or datetime.utcnow()
    verify_group_ownership(db, group_id, acting_user_id)
    purge_expired_requests(db, group_id, now)

    pending = get_pending_request(db, group_id, user_id)
    if not pending:
        raise NotFoundError("Join request not found")

    member = models.GroupMember(
        group_id=group_id,
        user_id=pending.user_id,
        username=pending.username,
        joined_at=now
    )
    db.delete(pending)
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info(f"User {user_id} accepted into group {group_id}")
    return member


def reject_join(
    db: Session,
    group_id: int,
    user_id: int,
    acting_user_id: int,
    now: Optional[datetime] = None
) -> str:
    """Drop a pending request. Creator only. Returns the requester display name."""
    verify_group_ownership(db, group_id, acting_user_id)
    purge_expired_requests(db, group_id, now)

    pending = get_pending_request(db, group_id, user_id)
    if not pending:
        raise NotFoundError("Join request not found")
    username = pending.username

    db.delete(pending)
    db.commit()
    logger.info(f"Join request of user {user_id} to group {group_id} rejected")
    return username


def leave_group(db: Session, group_id: int, user_id: int) -> str:
    group = get_group_or_404(db, group_id)
    member = get_membership(db, group_id, user_id)
    if not member:
        raise NotFoundError("You are not a member of this group")
    if group.created_by_id == user_id:
        raise ValidationError("Group creator cannot leave the group. Delete the group instead.")
    username = member.username

    db.delete(member)
    db.commit()
    logger.info(f"User {user_id} left group {group_id}")
    return username


def remove_member(db: Session, group_id: int, user_id: int, acting_user_id: int) -> str:
    """Forcibly remove a member. Creator only, and never the creator themself. Returns the member display name."""
    group = verify_group_ownership(db, group_id, acting_user_id)
    if user_id == group.created_by_id:
        raise ValidationError("Group creator cannot be removed. Delete the group instead.")

    member = get_membership(db, group_id, user_id)
    if not member:
        raise NotFoundError("Member not found in this group")
    username = member.username

    db.delete(member)
    db.commit()
    logger.info(f"User {user_id} removed from group {group_id}")
    return username


def regenerate_join_code(db: Session, group_id: int, acting_user_id: int) -> models.Group:
    """Issue a new join code. The previous code stops working immediately."""
    group = verify_group_ownership(db, group_id, acting_user_id)
    group.join_code = generate_join_code(db)
    db.commit()
    db.refresh(group)
    logger.info(f"Join code regenerated for group {group_id}")
    return group


def rename_group(db: Session, group_id: int, name: str, acting_user_id: int) -> tuple[models.Group, str]:
    group = verify_group_ownership(db, group_id, acting_user_id)
    old_name = group.name
    group.name = name
    db.commit()
    db.refresh(group)
    return group, old_name


def delete_group(db: Session, group_id: int, acting_user_id: int) -> str:
    """Delete a group with all of its expenses, settlements and memberships. Returns the group name."""
    group = verify_group_ownership(db, group_id, acting_user_id)
    name = group.name

    expense_ids = [
        row.id for row in db.query(models.GroupExpense.id).filter(models.GroupExpense.group_id == group_id)
    ]
    if expense_ids:
        db.query(models.GroupExpenseSplit).filter(
            models.GroupExpenseSplit.expense_id.in_(expense_ids)
        ).delete(synchronize_session=False)
    db.query(models.GroupExpense).filter(models.GroupExpense.group_id == group_id).delete()
    db.query(models.Settlement).filter(models.Settlement.group_id == group_id).delete()
    db.query(models.PendingMember).filter(models.PendingMember.group_id == group_id).delete()
    db.query(models.GroupMember).filter(models.GroupMember.group_id == group_id).delete()
    db.delete(group)
    db.commit()
    logger.info(f"Group {group_id} deleted with {len(expense_ids)} expense(s)")
    return name
