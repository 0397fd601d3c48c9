"""Validation utilities for group membership, access control, and expense participants."""

from sqlalchemy.orm import Session

import models
from exceptions import NotFoundError, UnauthorizedError, ValidationError


def get_user_by_email(db: Session, email: str):
    """Get a user by their email address."""
    return db.query(models.User).filter(models.User.email == email).first()


def get_group_or_404(db: Session, group_id: int) -> models.Group:
    """Get a group by ID or raise NotFoundError."""
    group = db.query(models.Group).filter(models.Group.id == group_id).first()
    if not group:
        raise NotFoundError("Group not found")
    return group


def get_membership(db: Session, group_id: int, user_id: int):
    return db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user_id
    ).first()


def verify_group_membership(db: Session, group_id: int, user_id: int) -> models.GroupMember:
    """Verify that a user is a member of a group, raise UnauthorizedError if not."""
    member = get_membership(db, group_id, user_id)
    if not member:
        raise UnauthorizedError("You are not a member of this group")
    return member


def verify_group_ownership(db: Session, group_id: int, user_id: int) -> models.Group:
    """Verify that a user created a group, raise UnauthorizedError if not."""
    group = get_group_or_404(db, group_id)
    if group.created_by_id != user_id:
        raise UnauthorizedError("Only the group creator can perform this action")
    return group


def get_members_by_user_id(db: Session, group_id: int) -> dict[int, models.GroupMember]:
    members = db.query(models.GroupMember).filter(models.GroupMember.group_id == group_id).all()
    return {m.user_id: m for m in members}


def validate_expense_participants(
    db: Session,
    group_id: int,
    payer_id: int,
    split_among: list[int]
) -> dict[int, models.GroupMember]:
    """
    Validate the payer and split participants of a group expense.

    All of them must be current members of the group. Returns the member
    records keyed by user ID so callers can snapshot display names.
    """
    if not split_among:
        raise ValidationError("An expense must be split among at least one member")
    if len(set(split_among)) != len(split_among):
        raise ValidationError("Each member can appear only once in a split")

    members = get_members_by_user_id(db, group_id)

    if payer_id not in members:
        raise ValidationError(f"Payer with ID {payer_id} is not a member of this group")

    for user_id in split_among:
        if user_id not in members:
            raise ValidationError(f"User with ID {user_id} in split is not a member of this group")

    return members
