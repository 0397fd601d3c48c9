"""Groups router: create, read, rename, delete groups and manage join codes."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils import membership
from utils.activity import log_activity, GROUP_CREATED, GROUP_UPDATED, GROUP_DELETED
from utils.validation import get_group_or_404, verify_group_membership


router = APIRouter(prefix="/groups", tags=["groups"])


def build_group_detail(db: Session, group: models.Group) -> schemas.GroupWithMembers:
    members = db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group.id
    ).order_by(models.GroupMember.joined_at, models.GroupMember.id).all()

    pending = db.query(models.PendingMember).filter(
        models.PendingMember.group_id == group.id
    ).order_by(models.PendingMember.requested_at).all()

    return schemas.GroupWithMembers(
        id=group.id,
        name=group.name,
        created_by_id=group.created_by_id,
        join_code=group.join_code,
        created_at=group.created_at,
        members=[schemas.GroupMember.model_validate(m) for m in members],
        pending_members=[schemas.PendingMember.model_validate(p) for p in pending]
    )


@router.post("", response_model=schemas.GroupWithMembers)
def create_group(
    group: schemas.GroupCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    db_group = membership.create_group(db, group.name, current_user)

    log_activity(
        db, current_user.id, GROUP_CREATED,
        f'Created group "{db_group.name}"',
        group_id=db_group.id,
        details={"groupName": db_group.name}
    )
    return build_group_detail(db, db_group)


@router.get("", response_model=list[schemas.Group])
def read_groups(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    # Get groups where user is a member
    user_groups = db.query(models.Group).join(
        models.GroupMember,
        models.Group.id == models.GroupMember.group_id
    ).filter(
        models.GroupMember.user_id == current_user.id
    ).order_by(models.Group.created_at.desc(), models.Group.id.desc()).all()

    for group in user_groups:
        membership.purge_expired_requests(db, group.id)
    return user_groups


@router.get("/{group_id}", response_model=schemas.GroupWithMembers)
def get_group(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group = get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    membership.purge_expired_requests(db, group_id)
    return build_group_detail(db, group)


@router.put("/{group_id}", response_model=schemas.GroupWithMembers)
def update_group(
    group_id: int,
    group_update: schemas.GroupUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group, old_name = membership.rename_group(db, group_id, group_update.name, current_user.id)

    if old_name != group.name:
        log_activity(
            db, current_user.id, GROUP_UPDATED,
            f'Renamed group "{old_name}" to "{group.name}"',
            group_id=group_id,
            details={"name": {"old": old_name, "new": group.name}}
        )
    membership.purge_expired_requests(db, group_id)
    return build_group_detail(db, group)


@router.delete("/{group_id}")
def delete_group(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    name = membership.delete_group(db, group_id, current_user.id)

    # Personal scope: the group feed is no longer readable once the group is gone
    log_activity(
        db, current_user.id, GROUP_DELETED,
        f'Deleted group "{name}"',
        details={"groupId": group_id, "groupName": name}
    )
    return {"message": "Group deleted successfully"}


@router.post("/{group_id}/regenerate-code", response_model=schemas.GroupWithMembers)
def regenerate_join_code(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group = membership.regenerate_join_code(db, group_id, current_user.id)

    log_activity(
        db, current_user.id, GROUP_UPDATED,
        f'Regenerated join code for "{group.name}"',
        group_id=group_id
    )
    membership.purge_expired_requests(db, group_id)
    return build_group_detail(db, group)
