"""Members router: join requests, approvals, leaving and removing members."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils import membership
from utils.activity import log_activity, GROUP_JOINED, GROUP_LEFT, GROUP_UPDATED, MEMBER_REMOVED
from utils.validation import get_group_or_404, verify_group_membership


router = APIRouter(prefix="/groups", tags=["members"])


@router.post("/join", response_model=schemas.PendingMember)
def request_join(
    join: schemas.GroupJoin,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group, pending = membership.request_join(db, join.join_code, current_user)

    log_activity(
        db, current_user.id, GROUP_UPDATED,
        f'{pending.username} requested to join "{group.name}"',
        group_id=group.id,
        details={"pendingUserId": current_user.id, "expiresAt": pending.expires_at}
    )
    return pending


@router.post("/{group_id}/pending/{user_id}/accept", response_model=schemas.GroupMember)
def accept_join_request(
    group_id: int,
    user_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    member = membership.accept_join(db, group_id, user_id, current_user.id)

    log_activity(
        db, current_user.id, GROUP_JOINED,
        f"{member.username} joined the group",
        group_id=group_id,
        details={"userId": user_id, "username": member.username}
    )
    return member


@router.post("/{group_id}/pending/{user_id}/reject")
def reject_join_request(
    group_id: int,
    user_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    username = membership.reject_join(db, group_id, user_id, current_user.id)

    log_activity(
        db, current_user.id, GROUP_UPDATED,
        f"Rejected join request from {username}",
        group_id=group_id,
        details={"userId": user_id, "username": username}
    )
    return {"message": "Join request rejected"}


@router.post("/{group_id}/pending/cleanup")
def cleanup_expired_requests(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    removed = membership.purge_expired_requests(db, group_id)
    return {"removed": removed}


@router.post("/{group_id}/leave")
def leave_group(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    username = membership.leave_group(db, group_id, current_user.id)

    log_activity(
        db, current_user.id, GROUP_LEFT,
        f"{username} left the group",
        group_id=group_id,
        details={"userId": current_user.id, "username": username}
    )
    return {"message": "Left group successfully"}


@router.delete("/{group_id}/members/{user_id}")
def remove_group_member(
    group_id: int,
    user_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    username = membership.remove_member(db, group_id, user_id, current_user.id)

    log_activity(
        db, current_user.id, MEMBER_REMOVED,
        f"Removed {username} from the group",
        group_id=group_id,
        details={"userId": user_id, "username": username}
    )
    return {"message": "Member removed successfully"}
