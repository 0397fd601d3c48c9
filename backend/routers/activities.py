"""Activities router: read-only activity feeds."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.validation import get_group_or_404, verify_group_membership


PERSONAL_FEED_LIMIT = 50
GROUP_FEED_LIMIT = 100


router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("/personal", response_model=list[schemas.Activity])
def read_personal_activities(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return db.query(models.Activity).filter(
        models.Activity.user_id == current_user.id,
        models.Activity.group_id == None
    ).order_by(models.Activity.created_at.desc(), models.Activity.id.desc()).limit(PERSONAL_FEED_LIMIT).all()


@router.get("/group/{group_id}", response_model=list[schemas.Activity])
def read_group_activities(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    return db.query(models.Activity).filter(
        models.Activity.group_id == group_id
    ).order_by(models.Activity.created_at.desc(), models.Activity.id.desc()).limit(GROUP_FEED_LIMIT).all()


@router.get("/all", response_model=list[schemas.Activity])
def read_all_activities(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group_ids = [
        row.group_id for row in db.query(models.GroupMember.group_id).filter(
            models.GroupMember.user_id == current_user.id
        )
    ]

    return db.query(models.Activity).filter(
        or_(
            (models.Activity.user_id == current_user.id) & (models.Activity.group_id == None),
            models.Activity.group_id.in_(group_ids)
        )
    ).order_by(models.Activity.created_at.desc(), models.Activity.id.desc()).limit(GROUP_FEED_LIMIT).all()
