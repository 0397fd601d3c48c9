"""Balances router: per-member net balances and settlements within a group."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from exceptions import NotFoundError, ValidationError
from utils import membership
from utils.activity import log_activity, diff_fields, SETTLEMENT_RECORDED
from utils.balances import calculate_net_balances
from utils.validation import get_group_or_404, verify_group_membership, get_members_by_user_id


router = APIRouter(prefix="/groups/{group_id}", tags=["balances"])


def build_settlement_detail(settlement: models.Settlement) -> schemas.Settlement:
    return schemas.Settlement(
        id=settlement.id,
        group_id=settlement.group_id,
        from_user=schemas.Participant(user_id=settlement.from_user_id, username=settlement.from_username),
        to_user=schemas.Participant(user_id=settlement.to_user_id, username=settlement.to_username),
        amount=settlement.amount,
        date=settlement.date
    )


def get_settlement_or_404(db: Session, group_id: int, settlement_id: int) -> models.Settlement:
    settlement = db.query(models.Settlement).filter(
        models.Settlement.id == settlement_id,
        models.Settlement.group_id == group_id
    ).first()
    if not settlement:
        raise NotFoundError("Settlement not found")
    return settlement


def settlement_snapshot(settlement: models.Settlement) -> dict:
    return {
        "from": settlement.from_user_id,
        "to": settlement.to_user_id,
        "amount": settlement.amount,
    }


def validate_settlement_parties(
    db: Session,
    group_id: int,
    settlement: schemas.SettlementCreate
) -> dict[int, models.GroupMember]:
    """Both parties must be distinct current members. Returns members keyed by user ID."""
    if settlement.from_user_id == settlement.to_user_id:
        raise ValidationError("A settlement needs two different members")

    members = get_members_by_user_id(db, group_id)
    for user_id in (settlement.from_user_id, settlement.to_user_id):
        if user_id not in members:
            raise ValidationError(f"User with ID {user_id} is not a member of this group")
    return members


@router.get("/balances", response_model=list[schemas.GroupBalance])
def get_group_balances(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    membership.purge_expired_requests(db, group_id)

    net_balances = calculate_net_balances(db, group_id)
    members = get_members_by_user_id(db, group_id)

    # Members with no activity are still listed with an explicit zero
    return [
        schemas.GroupBalance(user_id=user_id, username=members[user_id].username, balance=amount)
        for user_id, amount in net_balances.items()
    ]


@router.get("/settlements", response_model=list[schemas.Settlement])
def read_settlements(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    membership.purge_expired_requests(db, group_id)

    settlements = db.query(models.Settlement).filter(
        models.Settlement.group_id == group_id
    ).order_by(models.Settlement.date.desc(), models.Settlement.id.desc()).all()
    return [build_settlement_detail(s) for s in settlements]


@router.post("/settlements", response_model=schemas.Settlement)
def record_settlement(
    group_id: int,
    settlement: schemas.SettlementCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    members = validate_settlement_parties(db, group_id, settlement)

    db_settlement = models.Settlement(
        group_id=group_id,
        from_user_id=settlement.from_user_id,
        from_username=members[settlement.from_user_id].username,
        to_user_id=settlement.to_user_id,
        to_username=members[settlement.to_user_id].username,
        amount=settlement.amount
    )
    db.add(db_settlement)
    db.commit()
    db.refresh(db_settlement)

    result = build_settlement_detail(db_settlement)

    log_activity(
        db, current_user.id, SETTLEMENT_RECORDED,
        f"{result.from_user.username} paid {result.to_user.username} {result.amount:.2f}",
        group_id=group_id,
        details={
            "settlementId": result.id,
            "from": result.from_user.user_id,
            "to": result.to_user.user_id,
            "amount": result.amount
        }
    )
    return result


@router.put("/settlements/{settlement_id}", response_model=schemas.Settlement)
def update_settlement(
    group_id: int,
    settlement_id: int,
    settlement_update: schemas.SettlementCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    # All group members can edit settlements
    verify_group_membership(db, group_id, current_user.id)

    settlement = get_settlement_or_404(db, group_id, settlement_id)
    members = validate_settlement_parties(db, group_id, settlement_update)

    old_values = settlement_snapshot(settlement)

    settlement.from_user_id = settlement_update.from_user_id
    settlement.from_username = members[settlement_update.from_user_id].username
    settlement.to_user_id = settlement_update.to_user_id
    settlement.to_username = members[settlement_update.to_user_id].username
    settlement.amount = settlement_update.amount
    db.commit()
    db.refresh(settlement)

    result = build_settlement_detail(settlement)
    changes = diff_fields(old_values, settlement_snapshot(settlement))

    log_activity(
        db, current_user.id, SETTLEMENT_RECORDED,
        f"Updated settlement: {result.from_user.username} paid {result.to_user.username} {result.amount:.2f}",
        group_id=group_id,
        details={"settlementId": settlement_id, "changes": changes}
    )
    return result


@router.delete("/settlements/{settlement_id}")
def delete_settlement(
    group_id: int,
    settlement_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    settlement = get_settlement_or_404(db, group_id, settlement_id)
    old_values = settlement_snapshot(settlement)
    from_username, to_username = settlement.from_username, settlement.to_username

    db.delete(settlement)
    db.commit()

    log_activity(
        db, current_user.id, SETTLEMENT_RECORDED,
        f"Deleted settlement: {from_username} paid {to_username} {old_values['amount']:.2f}",
        group_id=group_id,
        details={"settlementId": settlement_id, "deleted": True, **old_values}
    )
    return {"message": "Settlement deleted successfully"}
