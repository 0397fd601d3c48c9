"""Group expenses router: create, read, update, delete expenses shared within a group."""

from datetime import datetime
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from exceptions import NotFoundError
from utils import membership
from utils.activity import log_activity, diff_fields, EXPENSE_CREATED, EXPENSE_UPDATED, EXPENSE_DELETED
from utils.splits import calculate_equal_shares
from utils.validation import get_group_or_404, verify_group_membership, validate_expense_participants


router = APIRouter(prefix="/groups/{group_id}/expenses", tags=["group expenses"])


def build_expense_detail(expense: models.GroupExpense, splits: list[models.GroupExpenseSplit]) -> schemas.GroupExpense:
    return schemas.GroupExpense(
        id=expense.id,
        group_id=expense.group_id,
        title=expense.title,
        amount=expense.amount,
        type=expense.type,
        date=expense.date,
        paid_by=schemas.Participant(user_id=expense.paid_by_id, username=expense.paid_by_username),
        split_among=[schemas.GroupExpenseSplit.model_validate(s) for s in splits],
        created_at=expense.created_at
    )


def get_splits(db: Session, expense_id: int) -> list[models.GroupExpenseSplit]:
    return db.query(models.GroupExpenseSplit).filter(
        models.GroupExpenseSplit.expense_id == expense_id
    ).order_by(models.GroupExpenseSplit.id).all()


def get_group_expense_or_404(db: Session, group_id: int, expense_id: int) -> models.GroupExpense:
    expense = db.query(models.GroupExpense).filter(
        models.GroupExpense.id == expense_id,
        models.GroupExpense.group_id == group_id
    ).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def expense_snapshot(expense: models.GroupExpense, splits: list[models.GroupExpenseSplit]) -> dict:
    return {
        "title": expense.title,
        "amount": expense.amount,
        "type": expense.type,
        "date": expense.date,
        "paidBy": expense.paid_by_id,
        "splitAmong": sorted(s.user_id for s in splits),
    }


def write_splits(
    db: Session,
    expense_id: int,
    amount: float,
    split_among: list[int],
    members: dict[int, models.GroupMember]
) -> None:
    shares = calculate_equal_shares(amount, split_among)
    for user_id, share in shares.items():
        db.add(models.GroupExpenseSplit(
            expense_id=expense_id,
            user_id=user_id,
            username=members[user_id].username,
            amount=share
        ))


@router.get("", response_model=list[schemas.GroupExpense])
def read_group_expenses(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    membership.purge_expired_requests(db, group_id)

    expenses = db.query(models.GroupExpense).filter(
        models.GroupExpense.group_id == group_id
    ).order_by(models.GroupExpense.date.desc(), models.GroupExpense.id.desc()).all()

    return [build_expense_detail(expense, get_splits(db, expense.id)) for expense in expenses]


@router.post("", response_model=schemas.GroupExpense)
def create_group_expense(
    group_id: int,
    expense: schemas.GroupExpenseCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    # Validate before anything is written so an empty split never reaches the division
    members = validate_expense_participants(db, group_id, expense.paid_by, expense.split_among)

    db_expense = models.GroupExpense(
        group_id=group_id,
        title=expense.title,
        amount=expense.amount,
        type=expense.type,
        date=expense.date or datetime.utcnow(),
        paid_by_id=expense.paid_by,
        paid_by_username=members[expense.paid_by].username
    )
    db.add(db_expense)
    db.flush()

    write_splits(db, db_expense.id, expense.amount, expense.split_among, members)
    db.commit()
    db.refresh(db_expense)

    result = build_expense_detail(db_expense, get_splits(db, db_expense.id))

    log_activity(
        db, current_user.id, EXPENSE_CREATED,
        f'Added "{result.title}" ({result.amount:.2f})',
        group_id=group_id,
        details={"expenseId": result.id, "title": result.title, "amount": result.amount, "type": result.type}
    )
    return result


@router.put("/{expense_id}", response_model=schemas.GroupExpense)
def update_group_expense(
    group_id: int,
    expense_id: int,
    expense_update: schemas.GroupExpenseCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    # All group members can edit expenses
    verify_group_membership(db, group_id, current_user.id)

    expense = get_group_expense_or_404(db, group_id, expense_id)
    members = validate_expense_participants(db, group_id, expense_update.paid_by, expense_update.split_among)

    old_values = expense_snapshot(expense, get_splits(db, expense_id))

    expense.title = expense_update.title
    expense.amount = expense_update.amount
    expense.type = expense_update.type
    expense.date = expense_update.date or expense.date
    expense.paid_by_id = expense_update.paid_by
    expense.paid_by_username = members[expense_update.paid_by].username

    # Replace splits, shares are recomputed from the new amount
    db.query(models.GroupExpenseSplit).filter(
        models.GroupExpenseSplit.expense_id == expense_id
    ).delete()
    write_splits(db, expense_id, expense_update.amount, expense_update.split_among, members)
    db.commit()
    db.refresh(expense)

    splits = get_splits(db, expense_id)
    result = build_expense_detail(expense, splits)
    changes = diff_fields(old_values, expense_snapshot(expense, splits))

    log_activity(
        db, current_user.id, EXPENSE_UPDATED,
        f'Updated "{result.title}"',
        group_id=group_id,
        details={"expenseId": expense_id, "changes": changes}
    )
    return result


@router.delete("/{expense_id}")
def delete_group_expense(
    group_id: int,
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    expense = get_group_expense_or_404(db, group_id, expense_id)
    title, amount = expense.title, expense.amount

    db.query(models.GroupExpenseSplit).filter(
        models.GroupExpenseSplit.expense_id == expense_id
    ).delete()
    db.delete(expense)
    db.commit()

    log_activity(
        db, current_user.id, EXPENSE_DELETED,
        f'Deleted "{title}" ({amount:.2f})',
        group_id=group_id,
        details={"expenseId": expense_id, "title": title, "amount": amount}
    )
    return {"message": "Expense deleted successfully"}
