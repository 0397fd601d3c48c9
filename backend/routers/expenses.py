"""Expenses router: personal (solo) expenses owned by a single user."""

from datetime import datetime
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from exceptions import NotFoundError
from utils.activity import log_activity, diff_fields, EXPENSE_CREATED, EXPENSE_UPDATED, EXPENSE_DELETED


router = APIRouter(prefix="/expenses", tags=["expenses"])


def get_own_expense_or_404(db: Session, expense_id: int, user_id: int) -> models.Expense:
    # Other users' expenses are reported as missing, not forbidden
    expense = db.query(models.Expense).filter(
        models.Expense.id == expense_id,
        models.Expense.user_id == user_id
    ).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


@router.get("", response_model=list[schemas.Expense])
def read_expenses(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return db.query(models.Expense).filter(
        models.Expense.user_id == current_user.id
    ).order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()


@router.post("", response_model=schemas.Expense)
def create_expense(
    expense: schemas.ExpenseCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    db_expense = models.Expense(
        user_id=current_user.id,
        title=expense.title,
        amount=expense.amount,
        type=expense.type,
        date=expense.date or datetime.utcnow()
    )
    db.add(db_expense)
    db.commit()
    db.refresh(db_expense)

    result = schemas.Expense.model_validate(db_expense)

    log_activity(
        db, current_user.id, EXPENSE_CREATED,
        f'Added "{result.title}" ({result.amount:.2f})',
        details={"expenseId": result.id, "title": result.title, "amount": result.amount, "type": result.type}
    )
    return result


@router.put("/{expense_id}", response_model=schemas.Expense)
def update_expense(
    expense_id: int,
    expense_update: schemas.ExpenseCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense = get_own_expense_or_404(db, expense_id, current_user.id)

    old_values = {"title": expense.title, "amount": expense.amount, "type": expense.type, "date": expense.date}

    expense.title = expense_update.title
    expense.amount = expense_update.amount
    expense.type = expense_update.type
    expense.date = expense_update.date or expense.date
    db.commit()
    db.refresh(expense)

    result = schemas.Expense.model_validate(expense)
    changes = diff_fields(old_values, {
        "title": result.title, "amount": result.amount, "type": result.type, "date": result.date
    })

    log_activity(
        db, current_user.id, EXPENSE_UPDATED,
        f'Updated "{result.title}"',
        details={"expenseId": expense_id, "changes": changes}
    )
    return result


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense = get_own_expense_or_404(db, expense_id, current_user.id)
    title, amount = expense.title, expense.amount

    db.delete(expense)
    db.commit()

    log_activity(
        db, current_user.id, EXPENSE_DELETED,
        f'Deleted "{title}" ({amount:.2f})',
        details={"expenseId": expense_id, "title": title, "amount": amount}
    )
    return {"message": "Expense deleted successfully"}
