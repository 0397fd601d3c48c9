"""Balance calculation for group expenses and settlements."""

from typing import Dict
from sqlalchemy.orm import Session

import models


def calculate_net_balances(db: Session, group_id: int) -> Dict[int, float]:
    """
    Calculate the net balance of every current member of a group.

    Balances are derived from the full expense and settlement history on every
    call; no running total is stored anywhere.

    1. Every current member starts at zero (pending and departed users are not included).
    2. Each expense credits its payer with the full amount and debits every
       split participant with their persisted share.
    3. Each settlement credits the sender and debits the receiver.

    Entries for users who are no longer members are dropped, so the result is
    zero-sum over current members only when every participant is still a member.

    Args:
        db: Database session
        group_id: ID of the group

    Returns:
        Dictionary mapping user_id to net balance. Positive means the member is
        owed money, negative means the member owes money.
    """
    members = db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id
    ).order_by(models.GroupMember.joined_at, models.GroupMember.id).all()

    net_balances = {member.user_id: 0.0 for member in members}

    expenses = db.query(models.GroupExpense).filter(models.GroupExpense.group_id == group_id).all()
    expense_ids = [expense.id for expense in expenses]

    splits = []
    if expense_ids:
        splits = db.query(models.GroupExpenseSplit).filter(
            models.GroupExpenseSplit.expense_id.in_(expense_ids)
        ).all()

    for expense in expenses:
        # Creditor (payer) increases balance
        if expense.paid_by_id in net_balances:
            net_balances[expense.paid_by_id] += expense.amount

    for split in splits:
        # Debtor decreases balance
        if split.user_id in net_balances:
            net_balances[split.user_id] -= split.amount

    settlements = db.query(models.Settlement).filter(models.Settlement.group_id == group_id).all()
    for settlement in settlements:
        if settlement.from_user_id in net_balances:
            net_balances[settlement.from_user_id] += settlement.amount
        if settlement.to_user_id in net_balances:
            net_balances[settlement.to_user_id] -= settlement.amount

    return net_balances
