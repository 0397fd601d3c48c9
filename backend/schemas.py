from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


EXPENSE_CATEGORIES = ['Food', 'Transport', 'Entertainment', 'Shopping', 'Bills', 'Healthcare', 'Education', 'Other']


def _validate_category(v):
    if v not in EXPENSE_CATEGORIES:
        raise ValueError(f'Category must be one of {EXPENSE_CATEGORIES}')
    return v


# Groups

class GroupCreate(BaseModel):
    name: str = Field(min_length=1)

class GroupUpdate(BaseModel):
    name: str = Field(min_length=1)

class GroupJoin(BaseModel):
    join_code: str = Field(min_length=1)

class GroupMember(BaseModel):
    user_id: int
    username: Optional[str] = None
    joined_at: datetime

    class Config:
        from_attributes = True

class PendingMember(BaseModel):
    user_id: int
    username: Optional[str] = None
    requested_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True

class Group(BaseModel):
    id: int
    name: str
    created_by_id: int
    join_code: str
    created_at: datetime

    class Config:
        from_attributes = True

class GroupWithMembers(Group):
    members: list[GroupMember]
    pending_members: list[PendingMember] = []


# Group expenses

class Participant(BaseModel):
    user_id: int
    username: Optional[str] = None

class GroupExpenseSplit(BaseModel):
    user_id: int
    username: Optional[str] = None
    amount: float

    class Config:
        from_attributes = True

class GroupExpenseCreate(BaseModel):
    title: str = Field(min_length=1)
    amount: float = Field(ge=0, allow_inf_nan=False)
    type: str
    date: Optional[datetime] = None
    paid_by: int  # User ID of the payer
    split_among: list[int]  # User IDs sharing the expense equally

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        return _validate_category(v)

    @field_validator('title')
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Title cannot be blank')
        return v

class GroupExpense(BaseModel):
    id: int
    group_id: int
    title: str
    amount: float
    type: str
    date: datetime
    paid_by: Participant
    split_among: list[GroupExpenseSplit]
    created_at: datetime


# Settlements

class SettlementCreate(BaseModel):
    from_user_id: int
    to_user_id: int
    amount: float = Field(ge=0, allow_inf_nan=False)

class Settlement(BaseModel):
    id: int
    group_id: int
    from_user: Participant
    to_user: Participant
    amount: float
    date: datetime


class GroupBalance(BaseModel):
    """Net position of one member. Positive means owed money, negative means owing."""
    user_id: int
    username: Optional[str] = None
    balance: float


# Solo expenses

class ExpenseCreate(BaseModel):
    title: str = Field(min_length=1)
    amount: float = Field(ge=0, allow_inf_nan=False)
    type: str
    date: Optional[datetime] = None

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        return _validate_category(v)

    @field_validator('title')
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Title cannot be blank')
        return v

class Expense(BaseModel):
    id: int
    user_id: int
    title: str
    amount: float
    type: str
    date: datetime
    created_at: datetime

    class Config:
        from_attributes = True


# Activity feed

class Activity(BaseModel):
    id: int
    user_id: int
    group_id: Optional[int] = None
    type: str
    action: str
    details: Optional[dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
