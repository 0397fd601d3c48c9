from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, JSON, UniqueConstraint, Index

from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    username = Column(String)
    is_active = Column(Boolean, default=True)


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_by_id = Column(Integer, nullable=False)
    join_code = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class GroupMember(Base):
    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_member"),)

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, index=True, nullable=False)
    user_id = Column(Integer, index=True, nullable=False)
    username = Column(String)  # Snapshot at join time
    joined_at = Column(DateTime, default=datetime.utcnow)


class PendingMember(Base):
    __tablename__ = "pending_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_pending_member"),)

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, index=True, nullable=False)
    user_id = Column(Integer, index=True, nullable=False)
    username = Column(String)
    requested_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)


class GroupExpense(Base):
    __tablename__ = "group_expenses"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, index=True, nullable=False)
    title = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    type = Column(String, nullable=False)  # Expense category
    date = Column(DateTime, default=datetime.utcnow)
    paid_by_id = Column(Integer, nullable=False)
    paid_by_username = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)


class GroupExpenseSplit(Base):
    __tablename__ = "group_expense_splits"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, index=True, nullable=False)
    user_id = Column(Integer, nullable=False)
    username = Column(String)
    amount = Column(Float, nullable=False)  # Share persisted at write time


class Settlement(Base):
    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, index=True, nullable=False)
    from_user_id = Column(Integer, nullable=False)
    from_username = Column(String)
    to_user_id = Column(Integer, nullable=False)
    to_username = Column(String)
    amount = Column(Float, nullable=False)
    date = Column(DateTime, default=datetime.utcnow)


class Expense(Base):
    """Solo expense, scoped to a single user and independent of groups."""
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True, nullable=False)
    title = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    type = Column(String, nullable=False)
    date = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)


class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (
        Index("ix_activities_user_created", "user_id", "created_at"),
        Index("ix_activities_group_created", "group_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False)
    group_id = Column(Integer, nullable=True)  # NULL for personal activity
    type = Column(String, nullable=False)
    action = Column(String, nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
