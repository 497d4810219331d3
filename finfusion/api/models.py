"""SQLAlchemy models for the FinFusion API."""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .database import Base, new_id, utcnow

USER_ROLES = ("ADMIN", "MANAGER", "USER")
ACCOUNT_TYPES = ("CHECKING", "SAVINGS", "CREDIT_CARD", "CASH", "INVESTMENT", "LOAN", "OTHER")
CATEGORY_TYPES = ("INCOME", "EXPENSE")
TRANSACTION_TYPES = ("INCOME", "EXPENSE", "TRANSFER")
RECURRING_FREQUENCIES = ("DAILY", "WEEKLY", "MONTHLY", "QUARTERLY", "YEARLY")
BUDGET_PERIODS = ("MONTHLY", "QUARTERLY", "YEARLY")
LOAN_TYPES = ("PERSONAL", "HOME", "CAR", "EDUCATION", "BUSINESS", "CREDIT_CARD", "OTHER")
LOAN_STATUSES = ("ACTIVE", "PAID_OFF", "DEFAULTED", "REFINANCED", "PAUSED")
PREPAYMENT_TYPES = ("FULL", "PARTIAL", "EMI_ONLY")
PAYMENT_STATUSES = ("SCHEDULED", "COMPLETED", "DEFAULTED", "CANCELLED")
NOTIFICATION_TYPES = ("SUCCESS", "ERROR", "WARNING", "INFO")


def _money(nullable: bool = False, default: Optional[Decimal] = None) -> Column:
    return Column(Numeric(12, 2), nullable=nullable, default=default)


class User(Base):
    __tablename__ = "users"

    id: str = Column(String(36), primary_key=True, default=new_id)
    email: str = Column(String(255), unique=True, nullable=False, index=True)
    username: str = Column(String(50), unique=True, nullable=False, index=True)
    password_hash: str = Column(String(255), nullable=False)
    name: str = Column(String(100), nullable=False)
    profile_picture: Optional[str] = Column(String(500), nullable=True)
    role: str = Column(String(20), nullable=False, default="USER")
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    accounts = relationship("Account", back_populates="user", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="user", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")
    budgets = relationship("Budget", back_populates="user", cascade="all, delete-orphan")
    loans = relationship("Loan", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")


class Account(Base):
    __tablename__ = "accounts"

    id: str = Column(String(36), primary_key=True, default=new_id)
    user_id: str = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name: str = Column(String(100), nullable=False)
    type: str = Column(String(20), nullable=False)
    balance: Decimal = _money(default=Decimal("0"))
    currency: str = Column(String(3), nullable=False, default="USD")
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="accounts")


class Category(Base):
    __tablename__ = "categories"

    id: str = Column(String(36), primary_key=True, default=new_id)
    user_id: Optional[str] = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    name: str = Column(String(100), nullable=False, index=True)
    type: str = Column(String(10), nullable=False)
    icon: Optional[str] = Column(String(50), nullable=True)
    color: Optional[str] = Column(String(7), nullable=True)
    description: Optional[str] = Column(Text, nullable=True)
    is_system: bool = Column(Boolean, nullable=False, default=False)
    is_essential: bool = Column(Boolean, nullable=False, default=False)
    parent_category_id: Optional[str] = Column(String(36), ForeignKey("categories.id"), nullable=True)
    created_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="categories")
    parent = relationship("Category", remote_side="Category.id", back_populates="sub_categories")
    sub_categories = relationship("Category", back_populates="parent", order_by="Category.name")


class PaymentMethod(Base):
    __tablename__ = "payment_methods"

    id: str = Column(String(36), primary_key=True, default=new_id)
    code: str = Column(String(50), unique=True, nullable=False, index=True)
    name: str = Column(String(100), nullable=False)
    description: Optional[str] = Column(Text, nullable=True)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Transaction(Base):
    __tablename__ = "transactions"

    id: str = Column(String(36), primary_key=True, default=new_id)
    user_id: str = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount: Decimal = _money()
    type: str = Column(String(10), nullable=False)
    category_id: str = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    account_id: Optional[str] = Column(String(36), ForeignKey("accounts.id"), nullable=True, index=True)
    to_account_id: Optional[str] = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    payment_method_id: Optional[str] = Column(String(36), ForeignKey("payment_methods.id"), nullable=True)
    date: dt.date = Column(Date, nullable=False, index=True)
    description: Optional[str] = Column(String(500), nullable=True)
    is_recurring: bool = Column(Boolean, nullable=False, default=False)
    recurring_frequency: Optional[str] = Column(String(10), nullable=True)
    recurring_end_date: Optional[dt.date] = Column(Date, nullable=True)
    is_opening_balance: bool = Column(Boolean, nullable=False, default=False)
    created_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="transactions")
    category = relationship("Category")
    account = relationship("Account", foreign_keys=[account_id])
    to_account = relationship("Account", foreign_keys=[to_account_id])
    payment_method = relationship("PaymentMethod")


class Budget(Base):
    __tablename__ = "budgets"

    id: str = Column(String(36), primary_key=True, default=new_id)
    user_id: str = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id: str = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    amount: Decimal = _money()
    period_type: str = Column(String(10), nullable=False, default="MONTHLY")
    start_date: dt.date = Column(Date, nullable=False)
    end_date: dt.date = Column(Date, nullable=False)
    alert_threshold: int = Column(Integer, nullable=False, default=80)
    allow_rollover: bool = Column(Boolean, nullable=False, default=False)
    created_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="budgets")
    category = relationship("Category")
    alerts = relationship("BudgetAlert", back_populates="budget", cascade="all, delete-orphan")


class BudgetAlert(Base):
    __tablename__ = "budget_alerts"

    id: str = Column(String(36), primary_key=True, default=new_id)
    budget_id: str = Column(String(36), ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    threshold_percentage: int = Column(Integer, nullable=False)
    triggered_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)
    is_acknowledged: bool = Column(Boolean, nullable=False, default=False)

    budget = relationship("Budget", back_populates="alerts")


class Loan(Base):
    __tablename__ = "loans"

    id: str = Column(String(36), primary_key=True, default=new_id)
    user_id: str = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id: str = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    name: str = Column(String(100), nullable=False)
    type: str = Column(String(20), nullable=False, default="PERSONAL")
    status: str = Column(String(20), nullable=False, default="ACTIVE")
    original_principal: Decimal = _money()
    original_interest_rate: Decimal = Column(Numeric(6, 3), nullable=False)
    original_term_months: int = Column(Integer, nullable=False)
    original_start_date: dt.date = Column(Date, nullable=False)
    current_balance: Decimal = _money()
    current_interest_rate: Decimal = Column(Numeric(6, 3), nullable=False)
    remaining_term_months: int = Column(Integer, nullable=False)
    is_existing_loan: bool = Column(Boolean, nullable=False, default=False)
    total_paid: Decimal = _money(default=Decimal("0"))
    total_interest_paid: Decimal = _money(default=Decimal("0"))
    total_prepayments: Decimal = _money(default=Decimal("0"))
    total_interest_savings: Decimal = _money(default=Decimal("0"))
    last_payment_date: Optional[dt.date] = Column(Date, nullable=True)
    next_payment_date: Optional[dt.date] = Column(Date, nullable=True)
    created_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="loans")
    account = relationship("Account")
    payments = relationship(
        "LoanPayment",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="LoanPayment.payment_date.desc()",
    )


class LoanPayment(Base):
    __tablename__ = "loan_payments"

    id: str = Column(String(36), primary_key=True, default=new_id)
    loan_id: str = Column(String(36), ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_id: Optional[str] = Column(String(36), ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True)
    amount: Decimal = _money()
    principal_amount: Decimal = _money(default=Decimal("0"))
    interest_amount: Decimal = _money(default=Decimal("0"))
    payment_date: dt.date = Column(Date, nullable=False)
    is_prepayment: bool = Column(Boolean, nullable=False, default=False)
    prepayment_type: Optional[str] = Column(String(10), nullable=True)
    interest_savings: Optional[Decimal] = _money(nullable=True)
    term_reduction: Optional[int] = Column(Integer, nullable=True)
    is_scheduled: bool = Column(Boolean, nullable=False, default=False)
    scheduled_date: Optional[dt.date] = Column(Date, nullable=True)
    status: str = Column(String(10), nullable=False, default="COMPLETED")
    default_reason: Optional[str] = Column(String(255), nullable=True)
    created_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)

    loan = relationship("Loan", back_populates="payments")
    transaction = relationship("Transaction")


class Notification(Base):
    __tablename__ = "notifications"

    id: str = Column(String(36), primary_key=True, default=new_id)
    user_id: str = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: str = Column(String(200), nullable=False)
    message: str = Column(Text, nullable=False)
    type: str = Column(String(10), nullable=False, default="INFO")
    is_read: bool = Column(Boolean, nullable=False, default=False)
    created_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: dt.datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="notifications")
