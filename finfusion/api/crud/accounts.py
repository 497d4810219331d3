"""Account CRUD and balance bookkeeping."""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from finfusion.engine.loans import as_money

from .. import models, schemas
from ..errors import BusinessRuleError
from .common import apply_updates, get_owned, paginate, save


def list_accounts(
    session: Session,
    user_id: str,
    *,
    account_type: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[models.Account], int]:
    stmt = select(models.Account).where(models.Account.user_id == user_id)
    if account_type is not None:
        stmt = stmt.where(models.Account.type == account_type)
    if is_active is not None:
        stmt = stmt.where(models.Account.is_active.is_(is_active))
    if search:
        stmt = stmt.where(models.Account.name.ilike(f"%{search}%"))
    stmt = stmt.order_by(models.Account.created_at.desc(), models.Account.name)
    return paginate(session, stmt, page, limit)


def get_account(session: Session, user_id: str, account_id: str) -> models.Account:
    return get_owned(session, models.Account, account_id, user_id, "Account")


def create_account(session: Session, user_id: str, account_in: schemas.AccountCreate) -> models.Account:
    data = account_in.model_dump()
    data["balance"] = as_money(data["balance"])
    data["currency"] = data["currency"].upper()
    account = models.Account(user_id=user_id, **data)
    session.add(account)
    return save(session, account)


def update_account(
    session: Session, user_id: str, account_id: str, update_in: schemas.AccountUpdate
) -> models.Account:
    account = get_account(session, user_id, account_id)
    changes = apply_updates(account, update_in)
    if changes.get("balance") is not None:
        account.balance = as_money(changes["balance"])
    if changes.get("currency"):
        account.currency = changes["currency"].upper()
    return save(session, account)


def has_transactions(session: Session, account_id: str) -> bool:
    stmt = select(func.count(models.Transaction.id)).where(
        or_(models.Transaction.account_id == account_id, models.Transaction.to_account_id == account_id)
    )
    return bool(session.scalar(stmt))


def delete_account(session: Session, user_id: str, account_id: str) -> None:
    account = get_account(session, user_id, account_id)
    if has_transactions(session, account_id):
        raise BusinessRuleError(
            "Cannot delete account with existing transactions. Please delete or move transactions first."
        )
    loan_stmt = select(func.count(models.Loan.id)).where(models.Loan.account_id == account_id)
    if session.scalar(loan_stmt):
        raise BusinessRuleError("Cannot delete account linked to a loan")
    session.delete(account)
    session.flush()


def change_balance(account: models.Account, delta: Decimal) -> None:
    account.balance = as_money(Decimal(account.balance or 0) + Decimal(delta))


def adjust_balance(session: Session, user_id: str, account_id: str, amount: Decimal) -> models.Account:
    account = get_account(session, user_id, account_id)
    change_balance(account, amount)
    return save(session, account)


def accounts_by_type(session: Session, user_id: str, account_type: str) -> List[models.Account]:
    stmt = (
        select(models.Account)
        .where(models.Account.user_id == user_id, models.Account.type == account_type)
        .order_by(models.Account.name)
    )
    return list(session.scalars(stmt))


def account_summary(session: Session, user_id: str) -> schemas.AccountSummary:
    stmt = (
        select(
            models.Account.type,
            func.count(models.Account.id).label("count"),
            func.coalesce(func.sum(models.Account.balance), 0).label("balance"),
        )
        .where(models.Account.user_id == user_id, models.Account.is_active.is_(True))
        .group_by(models.Account.type)
    )
    by_type = {
        kind: schemas.AccountTypeTotal(count=0, balance=Decimal("0.00")) for kind in models.ACCOUNT_TYPES
    }
    total = Decimal("0")
    count = 0
    for row in session.execute(stmt):
        balance = as_money(row.balance)
        by_type[row.type] = schemas.AccountTypeTotal(count=row.count, balance=balance)
        total += balance
        count += row.count
    return schemas.AccountSummary(total_balance=as_money(total), total_accounts=count, by_type=by_type)
