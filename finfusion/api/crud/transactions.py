"""Transaction CRUD, balance effects, import/export and summaries.

Concrete transactions move money: income credits the account, an expense
debits it and a transfer does both. Recurring templates
(``is_recurring = True``) only describe a schedule, so they never touch
balances or summaries; :mod:`.recurring` materialises them.
"""
from __future__ import annotations

import io
import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from finfusion.engine import analytics
from finfusion.engine.loans import as_money

from .. import models, schemas
from ..errors import DOMAIN_ERRORS, BusinessRuleError, EntityNotFoundError
from . import accounts, budgets, categories
from .common import get_owned, paginate, save

LOG = logging.getLogger(__name__)

EXPORT_COLUMNS = ["Date", "Type", "Category", "Amount", "Description", "Payment Method"]
EXPORT_FORMATS = ("csv", "json")
NULLABLE_FIELDS = frozenset(
    {"account_id", "to_account_id", "payment_method_id", "description", "recurring_frequency", "recurring_end_date"}
)


def _effects(txn: models.Transaction) -> List[Tuple[Optional[str], Decimal]]:
    amount = Decimal(txn.amount)
    if txn.type == "INCOME":
        return [(txn.account_id, amount)]
    if txn.type == "EXPENSE":
        return [(txn.account_id, -amount)]
    return [(txn.account_id, -amount), (txn.to_account_id, amount)]


def _moves_money(txn: models.Transaction) -> bool:
    return not txn.is_recurring


def apply_balance_effect(session: Session, txn: models.Transaction, sign: int = 1) -> None:
    """Apply (``sign=1``) or reverse (``sign=-1``) the effect of ``txn``."""
    if not _moves_money(txn):
        return
    for account_id, delta in _effects(txn):
        if account_id is None:
            continue
        account = session.get(models.Account, account_id)
        if account is not None:
            accounts.change_balance(account, delta * sign)


def _check_references(session: Session, user_id: str, data: Dict[str, Any]) -> None:
    if data.get("category_id") is not None:
        categories.get_category(session, user_id, data["category_id"])
    if data.get("account_id") is not None:
        accounts.get_account(session, user_id, data["account_id"])
    if data.get("to_account_id") is not None:
        try:
            accounts.get_account(session, user_id, data["to_account_id"])
        except EntityNotFoundError as exc:
            raise EntityNotFoundError("Destination account not found") from exc
    if data.get("payment_method_id") is not None:
        if session.get(models.PaymentMethod, data["payment_method_id"]) is None:
            raise EntityNotFoundError("Payment method not found")


def _check_alerts(session: Session, txn: models.Transaction) -> None:
    if txn.type != "EXPENSE" or txn.is_recurring:
        return
    try:
        # a failed check must not poison the surrounding transaction
        with session.begin_nested():
            budgets.check_budget_alerts(session, txn.user_id, txn.category_id, on=txn.date)
    except Exception:
        LOG.exception("Budget alert check failed", extra={"user_id": txn.user_id})


def list_transactions(
    session: Session,
    user_id: str,
    *,
    txn_type: Optional[str] = None,
    category_id: Optional[str] = None,
    account_id: Optional[str] = None,
    payment_method_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    is_recurring: Optional[bool] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[models.Transaction], int]:
    stmt = select(models.Transaction).where(models.Transaction.user_id == user_id)
    if txn_type is not None:
        stmt = stmt.where(models.Transaction.type == txn_type)
    if category_id is not None:
        stmt = stmt.where(models.Transaction.category_id == category_id)
    if account_id is not None:
        stmt = stmt.where(
            or_(models.Transaction.account_id == account_id, models.Transaction.to_account_id == account_id)
        )
    if payment_method_id is not None:
        stmt = stmt.where(models.Transaction.payment_method_id == payment_method_id)
    if start_date is not None:
        stmt = stmt.where(models.Transaction.date >= start_date)
    if end_date is not None:
        stmt = stmt.where(models.Transaction.date <= end_date)
    if is_recurring is not None:
        stmt = stmt.where(models.Transaction.is_recurring.is_(is_recurring))
    if search:
        pattern = f"%{search}%"
        stmt = stmt.outerjoin(models.Category, models.Transaction.category_id == models.Category.id).where(
            or_(models.Transaction.description.ilike(pattern), models.Category.name.ilike(pattern))
        )
    stmt = stmt.order_by(models.Transaction.date.desc(), models.Transaction.created_at.desc())
    return paginate(session, stmt, page, limit)


def get_transaction(session: Session, user_id: str, transaction_id: str) -> models.Transaction:
    return get_owned(session, models.Transaction, transaction_id, user_id, "Transaction")


def create_transaction(
    session: Session,
    user_id: str,
    txn_in: schemas.TransactionCreate,
    *,
    check_alerts: bool = True,
) -> models.Transaction:
    data = txn_in.model_dump()
    _check_references(session, user_id, data)
    data["amount"] = as_money(data["amount"])
    if not data["is_recurring"]:
        data["recurring_frequency"] = None
        data["recurring_end_date"] = None
    txn = models.Transaction(user_id=user_id, **data)
    session.add(txn)
    session.flush()
    apply_balance_effect(session, txn)
    save(session, txn)
    if check_alerts:
        _check_alerts(session, txn)
    return txn


def update_transaction(
    session: Session, user_id: str, transaction_id: str, update_in: schemas.TransactionUpdate
) -> models.Transaction:
    txn = get_transaction(session, user_id, transaction_id)
    changes = {
        field: value
        for field, value in update_in.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    _check_references(session, user_id, changes)

    merged = {
        "type": changes.get("type", txn.type),
        "account_id": changes.get("account_id", txn.account_id),
        "to_account_id": changes.get("to_account_id", txn.to_account_id),
        "is_recurring": changes.get("is_recurring", txn.is_recurring),
        "recurring_frequency": changes.get("recurring_frequency", txn.recurring_frequency),
    }
    if merged["type"] == "TRANSFER":
        if not merged["account_id"] or not merged["to_account_id"]:
            raise BusinessRuleError("Transfers require both account_id and to_account_id")
        if merged["account_id"] == merged["to_account_id"]:
            raise BusinessRuleError("Cannot transfer to the same account")
    if merged["is_recurring"] and not merged["recurring_frequency"]:
        raise BusinessRuleError("Recurring transactions require recurring_frequency")

    apply_balance_effect(session, txn, sign=-1)
    for field, value in changes.items():
        if field == "amount":
            value = as_money(value)
        setattr(txn, field, value)
    if txn.type != "TRANSFER":
        txn.to_account_id = None
    apply_balance_effect(session, txn)
    save(session, txn)
    _check_alerts(session, txn)
    return txn


def delete_transaction(session: Session, user_id: str, transaction_id: str) -> None:
    txn = get_transaction(session, user_id, transaction_id)
    apply_balance_effect(session, txn, sign=-1)
    for payment in session.scalars(
        select(models.LoanPayment).where(models.LoanPayment.transaction_id == txn.id)
    ):
        payment.transaction_id = None
    session.delete(txn)
    session.flush()


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def import_transactions(
    session: Session, user_id: str, rows: Iterable[Dict[str, Any]]
) -> schemas.ImportResult:
    """Create each row independently and collect per-row errors (1-based rows)."""
    imported = 0
    errors: List[schemas.ImportRowError] = []
    total = 0
    for index, row in enumerate(rows, start=1):
        total += 1
        try:
            txn_in = schemas.TransactionCreate.model_validate(row)
            create_transaction(session, user_id, txn_in)
        except ValidationError as exc:
            errors.append(schemas.ImportRowError(row=index, error=_first_error(exc)))
        except DOMAIN_ERRORS as exc:
            errors.append(schemas.ImportRowError(row=index, error=str(exc)))
        else:
            imported += 1
    LOG.info("Imported %d of %d transactions", imported, total, extra={"user_id": user_id})
    return schemas.ImportResult(imported=imported, errors=errors, total=total)


def export_transactions(
    session: Session,
    user_id: str,
    export_format: str = "csv",
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> str:
    if export_format not in EXPORT_FORMATS:
        raise BusinessRuleError("Unsupported export format")
    stmt = select(models.Transaction).where(models.Transaction.user_id == user_id)
    if start_date is not None:
        stmt = stmt.where(models.Transaction.date >= start_date)
    if end_date is not None:
        stmt = stmt.where(models.Transaction.date <= end_date)
    stmt = stmt.order_by(models.Transaction.date.desc(), models.Transaction.created_at.desc())
    transactions = list(session.scalars(stmt))

    if export_format == "json":
        payload = [schemas.TransactionRead.model_validate(txn).model_dump(mode="json") for txn in transactions]
        return json.dumps(payload, ensure_ascii=False, indent=2)

    frame = pd.DataFrame(
        [
            {
                "Date": txn.date.isoformat(),
                "Type": txn.type,
                "Category": txn.category.name if txn.category else "",
                "Amount": f"{Decimal(txn.amount):.2f}",
                "Description": txn.description or "",
                "Payment Method": txn.payment_method.name if txn.payment_method else "",
            }
            for txn in transactions
        ],
        columns=EXPORT_COLUMNS,
    )
    buffer = io.StringIO()
    frame.to_csv(buffer, index=False)
    return buffer.getvalue()


def transaction_rows(
    session: Session,
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    txn_type: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Concrete transactions flattened for :func:`analytics.transactions_frame`."""
    stmt = (
        select(models.Transaction, models.Category)
        .outerjoin(models.Category, models.Transaction.category_id == models.Category.id)
        .where(models.Transaction.user_id == user_id, models.Transaction.is_recurring.is_(False))
    )
    if start_date is not None:
        stmt = stmt.where(models.Transaction.date >= start_date)
    if end_date is not None:
        stmt = stmt.where(models.Transaction.date <= end_date)
    if txn_type is not None:
        stmt = stmt.where(models.Transaction.type == txn_type)
    rows = []
    for txn, category in session.execute(stmt):
        rows.append(
            {
                "date": txn.date,
                "type": txn.type,
                "amount": float(txn.amount),
                "category_id": txn.category_id,
                "category_name": category.name if category else None,
                "category_type": category.type if category else None,
                "category_icon": category.icon if category else None,
                "category_color": category.color if category else None,
                "is_opening_balance": txn.is_opening_balance,
            }
        )
    return rows


def transaction_frame(
    session: Session,
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> pd.DataFrame:
    return analytics.transactions_frame(transaction_rows(session, user_id, start_date, end_date))


def transaction_summary(
    session: Session, user_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> schemas.TransactionSummary:
    frame = transaction_frame(session, user_id, start_date, end_date)
    return schemas.TransactionSummary(**analytics.summarize(frame))


def transaction_analytics(
    session: Session, user_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> schemas.TransactionAnalytics:
    frame = transaction_frame(session, user_id, start_date, end_date)
    return schemas.TransactionAnalytics(
        summary=schemas.TransactionSummary(**analytics.summarize(frame)),
        spending_by_category=analytics.category_breakdown(frame, "EXPENSE"),
        monthly_trends=analytics.trends(frame, "month"),
    )
