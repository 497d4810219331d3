"""Recurring transaction templates and their daily materialisation."""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from finfusion.engine.recurring import is_due, next_occurrence

from .. import models, schemas
from ..errors import DOMAIN_ERRORS, EntityNotFoundError
from . import transactions

LOG = logging.getLogger(__name__)


def _template_view(template: models.Transaction, today: date) -> schemas.RecurringRead:
    return schemas.RecurringRead(
        **schemas.TransactionRead.model_validate(template).model_dump(),
        next_due_date=next_occurrence(
            template.date, template.recurring_frequency, today, template.recurring_end_date
        ),
    )


def create_recurring(
    session: Session, user_id: str, recurring_in: schemas.RecurringCreate
) -> models.Transaction:
    txn_in = schemas.TransactionCreate(**recurring_in.model_dump(), is_recurring=True)
    return transactions.create_transaction(session, user_id, txn_in, check_alerts=False)


def list_recurring(
    session: Session, user_id: str, today: Optional[date] = None
) -> List[schemas.RecurringRead]:
    today = today or date.today()
    stmt = (
        select(models.Transaction)
        .where(models.Transaction.user_id == user_id, models.Transaction.is_recurring.is_(True))
        .order_by(models.Transaction.date.desc())
    )
    return [_template_view(template, today) for template in session.scalars(stmt)]


def get_recurring(session: Session, user_id: str, template_id: str) -> models.Transaction:
    template = session.get(models.Transaction, template_id)
    if template is None or template.user_id != user_id or not template.is_recurring:
        raise EntityNotFoundError("Recurring transaction not found")
    return template


def recurring_view(session: Session, user_id: str, template_id: str, today: Optional[date] = None) -> schemas.RecurringRead:
    return _template_view(get_recurring(session, user_id, template_id), today or date.today())


def delete_recurring(session: Session, user_id: str, template_id: str) -> None:
    template = get_recurring(session, user_id, template_id)
    session.delete(template)
    session.flush()


def _already_created(session: Session, template: models.Transaction, on: date) -> bool:
    stmt = select(models.Transaction.id).where(
        models.Transaction.user_id == template.user_id,
        models.Transaction.is_recurring.is_(False),
        models.Transaction.date == on,
        models.Transaction.amount == template.amount,
        models.Transaction.type == template.type,
        models.Transaction.category_id == template.category_id,
    )
    for column, value in (
        (models.Transaction.account_id, template.account_id),
        (models.Transaction.description, template.description),
    ):
        stmt = stmt.where(column.is_(None) if value is None else column == value)
    return session.scalar(stmt.limit(1)) is not None


def process_recurring_transactions(session: Session, on: Optional[date] = None) -> schemas.RecurringRunResult:
    """Create today's instances of every due template, once per day."""
    on = on or date.today()
    stmt = select(models.Transaction).where(
        models.Transaction.is_recurring.is_(True),
        models.Transaction.recurring_frequency.is_not(None),
        models.Transaction.date <= on,
    )
    created: List[str] = []
    skipped = 0
    for template in list(session.scalars(stmt)):
        if not is_due(template.date, template.recurring_frequency, on, template.recurring_end_date):
            continue
        if _already_created(session, template, on):
            skipped += 1
            continue
        txn_in = schemas.TransactionCreate(
            amount=template.amount,
            type=template.type,
            category_id=template.category_id,
            account_id=template.account_id,
            to_account_id=template.to_account_id,
            payment_method_id=template.payment_method_id,
            date=on,
            description=template.description,
        )
        try:
            txn = transactions.create_transaction(session, template.user_id, txn_in)
        except DOMAIN_ERRORS as exc:
            LOG.error("Recurring transaction %s failed: %s", template.id, exc, extra={"user_id": template.user_id})
            skipped += 1
            continue
        created.append(txn.id)
    LOG.info("Processed %d recurring transactions for %s", len(created), on.isoformat())
    return schemas.RecurringRunResult(date=on, processed=len(created), skipped=skipped, transaction_ids=created)
