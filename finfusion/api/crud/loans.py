"""Loan CRUD, payments, pre-payment analysis and scheduled payments."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.orm import Session

from finfusion.engine import loans as amortization
from finfusion.engine.loans import as_money

from .. import models, schemas
from ..errors import BusinessRuleError, EntityConflictError, EntityNotFoundError
from . import accounts, categories, notifications, transactions
from .common import apply_updates, get_owned, paginate, save

LOG = logging.getLogger(__name__)

LOAN_CATEGORY = {"name": "Loan Payment", "icon": "🏦", "color": "#FF6B35"}
INSUFFICIENT_BALANCE = "Insufficient account balance"
RECENT_PREPAYMENTS = 10


def loan_emi(loan: models.Loan) -> float:
    balance = float(loan.current_balance)
    if balance <= 0 or loan.status == "PAID_OFF":
        return 0.0
    return amortization.calculate_emi(
        balance, float(loan.current_interest_rate), max(1, loan.remaining_term_months)
    )


def list_loans(session: Session, user_id: str, status: Optional[str] = None) -> List[models.Loan]:
    stmt = select(models.Loan).where(models.Loan.user_id == user_id)
    if status is not None:
        stmt = stmt.where(models.Loan.status == status)
    return list(session.scalars(stmt.order_by(models.Loan.created_at.desc())))


def get_loan(session: Session, user_id: str, loan_id: str) -> models.Loan:
    return get_owned(session, models.Loan, loan_id, user_id, "Loan")


def _completed(payments: List[models.LoanPayment]) -> List[models.LoanPayment]:
    return [payment for payment in payments if payment.status == "COMPLETED"]


def loan_detail(session: Session, user_id: str, loan_id: str) -> schemas.LoanDetail:
    loan = get_loan(session, user_id, loan_id)
    done = _completed(loan.payments)
    totals = schemas.PaymentTotals(
        total_payments=len(done),
        total_amount=round(sum(float(p.amount) for p in done), 2),
        total_principal=round(sum(float(p.principal_amount) for p in done), 2),
        total_interest=round(sum(float(p.interest_amount) for p in done), 2),
        prepayment_count=sum(1 for p in done if p.is_prepayment),
    )
    return schemas.LoanDetail(
        **schemas.LoanRead.model_validate(loan).model_dump(),
        emi=round(loan_emi(loan), 2),
        payments=[schemas.LoanPaymentRead.model_validate(p) for p in loan.payments],
        payment_summary=totals,
    )


def create_loan(session: Session, user_id: str, loan_in: schemas.LoanCreate) -> models.Loan:
    accounts.get_account(session, user_id, loan_in.account_id)
    data = loan_in.model_dump()
    principal = as_money(data["original_principal"])
    balance = data["current_balance"] if data["current_balance"] is not None else principal
    rate = data["current_interest_rate"]
    if rate is None:
        rate = data["original_interest_rate"]
    remaining = data["remaining_term_months"]
    if remaining is None:
        remaining = data["original_term_months"]

    next_payment = data["next_payment_date"]
    if next_payment is None:
        if not data["is_existing_loan"]:
            next_payment = data["original_start_date"] + relativedelta(months=1)
        elif data["last_payment_date"] is not None:
            next_payment = data["last_payment_date"] + relativedelta(months=1)

    loan = models.Loan(
        user_id=user_id,
        account_id=data["account_id"],
        name=data["name"].strip(),
        type=data["type"],
        status="ACTIVE" if as_money(balance) > 0 else "PAID_OFF",
        original_principal=principal,
        original_interest_rate=data["original_interest_rate"],
        original_term_months=data["original_term_months"],
        original_start_date=data["original_start_date"],
        current_balance=as_money(balance),
        current_interest_rate=rate,
        remaining_term_months=remaining,
        is_existing_loan=data["is_existing_loan"],
        total_paid=as_money(data["total_paid"] or 0),
        total_interest_paid=as_money(data["total_interest_paid"] or 0),
        last_payment_date=data["last_payment_date"],
        next_payment_date=next_payment,
    )
    session.add(loan)
    save(session, loan)
    LOG.info("Loan %s created", loan.id, extra={"user_id": user_id})
    return loan


def update_loan(session: Session, user_id: str, loan_id: str, update_in: schemas.LoanUpdate) -> models.Loan:
    loan = get_loan(session, user_id, loan_id)
    changes = apply_updates(loan, update_in)
    for field in ("current_balance", "total_paid", "total_interest_paid"):
        if changes.get(field) is not None:
            setattr(loan, field, as_money(changes[field]))
    return save(session, loan)


def delete_loan(session: Session, user_id: str, loan_id: str) -> None:
    loan = get_loan(session, user_id, loan_id)
    session.delete(loan)
    session.flush()


def loan_summary(session: Session, user_id: str) -> schemas.LoanSummary:
    loans = list_loans(session, user_id)
    active = [loan for loan in loans if loan.status == "ACTIVE"]
    return schemas.LoanSummary(
        total_loans=len(loans),
        active_loans=len(active),
        total_outstanding=round(sum(float(loan.current_balance) for loan in active), 2),
        total_paid=round(sum(float(loan.total_paid) for loan in loans), 2),
        monthly_payments=round(sum(loan_emi(loan) for loan in active), 2),
    )


def _next_scheduled(session: Session, loan_id: str) -> Optional[date]:
    stmt = (
        select(models.LoanPayment.scheduled_date)
        .where(models.LoanPayment.loan_id == loan_id, models.LoanPayment.status == "SCHEDULED")
        .order_by(models.LoanPayment.scheduled_date)
        .limit(1)
    )
    return session.scalar(stmt)


def _cancel_open_schedule(session: Session, loan: models.Loan) -> None:
    for payment in session.scalars(
        select(models.LoanPayment).where(
            models.LoanPayment.loan_id == loan.id, models.LoanPayment.status == "SCHEDULED"
        )
    ):
        payment.status = "CANCELLED"


def make_payment(
    session: Session,
    user_id: str,
    loan_id: str,
    payment_in: schemas.LoanPaymentCreate,
    *,
    scheduled: Optional[models.LoanPayment] = None,
) -> schemas.LoanPaymentResult:
    """Record a payment: split it, book the expense and update the loan.

    ``scheduled`` is the pending instalment being executed, if any; it is
    completed in place instead of adding a new payment row.
    """
    loan = get_loan(session, user_id, loan_id)
    if loan.status != "ACTIVE":
        raise BusinessRuleError("Cannot make payment on inactive loan")

    balance = float(loan.current_balance)
    rate = float(loan.current_interest_rate)
    term = max(1, loan.remaining_term_months)
    amount = float(payment_in.amount)
    try:
        split = amortization.split_payment(balance, rate, term, amount, force_prepayment=payment_in.is_prepayment)
    except ValueError as exc:
        raise BusinessRuleError(str(exc)) from exc
    benefits = amortization.prepayment_benefits(balance, rate, term, split)

    category = categories.ensure_category(
        session,
        user_id,
        LOAN_CATEGORY["name"],
        "EXPENSE",
        icon=LOAN_CATEGORY["icon"],
        color=LOAN_CATEGORY["color"],
        description="Loan and EMI payments",
    )
    txn = transactions.create_transaction(
        session,
        user_id,
        schemas.TransactionCreate(
            amount=as_money(amount),
            type="EXPENSE",
            category_id=category.id,
            account_id=loan.account_id,
            date=payment_in.payment_date,
            description=payment_in.description or f"Loan payment for {loan.name}",
        ),
    )

    payment = scheduled if scheduled is not None else models.LoanPayment(loan_id=loan.id)
    payment.transaction_id = txn.id
    payment.amount = as_money(amount)
    payment.principal_amount = as_money(split.principal)
    payment.interest_amount = as_money(split.interest)
    payment.payment_date = payment_in.payment_date
    payment.is_prepayment = split.is_prepayment
    payment.prepayment_type = split.prepayment_type
    payment.interest_savings = as_money(benefits.interest_savings) if benefits else None
    payment.term_reduction = benefits.term_reduction if benefits else None
    payment.status = "COMPLETED"
    payment.default_reason = None
    if scheduled is None:
        session.add(payment)

    loan.current_balance = as_money(split.new_balance)
    loan.total_paid = as_money(Decimal(loan.total_paid) + Decimal(str(amount)))
    loan.total_interest_paid = as_money(Decimal(loan.total_interest_paid) + Decimal(str(split.interest)))
    loan.last_payment_date = payment_in.payment_date
    if benefits is not None:
        loan.total_prepayments = as_money(Decimal(loan.total_prepayments) + Decimal(str(amount)))
        loan.total_interest_savings = as_money(
            Decimal(loan.total_interest_savings) + Decimal(str(benefits.interest_savings))
        )
        loan.remaining_term_months = benefits.new_term
    else:
        loan.remaining_term_months = max(0, loan.remaining_term_months - 1)

    if split.new_balance <= 0:
        loan.status = "PAID_OFF"
        loan.remaining_term_months = 0
        loan.next_payment_date = None
        session.flush()
        _cancel_open_schedule(session, loan)
        notifications.notify(
            session, user_id, "Loan paid off", f"Congratulations! {loan.name} has been fully repaid.", "SUCCESS"
        )
    else:
        session.flush()
        loan.next_payment_date = _next_scheduled(session, loan.id) or (
            payment_in.payment_date + relativedelta(months=1)
        )
    save(session, loan)
    session.refresh(payment)
    LOG.info("Loan payment recorded on %s", loan.id, extra={"user_id": user_id})
    return schemas.LoanPaymentResult(
        payment=schemas.LoanPaymentRead.model_validate(payment),
        loan=schemas.LoanRead.model_validate(loan),
        benefits=schemas.PrepaymentBenefitsRead(**vars(benefits)) if benefits else None,
    )


def list_payments(session: Session, user_id: str, loan_id: str) -> List[models.LoanPayment]:
    loan = get_loan(session, user_id, loan_id)
    return list(loan.payments)


def emi_calculator(principal: float, annual_rate: float, term_months: int) -> schemas.EmiResult:
    try:
        emi = amortization.calculate_emi(principal, annual_rate, term_months)
    except ValueError as exc:
        raise BusinessRuleError(str(exc)) from exc
    total = emi * term_months
    return schemas.EmiResult(
        principal=principal,
        annual_rate=annual_rate,
        term_months=term_months,
        emi=round(emi, 2),
        total_payment=round(total, 2),
        total_interest=round(total - principal, 2),
    )


def loan_progress(session: Session, user_id: str, loan_id: str) -> schemas.LoanProgress:
    loan = get_loan(session, user_id, loan_id)
    original = float(loan.original_principal)
    total_paid = float(loan.total_paid)
    principal_paid = max(0.0, original - float(loan.current_balance))
    return schemas.LoanProgress(
        loan_id=loan.id,
        status=loan.status,
        original_principal=original,
        current_balance=float(loan.current_balance),
        principal_paid=round(principal_paid, 2),
        total_paid=total_paid,
        total_interest_paid=float(loan.total_interest_paid),
        percentage_paid=round(total_paid / original * 100.0, 2) if original > 0 else 0.0,
        payments_made=len(_completed(loan.payments)),
        remaining_term_months=loan.remaining_term_months,
        next_payment_date=loan.next_payment_date,
    )


def prepayment_scenario(
    session: Session, user_id: str, loan_id: str, amount: Decimal
) -> schemas.PrepaymentScenarioRead:
    loan = get_loan(session, user_id, loan_id)
    if loan.status != "ACTIVE":
        raise BusinessRuleError("Cannot analyse pre-payment on inactive loan")
    try:
        scenario = amortization.prepayment_scenario(
            float(loan.current_balance),
            float(loan.current_interest_rate),
            max(1, loan.remaining_term_months),
            float(amount),
        )
    except ValueError as exc:
        raise BusinessRuleError(str(exc)) from exc
    values = {key: round(value, 2) if isinstance(value, float) else value for key, value in vars(scenario).items()}
    return schemas.PrepaymentScenarioRead(**values)


def prepayment_analytics(
    session: Session, user_id: str, loan_id: Optional[str] = None
) -> schemas.PrepaymentAnalytics:
    stmt = (
        select(models.LoanPayment)
        .join(models.Loan, models.LoanPayment.loan_id == models.Loan.id)
        .where(
            models.Loan.user_id == user_id,
            models.LoanPayment.is_prepayment.is_(True),
            models.LoanPayment.status == "COMPLETED",
        )
        .order_by(models.LoanPayment.payment_date.desc())
    )
    if loan_id is not None:
        get_loan(session, user_id, loan_id)
        stmt = stmt.where(models.LoanPayment.loan_id == loan_id)
    prepayments = list(session.scalars(stmt))
    total = sum(float(p.amount) for p in prepayments)
    savings = sum(float(p.interest_savings or 0) for p in prepayments)
    return schemas.PrepaymentAnalytics(
        total_prepayments=round(total, 2),
        total_interest_savings=round(savings, 2),
        prepayment_count=len(prepayments),
        average_prepayment=round(total / len(prepayments), 2) if prepayments else 0.0,
        recent_prepayments=[schemas.LoanPaymentRead.model_validate(p) for p in prepayments[:RECENT_PREPAYMENTS]],
    )


def _schedule_start(loan: models.Loan, today: date) -> date:
    """Date one month before the first instalment, as expected by the schedule."""
    first_due = loan.next_payment_date or (today + relativedelta(months=1))
    return first_due - relativedelta(months=1)


def amortization_table(
    session: Session, user_id: str, loan_id: str, today: Optional[date] = None
) -> schemas.AmortizationSchedule:
    loan = get_loan(session, user_id, loan_id)
    today = today or date.today()
    emi = loan_emi(loan)
    frame = amortization.amortization_schedule(
        float(loan.current_balance),
        float(loan.current_interest_rate),
        term_months=max(1, loan.remaining_term_months),
        start=_schedule_start(loan, today),
    )
    rows = [schemas.AmortizationRow(**record) for record in frame.to_dict(orient="records")]
    return schemas.AmortizationSchedule(
        loan_id=loan.id,
        emi=round(emi, 2),
        total_interest=round(float(frame["interest"].sum()), 2) if not frame.empty else 0.0,
        rows=rows,
    )


def create_scheduled_payments(
    session: Session, user_id: str, loan_id: str, today: Optional[date] = None
) -> List[models.LoanPayment]:
    """Schedule every remaining instalment of the loan."""
    loan = get_loan(session, user_id, loan_id)
    if loan.status != "ACTIVE":
        raise BusinessRuleError("Cannot schedule payments on inactive loan")
    if _next_scheduled(session, loan.id) is not None:
        raise EntityConflictError("Scheduled payments already exist for this loan")
    today = today or date.today()
    frame = amortization.amortization_schedule(
        float(loan.current_balance),
        float(loan.current_interest_rate),
        term_months=max(1, loan.remaining_term_months),
        start=_schedule_start(loan, today),
    )
    payments = []
    for record in frame.to_dict(orient="records"):
        payment = models.LoanPayment(
            loan_id=loan.id,
            amount=as_money(record["payment"]),
            principal_amount=as_money(record["principal"]),
            interest_amount=as_money(record["interest"]),
            payment_date=record["due_date"],
            scheduled_date=record["due_date"],
            is_scheduled=True,
            status="SCHEDULED",
        )
        session.add(payment)
        payments.append(payment)
    session.flush()
    if payments:
        loan.next_payment_date = payments[0].scheduled_date
    save(session, loan)
    return payments


def get_loan_payment(session: Session, user_id: str, payment_id: str) -> models.LoanPayment:
    payment = session.get(models.LoanPayment, payment_id)
    if payment is None or payment.loan.user_id != user_id:
        raise EntityNotFoundError("Loan payment not found")
    return payment


def cancel_scheduled_payment(session: Session, user_id: str, payment_id: str) -> models.LoanPayment:
    payment = get_loan_payment(session, user_id, payment_id)
    if payment.status != "SCHEDULED":
        raise BusinessRuleError("Can only delete scheduled payments")
    payment.status = "CANCELLED"
    session.flush()
    loan = payment.loan
    loan.next_payment_date = _next_scheduled(session, loan.id) or loan.next_payment_date
    return save(session, payment)


def _default(session: Session, payment: models.LoanPayment, reason: str) -> None:
    payment.status = "DEFAULTED"
    payment.default_reason = reason
    notifications.notify(
        session,
        payment.loan.user_id,
        "Loan payment failed",
        f"Scheduled payment for {payment.loan.name} could not be processed: {reason}.",
        "ERROR",
    )


def _is_last_instalment(session: Session, payment: models.LoanPayment) -> bool:
    stmt = select(models.LoanPayment.id).where(
        models.LoanPayment.loan_id == payment.loan_id,
        models.LoanPayment.status == "SCHEDULED",
        models.LoanPayment.id != payment.id,
    )
    return session.scalars(stmt.limit(1)).first() is None


def process_scheduled_payments(session: Session, on: Optional[date] = None) -> schemas.LoanPaymentRunResult:
    """Execute every scheduled instalment due on or before ``on``."""
    on = on or date.today()
    stmt = (
        select(models.LoanPayment)
        .join(models.Loan, models.LoanPayment.loan_id == models.Loan.id)
        .where(
            models.LoanPayment.status == "SCHEDULED",
            models.LoanPayment.scheduled_date <= on,
            models.Loan.status == "ACTIVE",
        )
        .order_by(models.LoanPayment.scheduled_date)
    )
    completed = defaulted = 0
    due = list(session.scalars(stmt))
    for payment in due:
        if payment.status != "SCHEDULED":
            # cancelled by an earlier payoff in this run
            continue
        loan = payment.loan
        account = session.get(models.Account, loan.account_id)
        rate = float(loan.current_interest_rate)
        payoff = round(float(loan.current_balance) * (1 + amortization.monthly_rate(rate)), 2)
        # the last instalment settles whatever the rounded schedule left behind
        amount = payoff if _is_last_instalment(session, payment) else min(float(payment.amount), payoff)
        if account is None or float(account.balance) < amount:
            _default(session, payment, INSUFFICIENT_BALANCE)
            defaulted += 1
            continue
        try:
            make_payment(
                session,
                loan.user_id,
                loan.id,
                schemas.LoanPaymentCreate(
                    amount=as_money(amount),
                    payment_date=payment.scheduled_date,
                    description=f"Scheduled loan payment for {loan.name}",
                ),
                scheduled=payment,
            )
        except BusinessRuleError as exc:
            _default(session, payment, str(exc))
            defaulted += 1
            continue
        completed += 1
    session.flush()
    LOG.info("Processed %d scheduled loan payments (%d defaulted)", len(due), defaulted)
    return schemas.LoanPaymentRunResult(date=on, processed=len(due), completed=completed, defaulted=defaulted)


def overdue_payments(session: Session, user_id: str, today: Optional[date] = None) -> List[models.LoanPayment]:
    today = today or date.today()
    stmt = (
        select(models.LoanPayment)
        .join(models.Loan, models.LoanPayment.loan_id == models.Loan.id)
        .where(
            models.Loan.user_id == user_id,
            models.LoanPayment.status == "SCHEDULED",
            models.LoanPayment.scheduled_date < today,
        )
        .order_by(models.LoanPayment.scheduled_date)
    )
    return list(session.scalars(stmt))


def payment_history(
    session: Session,
    user_id: str,
    *,
    loan_id: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[models.LoanPayment], int]:
    stmt = (
        select(models.LoanPayment)
        .join(models.Loan, models.LoanPayment.loan_id == models.Loan.id)
        .where(models.Loan.user_id == user_id)
    )
    if loan_id is not None:
        stmt = stmt.where(models.LoanPayment.loan_id == loan_id)
    if status is not None:
        stmt = stmt.where(models.LoanPayment.status == status)
    stmt = stmt.order_by(models.LoanPayment.payment_date.desc(), models.LoanPayment.created_at.desc())
    return paginate(session, stmt, page, limit)


def recalculate_remaining_terms(
    session: Session, user_id: str, today: Optional[date] = None
) -> List[models.Loan]:
    """Fill in remaining terms that were never advanced past the original term."""
    today = today or date.today()
    updated = []
    for loan in list_loans(session, user_id, status="ACTIVE"):
        if loan.remaining_term_months not in (None, loan.original_term_months):
            continue
        elapsed = amortization.months_elapsed(loan.original_start_date, today)
        remaining = max(0, loan.original_term_months - elapsed)
        if remaining != loan.remaining_term_months:
            loan.remaining_term_months = remaining
            updated.append(loan)
    session.flush()
    return updated
