from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from finfusion.api import crud, models, schemas
from finfusion.api.errors import BusinessRuleError, EntityConflictError


@pytest.fixture()
def loan_account(db_session, user):
    return crud.accounts.create_account(
        db_session, user.id, schemas.AccountCreate(name="Current", type="CHECKING", balance=Decimal("5000"))
    )


def _loan(db_session, user, account, principal="1200", rate="0", term=12):
    return crud.loans.create_loan(
        db_session,
        user.id,
        schemas.LoanCreate(
            account_id=account.id,
            name="Car loan",
            type="CAR",
            original_principal=Decimal(principal),
            original_interest_rate=Decimal(rate),
            original_term_months=term,
            original_start_date=date(2024, 1, 1),
        ),
    )


def _pay(db_session, user, loan, amount, **extra):
    payment_in = schemas.LoanPaymentCreate(amount=Decimal(amount), payment_date=date(2024, 2, 1), **extra)
    return crud.loans.make_payment(db_session, user.id, loan.id, payment_in)


def test_new_loan_defaults(db_session, user, loan_account):
    loan = _loan(db_session, user, loan_account)
    assert loan.status == "ACTIVE"
    assert loan.current_balance == Decimal("1200.00")
    assert loan.remaining_term_months == 12
    assert loan.next_payment_date == date(2024, 2, 1)
    assert crud.loans.loan_emi(loan) == pytest.approx(100.0)


def test_regular_payment_splits_interest_and_principal(db_session, user, loan_account):
    loan = _loan(db_session, user, loan_account, principal="12000", rate="12")
    result = _pay(db_session, user, loan, "1000")

    assert result.payment.is_prepayment is False
    assert result.payment.interest_amount == Decimal("120.00")
    assert result.payment.principal_amount == Decimal("880.00")
    assert result.benefits is None
    assert result.loan.remaining_term_months == 11
    assert result.loan.current_balance == Decimal("11120.00")
    assert result.loan.total_interest_paid == Decimal("120.00")
    assert result.loan.next_payment_date == date(2024, 3, 1)

    txn = db_session.get(models.Transaction, result.payment.transaction_id)
    assert txn.type == "EXPENSE"
    assert txn.category.name == "Loan Payment"
    assert txn.account_id == loan_account.id
    assert loan_account.balance == Decimal("4000.00")


def test_prepayment_shortens_the_tenure(db_session, user, loan_account):
    loan = _loan(db_session, user, loan_account, principal="12000", rate="12")
    result = _pay(db_session, user, loan, "3000")

    assert result.payment.is_prepayment is True
    assert result.payment.prepayment_type == "PARTIAL"
    assert result.benefits is not None
    assert result.benefits.interest_savings > 0
    assert result.benefits.term_reduction >= 2
    assert result.loan.remaining_term_months == result.benefits.new_term
    assert result.loan.remaining_term_months < 11
    assert result.loan.total_prepayments == Decimal("3000.00")


def test_full_payment_pays_off_the_loan(db_session, user, loan_account):
    loan = _loan(db_session, user, loan_account)
    crud.loans.create_scheduled_payments(db_session, user.id, loan.id)
    result = _pay(db_session, user, loan, "1200")

    assert result.payment.prepayment_type == "FULL"
    assert result.loan.status == "PAID_OFF"
    assert result.loan.current_balance == Decimal("0.00")
    assert result.loan.next_payment_date is None
    statuses = {payment.status for payment in crud.loans.list_payments(db_session, user.id, loan.id)}
    assert statuses == {"COMPLETED", "CANCELLED"}
    notes, _ = crud.notifications.list_notifications(db_session, user.id, kind="SUCCESS")
    assert [note.title for note in notes] == ["Loan paid off"]

    with pytest.raises(BusinessRuleError, match="inactive loan"):
        _pay(db_session, user, loan, "10")


def test_overpayment_is_rejected(db_session, user, loan_account):
    loan = _loan(db_session, user, loan_account)
    with pytest.raises(BusinessRuleError):
        _pay(db_session, user, loan, "1300")


def test_scheduled_payments_follow_the_amortization_table(db_session, user, loan_account):
    loan = _loan(db_session, user, loan_account)
    payments = crud.loans.create_scheduled_payments(db_session, user.id, loan.id)
    assert len(payments) == 12
    assert payments[0].scheduled_date == date(2024, 2, 1)
    assert payments[-1].scheduled_date == date(2025, 1, 1)
    assert sum(payment.amount for payment in payments) == Decimal("1200.00")

    with pytest.raises(EntityConflictError):
        crud.loans.create_scheduled_payments(db_session, user.id, loan.id)


def test_processing_defaults_when_the_account_runs_dry(db_session, user):
    account = crud.accounts.create_account(
        db_session, user.id, schemas.AccountCreate(name="Thin", type="CHECKING", balance=Decimal("150"))
    )
    loan = _loan(db_session, user, account)
    crud.loans.create_scheduled_payments(db_session, user.id, loan.id)
    assert len(crud.loans.overdue_payments(db_session, user.id, today=date(2024, 3, 15))) == 2

    result = crud.loans.process_scheduled_payments(db_session, on=date(2024, 3, 1))

    assert (result.processed, result.completed, result.defaulted) == (2, 1, 1)
    assert account.balance == Decimal("50.00")
    defaulted = db_session.scalars(
        select(models.LoanPayment).where(models.LoanPayment.status == "DEFAULTED")
    ).one()
    assert defaulted.default_reason == "Insufficient account balance"
    notes, _ = crud.notifications.list_notifications(db_session, user.id, kind="ERROR")
    assert len(notes) == 1
    assert crud.loans.overdue_payments(db_session, user.id, today=date(2024, 3, 15)) == []


def test_long_schedule_settles_the_loan_on_the_last_instalment(db_session, user):
    account = crud.accounts.create_account(
        db_session, user.id, schemas.AccountCreate(name="Mortgage", type="CHECKING", balance=Decimal("400000"))
    )
    loan = _loan(db_session, user, account, principal="100000", rate="10", term=360)
    payments = crud.loans.create_scheduled_payments(db_session, user.id, loan.id)
    assert payments[-1].scheduled_date == date(2054, 1, 1)

    result = crud.loans.process_scheduled_payments(db_session, on=date(2054, 1, 1))

    assert (result.processed, result.defaulted) == (360, 0)
    assert loan.status == "PAID_OFF"
    assert loan.current_balance == Decimal("0.00")
    open_rows = db_session.scalars(
        select(models.LoanPayment).where(
            models.LoanPayment.loan_id == loan.id, models.LoanPayment.status == "SCHEDULED"
        )
    ).all()
    assert open_rows == []


def test_cancel_only_scheduled_payments(db_session, user, loan_account):
    loan = _loan(db_session, user, loan_account)
    first = crud.loans.create_scheduled_payments(db_session, user.id, loan.id)[0]
    cancelled = crud.loans.cancel_scheduled_payment(db_session, user.id, first.id)
    assert cancelled.status == "CANCELLED"
    assert loan.next_payment_date == date(2024, 3, 1)
    with pytest.raises(BusinessRuleError, match="Can only delete scheduled payments"):
        crud.loans.cancel_scheduled_payment(db_session, user.id, first.id)


def test_recalculate_remaining_terms(db_session, user, loan_account):
    loan = _loan(db_session, user, loan_account, term=24)
    updated = crud.loans.recalculate_remaining_terms(db_session, user.id, today=date(2024, 7, 15))
    assert [item.id for item in updated] == [loan.id]
    assert loan.remaining_term_months == 18


def test_loan_api_flow(client, auth_headers, loan_account):
    payload = {
        "account_id": loan_account.id,
        "name": "Laptop",
        "original_principal": "1200",
        "original_interest_rate": "0",
        "original_term_months": 12,
        "original_start_date": "2024-01-01",
    }
    created = client.post("/api/loans", json=payload, headers=auth_headers)
    assert created.status_code == 201
    loan_id = created.json()["data"]["id"]

    paid = client.post(
        f"/api/loans/{loan_id}/payments",
        json={"amount": "100", "payment_date": "2024-02-01"},
        headers=auth_headers,
    )
    assert paid.status_code == 201
    assert Decimal(paid.json()["data"]["loan"]["current_balance"]) == Decimal("1100")

    detail = client.get(f"/api/loans/{loan_id}", headers=auth_headers).json()["data"]
    assert detail["emi"] == 100.0
    assert detail["payment_summary"]["total_payments"] == 1

    progress = client.get(f"/api/loans/{loan_id}/progress", headers=auth_headers).json()["data"]
    assert progress["principal_paid"] == 100.0
    assert progress["payments_made"] == 1

    table = client.get(f"/api/loans/{loan_id}/amortization", headers=auth_headers).json()["data"]
    assert len(table["rows"]) == 11
    assert table["total_interest"] == 0.0

    summary = client.get("/api/loans/summary", headers=auth_headers).json()["data"]
    assert summary["active_loans"] == 1
    assert summary["total_outstanding"] == 1100.0

    history = client.get("/api/loans/payments/history", params={"loan_id": loan_id}, headers=auth_headers).json()
    assert history["pagination"]["total"] == 1


def test_emi_calculator_and_scenario(client, auth_headers, loan_account):
    emi = client.get(
        "/api/loans/emi-calculator",
        params={"principal": 1200, "rate": 0, "term_months": 12},
        headers=auth_headers,
    ).json()["data"]
    assert emi == {
        "principal": 1200.0,
        "annual_rate": 0.0,
        "term_months": 12,
        "emi": 100.0,
        "total_payment": 1200.0,
        "total_interest": 0.0,
    }

    loan = client.post(
        "/api/loans",
        json={
            "account_id": loan_account.id,
            "name": "Mortgage",
            "type": "HOME",
            "original_principal": "100000",
            "original_interest_rate": "6",
            "original_term_months": 240,
            "original_start_date": "2024-01-01",
        },
        headers=auth_headers,
    ).json()["data"]
    scenario = client.post(
        f"/api/loans/{loan['id']}/prepayment-scenario", json={"amount": "10000"}, headers=auth_headers
    ).json()["data"]
    assert scenario["is_full_prepayment"] is False
    assert scenario["new_term"] < 240
    assert scenario["interest_savings"] > 0
    assert scenario["reduced_emi"] < scenario["current_emi"]


def test_other_users_loans_are_not_found(client, db_session, user, loan_account, make_user, headers_for):
    loan = _loan(db_session, user, loan_account)
    response = client.get(f"/api/loans/{loan.id}", headers=headers_for(make_user("eve")))
    assert response.status_code == 404
    assert response.json()["error"] == "Loan not found"
