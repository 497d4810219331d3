from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from decimal import Decimal

import pytest

from finfusion.api import crud, database, scheduler, schemas
from finfusion.config import Settings


@pytest.fixture()
def shared_session(monkeypatch, db_session):
    @contextmanager
    def _scope():
        yield db_session

    monkeypatch.setattr(database, "session_scope", _scope)
    return db_session


def test_build_scheduler_registers_both_jobs():
    jobs = scheduler.build_scheduler(Settings(database_url="sqlite://", recurring_job_hour=3, loan_job_hour=10))
    recurring = jobs.get_job(scheduler.RECURRING_JOB)
    loans = jobs.get_job(scheduler.LOAN_JOB)
    assert recurring is not None and loans is not None
    assert "hour='3'" in str(recurring.trigger)
    assert "hour='10'" in str(loans.trigger)


def test_recurring_job_uses_its_own_session(shared_session, user, cash_account, salary):
    crud.recurring.create_recurring(
        shared_session,
        user.id,
        schemas.RecurringCreate(
            amount=Decimal("1000"),
            type="INCOME",
            category_id=salary.id,
            account_id=cash_account.id,
            date=date(2024, 1, 25),
            recurring_frequency="MONTHLY",
        ),
    )
    result = scheduler.run_recurring_job(date(2024, 2, 25))
    assert result.processed == 1
    assert cash_account.balance == Decimal("1000.00")


def test_loan_job_with_nothing_due(shared_session):
    result = scheduler.run_loan_payment_job(date(2024, 2, 1))
    assert result.processed == 0
    assert result.completed == 0
    assert result.defaulted == 0
