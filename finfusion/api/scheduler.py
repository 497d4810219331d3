"""Background jobs: recurring transactions and scheduled loan payments."""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from finfusion.config import Settings

from . import crud, database

LOG = logging.getLogger(__name__)

RECURRING_JOB = "process-recurring-transactions"
LOAN_JOB = "process-scheduled-loan-payments"


def run_recurring_job(on: Optional[date] = None):
    with database.session_scope() as session:
        result = crud.recurring.process_recurring_transactions(session, on)
    LOG.info("Recurring job created %d transactions", result.processed)
    return result


def run_loan_payment_job(on: Optional[date] = None):
    with database.session_scope() as session:
        result = crud.loans.process_scheduled_payments(session, on)
    LOG.info("Loan payment job completed %d, defaulted %d", result.completed, result.defaulted)
    return result


def build_scheduler(settings: Settings) -> BackgroundScheduler:
    jobs = BackgroundScheduler(timezone="UTC")
    jobs.add_job(
        run_recurring_job,
        CronTrigger(hour=settings.recurring_job_hour, minute=0, timezone="UTC"),
        id=RECURRING_JOB,
        replace_existing=True,
    )
    jobs.add_job(
        run_loan_payment_job,
        CronTrigger(hour=settings.loan_job_hour, minute=0, timezone="UTC"),
        id=LOAN_JOB,
        replace_existing=True,
    )
    return jobs


def start_scheduler(settings: Settings) -> BackgroundScheduler:
    jobs = build_scheduler(settings)
    jobs.start()
    LOG.info(
        "Scheduler started (recurring at %02d:00 UTC, loans at %02d:00 UTC)",
        settings.recurring_job_hour,
        settings.loan_job_hour,
    )
    return jobs


def stop_scheduler(jobs: BackgroundScheduler) -> None:
    jobs.shutdown(wait=False)
    LOG.info("Scheduler stopped")
