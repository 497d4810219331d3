"""Loan endpoints: payments, amortization, pre-payment analysis and schedules."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import get_current_user, require_admin
from ..responses import done, ok, paginated

router = APIRouter(prefix="/loans", tags=["loans"])


@router.get("", response_model=schemas.Envelope[List[schemas.LoanRead]])
def list_loans(
    loan_status: Optional[schemas.LoanStatus] = Query(None, alias="status"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.loans.list_loans(db, current_user.id, loan_status))


@router.get("/summary", response_model=schemas.Envelope[schemas.LoanSummary])
def loan_summary(current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    return ok(crud.loans.loan_summary(db, current_user.id))


@router.get("/emi-calculator", response_model=schemas.Envelope[schemas.EmiResult])
def emi_calculator(
    principal: float = Query(..., gt=0),
    rate: float = Query(..., ge=0, le=100),
    term_months: int = Query(..., ge=1, le=600),
    _: models.User = Depends(get_current_user),
):
    return ok(crud.loans.emi_calculator(principal, rate, term_months))


@router.get("/prepayment-analytics", response_model=schemas.Envelope[schemas.PrepaymentAnalytics])
def prepayment_analytics(
    loan_id: Optional[str] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.loans.prepayment_analytics(db, current_user.id, loan_id))


@router.get("/payments/overdue", response_model=schemas.Envelope[List[schemas.LoanPaymentRead]])
def overdue_payments(current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    return ok(crud.loans.overdue_payments(db, current_user.id))


@router.get("/payments/history", response_model=schemas.Page[schemas.LoanPaymentRead])
def payment_history(
    loan_id: Optional[str] = None,
    payment_status: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    items, total = crud.loans.payment_history(
        db, current_user.id, loan_id=loan_id, status=payment_status, page=page, limit=limit
    )
    return paginated(items, page, limit, total)


@router.post("/payments/process", response_model=schemas.Envelope[schemas.LoanPaymentRunResult])
def process_scheduled_payments(_: models.User = Depends(require_admin), db: Session = Depends(database.get_db)):
    return ok(crud.loans.process_scheduled_payments(db))


@router.delete("/payments/{payment_id}", response_model=schemas.Envelope[schemas.LoanPaymentRead])
def cancel_scheduled_payment(
    payment_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    payment = crud.loans.cancel_scheduled_payment(db, current_user.id, payment_id)
    return ok(payment, "Scheduled payment cancelled")


@router.post("/recalculate-terms", response_model=schemas.Envelope[schemas.TermRecalculation])
def recalculate_terms(current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    updated = crud.loans.recalculate_remaining_terms(db, current_user.id)
    return ok(schemas.TermRecalculation(updated=len(updated), loans=[schemas.LoanRead.model_validate(loan) for loan in updated]))


@router.post("", response_model=schemas.Envelope[schemas.LoanRead], status_code=status.HTTP_201_CREATED)
def create_loan(
    loan_in: schemas.LoanCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.loans.create_loan(db, current_user.id, loan_in), "Loan created successfully")


@router.get("/{loan_id}", response_model=schemas.Envelope[schemas.LoanDetail])
def get_loan(loan_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    return ok(crud.loans.loan_detail(db, current_user.id, loan_id))


@router.put("/{loan_id}", response_model=schemas.Envelope[schemas.LoanRead])
def update_loan(
    loan_id: str,
    update_in: schemas.LoanUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.loans.update_loan(db, current_user.id, loan_id, update_in), "Loan updated successfully")


@router.delete("/{loan_id}", response_model=schemas.MessageResponse)
def delete_loan(loan_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    crud.loans.delete_loan(db, current_user.id, loan_id)
    return done("Loan deleted successfully")


@router.post(
    "/{loan_id}/payments", response_model=schemas.Envelope[schemas.LoanPaymentResult], status_code=status.HTTP_201_CREATED
)
def make_payment(
    loan_id: str,
    payment_in: schemas.LoanPaymentCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.loans.make_payment(db, current_user.id, loan_id, payment_in), "Payment recorded successfully")


@router.get("/{loan_id}/payments", response_model=schemas.Envelope[List[schemas.LoanPaymentRead]])
def list_payments(
    loan_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.loans.list_payments(db, current_user.id, loan_id))


@router.get("/{loan_id}/progress", response_model=schemas.Envelope[schemas.LoanProgress])
def loan_progress(
    loan_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.loans.loan_progress(db, current_user.id, loan_id))


@router.post("/{loan_id}/prepayment-scenario", response_model=schemas.Envelope[schemas.PrepaymentScenarioRead])
def prepayment_scenario(
    loan_id: str,
    request: schemas.PrepaymentRequest,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.loans.prepayment_scenario(db, current_user.id, loan_id, request.amount))


@router.get("/{loan_id}/amortization", response_model=schemas.Envelope[schemas.AmortizationSchedule])
def amortization_schedule(
    loan_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.loans.amortization_table(db, current_user.id, loan_id))


@router.post(
    "/{loan_id}/scheduled-payments",
    response_model=schemas.Envelope[List[schemas.LoanPaymentRead]],
    status_code=status.HTTP_201_CREATED,
)
def create_scheduled_payments(
    loan_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    payments = crud.loans.create_scheduled_payments(db, current_user.id, loan_id)
    return ok(payments, f"{len(payments)} payments scheduled")
