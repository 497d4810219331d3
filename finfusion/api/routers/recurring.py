"""Recurring transaction templates and the manual processing trigger."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import get_current_user, require_admin
from ..responses import done, ok

router = APIRouter(prefix="/recurring-transactions", tags=["recurring-transactions"])


@router.get("", response_model=schemas.Envelope[List[schemas.RecurringRead]])
def list_recurring(current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    return ok(crud.recurring.list_recurring(db, current_user.id))


@router.post("", response_model=schemas.Envelope[schemas.RecurringRead], status_code=status.HTTP_201_CREATED)
def create_recurring(
    recurring_in: schemas.RecurringCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    template = crud.recurring.create_recurring(db, current_user.id, recurring_in)
    return ok(crud.recurring.recurring_view(db, current_user.id, template.id), "Recurring transaction created")


@router.post("/process", response_model=schemas.Envelope[schemas.RecurringRunResult])
def process_recurring(
    on: Optional[date] = Query(None, alias="date"),
    _: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return ok(crud.recurring.process_recurring_transactions(db, on))


@router.get("/{template_id}", response_model=schemas.Envelope[schemas.RecurringRead])
def get_recurring(
    template_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.recurring.recurring_view(db, current_user.id, template_id))


@router.delete("/{template_id}", response_model=schemas.MessageResponse)
def delete_recurring(
    template_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    crud.recurring.delete_recurring(db, current_user.id, template_id)
    return done("Recurring transaction deleted successfully")
