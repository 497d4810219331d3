"""Payment method endpoints."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import require_manager_or_admin
from ..responses import done, ok

router = APIRouter(prefix="/payment-methods", tags=["payment-methods"])


@router.get("", response_model=schemas.Envelope[List[schemas.PaymentMethodRead]])
def list_payment_methods(is_active: Optional[bool] = None, db: Session = Depends(database.get_db)):
    return ok(crud.payment_methods.list_payment_methods(db, is_active=is_active))


@router.get("/code/{code}", response_model=schemas.Envelope[schemas.PaymentMethodRead])
def get_payment_method_by_code(code: str, db: Session = Depends(database.get_db)):
    return ok(crud.payment_methods.get_payment_method_by_code(db, code))


@router.post("", response_model=schemas.Envelope[schemas.PaymentMethodRead], status_code=status.HTTP_201_CREATED)
def create_payment_method(
    method_in: schemas.PaymentMethodCreate,
    _: models.User = Depends(require_manager_or_admin),
    db: Session = Depends(database.get_db),
):
    return ok(crud.payment_methods.create_payment_method(db, method_in), "Payment method created successfully")


@router.post("/seed", response_model=schemas.MessageResponse)
def seed_payment_methods(
    _: models.User = Depends(require_manager_or_admin), db: Session = Depends(database.get_db)
):
    created = crud.seed.seed_payment_methods(db)
    return done(f"Seeded {created} payment methods")


@router.get("/{method_id}", response_model=schemas.Envelope[schemas.PaymentMethodRead])
def get_payment_method(method_id: str, db: Session = Depends(database.get_db)):
    return ok(crud.payment_methods.get_payment_method(db, method_id))


@router.put("/{method_id}", response_model=schemas.Envelope[schemas.PaymentMethodRead])
def update_payment_method(
    method_id: str,
    update_in: schemas.PaymentMethodUpdate,
    _: models.User = Depends(require_manager_or_admin),
    db: Session = Depends(database.get_db),
):
    method = crud.payment_methods.update_payment_method(db, method_id, update_in)
    return ok(method, "Payment method updated successfully")


@router.post("/{method_id}/deactivate", response_model=schemas.Envelope[schemas.PaymentMethodRead])
def deactivate_payment_method(
    method_id: str, _: models.User = Depends(require_manager_or_admin), db: Session = Depends(database.get_db)
):
    return ok(crud.payment_methods.deactivate_payment_method(db, method_id), "Payment method deactivated")


@router.delete("/{method_id}", response_model=schemas.MessageResponse)
def delete_payment_method(
    method_id: str, _: models.User = Depends(require_manager_or_admin), db: Session = Depends(database.get_db)
):
    crud.payment_methods.delete_payment_method(db, method_id)
    return done("Payment method deleted successfully")
