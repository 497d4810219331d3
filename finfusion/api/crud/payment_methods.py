"""Payment method CRUD. Payment methods are global, not owned by users."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import EntityConflictError, EntityNotFoundError
from .common import apply_updates, save


def list_payment_methods(session: Session, is_active: Optional[bool] = None) -> List[models.PaymentMethod]:
    stmt = select(models.PaymentMethod)
    if is_active is not None:
        stmt = stmt.where(models.PaymentMethod.is_active.is_(is_active))
    stmt = stmt.order_by(models.PaymentMethod.name)
    return list(session.scalars(stmt))


def get_payment_method(session: Session, method_id: str) -> models.PaymentMethod:
    method = session.get(models.PaymentMethod, method_id)
    if method is None:
        raise EntityNotFoundError("Payment method not found")
    return method


def get_payment_method_by_code(session: Session, code: str) -> models.PaymentMethod:
    stmt = select(models.PaymentMethod).where(models.PaymentMethod.code == code.strip().upper())
    method = session.scalars(stmt).first()
    if method is None:
        raise EntityNotFoundError("Payment method not found")
    return method


def _ensure_code_available(session: Session, code: str, exclude_id: Optional[str] = None) -> None:
    stmt = select(models.PaymentMethod.id).where(models.PaymentMethod.code == code)
    if exclude_id is not None:
        stmt = stmt.where(models.PaymentMethod.id != exclude_id)
    if session.scalar(stmt) is not None:
        raise EntityConflictError("Payment method with this code already exists")


def create_payment_method(session: Session, method_in: schemas.PaymentMethodCreate) -> models.PaymentMethod:
    _ensure_code_available(session, method_in.code)
    method = models.PaymentMethod(**method_in.model_dump())
    session.add(method)
    try:
        session.flush()
    except IntegrityError as exc:  # pragma: no cover - race with a concurrent insert
        raise EntityConflictError("Payment method with this code already exists") from exc
    session.refresh(method)
    return method


def update_payment_method(
    session: Session, method_id: str, update_in: schemas.PaymentMethodUpdate
) -> models.PaymentMethod:
    method = get_payment_method(session, method_id)
    if update_in.code is not None:
        _ensure_code_available(session, update_in.code, exclude_id=method.id)
    apply_updates(method, update_in)
    return save(session, method)


def deactivate_payment_method(session: Session, method_id: str) -> models.PaymentMethod:
    method = get_payment_method(session, method_id)
    method.is_active = False
    return save(session, method)


def delete_payment_method(session: Session, method_id: str) -> None:
    method = get_payment_method(session, method_id)
    # transactions keep their history without the method
    for txn in session.scalars(
        select(models.Transaction).where(models.Transaction.payment_method_id == method_id)
    ):
        txn.payment_method_id = None
    session.delete(method)
    session.flush()
