"""Account endpoints: CRUD, balances and the per-type summary."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import get_current_user
from ..responses import done, ok, paginated

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("", response_model=schemas.Page[schemas.AccountRead])
def list_accounts(
    account_type: Optional[schemas.AccountType] = Query(None, alias="type"),
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    items, total = crud.accounts.list_accounts(
        db, current_user.id, account_type=account_type, is_active=is_active, search=search, page=page, limit=limit
    )
    return paginated(items, page, limit, total)


@router.get("/summary", response_model=schemas.Envelope[schemas.AccountSummary])
def account_summary(
    current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.accounts.account_summary(db, current_user.id))


@router.get("/type/{account_type}", response_model=schemas.Envelope[List[schemas.AccountRead]])
def accounts_by_type(
    account_type: schemas.AccountType,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.accounts.accounts_by_type(db, current_user.id, account_type))


@router.post("", response_model=schemas.Envelope[schemas.AccountRead], status_code=status.HTTP_201_CREATED)
def create_account(
    account_in: schemas.AccountCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.accounts.create_account(db, current_user.id, account_in), "Account created successfully")


@router.get("/{account_id}", response_model=schemas.Envelope[schemas.AccountRead])
def get_account(
    account_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.accounts.get_account(db, current_user.id, account_id))


@router.put("/{account_id}", response_model=schemas.Envelope[schemas.AccountRead])
def update_account(
    account_id: str,
    update_in: schemas.AccountUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.accounts.update_account(db, current_user.id, account_id, update_in), "Account updated successfully")


@router.post("/{account_id}/adjust-balance", response_model=schemas.Envelope[schemas.AccountRead])
def adjust_balance(
    account_id: str,
    adjustment: schemas.BalanceAdjustment,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.accounts.adjust_balance(db, current_user.id, account_id, adjustment.amount))


@router.delete("/{account_id}", response_model=schemas.MessageResponse)
def delete_account(
    account_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    crud.accounts.delete_account(db, current_user.id, account_id)
    return done("Account deleted successfully")
