"""Transaction endpoints, CSV/JSON import and export."""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import get_current_user
from ..responses import done, ok, paginated

router = APIRouter(prefix="/transactions", tags=["transactions"])

MEDIA_TYPES = {"csv": "text/csv", "json": "application/json"}


@router.get("", response_model=schemas.Page[schemas.TransactionRead])
def list_transactions(
    txn_type: Optional[schemas.TransactionType] = Query(None, alias="type"),
    category_id: Optional[str] = None,
    account_id: Optional[str] = None,
    payment_method_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    is_recurring: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    items, total = crud.transactions.list_transactions(
        db,
        current_user.id,
        txn_type=txn_type,
        category_id=category_id,
        account_id=account_id,
        payment_method_id=payment_method_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        is_recurring=is_recurring,
        page=page,
        limit=limit,
    )
    return paginated(items, page, limit, total)


@router.get("/analytics", response_model=schemas.Envelope[schemas.TransactionAnalytics])
def transaction_analytics(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.transactions.transaction_analytics(db, current_user.id, start_date, end_date))


@router.get("/summary", response_model=schemas.Envelope[schemas.TransactionSummary])
def transaction_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.transactions.transaction_summary(db, current_user.id, start_date, end_date))


@router.get("/export")
def export_transactions(
    export_format: str = Query("csv", alias="format"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> Response:
    content = crud.transactions.export_transactions(
        db, current_user.id, export_format, start_date=start_date, end_date=end_date
    )
    return Response(
        content=content,
        media_type=MEDIA_TYPES[export_format],
        headers={"Content-Disposition": f'attachment; filename="transactions.{export_format}"'},
    )


@router.post("/import", response_model=schemas.Envelope[schemas.ImportResult])
def import_transactions(
    payload: schemas.TransactionImport,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    result = crud.transactions.import_transactions(db, current_user.id, payload.transactions)
    return ok(result, f"Imported {result.imported} of {result.total} transactions")


@router.post("", response_model=schemas.Envelope[schemas.TransactionRead], status_code=status.HTTP_201_CREATED)
def create_transaction(
    txn_in: schemas.TransactionCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.transactions.create_transaction(db, current_user.id, txn_in), "Transaction created successfully")


@router.get("/{transaction_id}", response_model=schemas.Envelope[schemas.TransactionRead])
def get_transaction(
    transaction_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.transactions.get_transaction(db, current_user.id, transaction_id))


@router.put("/{transaction_id}", response_model=schemas.Envelope[schemas.TransactionRead])
def update_transaction(
    transaction_id: str,
    update_in: schemas.TransactionUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    txn = crud.transactions.update_transaction(db, current_user.id, transaction_id, update_in)
    return ok(txn, "Transaction updated successfully")


@router.delete("/{transaction_id}", response_model=schemas.MessageResponse)
def delete_transaction(
    transaction_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    crud.transactions.delete_transaction(db, current_user.id, transaction_id)
    return done("Transaction deleted successfully")
