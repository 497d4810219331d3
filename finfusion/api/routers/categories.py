"""Category endpoints; system categories are shared and read-only."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import get_current_user
from ..responses import done, ok

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=schemas.Envelope[List[schemas.CategoryRead]])
def list_categories(
    category_type: Optional[schemas.CategoryType] = Query(None, alias="type"),
    is_system: Optional[bool] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.categories.list_categories(db, current_user.id, category_type=category_type, is_system=is_system))


@router.get("/hierarchy", response_model=schemas.Envelope[List[schemas.CategoryTree]])
def category_hierarchy(
    current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.categories.category_hierarchy(db, current_user.id))


@router.get("/stats", response_model=schemas.Envelope[schemas.CategoryStats])
def category_stats(current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    return ok(crud.categories.category_stats(db, current_user.id))


@router.post("", response_model=schemas.Envelope[schemas.CategoryRead], status_code=status.HTTP_201_CREATED)
def create_category(
    category_in: schemas.CategoryCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.categories.create_category(db, current_user.id, category_in), "Category created successfully")


@router.get("/{category_id}", response_model=schemas.Envelope[schemas.CategoryRead])
def get_category(
    category_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.categories.get_category(db, current_user.id, category_id))


@router.put("/{category_id}", response_model=schemas.Envelope[schemas.CategoryRead])
def update_category(
    category_id: str,
    update_in: schemas.CategoryUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    category = crud.categories.update_category(db, current_user.id, category_id, update_in)
    return ok(category, "Category updated successfully")


@router.delete("/{category_id}", response_model=schemas.MessageResponse)
def delete_category(
    category_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    crud.categories.delete_category(db, current_user.id, category_id)
    return done("Category deleted successfully")
