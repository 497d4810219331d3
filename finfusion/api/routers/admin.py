"""Administrator-only endpoints for users and system statistics."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import require_admin
from ..responses import done, ok, paginated

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=schemas.Envelope[schemas.SystemStats])
def system_stats(_: models.User = Depends(require_admin), db: Session = Depends(database.get_db)):
    return ok(crud.admin.system_stats(db))


@router.get("/users", response_model=schemas.Page[schemas.UserRead])
def list_users(
    role: Optional[schemas.Role] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    items, total = crud.admin.list_users(db, role=role, is_active=is_active, search=search, page=page, limit=limit)
    return paginated(items, page, limit, total)


@router.post("/users", response_model=schemas.Envelope[schemas.UserRead], status_code=status.HTTP_201_CREATED)
def create_user(
    user_in: schemas.AdminUserCreate, _: models.User = Depends(require_admin), db: Session = Depends(database.get_db)
):
    return ok(crud.admin.create_user(db, user_in), "User created successfully")


@router.get("/users/{user_id}", response_model=schemas.Envelope[schemas.UserRead])
def get_user(user_id: str, _: models.User = Depends(require_admin), db: Session = Depends(database.get_db)):
    return ok(crud.users.get_user(db, user_id))


@router.put("/users/{user_id}", response_model=schemas.Envelope[schemas.UserRead])
def update_user(
    user_id: str,
    update_in: schemas.AdminUserUpdate,
    current_user: models.User = Depends(require_admin),
    db: Session = Depends(database.get_db),
):
    return ok(crud.admin.update_user(db, current_user, user_id, update_in), "User updated successfully")


@router.delete("/users/{user_id}", response_model=schemas.MessageResponse)
def delete_user(
    user_id: str, current_user: models.User = Depends(require_admin), db: Session = Depends(database.get_db)
):
    crud.admin.delete_user(db, current_user, user_id)
    return done("User deleted successfully")
