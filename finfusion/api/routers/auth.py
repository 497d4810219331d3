"""Registration, login, token refresh and the current user's profile."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import get_current_user
from ..responses import done, ok

LOG = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=schemas.Envelope[schemas.AuthTokens], status_code=status.HTTP_201_CREATED)
def register(user_in: schemas.RegisterRequest, db: Session = Depends(database.get_db)):
    user = crud.users.register(db, user_in)
    return ok(crud.users.token_pair(user), "User registered successfully")


@router.post("/login", response_model=schemas.Envelope[schemas.AuthTokens])
def login(credentials: schemas.LoginRequest, db: Session = Depends(database.get_db)):
    user = crud.users.authenticate(db, credentials.identifier, credentials.password)
    return ok(crud.users.token_pair(user), "Login successful")


@router.post("/refresh", response_model=schemas.Envelope[schemas.AccessToken])
def refresh(payload: schemas.RefreshRequest, db: Session = Depends(database.get_db)):
    return ok(crud.users.refresh_access_token(db, payload.refresh_token))


@router.get("/me", response_model=schemas.Envelope[schemas.UserRead])
def me(current_user: models.User = Depends(get_current_user)):
    return ok(current_user)


@router.put("/profile", response_model=schemas.Envelope[schemas.UserRead])
def update_profile(
    update_in: schemas.ProfileUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.users.update_profile(db, current_user, update_in), "Profile updated successfully")


@router.post("/change-password", response_model=schemas.MessageResponse)
def change_password(
    payload: schemas.PasswordChange,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    crud.users.change_password(db, current_user, payload)
    return done("Password changed successfully")


@router.post("/logout", response_model=schemas.MessageResponse)
def logout(current_user: models.User = Depends(get_current_user)):
    LOG.info("User logged out", extra={"user_id": current_user.id})
    return done("Logged out successfully")
