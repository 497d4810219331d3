"""Registration, login and profile management."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .. import auth, models, schemas
from ..errors import AuthenticationError, BusinessRuleError, EntityConflictError, EntityNotFoundError
from .common import save

LOG = logging.getLogger(__name__)


def get_user(session: Session, user_id: str) -> models.User:
    user = session.get(models.User, user_id)
    if user is None:
        raise EntityNotFoundError("User not found")
    return user


def ensure_unique_identity(
    session: Session,
    email: Optional[str] = None,
    username: Optional[str] = None,
    exclude_id: Optional[str] = None,
) -> None:
    if email is not None:
        stmt = select(models.User.id).where(func.lower(models.User.email) == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(models.User.id != exclude_id)
        if session.scalar(stmt) is not None:
            raise EntityConflictError("User with this email already exists")
    if username is not None:
        stmt = select(models.User.id).where(func.lower(models.User.username) == username.lower())
        if exclude_id is not None:
            stmt = stmt.where(models.User.id != exclude_id)
        if session.scalar(stmt) is not None:
            raise EntityConflictError("Username is already taken")


def create_user(session: Session, user_in: schemas.RegisterRequest, role: str = "USER") -> models.User:
    """Create a user together with the default ``Cash`` account."""
    ensure_unique_identity(session, email=user_in.email, username=user_in.username)
    user = models.User(
        email=user_in.email,
        username=user_in.username,
        name=user_in.name,
        password_hash=auth.hash_password(user_in.password),
        role=role,
    )
    session.add(user)
    session.flush()
    session.add(
        models.Account(user_id=user.id, name="Cash", type="CASH", balance=Decimal("0"), currency="USD")
    )
    save(session, user)
    LOG.info("User registered", extra={"user_id": user.id})
    return user


def register(session: Session, user_in: schemas.RegisterRequest) -> models.User:
    return create_user(session, user_in)


def authenticate(session: Session, identifier: str, password: str) -> models.User:
    lookup = identifier.strip().lower()
    stmt = select(models.User).where(
        or_(func.lower(models.User.email) == lookup, func.lower(models.User.username) == lookup)
    )
    user = session.scalars(stmt).first()
    if user is None or not auth.verify_password(password, user.password_hash):
        LOG.warning("Failed login attempt for %s", identifier)
        raise AuthenticationError("Invalid email/username or password")
    if not user.is_active:
        LOG.warning("Login attempt for inactive user", extra={"user_id": user.id})
        raise AuthenticationError("Account is deactivated")
    LOG.info("User logged in", extra={"user_id": user.id})
    return user


def token_pair(user: models.User) -> schemas.AuthTokens:
    return schemas.AuthTokens(
        user=schemas.UserRead.model_validate(user),
        access_token=auth.create_access_token(user.id),
        refresh_token=auth.create_refresh_token(user.id),
    )


def refresh_access_token(session: Session, refresh_token: str) -> schemas.AccessToken:
    user = auth.user_from_token(session, refresh_token, expected_type=auth.REFRESH)
    return schemas.AccessToken(access_token=auth.create_access_token(user.id))


def update_profile(session: Session, user: models.User, update_in: schemas.ProfileUpdate) -> models.User:
    changes = update_in.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes:
        ensure_unique_identity(session, email=changes["email"], exclude_id=user.id)
    for field, value in changes.items():
        setattr(user, field, value)
    return save(session, user)


def change_password(session: Session, user: models.User, payload: schemas.PasswordChange) -> None:
    if not auth.verify_password(payload.current_password, user.password_hash):
        raise BusinessRuleError("Current password is incorrect")
    user.password_hash = auth.hash_password(payload.new_password)
    session.flush()
    LOG.info("Password changed", extra={"user_id": user.id})
