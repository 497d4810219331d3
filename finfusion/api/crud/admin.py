"""User administration and system statistics."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import BusinessRuleError
from . import users
from .common import paginate, save

LOG = logging.getLogger(__name__)


def list_users(
    session: Session,
    *,
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[models.User], int]:
    stmt = select(models.User)
    if role is not None:
        stmt = stmt.where(models.User.role == role)
    if is_active is not None:
        stmt = stmt.where(models.User.is_active.is_(is_active))
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                models.User.name.ilike(pattern),
                models.User.email.ilike(pattern),
                models.User.username.ilike(pattern),
            )
        )
    stmt = stmt.order_by(models.User.created_at.desc())
    return paginate(session, stmt, page, limit)


def create_user(session: Session, user_in: schemas.AdminUserCreate) -> models.User:
    user = users.create_user(session, user_in, role=user_in.role)
    LOG.info("Admin created user with role %s", user.role, extra={"user_id": user.id})
    return user


def update_user(
    session: Session, acting_user: models.User, user_id: str, update_in: schemas.AdminUserUpdate
) -> models.User:
    user = users.get_user(session, user_id)
    changes = update_in.model_dump(exclude_unset=True, exclude_none=True)
    if user.id == acting_user.id and (changes.get("role", user.role) != user.role or changes.get("is_active") is False):
        raise BusinessRuleError("Cannot change your own role or deactivate yourself")
    if "email" in changes:
        users.ensure_unique_identity(session, email=changes["email"], exclude_id=user.id)
    if "role" in changes and changes["role"] != user.role:
        LOG.info("Role of %s changed from %s to %s", user.id, user.role, changes["role"], extra={"user_id": acting_user.id})
    for field, value in changes.items():
        setattr(user, field, value)
    return save(session, user)


def delete_user(session: Session, acting_user: models.User, user_id: str) -> None:
    if user_id == acting_user.id:
        raise BusinessRuleError("Cannot delete your own account")
    user = users.get_user(session, user_id)
    session.delete(user)
    session.flush()
    LOG.info("User %s deleted", user_id, extra={"user_id": acting_user.id})


def _count(session: Session, column) -> int:
    return int(session.scalar(select(func.count(column))) or 0)


def system_stats(session: Session) -> schemas.SystemStats:
    by_role = {role: 0 for role in models.USER_ROLES}
    for role, count in session.execute(select(models.User.role, func.count(models.User.id)).group_by(models.User.role)):
        by_role[role] = count
    active = session.scalar(select(func.count(models.User.id)).where(models.User.is_active.is_(True))) or 0
    return schemas.SystemStats(
        total_users=sum(by_role.values()),
        active_users=int(active),
        users_by_role=by_role,
        total_accounts=_count(session, models.Account.id),
        total_transactions=_count(session, models.Transaction.id),
        total_loans=_count(session, models.Loan.id),
        total_budgets=_count(session, models.Budget.id),
    )
