"""Category CRUD, hierarchy and statistics.

Users see their own categories plus the shared system categories. System
categories are read-only.
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import BusinessRuleError, EntityConflictError, EntityNotFoundError
from .common import save


def visible_to(user_id: str):
    return or_(models.Category.user_id == user_id, models.Category.is_system.is_(True))


def list_categories(
    session: Session,
    user_id: str,
    *,
    category_type: Optional[str] = None,
    is_system: Optional[bool] = None,
) -> List[models.Category]:
    stmt = select(models.Category).where(visible_to(user_id))
    if category_type is not None:
        stmt = stmt.where(models.Category.type == category_type)
    if is_system is not None:
        stmt = stmt.where(models.Category.is_system.is_(is_system))
    stmt = stmt.order_by(models.Category.type, models.Category.name)
    return list(session.scalars(stmt))


def get_category(session: Session, user_id: str, category_id: str) -> models.Category:
    category = session.get(models.Category, category_id)
    if category is None or not (category.is_system or category.user_id == user_id):
        raise EntityNotFoundError("Category not found")
    return category


def _ensure_unique_name(
    session: Session, user_id: str, name: str, category_type: str, exclude_id: Optional[str] = None
) -> None:
    stmt = select(models.Category.id).where(
        visible_to(user_id),
        func.lower(models.Category.name) == name.strip().lower(),
        models.Category.type == category_type,
    )
    if exclude_id is not None:
        stmt = stmt.where(models.Category.id != exclude_id)
    if session.scalar(stmt) is not None:
        raise EntityConflictError("Category with this name already exists")


def _check_parent(
    session: Session,
    user_id: str,
    parent_id: str,
    category_type: str,
    category_id: Optional[str] = None,
) -> None:
    if category_id is not None and parent_id == category_id:
        raise BusinessRuleError("A category cannot be its own parent")
    try:
        parent = get_category(session, user_id, parent_id)
    except EntityNotFoundError as exc:
        raise BusinessRuleError("Parent category not found") from exc
    if parent.type != category_type:
        raise BusinessRuleError("Parent and child categories must have the same type")
    if category_id is None:
        return
    seen = {parent.id}
    ancestor_id = parent.parent_category_id
    while ancestor_id is not None and ancestor_id not in seen:
        if ancestor_id == category_id:
            raise BusinessRuleError("A category cannot be nested under its own sub-category")
        seen.add(ancestor_id)
        ancestor = session.get(models.Category, ancestor_id)
        ancestor_id = ancestor.parent_category_id if ancestor is not None else None


def create_category(session: Session, user_id: str, category_in: schemas.CategoryCreate) -> models.Category:
    data = category_in.model_dump()
    data["name"] = data["name"].strip()
    if data["color"]:
        data["color"] = data["color"].upper()
    if data["parent_category_id"]:
        _check_parent(session, user_id, data["parent_category_id"], data["type"])
    _ensure_unique_name(session, user_id, data["name"], data["type"])
    category = models.Category(user_id=user_id, is_system=False, **data)
    session.add(category)
    return save(session, category)


def update_category(
    session: Session, user_id: str, category_id: str, update_in: schemas.CategoryUpdate
) -> models.Category:
    category = get_category(session, user_id, category_id)
    if category.is_system:
        raise BusinessRuleError("Cannot modify system category")
    changes = update_in.model_dump(exclude_unset=True)
    if changes.get("name") is not None:
        changes["name"] = changes["name"].strip()
        _ensure_unique_name(session, user_id, changes["name"], category.type, exclude_id=category.id)
    if changes.get("color"):
        changes["color"] = changes["color"].upper()
    if changes.get("parent_category_id"):
        _check_parent(session, user_id, changes["parent_category_id"], category.type, category.id)
    for field, value in changes.items():
        setattr(category, field, value)
    return save(session, category)


def delete_category(session: Session, user_id: str, category_id: str) -> None:
    category = get_category(session, user_id, category_id)
    if category.is_system:
        raise BusinessRuleError("Cannot delete system category")
    txn_count = session.scalar(
        select(func.count(models.Transaction.id)).where(models.Transaction.category_id == category_id)
    )
    if txn_count:
        raise BusinessRuleError("Cannot delete category with existing transactions")
    child_count = session.scalar(
        select(func.count(models.Category.id)).where(models.Category.parent_category_id == category_id)
    )
    if child_count:
        raise BusinessRuleError("Cannot delete category with existing subcategories")
    budget_count = session.scalar(
        select(func.count(models.Budget.id)).where(models.Budget.category_id == category_id)
    )
    if budget_count:
        raise BusinessRuleError("Cannot delete category with existing budgets")
    session.delete(category)
    session.flush()


def category_hierarchy(session: Session, user_id: str) -> List[schemas.CategoryTree]:
    categories = list_categories(session, user_id)
    children: dict[str, List[models.Category]] = {}
    for category in categories:
        if category.parent_category_id is not None:
            children.setdefault(category.parent_category_id, []).append(category)
    return [
        schemas.CategoryTree(
            **schemas.CategoryRead.model_validate(category).model_dump(),
            sub_categories=[schemas.CategoryRead.model_validate(child) for child in children.get(category.id, [])],
        )
        for category in categories
        if category.parent_category_id is None
    ]


def category_stats(session: Session, user_id: str) -> schemas.CategoryStats:
    categories = list_categories(session, user_id)
    return schemas.CategoryStats(
        total=len(categories),
        income=sum(1 for category in categories if category.type == "INCOME"),
        expense=sum(1 for category in categories if category.type == "EXPENSE"),
        custom=sum(1 for category in categories if not category.is_system),
        system=sum(1 for category in categories if category.is_system),
    )


def child_ids(session: Session, category_id: str) -> List[str]:
    stmt = select(models.Category.id).where(models.Category.parent_category_id == category_id)
    return list(session.scalars(stmt))


def ensure_category(
    session: Session,
    user_id: str,
    name: str,
    category_type: str,
    *,
    icon: Optional[str] = None,
    color: Optional[str] = None,
    description: Optional[str] = None,
) -> models.Category:
    """Return the visible category called ``name``, creating a personal one if needed."""
    stmt = select(models.Category).where(
        visible_to(user_id),
        func.lower(models.Category.name) == name.strip().lower(),
        models.Category.type == category_type,
    )
    category = session.scalars(stmt).first()
    if category is not None:
        return category
    category = models.Category(
        user_id=user_id,
        name=name,
        type=category_type,
        icon=icon,
        color=color,
        description=description,
        is_system=False,
    )
    session.add(category)
    session.flush()
    return category
