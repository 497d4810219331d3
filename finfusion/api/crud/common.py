"""Helpers shared by the CRUD modules."""
from __future__ import annotations

import math
from typing import Any, List, Tuple, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from ..errors import EntityNotFoundError

ModelT = TypeVar("ModelT")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def get_owned(session: Session, model: Type[ModelT], entity_id: str, user_id: str, label: str) -> ModelT:
    """Load ``entity_id`` and check it belongs to ``user_id``.

    Records owned by someone else are reported exactly like missing ones.
    """
    entity = session.get(model, entity_id)
    if entity is None or getattr(entity, "user_id") != user_id:
        raise EntityNotFoundError(f"{label} not found")
    return entity


def paginate(session: Session, stmt: Select, page: int, limit: int) -> Tuple[List[Any], int]:
    total = session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    items = list(session.scalars(stmt.offset((page - 1) * limit).limit(limit)))
    return items, int(total)


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def apply_updates(entity: Any, update_in: BaseModel) -> dict[str, Any]:
    changes = update_in.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(entity, field, value)
    return changes


def save(session: Session, entity: ModelT) -> ModelT:
    session.flush()
    session.refresh(entity)
    return entity
