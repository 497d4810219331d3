"""CRUD helper functions for the FinFusion API, one module per resource."""
from __future__ import annotations

from ..errors import (
    AccessDeniedError,
    AuthenticationError,
    BusinessRuleError,
    EntityConflictError,
    EntityNotFoundError,
)
from . import (
    accounts,
    admin,
    analytics,
    budgets,
    categories,
    loans,
    notifications,
    payment_methods,
    recurring,
    seed,
    transactions,
    users,
)

__all__ = [
    "AccessDeniedError",
    "AuthenticationError",
    "BusinessRuleError",
    "EntityConflictError",
    "EntityNotFoundError",
    "accounts",
    "admin",
    "analytics",
    "budgets",
    "categories",
    "loans",
    "notifications",
    "payment_methods",
    "recurring",
    "seed",
    "transactions",
    "users",
]
