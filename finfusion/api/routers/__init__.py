"""HTTP routers of the FinFusion API, mounted under ``/api``."""
from __future__ import annotations

from fastapi import APIRouter

from . import (
    accounts,
    admin,
    analytics,
    auth,
    budgets,
    categories,
    loans,
    notifications,
    payment_methods,
    recurring,
    transactions,
)

api_router = APIRouter(prefix="/api")
for module in (
    auth,
    accounts,
    categories,
    payment_methods,
    transactions,
    recurring,
    budgets,
    loans,
    notifications,
    analytics,
    admin,
):
    api_router.include_router(module.router)

__all__ = ["api_router"]
