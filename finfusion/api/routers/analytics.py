"""Cross-resource analytics: dashboard, trends and spending breakdowns."""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import get_current_user
from ..responses import ok

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/dashboard", response_model=schemas.Envelope[schemas.DashboardOverview])
def dashboard(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.analytics.dashboard_overview(db, current_user.id, start_date, end_date))


@router.get("/spending-trends", response_model=schemas.Envelope[schemas.SpendingTrends])
def spending_trends(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    group_by: str = "month",
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.analytics.spending_trends(db, current_user.id, start_date, end_date, group_by))


@router.get("/category-breakdown", response_model=schemas.Envelope[schemas.CategoryBreakdown])
def category_breakdown(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    kind: schemas.CategoryType = Query("EXPENSE", alias="type"),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.analytics.category_breakdown(db, current_user.id, start_date, end_date, kind))


@router.get("/budget-performance", response_model=schemas.Envelope[schemas.BudgetPerformance])
def budget_performance(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.analytics.budget_performance(db, current_user.id, start_date, end_date))


@router.get("/insights", response_model=schemas.Envelope[schemas.FinancialInsights])
def insights(current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    return ok(crud.analytics.financial_insights(db, current_user.id))
