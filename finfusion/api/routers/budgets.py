"""Budget endpoints, including utilisation analytics and alerts."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import get_current_user
from ..responses import done, ok, paginated

router = APIRouter(prefix="/budgets", tags=["budgets"])


@router.get("", response_model=schemas.Page[schemas.BudgetRead])
def list_budgets(
    period_type: Optional[schemas.BudgetPeriod] = None,
    category_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    items, total = crud.budgets.list_budgets(
        db,
        current_user.id,
        period_type=period_type,
        category_id=category_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return paginated(items, page, limit, total)


@router.get("/analytics", response_model=schemas.Envelope[schemas.BudgetAnalytics])
def budget_analytics(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.budgets.budget_analytics(db, current_user.id, start_date, end_date))


@router.get("/performance", response_model=schemas.Envelope[schemas.BudgetPerformance])
def budget_performance(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.budgets.budget_performance(db, current_user.id, start_date, end_date))


@router.get("/recommendations", response_model=schemas.Envelope[List[schemas.BudgetRecommendation]])
def budget_recommendations(
    current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.budgets.budget_recommendations(db, current_user.id))


@router.get("/alerts", response_model=schemas.Envelope[List[schemas.BudgetAlertRead]])
def list_alerts(
    is_acknowledged: Optional[bool] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.budgets.list_alerts(db, current_user.id, is_acknowledged))


@router.post("/alerts/check", response_model=schemas.Envelope[List[schemas.BudgetAlertRead]])
def check_alerts(current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    alerts = crud.budgets.check_budget_alerts(db, current_user.id)
    return ok(alerts, f"{len(alerts)} new budget alerts")


@router.put("/alerts/{alert_id}/acknowledge", response_model=schemas.Envelope[schemas.BudgetAlertRead])
def acknowledge_alert(
    alert_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.budgets.acknowledge_alert(db, current_user.id, alert_id), "Budget alert acknowledged")


@router.post("", response_model=schemas.Envelope[schemas.BudgetRead], status_code=status.HTTP_201_CREATED)
def create_budget(
    budget_in: schemas.BudgetCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    budget = crud.budgets.create_budget(db, current_user.id, budget_in)
    return ok(crud.budgets.budget_view(db, budget), "Budget created successfully")


@router.get("/{budget_id}", response_model=schemas.Envelope[schemas.BudgetRead])
def get_budget(
    budget_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    budget = crud.budgets.get_budget(db, current_user.id, budget_id)
    return ok(crud.budgets.budget_view(db, budget))


@router.get("/{budget_id}/alerts", response_model=schemas.Envelope[List[schemas.BudgetAlertRead]])
def list_budget_alerts(
    budget_id: str,
    is_acknowledged: Optional[bool] = None,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.budgets.list_alerts(db, current_user.id, is_acknowledged, budget_id=budget_id))


@router.put("/{budget_id}", response_model=schemas.Envelope[schemas.BudgetRead])
def update_budget(
    budget_id: str,
    update_in: schemas.BudgetUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    budget = crud.budgets.update_budget(db, current_user.id, budget_id, update_in)
    return ok(crud.budgets.budget_view(db, budget), "Budget updated successfully")


@router.delete("/{budget_id}", response_model=schemas.MessageResponse)
def delete_budget(
    budget_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    crud.budgets.delete_budget(db, current_user.id, budget_id)
    return done("Budget deleted successfully")
