"""Budget CRUD, spending, alerts and reports."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from finfusion.engine import analytics
from finfusion.engine.loans import as_money

from .. import models, schemas
from ..errors import BusinessRuleError, EntityConflictError, EntityNotFoundError
from . import categories, notifications
from .common import get_owned, paginate, save

LOG = logging.getLogger(__name__)

STATUSES = ("on-track", "warning", "over-budget")
RECOMMENDATION_MONTHS = 3


def _ensure_no_overlap(
    session: Session,
    user_id: str,
    category_id: str,
    start_date: date,
    end_date: date,
    exclude_id: Optional[str] = None,
) -> None:
    stmt = select(models.Budget.id).where(
        models.Budget.user_id == user_id,
        models.Budget.category_id == category_id,
        models.Budget.start_date <= end_date,
        models.Budget.end_date >= start_date,
    )
    if exclude_id is not None:
        stmt = stmt.where(models.Budget.id != exclude_id)
    if session.scalar(stmt) is not None:
        raise EntityConflictError("Budget already exists for this category and time period")


def budget_spending(session: Session, budget: models.Budget) -> Decimal:
    """Expenses booked in the budget's category and its direct sub-categories."""
    category_ids = [budget.category_id, *categories.child_ids(session, budget.category_id)]
    stmt = select(func.coalesce(func.sum(models.Transaction.amount), 0)).where(
        models.Transaction.user_id == budget.user_id,
        models.Transaction.type == "EXPENSE",
        models.Transaction.is_recurring.is_(False),
        models.Transaction.category_id.in_(category_ids),
        models.Transaction.date >= budget.start_date,
        models.Transaction.date <= budget.end_date,
    )
    return as_money(session.scalar(stmt) or 0)


def budget_usage(session: Session, budget: models.Budget) -> schemas.BudgetUsage:
    allocated = float(budget.amount)
    spent = float(budget_spending(session, budget))
    used = analytics.utilization(spent, allocated)
    return schemas.BudgetUsage(
        budget_id=budget.id,
        category_id=budget.category_id,
        category_name=budget.category.name if budget.category else "Unknown",
        allocated_amount=round(allocated, 2),
        spent_amount=round(spent, 2),
        remaining_amount=round(allocated - spent, 2),
        utilization_percentage=used,
        status=analytics.budget_status(used, budget.alert_threshold),
    )


def budget_view(session: Session, budget: models.Budget) -> schemas.BudgetRead:
    usage = budget_usage(session, budget)
    return schemas.BudgetRead(
        **schemas.BudgetRecord.model_validate(budget).model_dump(),
        spent_amount=usage.spent_amount,
        remaining_amount=usage.remaining_amount,
        utilization_percentage=usage.utilization_percentage,
        status=usage.status,
    )


def list_budgets(
    session: Session,
    user_id: str,
    *,
    period_type: Optional[str] = None,
    category_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[schemas.BudgetRead], int]:
    stmt = select(models.Budget).where(models.Budget.user_id == user_id)
    if period_type is not None:
        stmt = stmt.where(models.Budget.period_type == period_type)
    if category_id is not None:
        stmt = stmt.where(models.Budget.category_id == category_id)
    if start_date is not None:
        stmt = stmt.where(models.Budget.end_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(models.Budget.start_date <= end_date)
    stmt = stmt.order_by(models.Budget.start_date.desc())
    items, total = paginate(session, stmt, page, limit)
    return [budget_view(session, budget) for budget in items], total


def get_budget(session: Session, user_id: str, budget_id: str) -> models.Budget:
    return get_owned(session, models.Budget, budget_id, user_id, "Budget")


def create_budget(session: Session, user_id: str, budget_in: schemas.BudgetCreate) -> models.Budget:
    category = categories.get_category(session, user_id, budget_in.category_id)
    if category.type != "EXPENSE":
        raise BusinessRuleError("Budgets can only be set on expense categories")
    _ensure_no_overlap(session, user_id, budget_in.category_id, budget_in.start_date, budget_in.end_date)
    data = budget_in.model_dump()
    data["amount"] = as_money(data["amount"])
    budget = models.Budget(user_id=user_id, **data)
    session.add(budget)
    return save(session, budget)


def update_budget(
    session: Session, user_id: str, budget_id: str, update_in: schemas.BudgetUpdate
) -> models.Budget:
    budget = get_budget(session, user_id, budget_id)
    changes = {key: value for key, value in update_in.model_dump(exclude_unset=True).items() if value is not None}
    start_date = changes.get("start_date", budget.start_date)
    end_date = changes.get("end_date", budget.end_date)
    if end_date < start_date:
        raise BusinessRuleError("end_date must not be before start_date")
    if "start_date" in changes or "end_date" in changes:
        _ensure_no_overlap(session, user_id, budget.category_id, start_date, end_date, exclude_id=budget.id)
    for field, value in changes.items():
        if field == "amount":
            value = as_money(value)
        setattr(budget, field, value)
    return save(session, budget)


def delete_budget(session: Session, user_id: str, budget_id: str) -> None:
    budget = get_budget(session, user_id, budget_id)
    session.delete(budget)
    session.flush()


def _budgets_in_period(
    session: Session, user_id: str, start_date: Optional[date], end_date: Optional[date]
) -> List[models.Budget]:
    stmt = select(models.Budget).where(models.Budget.user_id == user_id)
    if start_date is not None:
        stmt = stmt.where(models.Budget.end_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(models.Budget.start_date <= end_date)
    return list(session.scalars(stmt.order_by(models.Budget.start_date)))


def budget_analytics(
    session: Session,
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.BudgetAnalytics:
    usages = [budget_usage(session, budget) for budget in _budgets_in_period(session, user_id, start_date, end_date)]
    usages.sort(key=lambda usage: usage.utilization_percentage, reverse=True)
    allocated = sum(usage.allocated_amount for usage in usages)
    spent = sum(usage.spent_amount for usage in usages)
    counts = {status: 0 for status in STATUSES}
    for usage in usages:
        counts[usage.status] += 1
    return schemas.BudgetAnalytics(
        total_budgets=len(usages),
        total_allocated=round(allocated, 2),
        total_spent=round(spent, 2),
        total_remaining=round(allocated - spent, 2),
        overall_utilization=analytics.utilization(spent, allocated),
        status_counts=counts,
        budgets=usages,
    )


def budget_performance(
    session: Session,
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> schemas.BudgetPerformance:
    default_start, default_end = analytics.month_bounds(today or date.today())
    start_date = start_date or default_start
    end_date = end_date or default_end
    report = budget_analytics(session, user_id, start_date, end_date)
    return schemas.BudgetPerformance(
        **report.model_dump(),
        period=schemas.Period(start_date=start_date, end_date=end_date),
    )


def check_budget_alerts(
    session: Session,
    user_id: str,
    category_id: Optional[str] = None,
    on: Optional[date] = None,
) -> List[models.BudgetAlert]:
    """Raise alerts for budgets past their threshold (or fully spent).

    Only one unacknowledged alert exists per budget and threshold, so calling
    this repeatedly is harmless.
    """
    on = on or date.today()
    stmt = select(models.Budget).where(
        models.Budget.user_id == user_id,
        models.Budget.start_date <= on,
        models.Budget.end_date >= on,
    )
    if category_id is not None:
        category = session.get(models.Category, category_id)
        watched = [category_id]
        if category is not None and category.parent_category_id is not None:
            watched.append(category.parent_category_id)
        stmt = stmt.where(models.Budget.category_id.in_(watched))

    created: List[models.BudgetAlert] = []
    for budget in session.scalars(stmt):
        usage = budget_usage(session, budget)
        thresholds = [budget.alert_threshold]
        if budget.alert_threshold < 100:
            thresholds.append(100)
        for threshold in thresholds:
            if usage.utilization_percentage < threshold:
                continue
            open_alert = session.scalar(
                select(models.BudgetAlert.id).where(
                    models.BudgetAlert.budget_id == budget.id,
                    models.BudgetAlert.threshold_percentage == threshold,
                    models.BudgetAlert.is_acknowledged.is_(False),
                )
            )
            if open_alert is not None:
                continue
            alert = models.BudgetAlert(budget_id=budget.id, threshold_percentage=threshold)
            session.add(alert)
            created.append(alert)
            if threshold >= 100:
                message = f"You have exceeded your {usage.category_name} budget ({usage.utilization_percentage}% used)."
            else:
                message = (
                    f"You have used {usage.utilization_percentage}% of your {usage.category_name} budget."
                )
            notifications.notify(session, user_id, "Budget alert", message, "WARNING")
            LOG.info("Budget alert raised at %d%%", threshold, extra={"user_id": user_id})
    session.flush()
    return created


def list_alerts(
    session: Session, user_id: str, is_acknowledged: Optional[bool] = None, budget_id: Optional[str] = None
) -> List[models.BudgetAlert]:
    stmt = (
        select(models.BudgetAlert)
        .join(models.Budget, models.BudgetAlert.budget_id == models.Budget.id)
        .where(models.Budget.user_id == user_id)
    )
    if budget_id is not None:
        get_budget(session, user_id, budget_id)
        stmt = stmt.where(models.BudgetAlert.budget_id == budget_id)
    if is_acknowledged is not None:
        stmt = stmt.where(models.BudgetAlert.is_acknowledged.is_(is_acknowledged))
    return list(session.scalars(stmt.order_by(models.BudgetAlert.triggered_at.desc())))


def acknowledge_alert(session: Session, user_id: str, alert_id: str) -> models.BudgetAlert:
    alert = session.get(models.BudgetAlert, alert_id)
    if alert is None or alert.budget.user_id != user_id:
        raise EntityNotFoundError("Budget alert not found")
    alert.is_acknowledged = True
    return save(session, alert)


def budget_recommendations(
    session: Session, user_id: str, today: Optional[date] = None
) -> List[schemas.BudgetRecommendation]:
    """Suggest monthly budgets from the last three months of expenses."""
    from .transactions import transaction_frame

    today = today or date.today()
    start = today - relativedelta(months=RECOMMENDATION_MONTHS)
    frame = transaction_frame(session, user_id, start, today)
    recommendations = []
    for item in analytics.category_breakdown(frame, "EXPENSE"):
        average = item["amount"] / RECOMMENDATION_MONTHS
        recommendations.append(
            schemas.BudgetRecommendation(
                category_id=item["category"]["id"],
                category_name=item["category"]["name"],
                average_monthly_spending=round(average, 2),
                recommended_amount=analytics.recommended_amount(average),
            )
        )
    return recommendations
