"""Dashboard analytics built on the pandas aggregation engine."""
from __future__ import annotations

from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from finfusion.engine import analytics

from .. import schemas
from ..errors import BusinessRuleError
from . import budgets, transactions

TREND_MONTHS = 6
INSIGHT_MONTHS = 3
TOP_CATEGORIES = 5


def _period(
    start_date: Optional[date], end_date: Optional[date], today: date, months_back: int = 0
) -> tuple[date, date]:
    default_start, default_end = analytics.month_bounds(today, months_back)
    return start_date or default_start, end_date or default_end


def dashboard_overview(
    session: Session,
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> schemas.DashboardOverview:
    start_date, end_date = _period(start_date, end_date, today or date.today())
    frame = transactions.transaction_frame(session, user_id, start_date, end_date)
    summary = analytics.summarize(frame)
    report = budgets.budget_analytics(session, user_id, start_date, end_date)
    return schemas.DashboardOverview(
        period=schemas.Period(start_date=start_date, end_date=end_date),
        summary=schemas.OverviewSummary(
            total_income=summary["total_income"],
            total_expenses=summary["total_expenses"],
            net_income=summary["net_income"],
            transaction_counts=schemas.TransactionCounts(
                income=summary["income_count"], expenses=summary["expense_count"]
            ),
        ),
        budget_utilization=report.budgets,
    )


def spending_trends(
    session: Session,
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    group_by: str = "month",
    today: Optional[date] = None,
) -> schemas.SpendingTrends:
    if group_by not in analytics.GROUP_BY:
        raise BusinessRuleError("group_by must be one of day, week, month")
    start_date, end_date = _period(start_date, end_date, today or date.today(), TREND_MONTHS)
    frame = transactions.transaction_frame(session, user_id, start_date, end_date)
    return schemas.SpendingTrends(
        period=schemas.Period(start_date=start_date, end_date=end_date, group_by=group_by),
        trends=analytics.trends(frame, group_by),
    )


def category_breakdown(
    session: Session,
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    kind: str = "EXPENSE",
    today: Optional[date] = None,
) -> schemas.CategoryBreakdown:
    start_date, end_date = _period(start_date, end_date, today or date.today())
    frame = transactions.transaction_frame(session, user_id, start_date, end_date)
    breakdown = analytics.category_breakdown(frame, kind)
    return schemas.CategoryBreakdown(
        period=schemas.Period(start_date=start_date, end_date=end_date),
        total_amount=round(sum(item["amount"] for item in breakdown), 2),
        breakdown=breakdown,
    )


def budget_performance(
    session: Session,
    user_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> schemas.BudgetPerformance:
    return budgets.budget_performance(session, user_id, start_date, end_date, today=today)


def financial_insights(session: Session, user_id: str, today: Optional[date] = None) -> schemas.FinancialInsights:
    today = today or date.today()
    start = today - relativedelta(months=INSIGHT_MONTHS)
    frame = transactions.transaction_frame(session, user_id, start, today)
    summary = analytics.summarize(frame)
    report = budgets.budget_analytics(session, user_id)

    income = summary["total_income"] / INSIGHT_MONTHS
    expenses = summary["total_expenses"] / INSIGHT_MONTHS
    monthly = schemas.MonthlyAverage(
        income=round(income, 2), expenses=round(expenses, 2), net_income=round(income - expenses, 2)
    )
    top = [
        schemas.TopCategory(
            category_name=item["category"]["name"], amount=item["amount"], percentage=item["percentage"]
        )
        for item in analytics.category_breakdown(frame, "EXPENSE")[:TOP_CATEGORIES]
    ]
    advice = analytics.build_recommendations(
        monthly.net_income,
        report.overall_utilization,
        report.status_counts["over-budget"],
        top[0].model_dump() if top else None,
    )
    return schemas.FinancialInsights(
        monthly_average=monthly,
        top_spending_categories=top,
        budget_health=schemas.BudgetHealth(
            on_track=report.status_counts["on-track"],
            warning=report.status_counts["warning"],
            over_budget=report.status_counts["over-budget"],
        ),
        recommendations=advice,
    )
