from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finfusion.api import crud, schemas
from finfusion.api.errors import BusinessRuleError

MARCH = {"start_date": "2024-03-01", "end_date": "2024-03-31"}


def _book(db_session, user, category, amount, kind, day, account=None):
    return crud.transactions.create_transaction(
        db_session,
        user.id,
        schemas.TransactionCreate(
            amount=Decimal(amount),
            type=kind,
            category_id=category.id,
            account_id=account.id if account is not None else None,
            date=day,
        ),
    )


@pytest.fixture()
def history(db_session, user, cash_account, food, salary):
    _book(db_session, user, salary, "3000", "INCOME", date(2024, 3, 1), cash_account)
    _book(db_session, user, food, "200", "EXPENSE", date(2024, 3, 5), cash_account)
    _book(db_session, user, food, "50", "EXPENSE", date(2024, 3, 20), cash_account)
    _book(db_session, user, food, "100", "EXPENSE", date(2024, 2, 14), cash_account)
    crud.budgets.create_budget(
        db_session,
        user.id,
        schemas.BudgetCreate(
            category_id=food.id,
            amount=Decimal("500"),
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
        ),
    )


def test_dashboard_overview(client, auth_headers, history):
    body = client.get("/api/analytics/dashboard", params=MARCH, headers=auth_headers).json()
    data = body["data"]
    assert data["period"]["start_date"] == "2024-03-01"
    assert data["summary"] == {
        "total_income": 3000.0,
        "total_expenses": 250.0,
        "net_income": 2750.0,
        "transaction_counts": {"income": 1, "expenses": 2},
    }
    [usage] = data["budget_utilization"]
    assert usage["category_name"] == "Food & Dining"
    assert usage["spent_amount"] == 250.0
    assert usage["utilization_percentage"] == 50.0
    assert usage["status"] == "on-track"


def test_spending_trends_by_month(client, auth_headers, history):
    params = {"start_date": "2024-01-01", "end_date": "2024-03-31", "group_by": "month"}
    data = client.get("/api/analytics/spending-trends", params=params, headers=auth_headers).json()["data"]
    assert data["period"]["group_by"] == "month"
    assert data["trends"] == [
        {"period": "2024-02", "income": 0.0, "expenses": 100.0, "net_income": -100.0},
        {"period": "2024-03", "income": 3000.0, "expenses": 250.0, "net_income": 2750.0},
    ]


def test_spending_trends_rejects_unknown_grouping(client, auth_headers):
    response = client.get("/api/analytics/spending-trends", params={"group_by": "year"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "group_by must be one of day, week, month"


def test_category_breakdown(client, auth_headers, history):
    expenses = client.get("/api/analytics/category-breakdown", params=MARCH, headers=auth_headers).json()["data"]
    assert expenses["total_amount"] == 250.0
    [item] = expenses["breakdown"]
    assert item["category"]["name"] == "Food & Dining"
    assert item["transaction_count"] == 2
    assert item["percentage"] == 100.0

    income = client.get(
        "/api/analytics/category-breakdown", params={**MARCH, "type": "INCOME"}, headers=auth_headers
    ).json()["data"]
    assert [entry["category"]["name"] for entry in income["breakdown"]] == ["Salary"]
    assert income["total_amount"] == 3000.0


def test_budget_performance(client, auth_headers, history):
    data = client.get("/api/analytics/budget-performance", params=MARCH, headers=auth_headers).json()["data"]
    assert data["total_budgets"] == 1
    assert data["total_allocated"] == 500.0
    assert data["total_spent"] == 250.0
    assert data["overall_utilization"] == 50.0
    assert data["status_counts"] == {"on-track": 1, "warning": 0, "over-budget": 0}


def test_insights_flag_dominant_category(db_session, user, history):
    insights = crud.analytics.financial_insights(db_session, user.id, today=date(2024, 3, 31))
    assert insights.monthly_average.income == 1000.0
    assert insights.monthly_average.expenses == pytest.approx(116.67)
    assert insights.top_spending_categories[0].category_name == "Food & Dining"
    assert insights.top_spending_categories[0].amount == 350.0
    assert insights.budget_health.on_track == 1
    assert insights.recommendations == [
        "Food & Dining accounts for 100.0% of your spending. Consider if this is necessary."
    ]


def test_insights_warn_about_negative_cash_flow(client, auth_headers, db_session, user, food, cash_account):
    _book(db_session, user, food, "90", "EXPENSE", date.today(), cash_account)
    data = client.get("/api/analytics/insights", headers=auth_headers).json()["data"]
    assert data["monthly_average"]["net_income"] == -30.0
    assert data["recommendations"][0] == (
        "Your expenses exceed your income. Consider reducing spending or increasing income."
    )


def test_insights_without_data_are_positive(db_session, user):
    insights = crud.analytics.financial_insights(db_session, user.id, today=date(2024, 3, 31))
    assert insights.top_spending_categories == []
    assert insights.recommendations == ["Great job! Your finances look healthy. Keep up the good work!"]


def test_unknown_grouping_at_crud_level(db_session, user):
    with pytest.raises(BusinessRuleError):
        crud.analytics.spending_trends(db_session, user.id, group_by="quarter")
