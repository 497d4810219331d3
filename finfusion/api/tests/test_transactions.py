from __future__ import annotations

import json
from decimal import Decimal

import pytest


@pytest.fixture()
def checking(client, auth_headers):
    response = client.post(
        "/api/accounts", json={"name": "Checking", "type": "CHECKING", "balance": "1000"}, headers=auth_headers
    )
    return response.json()["data"]


@pytest.fixture()
def savings(client, auth_headers):
    response = client.post(
        "/api/accounts", json={"name": "Savings", "type": "SAVINGS", "balance": "0"}, headers=auth_headers
    )
    return response.json()["data"]


def _balance(client, headers, account_id) -> Decimal:
    return Decimal(client.get(f"/api/accounts/{account_id}", headers=headers).json()["data"]["balance"])


def _post(client, headers, **payload):
    response = client.post("/api/transactions", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_income_and_expense_move_the_balance(client, auth_headers, checking, food, salary):
    _post(client, auth_headers, amount="250.00", type="INCOME", category_id=salary.id,
          account_id=checking["id"], date="2024-03-01")
    expense = _post(client, auth_headers, amount="80.25", type="EXPENSE", category_id=food.id,
                    account_id=checking["id"], date="2024-03-02", description="Groceries")
    assert expense["category"]["name"] == "Food & Dining"
    assert expense["account"]["name"] == "Checking"
    assert _balance(client, auth_headers, checking["id"]) == Decimal("1169.75")


def test_transfer_moves_money_between_accounts(client, auth_headers, checking, savings, food):
    _post(client, auth_headers, amount="300", type="TRANSFER", category_id=food.id,
          account_id=checking["id"], to_account_id=savings["id"], date="2024-03-05")
    assert _balance(client, auth_headers, checking["id"]) == Decimal("700.00")
    assert _balance(client, auth_headers, savings["id"]) == Decimal("300.00")


def test_transfer_requires_destination(client, auth_headers, checking, food):
    response = client.post(
        "/api/transactions",
        json={"amount": "10", "type": "TRANSFER", "category_id": food.id, "account_id": checking["id"],
              "date": "2024-03-05"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_update_reverses_the_old_effect(client, auth_headers, checking, savings, food):
    txn = _post(client, auth_headers, amount="100", type="EXPENSE", category_id=food.id,
                account_id=checking["id"], date="2024-03-02")
    response = client.put(
        f"/api/transactions/{txn['id']}",
        json={"amount": "40", "account_id": savings["id"]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert _balance(client, auth_headers, checking["id"]) == Decimal("1000.00")
    assert _balance(client, auth_headers, savings["id"]) == Decimal("-40.00")


def test_delete_restores_the_balance(client, auth_headers, checking, food):
    txn = _post(client, auth_headers, amount="100", type="EXPENSE", category_id=food.id,
                account_id=checking["id"], date="2024-03-02")
    response = client.delete(f"/api/transactions/{txn['id']}", headers=auth_headers)
    assert response.json() == {"success": True, "message": "Transaction deleted successfully"}
    assert _balance(client, auth_headers, checking["id"]) == Decimal("1000.00")


def test_recurring_template_does_not_move_the_balance(client, auth_headers, checking, food):
    _post(client, auth_headers, amount="15", type="EXPENSE", category_id=food.id, account_id=checking["id"],
          date="2024-03-02", is_recurring=True, recurring_frequency="MONTHLY")
    assert _balance(client, auth_headers, checking["id"]) == Decimal("1000.00")
    summary = client.get("/api/transactions/summary", headers=auth_headers).json()["data"]
    assert summary["transaction_count"] == 0


def test_list_filters_and_search(client, auth_headers, checking, food, salary):
    _post(client, auth_headers, amount="20", type="EXPENSE", category_id=food.id, account_id=checking["id"],
          date="2024-02-10", description="Pizza night")
    _post(client, auth_headers, amount="900", type="INCOME", category_id=salary.id, account_id=checking["id"],
          date="2024-02-28")

    expenses = client.get("/api/transactions", params={"type": "EXPENSE"}, headers=auth_headers).json()
    assert expenses["pagination"]["total"] == 1

    by_text = client.get("/api/transactions", params={"search": "pizza"}, headers=auth_headers).json()
    assert [txn["description"] for txn in by_text["data"]] == ["Pizza night"]

    by_category_name = client.get("/api/transactions", params={"search": "salary"}, headers=auth_headers).json()
    assert by_category_name["pagination"]["total"] == 1

    ranged = client.get(
        "/api/transactions", params={"start_date": "2024-02-15", "end_date": "2024-02-29"}, headers=auth_headers
    ).json()
    assert [txn["type"] for txn in ranged["data"]] == ["INCOME"]


def test_missing_and_foreign_transactions_are_not_found(client, auth_headers, checking, food, make_user, headers_for):
    txn = _post(client, auth_headers, amount="5", type="EXPENSE", category_id=food.id, date="2024-01-01")
    assert client.get("/api/transactions/unknown", headers=auth_headers).status_code == 404
    foreign = client.get(f"/api/transactions/{txn['id']}", headers=headers_for(make_user("eve")))
    assert foreign.status_code == 404
    assert foreign.json()["error"] == "Transaction not found"


def test_unknown_account_is_rejected(client, auth_headers, food):
    response = client.post(
        "/api/transactions",
        json={"amount": "5", "type": "EXPENSE", "category_id": food.id, "account_id": "nope", "date": "2024-01-01"},
        headers=auth_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Account not found"


def test_import_reports_row_errors(client, auth_headers, checking, food):
    rows = [
        {"amount": "12", "type": "EXPENSE", "category_id": food.id, "account_id": checking["id"], "date": "2024-04-01"},
        {"amount": "-3", "type": "EXPENSE", "category_id": food.id, "date": "2024-04-02"},
        {"amount": "7", "type": "EXPENSE", "category_id": "missing", "date": "2024-04-03"},
    ]
    response = client.post("/api/transactions/import", json={"transactions": rows}, headers=auth_headers)
    assert response.status_code == 200
    result = response.json()["data"]
    assert result["imported"] == 1
    assert result["total"] == 3
    assert [error["row"] for error in result["errors"]] == [2, 3]
    assert result["errors"][1]["error"] == "Category not found"
    assert _balance(client, auth_headers, checking["id"]) == Decimal("988.00")


def test_export_csv_and_json(client, auth_headers, checking, food):
    _post(client, auth_headers, amount="42.5", type="EXPENSE", category_id=food.id, account_id=checking["id"],
          date="2024-04-01", description="Dinner")

    csv_response = client.get("/api/transactions/export", params={"format": "csv"}, headers=auth_headers)
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert "attachment" in csv_response.headers["content-disposition"]
    lines = csv_response.text.strip().splitlines()
    assert lines[0] == "Date,Type,Category,Amount,Description,Payment Method"
    assert lines[1] == "2024-04-01,EXPENSE,Food & Dining,42.50,Dinner,"

    json_response = client.get("/api/transactions/export", params={"format": "json"}, headers=auth_headers)
    exported = json.loads(json_response.text)
    assert exported[0]["description"] == "Dinner"


def test_export_rejects_unknown_format(client, auth_headers):
    response = client.get("/api/transactions/export", params={"format": "xml"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Unsupported export format"


def test_analytics_excludes_opening_balances(client, auth_headers, checking, food, salary):
    _post(client, auth_headers, amount="5000", type="INCOME", category_id=salary.id, account_id=checking["id"],
          date="2024-01-01", is_opening_balance=True)
    _post(client, auth_headers, amount="1200", type="INCOME", category_id=salary.id, account_id=checking["id"],
          date="2024-01-31")
    _post(client, auth_headers, amount="300", type="EXPENSE", category_id=food.id, account_id=checking["id"],
          date="2024-02-03")

    analytics = client.get(
        "/api/transactions/analytics",
        params={"start_date": "2024-01-01", "end_date": "2024-02-29"},
        headers=auth_headers,
    ).json()["data"]
    assert analytics["summary"]["total_income"] == 1200.0
    assert analytics["summary"]["net_income"] == 900.0
    assert analytics["spending_by_category"][0]["percentage"] == 100.0
    assert [point["period"] for point in analytics["monthly_trends"]] == ["2024-01", "2024-02"]
