from __future__ import annotations

from decimal import Decimal


def _create(client, headers, **overrides):
    payload = {"name": "Checking", "type": "CHECKING", "balance": "1000.00", "currency": "usd"}
    payload.update(overrides)
    response = client.post("/api/accounts", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_and_list_accounts(client, auth_headers):
    created = _create(client, auth_headers)
    assert created["currency"] == "USD"
    assert Decimal(created["balance"]) == Decimal("1000.00")

    listing = client.get("/api/accounts", headers=auth_headers).json()
    assert listing["pagination"] == {"page": 1, "limit": 20, "total": 2, "pages": 1}

    filtered = client.get("/api/accounts", params={"type": "CHECKING"}, headers=auth_headers).json()
    assert [account["id"] for account in filtered["data"]] == [created["id"]]


def test_invalid_type_filter_is_a_validation_error(client, auth_headers):
    response = client.get("/api/accounts", params={"type": "GOLD"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_account_summary_groups_by_type(client, auth_headers):
    _create(client, auth_headers)
    _create(client, auth_headers, name="Rainy day", type="SAVINGS", balance="500")
    summary = client.get("/api/accounts/summary", headers=auth_headers).json()["data"]
    assert Decimal(summary["total_balance"]) == Decimal("1500.00")
    assert summary["total_accounts"] == 3
    assert summary["by_type"]["SAVINGS"]["count"] == 1
    assert summary["by_type"]["LOAN"]["count"] == 0


def test_adjust_balance(client, auth_headers):
    account = _create(client, auth_headers)
    response = client.post(
        f"/api/accounts/{account['id']}/adjust-balance", json={"amount": "-250.50"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert Decimal(response.json()["data"]["balance"]) == Decimal("749.50")


def test_other_users_account_is_not_found(client, auth_headers, make_user, headers_for):
    account = _create(client, auth_headers)
    intruder = headers_for(make_user("mallory"))
    response = client.get(f"/api/accounts/{account['id']}", headers=intruder)
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Account not found"}
    assert client.delete(f"/api/accounts/{account['id']}", headers=intruder).status_code == 404


def test_account_with_transactions_cannot_be_deleted(client, auth_headers, food):
    account = _create(client, auth_headers)
    client.post(
        "/api/transactions",
        json={
            "amount": "20",
            "type": "EXPENSE",
            "category_id": food.id,
            "account_id": account["id"],
            "date": "2024-03-01",
        },
        headers=auth_headers,
    )
    response = client.delete(f"/api/accounts/{account['id']}", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Cannot delete account with existing transactions")


def test_delete_account(client, auth_headers):
    account = _create(client, auth_headers)
    response = client.delete(f"/api/accounts/{account['id']}", headers=auth_headers)
    assert response.json() == {"success": True, "message": "Account deleted successfully"}
    assert client.get(f"/api/accounts/{account['id']}", headers=auth_headers).status_code == 404
