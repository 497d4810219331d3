from __future__ import annotations

from finfusion.api import crud, schemas


def test_reads_are_public(client):
    listing = client.get("/api/payment-methods")
    assert listing.status_code == 200
    codes = {method["code"] for method in listing.json()["data"]}
    assert {"CASH", "CARD", "UPI"} <= codes

    by_code = client.get("/api/payment-methods/code/upi")
    assert by_code.status_code == 200
    assert by_code.json()["data"]["name"] == "UPI"


def test_missing_payment_method(client):
    response = client.get("/api/payment-methods/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Payment method not found"}


def test_regular_users_cannot_create(client, auth_headers):
    response = client.post("/api/payment-methods", json={"code": "CHEQUE", "name": "Cheque"}, headers=auth_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Manager or admin access required"


def test_manager_creates_and_duplicate_code_conflicts(client, make_user, headers_for):
    headers = headers_for(make_user("manny", role="MANAGER"))
    created = client.post("/api/payment-methods", json={"code": "cheque", "name": "Cheque"}, headers=headers)
    assert created.status_code == 201
    assert created.json()["data"]["code"] == "CHEQUE"

    duplicate = client.post("/api/payment-methods", json={"code": "Cheque", "name": "Paper"}, headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "Payment method with this code already exists"


def test_deactivate_hides_from_active_listing(client, admin_headers):
    method = client.get("/api/payment-methods/code/OTHER").json()["data"]
    response = client.post(f"/api/payment-methods/{method['id']}/deactivate", headers=admin_headers)
    assert response.json()["data"]["is_active"] is False
    active = client.get("/api/payment-methods", params={"is_active": True}).json()["data"]
    assert method["id"] not in {item["id"] for item in active}


def test_seed_is_idempotent(db_session):
    assert crud.seed.seed_all(db_session) == {"categories": 0, "payment_methods": 0}


def test_delete_detaches_transactions(db_session, user, food, cash_account):
    method = crud.payment_methods.create_payment_method(
        db_session, schemas.PaymentMethodCreate(code="voucher", name="Voucher")
    )
    txn = crud.transactions.create_transaction(
        db_session,
        user.id,
        schemas.TransactionCreate(
            amount="12.50",
            type="EXPENSE",
            category_id=food.id,
            account_id=cash_account.id,
            payment_method_id=method.id,
            date="2024-05-02",
        ),
    )
    crud.payment_methods.delete_payment_method(db_session, method.id)
    db_session.refresh(txn)
    assert txn.payment_method_id is None
