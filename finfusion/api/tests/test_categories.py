from __future__ import annotations

from finfusion.api import crud, schemas


def test_system_categories_are_visible(client, auth_headers):
    response = client.get("/api/categories", params={"type": "INCOME"}, headers=auth_headers)
    names = {category["name"] for category in response.json()["data"]}
    assert {"Salary", "Freelance", "Other Income"} <= names


def test_create_custom_category_and_reject_duplicates(client, auth_headers):
    payload = {"name": "Pets", "type": "EXPENSE", "icon": "🐶", "color": "#aa00cc"}
    created = client.post("/api/categories", json=payload, headers=auth_headers)
    assert created.status_code == 201
    assert created.json()["data"]["color"] == "#AA00CC"
    assert created.json()["data"]["is_system"] is False

    duplicate = client.post("/api/categories", json=dict(payload, name=" pets "), headers=auth_headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "Category with this name already exists"


def test_name_of_a_system_category_is_taken(client, auth_headers):
    response = client.post("/api/categories", json={"name": "Salary", "type": "INCOME"}, headers=auth_headers)
    assert response.status_code == 409


def test_system_categories_are_read_only(client, auth_headers, food):
    update = client.put(f"/api/categories/{food.id}", json={"name": "Groceries"}, headers=auth_headers)
    assert update.status_code == 400
    assert update.json()["error"] == "Cannot modify system category"
    delete = client.delete(f"/api/categories/{food.id}", headers=auth_headers)
    assert delete.status_code == 400
    assert delete.json()["error"] == "Cannot delete system category"


def test_hierarchy_nests_sub_categories(client, auth_headers, food):
    parent = client.post("/api/categories", json={"name": "Home", "type": "EXPENSE"}, headers=auth_headers)
    parent_id = parent.json()["data"]["id"]
    child = client.post(
        "/api/categories",
        json={"name": "Rent", "type": "EXPENSE", "parent_category_id": parent_id},
        headers=auth_headers,
    )
    assert child.status_code == 201

    tree = client.get("/api/categories/hierarchy", headers=auth_headers).json()["data"]
    home = next(node for node in tree if node["id"] == parent_id)
    assert [sub["name"] for sub in home["sub_categories"]] == ["Rent"]
    assert all(node["name"] != "Rent" for node in tree)

    blocked = client.delete(f"/api/categories/{parent_id}", headers=auth_headers)
    assert blocked.status_code == 400
    assert blocked.json()["error"] == "Cannot delete category with existing subcategories"


def test_parent_must_share_type(client, auth_headers, salary):
    response = client.post(
        "/api/categories",
        json={"name": "Snacks", "type": "EXPENSE", "parent_category_id": salary.id},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Parent and child categories must have the same type"


def test_category_stats_counts_custom_and_system(client, auth_headers):
    client.post("/api/categories", json={"name": "Pets", "type": "EXPENSE"}, headers=auth_headers)
    stats = client.get("/api/categories/stats", headers=auth_headers).json()["data"]
    assert stats["custom"] == 1
    assert stats["system"] == 21
    assert stats["total"] == stats["income"] + stats["expense"] == 22


def test_other_users_categories_are_hidden(client, auth_headers, make_user, headers_for):
    created = client.post("/api/categories", json={"name": "Pets", "type": "EXPENSE"}, headers=auth_headers)
    category_id = created.json()["data"]["id"]
    response = client.get(f"/api/categories/{category_id}", headers=headers_for(make_user("bob")))
    assert response.status_code == 404
    assert response.json()["error"] == "Category not found"


def test_deep_nesting_cycle_is_rejected(client, auth_headers):
    def create(name, parent_id=None):
        payload = {"name": name, "type": "EXPENSE", "parent_category_id": parent_id}
        return client.post("/api/categories", json=payload, headers=auth_headers).json()["data"]["id"]

    top = create("Household")
    middle = create("Kitchen", top)
    leaf = create("Utensils", middle)

    response = client.put(f"/api/categories/{top}", json={"parent_category_id": leaf}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "A category cannot be nested under its own sub-category"

    tree = client.get("/api/categories/hierarchy", headers=auth_headers).json()["data"]
    assert top in {node["id"] for node in tree}


def test_ensure_category_matches_names_case_insensitively(db_session, user):
    own = crud.categories.create_category(
        db_session, user.id, schemas.CategoryCreate(name="loan payment", type="EXPENSE")
    )
    found = crud.categories.ensure_category(db_session, user.id, "Loan Payment", "EXPENSE")
    assert found.id == own.id
