from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from expense_tracker.api import crud, database
from expense_tracker.api.server import app, create_app
from expense_tracker.config import Settings

ABSENT_ID = "0" * 32


def _create(client, **overrides):
    payload = {"title": "Lunch", "amount": 12.5, "category": "food", "notes": ""}
    payload.update(overrides)
    response = client.post("/api/expenses", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_healthcheck(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_and_retrieve_expense(client):
    created = _create(client, date="2024-03-05T00:00:00", notes="team lunch")
    assert set(created) >= {"_id", "title", "amount", "category", "date", "notes", "createdAt", "updatedAt"}
    assert created["amount"] == 12.5

    response = client.get(f"/api/expenses/{created['_id']}")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["title"] == "Lunch"
    assert body["data"]["category"] == "food"
    assert body["data"]["notes"] == "team lunch"
    assert body["data"]["date"].startswith("2024-03-05T00:00:00")


@pytest.mark.parametrize(
    "payload",
    [
        {"amount": 5, "category": "food"},
        {"title": "Snack", "category": "food"},
        {"title": "Snack", "amount": 5},
        {"title": "", "amount": 5, "category": "food"},
        {"title": "Snack", "amount": None, "category": "food"},
    ],
)
def test_create_requires_title_amount_and_category(client, payload):
    response = client.post("/api/expenses", json=payload)
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Title, amount and category are required"}


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "Snack", "amount": -2, "category": "food"},
        {"title": "Snack", "amount": 0, "category": "food"},
        {"title": "Snack", "amount": 5, "category": "groceries"},
        {"title": "x" * 101, "amount": 5, "category": "food"},
    ],
)
def test_create_rejects_invalid_values(client, payload):
    response = client.post("/api/expenses", json=payload)
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert client.get("/api/expenses").json()["count"] == 0


def test_create_keeps_amount_precision(client):
    created = _create(client, amount=0.30000000000000004)
    assert created["amount"] == 0.30000000000000004
    fetched = client.get(f"/api/expenses/{created['_id']}").json()["data"]
    assert fetched["amount"] == 0.30000000000000004


def test_create_rejects_non_object_body(client):
    response = client.post("/api/expenses", json=["Lunch", 12])
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_malformed_id_is_rejected(client):
    for method in ("get", "delete"):
        response = getattr(client, method)("/api/expenses/not-an-id")
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid expense ID"}
    response = client.put("/api/expenses/not-an-id", json={"title": "New"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid expense ID"


def test_unknown_id_returns_not_found(client):
    for method in ("get", "delete"):
        response = getattr(client, method)(f"/api/expenses/{ABSENT_ID}")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Expense not found"}
    response = client.put(f"/api/expenses/{ABSENT_ID}", json={"amount": -1})
    assert response.status_code == 404


def test_update_changes_only_supplied_fields(client):
    created = _create(client, notes="keep me")
    response = client.put(f"/api/expenses/{created['_id']}", json={"amount": 18})
    assert response.status_code == 200
    updated = response.json()["data"]

    assert updated["amount"] == 18.0
    assert updated["title"] == created["title"]
    assert updated["notes"] == "keep me"
    assert updated["createdAt"] == created["createdAt"]
    assert datetime.fromisoformat(updated["updatedAt"]) > datetime.fromisoformat(created["updatedAt"])


def test_update_rejects_invalid_values(client):
    created = _create(client)
    response = client.put(f"/api/expenses/{created['_id']}", json={"amount": 0})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_delete_expense(client):
    created = _create(client)
    response = client.delete(f"/api/expenses/{created['_id']}")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Expense deleted successfully"}
    assert client.get(f"/api/expenses/{created['_id']}").status_code == 404


def test_list_filters_and_sorts(client):
    a = _create(client, title="A", amount=10, category="food")
    b = _create(client, title="B", amount=25, category="transport")

    by_amount = client.get("/api/expenses", params={"sortBy": "amount"}).json()
    assert by_amount["success"] is True
    assert by_amount["count"] == 2
    assert [item["_id"] for item in by_amount["data"]] == [b["_id"], a["_id"]]

    ascending = client.get("/api/expenses", params={"sortBy": "amount", "order": "asc"}).json()
    assert [item["_id"] for item in ascending["data"]] == [a["_id"], b["_id"]]

    food = client.get("/api/expenses", params={"category": "food"}).json()
    assert food["count"] == 1
    assert [item["_id"] for item in food["data"]] == [a["_id"]]


def test_list_paginates(client):
    for day in range(1, 5):
        _create(client, title=f"Day {day}", date=f"2024-01-0{day}T00:00:00")
    page = client.get("/api/expenses", params={"page": 2, "limit": 3}).json()
    assert page["count"] == 1
    assert page["data"][0]["title"] == "Day 1"


def test_list_page_far_past_the_end_is_empty(client):
    _create(client)
    response = client.get("/api/expenses", params={"page": 10**19})
    assert response.status_code == 200
    assert response.json()["count"] == 0


@pytest.mark.parametrize(
    "params",
    [{"limit": 0}, {"limit": 101}, {"page": 0}, {"sortBy": "title"}, {"category": "groceries"}, {"order": "up"}],
)
def test_list_rejects_bad_query(client, params):
    response = client.get("/api/expenses", params=params)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_summary_endpoint(client):
    _create(client, title="A", amount=10, category="food")
    _create(client, title="B", amount=25, category="transport")
    response = client.get("/api/expenses/summary")
    assert response.status_code == 200
    summary = response.json()["data"]
    assert summary["total"] == 35.0
    totals = {item["category"]: item["total"] for item in summary["byCategory"]}
    assert totals == {"food": 10.0, "transport": 25.0}


def test_unmatched_routes_return_route_not_found(client):
    for response in (client.get("/api/unknown"), client.patch("/api/expenses")):
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Route not found"}


def test_uncaught_errors_return_server_error(db_session, monkeypatch):
    def override_get_db():
        yield db_session

    def explode(*_args, **_kwargs):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(crud, "get_expense", explode)
    app.dependency_overrides[database.get_db] = override_get_db
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.get(f"/api/expenses/{ABSENT_ID}")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "database on fire"}


def test_cors_preflight_allows_configured_origin():
    custom = create_app(Settings(cors_origins=("http://localhost:3000",)))
    with TestClient(custom) as test_client:
        response = test_client.options(
            "/health",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
        )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
