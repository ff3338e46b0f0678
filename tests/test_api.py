"""Tests for the Flask REST API."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from api.app import create_app
from finance_core.config import Settings


def _auth(username: str, password: str = "pw") -> dict:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


ALICE = _auth("alice")
BOB = _auth("bob")


@pytest.fixture
def client(tmp_path: Path):
    app = create_app(tmp_path, settings=Settings())
    app.config.update(TESTING=True)
    test_client = app.test_client()
    for username in ("alice", "bob"):
        response = test_client.post("/users", json={"username": username, "password": "pw"})
        assert response.status_code == 201
    return test_client


def test_register_duplicate_user(client) -> None:
    response = client.post("/users", json={"username": "alice", "password": "x"})

    assert response.status_code == 400
    assert response.get_json()["error"] == "Validation error"


def test_requests_without_credentials_are_rejected(client) -> None:
    assert client.get("/wallet").status_code == 401
    response = client.get("/wallet", headers=_auth("alice", "wrong"))
    assert response.status_code == 401
    assert "Basic" in response.headers["WWW-Authenticate"]


def test_record_and_summarise(client) -> None:
    response = client.post(
        "/wallet/incomes",
        json={"category": "Salary", "amount": "1000", "description": "May"},
        headers=ALICE,
    )
    assert response.status_code == 201
    assert response.get_json()["amount"] == "1000.00"

    response = client.post("/wallet/expenses", json={"category": "Food", "amount": 300}, headers=ALICE)
    assert response.status_code == 201
    assert response.get_json()["notification"] is None

    summary = client.get("/wallet/summary?categories=Food,Travel", headers=ALICE).get_json()
    assert summary["balance"] == "700.00"
    assert summary["expense_by_category"] == {"Food": "300.00"}
    assert summary["filtered"]["expense"] == "300.00"
    assert summary["filtered"]["unknown_categories"] == ["Travel"]

    items = client.get("/wallet/transactions?categories=Food", headers=ALICE).get_json()["items"]
    assert [item["category"] for item in items] == ["Food"]


def test_invalid_amount_and_body(client) -> None:
    response = client.post("/wallet/expenses", json={"category": "Food", "amount": "-1"}, headers=ALICE)
    assert response.status_code == 400

    response = client.post("/wallet/expenses", data="nope", headers=ALICE)
    assert response.status_code == 400


def test_budget_flow_with_notifications(client) -> None:
    client.post("/wallet/incomes", json={"category": "Salary", "amount": "1000"}, headers=ALICE)
    response = client.put("/wallet/budgets/Food", json={"limit": "100"}, headers=ALICE)
    assert response.get_json() == {"category": "Food", "limit": "100.00"}

    response = client.post("/wallet/expenses", json={"category": "Food", "amount": "85"}, headers=ALICE)
    assert response.get_json()["notification"]["kind"] == "budget_warning"

    (status,) = client.get("/wallet/budgets", headers=ALICE).get_json()["items"]
    assert status["remaining"] == "15.00"
    assert status["exceeded"] is False

    items = client.get("/wallet/notifications", headers=ALICE).get_json()["items"]
    assert [item["kind"] for item in items] == ["budget_warning"]

    assert client.delete("/wallet/budgets/Food", headers=ALICE).status_code == 204
    assert client.delete("/wallet/budgets/Food", headers=ALICE).status_code == 404


def test_transfer(client) -> None:
    client.post("/wallet/incomes", json={"category": "Salary", "amount": "100"}, headers=ALICE)

    response = client.post(
        "/wallet/transfers", json={"to": "bob", "amount": "30", "description": "gift"}, headers=ALICE
    )
    assert response.status_code == 201
    body = response.get_json()
    assert body["balance"] == "70.00"
    assert body["credit"]["description"] == "Transfer from alice: gift"

    bob = client.get("/wallet", headers=BOB).get_json()
    assert bob["balance"] == "30.00"

    assert client.post("/wallet/transfers", json={"to": "bob", "amount": "500"}, headers=ALICE).status_code == 409
    assert client.post("/wallet/transfers", json={"to": "carol", "amount": "5"}, headers=ALICE).status_code == 404
    assert client.post("/wallet/transfers", json={"amount": "5"}, headers=ALICE).status_code == 400
    assert client.post("/wallet/transfers", json={"to": "alice", "amount": "5"}, headers=ALICE).status_code == 400


def test_export(client) -> None:
    client.post("/wallet/incomes", json={"category": "Salary", "amount": "100"}, headers=ALICE)

    response = client.get("/wallet/export?format=csv", headers=ALICE)
    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert response.get_data(as_text=True).splitlines()[0] == "Type,Category,Amount,Date,Description"

    response = client.get("/wallet/export", headers=ALICE)
    assert response.get_json()["user_id"] == "alice"

    assert client.get("/wallet/export?format=xml", headers=ALICE).status_code == 400


def test_reset_and_delete_user(client) -> None:
    client.post("/wallet/incomes", json={"category": "Salary", "amount": "100"}, headers=ALICE)

    assert client.delete("/wallet", headers=ALICE).status_code == 204
    assert client.get("/wallet", headers=ALICE).get_json()["transactions"] == []

    assert client.delete("/users/me", headers=ALICE).status_code == 204
    assert client.get("/wallet", headers=ALICE).status_code == 401
