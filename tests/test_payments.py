"""Test payment intents and the membership upgrade flow."""

import inspect

import pytest
import requests

import main
import payments
import settings
from database import COLL_PAYMENTS, COLL_USERS


class FakeResponse:
    def __init__(self, status_code: int, payload: dict):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self):
        return self._payload


@pytest.fixture
def stripe_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")


def test_payment_intent(client, stripe_key, monkeypatch: pytest.MonkeyPatch):
    calls = []

    def fake_post(url, **kwargs):
        calls.append((url, kwargs))
        return FakeResponse(200, {"id": "pi_1", "client_secret": "pi_1_secret"})

    monkeypatch.setattr(payments.requests, "post", fake_post)

    response = client.post("/create-payment-intent")
    assert response.status_code == 200
    assert response.json() == {"clientSecret": "pi_1_secret"}

    url, kwargs = calls[0]
    assert url.endswith("/payment_intents")
    assert kwargs["auth"] == ("sk_test_123", "")
    assert kwargs["data"]["amount"] == 20000
    assert kwargs["data"]["currency"] == "usd"


def test_payment_intent_without_key(client, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)
    assert client.post("/create-payment-intent").status_code == 500


def test_payment_intent_provider_rejects(client, stripe_key, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(payments.requests, "post", lambda url, **kw: FakeResponse(402, {"error": {}}))
    assert client.post("/create-payment-intent").status_code == 502


def test_payment_intent_provider_unreachable(client, stripe_key, monkeypatch: pytest.MonkeyPatch):
    def fail(url, **kwargs):
        raise requests.ConnectionError("no route")

    monkeypatch.setattr(payments.requests, "post", fail)
    assert client.post("/create-payment-intent").status_code == 502


def test_record_payment(client, db):
    response = client.post("/successedPayment", json={"email": "a@example.com", "transactionId": "pi_1", "price": 200})
    assert response.status_code == 200
    assert response.json()["insertedId"]
    assert db[COLL_PAYMENTS].find_one({"transactionId": "pi_1"})["email"] == "a@example.com"


def test_grant_membership_unknown_user(client):
    response = client.patch("/successedPayment/ghost@example.com")
    assert response.json()["matchedCount"] == 0


def test_membership_upgrade_lifts_quota(client, db, auth_headers):
    """Register, hit the quota, pay, and post again."""
    assert client.post("/users", json={"email": "a@x.com", "name": "A"}).json()["insertedId"]
    headers = auth_headers("a@x.com")

    for i in range(5):
        assert client.post("/posts", json={"title": f"Post {i}"}, headers=headers).status_code == 201
    response = client.post("/posts", json={"title": "Post 5"}, headers=headers)
    assert response.status_code == 400
    assert "Become a member" in response.json()["detail"]

    client.post("/successedPayment", json={"email": "a@x.com", "transactionId": "pi_2"})
    response = client.patch("/successedPayment/a@x.com")
    assert response.json()["modifiedCount"] == 1

    user = client.get("/users/a@x.com", headers=headers).json()
    assert user["membership"] is True
    assert user["status"] == "Active"
    assert user["badge"]

    assert client.post("/posts", json={"title": "Post 5"}, headers=headers).status_code == 201
    assert db[COLL_USERS].count_documents({"email": "a@x.com"}) == 1


def test_payment_intent_runs_in_threadpool():
    assert not inspect.iscoroutinefunction(main.payment_intent)
