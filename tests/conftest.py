from __future__ import annotations

from typing import Callable, Generator

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.database import Database

import settings
from auth import create_access_token
from database import COLL_USERS
from main import create_app


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    app = create_app(mongo_client=mongomock.MongoClient(tz_aware=True))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db(client: TestClient) -> Database:
    """The in-memory database behind ``client``."""
    return client.app.state.db


@pytest.fixture()
def auth_headers() -> Callable[[str], dict]:
    def make(email: str) -> dict:
        token = create_access_token({"email": email})
        return {"Authorization": f"Bearer {token}"}

    return make


@pytest.fixture()
def member_user(db: Database) -> dict:
    user = {"email": "member@example.com", "name": "Member", "membership": True}
    db[COLL_USERS].insert_one(user)
    return user


@pytest.fixture()
def free_user(db: Database) -> dict:
    user = {"email": "free@example.com", "name": "Free", "membership": False}
    db[COLL_USERS].insert_one(user)
    return user


@pytest.fixture()
def admin_user(db: Database) -> dict:
    user = {"email": "admin@example.com", "name": "Admin", "role": "admin"}
    db[COLL_USERS].insert_one(user)
    return user


@pytest.fixture(autouse=True)
def fixed_quota(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "FREE_POST_LIMIT", 5)
