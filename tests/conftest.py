"""
Pytest fixtures for BorrowDesk tests.

Provides an ephemeral in-memory SQLite store per test, seeded inventory and
borrowers, and a FastAPI test client wired to that store.
"""

import os

# Must be set before db.py builds its module-level engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from store import SQLStore


class RacingStore(SQLStore):
    """
    Store that lets a competing writer insert into `table` immediately
    before our own insert, exactly once. Used to replay lost races.
    """

    def __init__(self, engine, table, competitor):
        super().__init__(engine)
        self.race_table = table
        self.competitor = competitor

    def insert(self, table, record):
        if table == self.race_table and self.competitor is not None:
            competing, self.competitor = self.competitor, None
            super().insert(table, competing)
        return super().insert(table, record)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def store(engine):
    return SQLStore(engine)


def _make_borrower(store, email, name):
    user = store.insert("users", {"email": email, "name": name, "password_hash": "not-a-hash"})
    borrower = store.insert("borrowers", {"auth_id": user["id"], "name": name, "email": email})
    return borrower["id"]


@pytest.fixture()
def borrower_id(store):
    return _make_borrower(store, "ana@borrowdesk.io", "Ana")


@pytest.fixture()
def other_borrower_id(store):
    return _make_borrower(store, "bo@borrowdesk.io", "Bo")


@pytest.fixture()
def items(store):
    """Three inventory rows: plenty, plenty, none left."""
    rows = [
        {
            "name": "Oscilloscope",
            "description": "100 MHz, 2 channel",
            "total_quantity": 4,
            "remaining_quantity": 3,
            "location": "Lab A",
        },
        {
            "name": "Soldering station",
            "description": "Temperature controlled",
            "total_quantity": 10,
            "remaining_quantity": 10,
            "location": "Lab B",
        },
        {
            "name": "Logic analyzer",
            "description": "16 channel",
            "total_quantity": 2,
            "remaining_quantity": 0,
            "location": "Lab A",
        },
    ]
    return [store.insert("inventory", row) for row in rows]


@pytest.fixture()
def client(store):
    from db import get_store
    from main import app

    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_client(client):
    """Client holding the session cookie of a freshly registered borrower."""
    response = client.post(
        "/register",
        json={"email": "cy@borrowdesk.io", "name": "Cy", "password": "s3cret-pass"},
    )
    assert response.status_code == 201
    return client
