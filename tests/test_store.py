"""Tests for the SQL-backed store adapter."""

from datetime import date

import pytest
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from store import SQLStore


@pytest.fixture()
def strict_store():
    """Store over a SQLite engine that enforces foreign keys."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    SQLModel.metadata.create_all(engine)
    yield SQLStore(engine)
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


class TestQuery:
    def test_filter_and_order(self, store, items):
        rows = store.query("inventory", {"location": "Lab A"}, order=["-id"])
        assert [row["name"] for row in rows] == ["Logic analyzer", "Oscilloscope"]

    def test_rows_are_plain_dicts(self, store, items):
        row = store.query("inventory", {"id": items[0]["id"]})[0]
        assert isinstance(row, dict)
        assert row["remaining_quantity"] == 3

    def test_ne_and_in_operators(self, store, items):
        ids = [items[0]["id"], items[2]["id"]]
        rows = store.query("inventory", {"id__in": ids, "remaining_quantity__ne": 0})
        assert [row["id"] for row in rows] == [items[0]["id"]]

    def test_comparison_operators(self, store, items):
        rows = store.query("inventory", {"total_quantity__gte": 4}, order=["total_quantity"])
        assert [row["total_quantity"] for row in rows] == [4, 10]

    def test_unknown_table(self, store):
        with pytest.raises(ValueError):
            store.query("widgets")

    def test_unknown_column(self, store):
        with pytest.raises(ValueError):
            store.query("inventory", {"colour": "red"})


class TestWrites:
    def test_update_returns_affected_rows(self, store, items):
        affected = store.update("inventory", {"location": "Lab A"}, {"location": "Lab C"})
        assert affected == 2
        assert len(store.query("inventory", {"location": "Lab C"})) == 2

    def test_conditional_update_matches_nothing(self, store, items):
        affected = store.update(
            "inventory",
            {"id": items[0]["id"], "remaining_quantity": 99},
            {"remaining_quantity": 0},
        )
        assert affected == 0
        assert store.query("inventory", {"id": items[0]["id"]})[0]["remaining_quantity"] == 3

    def test_delete_returns_affected_rows(self, store, items):
        assert store.delete("inventory", {"id": items[1]["id"]}) == 1
        assert store.delete("inventory", {"id": items[1]["id"]}) == 0


class TestConstraints:
    def test_duplicate_cart_line_is_conflict(self, store, borrower_id, items):
        cart = store.insert("cart", {"borrower_id": borrower_id})
        line = {
            "cart_id": cart["id"],
            "inventory_id": items[0]["id"],
            "quantity": 1,
            "return_date": date(2030, 1, 1),
        }
        store.insert("cart_items", line)
        with pytest.raises(ConflictError):
            store.insert("cart_items", line)

    def test_second_draft_for_borrower_is_conflict(self, store, borrower_id):
        store.insert("cart", {"borrower_id": borrower_id, "status": "draft"})
        with pytest.raises(ConflictError):
            store.insert("cart", {"borrower_id": borrower_id, "status": "draft"})

    def test_draft_alongside_submitted_carts_is_allowed(self, store, borrower_id):
        store.insert("cart", {"borrower_id": borrower_id, "status": "requested"})
        store.insert("cart", {"borrower_id": borrower_id, "status": "accepted"})
        store.insert("cart", {"borrower_id": borrower_id, "status": "draft"})
        assert len(store.query("cart", {"borrower_id": borrower_id})) == 3

    def test_store_failure_is_upstream_error(self, store, engine):
        SQLModel.metadata.drop_all(engine)
        with pytest.raises(UpstreamError):
            store.query("inventory")
        SQLModel.metadata.create_all(engine)


class TestIntegrityFailures:
    def test_missing_parent_is_not_found(self, strict_store):
        line = {"cart_id": 999, "inventory_id": 999, "quantity": 1, "return_date": date(2030, 1, 1)}
        with pytest.raises(NotFoundError):
            strict_store.insert("cart_items", line)
        assert strict_store.query("cart_items") == []

    def test_missing_required_column_is_validation_error(self, strict_store):
        with pytest.raises(ValidationError):
            strict_store.insert("inventory", {"name": None, "total_quantity": 1, "remaining_quantity": 1})

    def test_unique_violation_is_still_conflict(self, strict_store):
        user = strict_store.insert("users", {"email": "eve@borrowdesk.io", "name": "Eve", "password_hash": "x"})
        with pytest.raises(ConflictError):
            strict_store.insert("users", {"email": user["email"], "name": "Eve 2", "password_hash": "y"})
