"""Tests for cart submission and the draft -> requested -> reviewed lifecycle."""

from datetime import datetime

import pytest

from errors import InvalidStateError, NotFoundError, ValidationError
from services import carts, lifecycle


@pytest.fixture()
def cart(store, borrower_id):
    return carts.get_or_create_draft_cart(store, borrower_id)


class TestTransitions:
    @pytest.mark.parametrize(
        "current, target, allowed",
        [
            ("draft", "requested", True),
            ("requested", "accepted", True),
            ("requested", "rejected", True),
            ("draft", "accepted", False),
            ("requested", "requested", False),
            ("accepted", "requested", False),
            ("rejected", "requested", False),
            ("unknown", "requested", False),
        ],
    )
    def test_can_transition(self, current, target, allowed):
        assert lifecycle.can_transition(current, target) is allowed


class TestSubmit:
    def test_full_borrower_flow(self, store, borrower_id, items):
        cart = carts.get_or_create_draft_cart(store, borrower_id)
        assert cart.status == "draft"
        assert carts.list_items(store, cart) == []

        carts.add_item(store, cart, items[0]["id"], 3)
        assert [(i.inventory_id, i.quantity) for i in carts.list_items(store, cart)] == [(items[0]["id"], 3)]

        result = lifecycle.submit(store, cart)
        assert result.cart.status == "requested"
        assert result.cart.submitted_at is not None
        assert lifecycle.get_cart(store, borrower_id, cart.id).status == "requested"

        fresh = carts.get_or_create_draft_cart(store, borrower_id)
        assert fresh.id != cart.id
        assert fresh.status == "draft"
        assert carts.list_items(store, fresh) == []

    def test_next_draft_is_not_created_eagerly(self, store, borrower_id, cart, items):
        carts.add_item(store, cart, items[0]["id"], 1)
        lifecycle.submit(store, cart)
        assert store.query("cart", {"borrower_id": borrower_id, "status": "draft"}) == []

    def test_submit_twice_fails(self, store, cart, items):
        carts.add_item(store, cart, items[0]["id"], 1)
        lifecycle.submit(store, cart)

        # The stale draft object still says "draft"; the store knows better
        with pytest.raises(InvalidStateError):
            lifecycle.submit(store, cart)
        assert len(store.query("cart", {"id": cart.id, "status": "requested"})) == 1

    def test_submit_requested_cart_fails(self, store, cart, items):
        carts.add_item(store, cart, items[0]["id"], 1)
        submitted = lifecycle.submit(store, cart).cart
        with pytest.raises(InvalidStateError):
            lifecycle.submit(store, submitted)

    def test_submit_accepted_cart_fails(self, store, borrower_id, cart, items):
        carts.add_item(store, cart, items[0]["id"], 1)
        lifecycle.submit(store, cart)
        store.update("cart", {"id": cart.id}, {"status": "accepted"})

        accepted = lifecycle.get_cart(store, borrower_id, cart.id)
        with pytest.raises(InvalidStateError):
            lifecycle.submit(store, accepted)

    def test_empty_cart_cannot_be_submitted(self, store, cart):
        with pytest.raises(ValidationError):
            lifecycle.submit(store, cart)
        assert store.query("cart", {"id": cart.id})[0]["status"] == "draft"

    def test_shortages_are_reported_not_enforced(self, store, cart, items):
        carts.add_item(store, cart, items[0]["id"], 5)
        carts.add_item(store, cart, items[1]["id"], 1)

        result = lifecycle.submit(store, cart)

        assert result.cart.status == "requested"
        assert [(s.inventory_id, s.requested, s.remaining) for s in result.shortages] == [
            (items[0]["id"], 5, 3)
        ]
        assert {i.inventory_id for i in result.items} == {items[0]["id"], items[1]["id"]}

    def test_vanished_cart(self, store, cart, items):
        carts.add_item(store, cart, items[0]["id"], 1)
        store.delete("cart", {"id": cart.id})

        with pytest.raises(NotFoundError):
            lifecycle.submit(store, cart)


class TestObserveReview:
    def test_reviewer_decision_is_visible(self, store, borrower_id, cart, items):
        carts.add_item(store, cart, items[0]["id"], 1)
        lifecycle.submit(store, cart)

        store.update("cart", {"id": cart.id}, {"status": "rejected", "reviewed_at": datetime(2026, 3, 12, 9, 30)})

        observed = lifecycle.get_cart(store, borrower_id, cart.id)
        assert observed.status == "rejected"
        assert observed.reviewed_at is not None

    def test_other_borrowers_cart_not_found(self, store, other_borrower_id, cart):
        with pytest.raises(NotFoundError):
            lifecycle.get_cart(store, other_borrower_id, cart.id)
