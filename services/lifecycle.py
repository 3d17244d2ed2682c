"""Cart lifecycle controller.

    draft --submit--> requested --approve--> accepted
                               \\--reject--> rejected

Only submission happens here. Approval and rejection are made by reviewers
elsewhere; this side observes the resulting status on the next read.
"""

from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional

import structlog

from errors import InvalidStateError, NotFoundError, ValidationError
from schemas import CartRead, SubmitResult
from services import carts, inventory
from store import Store

logger = structlog.get_logger(__name__)

DRAFT = "draft"
REQUESTED = "requested"
ACCEPTED = "accepted"
REJECTED = "rejected"

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    DRAFT: frozenset({REQUESTED}),
    REQUESTED: frozenset({ACCEPTED, REJECTED}),
    ACCEPTED: frozenset(),
    REJECTED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def get_cart(store: Store, borrower_id: int, cart_id: int) -> CartRead:
    """Fetch the current state of one of the borrower's carts."""
    rows = store.query("cart", {"id": cart_id, "borrower_id": borrower_id})
    if not rows:
        raise NotFoundError(f"Cart {cart_id} not found")
    return CartRead.model_validate(rows[0])


def submit(store: Store, cart: CartRead, now: Optional[datetime] = None) -> SubmitResult:
    """
    Move a draft cart to requested.

    The status flip is a single conditional update, so a second submit (or
    a racing one) matches no rows and fails instead of submitting twice.
    The borrower's next draft is created lazily by get_or_create_draft_cart.
    """
    if not can_transition(cart.status, REQUESTED):
        raise InvalidStateError(f"Cart {cart.id} is {cart.status}; only draft carts can be submitted")

    items = carts.list_items(store, cart)
    if not items:
        raise ValidationError("Cannot submit an empty cart")

    now = now or datetime.now(timezone.utc)
    affected = store.update(
        "cart",
        {"id": cart.id, "status": DRAFT},
        {"status": REQUESTED, "submitted_at": now},
    )
    if affected == 0:
        current = store.query("cart", {"id": cart.id})
        if not current:
            raise NotFoundError(f"Cart {cart.id} not found")
        raise InvalidStateError(
            f"Cart {cart.id} is {current[0]['status']}; only draft carts can be submitted"
        )

    shortages = inventory.find_shortages(store, ((item.inventory_id, item.quantity) for item in items))
    if shortages:
        logger.info(
            "cart.submitted_with_shortages",
            cart_id=cart.id,
            inventory_ids=[shortage.inventory_id for shortage in shortages],
        )
    logger.info("cart.submitted", cart_id=cart.id, borrower_id=cart.borrower_id, lines=len(items))

    submitted = get_cart(store, cart.borrower_id, cart.id)
    return SubmitResult(cart=submitted, items=items, shortages=shortages)
