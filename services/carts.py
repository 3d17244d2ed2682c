"""Cart aggregate: a borrower's single draft basket and its line items.

Uniqueness is the store's job. The draft-per-borrower and one-line-per-item
rules are constraints on the tables; this module reacts to a rejected write
by re-reading (drafts) or by surfacing ``ConflictError`` so the caller can
retry (lines).
"""

from datetime import date, timedelta
from typing import List, Optional

import structlog

import config
from errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from schemas import CartItemRead, CartRead
from services import inventory
from store import Row, Store

logger = structlog.get_logger(__name__)

DRAFT = "draft"


def _draft_rows(store: Store, borrower_id: int) -> List[Row]:
    return store.query(
        "cart",
        {"borrower_id": borrower_id, "status": DRAFT},
        order=["created_at", "id"],
    )


def _require_draft(store: Store, cart_id: int) -> Row:
    rows = store.query("cart", {"id": cart_id})
    if not rows:
        raise NotFoundError(f"Cart {cart_id} not found")
    cart = rows[0]
    if cart["status"] != DRAFT:
        raise InvalidStateError(f"Cart {cart_id} is {cart['status']}; only draft carts can be changed")
    return cart


def _line(store: Store, cart_id: int, inventory_id: int) -> Optional[Row]:
    rows = store.query("cart_items", {"cart_id": cart_id, "inventory_id": inventory_id})
    return rows[0] if rows else None


def _check_return_date(return_date: date, today: date) -> None:
    if return_date < today:
        raise ValidationError("Return date cannot be in the past")


def get_or_create_draft_cart(store: Store, borrower_id: int) -> CartRead:
    """
    Return the borrower's draft cart, creating it on first access.
    When two callers race to create it, the first write wins and the
    loser gets the winner's cart back.
    """
    drafts = _draft_rows(store, borrower_id)
    if not drafts:
        try:
            created = store.insert("cart", {"borrower_id": borrower_id, "status": DRAFT})
        except ConflictError:
            drafts = _draft_rows(store, borrower_id)
            if not drafts:
                raise
            logger.info("cart.draft_race_lost", borrower_id=borrower_id, cart_id=drafts[0]["id"])
        else:
            logger.info("cart.draft_created", borrower_id=borrower_id, cart_id=created["id"])
            return CartRead.model_validate(created)

    if len(drafts) > 1:
        logger.warning(
            "cart.duplicate_drafts",
            borrower_id=borrower_id,
            cart_ids=[row["id"] for row in drafts],
        )
    return CartRead.model_validate(drafts[0])


def list_items(store: Store, cart: CartRead) -> List[CartItemRead]:
    rows = store.query("cart_items", {"cart_id": cart.id}, order=["id"])
    snapshots = inventory.snapshots(store, (row["inventory_id"] for row in rows))
    return [CartItemRead(**row, inventory=snapshots.get(row["inventory_id"])) for row in rows]


def add_item(
    store: Store,
    cart: CartRead,
    inventory_id: int,
    quantity: int,
    return_date: Optional[date] = None,
    today: Optional[date] = None,
) -> List[CartItemRead]:
    """
    Add quantity of an inventory item to a draft cart, merging into the
    existing line if there is one.

    Raises ConflictError when another writer touched the same line between
    our read and our write; re-issuing the call merges on top of theirs.
    """
    today = today or date.today()
    if quantity <= 0:
        raise ValidationError("Quantity must be at least 1")
    if return_date is not None:
        _check_return_date(return_date, today)

    _require_draft(store, cart.id)
    item = inventory.get_inventory_item(store, inventory_id)

    existing = _line(store, cart.id, inventory_id)
    if existing is None:
        merged = quantity
        store.insert(
            "cart_items",
            {
                "cart_id": cart.id,
                "inventory_id": inventory_id,
                "quantity": quantity,
                "return_date": return_date or today + timedelta(days=config.DEFAULT_RETURN_DAYS),
            },
        )
    else:
        merged = existing["quantity"] + quantity
        if merged <= 0:
            raise ValidationError("Quantity must be at least 1")
        patch = {"quantity": merged}
        if return_date is not None:
            patch["return_date"] = return_date
        affected = store.update(
            "cart_items",
            {"id": existing["id"], "quantity": existing["quantity"]},
            patch,
        )
        if affected == 0:
            raise ConflictError(f"Cart line for item {inventory_id} changed concurrently")

    if merged > item.remaining_quantity:
        # Not blocked here; submission reports it as a shortage
        logger.info(
            "cart.over_request",
            cart_id=cart.id,
            inventory_id=inventory_id,
            requested=merged,
            remaining=item.remaining_quantity,
        )
    logger.info("cart.item_added", cart_id=cart.id, inventory_id=inventory_id, quantity=quantity)
    return list_items(store, cart)


def set_item_quantity(store: Store, cart: CartRead, inventory_id: int, quantity: int) -> List[CartItemRead]:
    """Overwrite the quantity of an existing line."""
    if quantity <= 0:
        raise ValidationError("Quantity must be at least 1")

    _require_draft(store, cart.id)
    affected = store.update(
        "cart_items",
        {"cart_id": cart.id, "inventory_id": inventory_id},
        {"quantity": quantity},
    )
    if affected == 0:
        raise NotFoundError(f"Item {inventory_id} is not in cart {cart.id}")
    return list_items(store, cart)


def remove_item(store: Store, cart: CartRead, inventory_id: int) -> List[CartItemRead]:
    """Remove a line from a draft cart. Removing an absent line is a no-op."""
    _require_draft(store, cart.id)
    removed = store.delete("cart_items", {"cart_id": cart.id, "inventory_id": inventory_id})
    if removed:
        logger.info("cart.item_removed", cart_id=cart.id, inventory_id=inventory_id)
    return list_items(store, cart)


def update_return_date(
    store: Store,
    borrower_id: int,
    cart_item_id: int,
    return_date: date,
    today: Optional[date] = None,
) -> CartItemRead:
    _check_return_date(return_date, today or date.today())

    rows = store.query("cart_items", {"id": cart_item_id})
    if not rows:
        raise NotFoundError(f"Cart item {cart_item_id} not found")
    line = rows[0]

    # Another borrower's line is reported as missing
    if not store.query("cart", {"id": line["cart_id"], "borrower_id": borrower_id}):
        raise NotFoundError(f"Cart item {cart_item_id} not found")
    _require_draft(store, line["cart_id"])

    store.update("cart_items", {"id": cart_item_id}, {"return_date": return_date})
    snapshot = inventory.snapshots(store, [line["inventory_id"]]).get(line["inventory_id"])
    return CartItemRead(**{**line, "return_date": return_date}, inventory=snapshot)
