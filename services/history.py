"""Request history: the borrower's submitted carts with their lines."""

from typing import Dict, List

from schemas import CartItemRead, CartRequestRead
from services import inventory
from store import Store


def list_submitted(store: Store, borrower_id: int) -> List[CartRequestRead]:
    """
    Every non-draft cart of the borrower, newest first, each with its items
    and an inventory snapshot per item. Review outcomes (status, reviewed_at)
    show up as soon as the reviewer writes them.
    """
    carts = store.query(
        "cart",
        {"borrower_id": borrower_id, "status__ne": "draft"},
        order=["-created_at", "-id"],
    )
    if not carts:
        return []

    lines = store.query("cart_items", {"cart_id__in": [cart["id"] for cart in carts]}, order=["id"])
    snapshots = inventory.snapshots(store, (line["inventory_id"] for line in lines))

    items_by_cart: Dict[int, List[CartItemRead]] = {}
    for line in lines:
        items_by_cart.setdefault(line["cart_id"], []).append(
            CartItemRead(**line, inventory=snapshots.get(line["inventory_id"]))
        )

    return [CartRequestRead(**cart, items=items_by_cart.get(cart["id"], [])) for cart in carts]
