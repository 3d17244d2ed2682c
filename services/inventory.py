"""Inventory ledger: read-only view of item records and remaining stock.

Quantities change only when transactions are processed outside this service;
callers observe those changes by listing again.
"""

from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from errors import NotFoundError
from schemas import InventoryItemRead, InventorySnapshot, Shortage
from store import Row, Store

logger = structlog.get_logger(__name__)

AVAILABLE = "available"
BORROWED = "borrowed"
UNAVAILABLE = "unavailable"
STATUSES = (AVAILABLE, BORROWED, UNAVAILABLE)


def derive_status(total: int, remaining: int, override: Optional[str] = None) -> str:
    """Status is a cached view of quantity; only an explicit override may disagree."""
    if override in STATUSES:
        return override
    if remaining > 0:
        return AVAILABLE
    if total > 0:
        return BORROWED
    return UNAVAILABLE


def _to_read(row: Row) -> InventoryItemRead:
    total = max(row["total_quantity"], 0)
    remaining = min(max(row["remaining_quantity"], 0), total)
    if (total, remaining) != (row["total_quantity"], row["remaining_quantity"]):
        logger.warning(
            "inventory.quantity_out_of_range",
            inventory_id=row["id"],
            total_quantity=row["total_quantity"],
            remaining_quantity=row["remaining_quantity"],
        )
    return InventoryItemRead(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        total_quantity=total,
        remaining_quantity=remaining,
        location=row["location"],
        status=derive_status(total, remaining, row.get("status_override")),
    )


def list_inventory(store: Store) -> List[InventoryItemRead]:
    return [_to_read(row) for row in store.query("inventory", order=["id"])]


def get_inventory_item(store: Store, inventory_id: int) -> InventoryItemRead:
    rows = store.query("inventory", {"id": inventory_id})
    if not rows:
        raise NotFoundError(f"Inventory item {inventory_id} not found")
    return _to_read(rows[0])


def snapshots(store: Store, inventory_ids: Iterable[int]) -> Dict[int, InventorySnapshot]:
    """Fetch the embeddable slice of each inventory row, keyed by id."""
    ids = sorted(set(inventory_ids))
    if not ids:
        return {}
    rows = store.query("inventory", {"id__in": ids})
    return {
        row["id"]: InventorySnapshot(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            location=row["location"],
        )
        for row in rows
    }


def find_shortages(store: Store, lines: Iterable[Tuple[int, int]]) -> List[Shortage]:
    """
    Compare (inventory_id, requested quantity) pairs with remaining stock.
    Advisory only: nothing here blocks a request.
    """
    requested: Dict[int, int] = {}
    for inventory_id, quantity in lines:
        requested[inventory_id] = requested.get(inventory_id, 0) + quantity
    if not requested:
        return []

    rows = store.query("inventory", {"id__in": sorted(requested)})
    remaining = {row["id"]: _to_read(row).remaining_quantity for row in rows}

    # Items that vanished from the ledger count as having nothing left
    return [
        Shortage(inventory_id=inventory_id, requested=quantity, remaining=remaining.get(inventory_id, 0))
        for inventory_id, quantity in sorted(requested.items())
        if quantity > remaining.get(inventory_id, 0)
    ]
