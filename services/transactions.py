"""Transaction ledger, borrower side. Read only."""

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from schemas import TransactionRead, TransactionSummary
from services import inventory
from store import Row, Store

BORROWED = "borrowed"
RETURNED = "returned"
OVERDUE = "overdue"


def derive_status(row: Row, today: date) -> str:
    """A borrowed record past its due date reads as overdue until returned."""
    if row["status"] == BORROWED and row.get("due_date") is not None and row["due_date"] < today:
        return OVERDUE
    return row["status"]


def list_for_borrower(store: Store, borrower_id: int, today: Optional[date] = None) -> List[TransactionRead]:
    today = today or date.today()
    rows = store.query(
        "transactions",
        {"borrower_id": borrower_id},
        order=["-borrow_date", "-id"],
    )
    snapshots = inventory.snapshots(store, (row["inventory_id"] for row in rows))
    return [
        TransactionRead(
            **{**row, "status": derive_status(row, today)},
            inventory=snapshots.get(row["inventory_id"]),
        )
        for row in rows
    ]


def summarize(transactions: Iterable[TransactionRead]) -> TransactionSummary:
    summary = TransactionSummary()
    for transaction in transactions:
        setattr(summary, transaction.status, getattr(summary, transaction.status) + 1)
        summary.damaged_quantity += transaction.damaged_quantity or 0
        summary.total_fines += transaction.fine_amount or Decimal("0")
    summary.total_fines = summary.total_fines.quantize(Decimal("0.01"))
    return summary
