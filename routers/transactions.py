from typing import List

from fastapi import APIRouter

from db import StoreDep
from schemas import TransactionRead, TransactionSummary
from services import transactions

from .auth import BorrowerDep

router = APIRouter(tags=["transactions"])


@router.get("/", response_model=List[TransactionRead])
def list_transactions(store: StoreDep, borrower_id: BorrowerDep):
    """
    Borrow/return history of the logged-in borrower, latest borrow first.
    """
    return transactions.list_for_borrower(store, borrower_id)


@router.get("/summary", response_model=TransactionSummary)
def transaction_summary(store: StoreDep, borrower_id: BorrowerDep):
    return transactions.summarize(transactions.list_for_borrower(store, borrower_id))
