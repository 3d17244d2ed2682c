from typing import List

from fastapi import APIRouter

from db import StoreDep
from schemas import (
    CartItemAdd,
    CartItemQuantity,
    CartItemRead,
    CartRead,
    ReturnDateUpdate,
    SubmitResult,
)
from services import carts, lifecycle
from services.concurrency import run_with_retry

from .auth import BorrowerDep

router = APIRouter(tags=["cart"])


def _draft(store: StoreDep, borrower_id: int) -> CartRead:
    return run_with_retry(lambda: carts.get_or_create_draft_cart(store, borrower_id))


@router.get("/", response_model=CartRead)
def get_draft_cart(store: StoreDep, borrower_id: BorrowerDep):
    """
    The borrower's draft cart, created on first access.
    """
    return _draft(store, borrower_id)


@router.get("/items", response_model=List[CartItemRead])
def list_cart_items(store: StoreDep, borrower_id: BorrowerDep):
    return carts.list_items(store, _draft(store, borrower_id))


@router.post("/items", response_model=List[CartItemRead])
def add_cart_item(item_in: CartItemAdd, store: StoreDep, borrower_id: BorrowerDep):
    """
    Add an item to the draft cart. Adding an item that is already in the
    cart increases its quantity.
    """
    cart = _draft(store, borrower_id)
    return run_with_retry(
        lambda: carts.add_item(
            store,
            cart,
            item_in.inventory_id,
            item_in.quantity,
            return_date=item_in.return_date,
        )
    )


@router.put("/items/{inventory_id}", response_model=List[CartItemRead])
def set_cart_item_quantity(
    inventory_id: int,
    update: CartItemQuantity,
    store: StoreDep,
    borrower_id: BorrowerDep,
):
    cart = _draft(store, borrower_id)
    return carts.set_item_quantity(store, cart, inventory_id, update.quantity)


@router.delete("/items/{inventory_id}", response_model=List[CartItemRead])
def remove_cart_item(inventory_id: int, store: StoreDep, borrower_id: BorrowerDep):
    cart = _draft(store, borrower_id)
    return carts.remove_item(store, cart, inventory_id)


@router.patch("/items/{cart_item_id}/return-date", response_model=CartItemRead)
def update_return_date(
    cart_item_id: int,
    update: ReturnDateUpdate,
    store: StoreDep,
    borrower_id: BorrowerDep,
):
    return carts.update_return_date(store, borrower_id, cart_item_id, update.return_date)


@router.post("/submit", response_model=SubmitResult)
def submit_cart(store: StoreDep, borrower_id: BorrowerDep):
    """
    Submit the draft cart for review. Shortages are reported, not enforced.
    """
    return lifecycle.submit(store, _draft(store, borrower_id))
