from typing import List

from fastapi import APIRouter

from db import StoreDep
from errors import NotFoundError
from schemas import CartRequestRead
from services import carts, history, lifecycle

from .auth import BorrowerDep

router = APIRouter(tags=["requests"])


@router.get("/", response_model=List[CartRequestRead])
def list_requests(store: StoreDep, borrower_id: BorrowerDep):
    """
    Submitted carts of the logged-in borrower, newest first.
    """
    return history.list_submitted(store, borrower_id)


@router.get("/{cart_id}", response_model=CartRequestRead)
def get_request(cart_id: int, store: StoreDep, borrower_id: BorrowerDep):
    cart = lifecycle.get_cart(store, borrower_id, cart_id)
    if cart.status == lifecycle.DRAFT:
        raise NotFoundError(f"Request {cart_id} not found")
    return CartRequestRead(**cart.model_dump(), items=carts.list_items(store, cart))
