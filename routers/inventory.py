from typing import List

from fastapi import APIRouter

from db import StoreDep
from schemas import InventoryItemRead
from services import inventory

router = APIRouter(tags=["inventory"])


@router.get("/", response_model=List[InventoryItemRead])
def list_inventory(store: StoreDep):
    """
    List every inventory item, ordered by id, with its derived status.
    """
    return inventory.list_inventory(store)


@router.get("/{inventory_id}", response_model=InventoryItemRead)
def get_inventory_item(inventory_id: int, store: StoreDep):
    return inventory.get_inventory_item(store, inventory_id)
