from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr

InventoryStatus = Literal["available", "borrowed", "unavailable"]
CartStatus = Literal["draft", "requested", "accepted", "rejected"]
TransactionStatus = Literal["borrowed", "returned", "overdue"]


class InventoryItemRead(BaseModel):
    id: int
    name: str
    description: str
    total_quantity: int
    remaining_quantity: int
    location: str
    status: InventoryStatus


class InventorySnapshot(BaseModel):
    """The slice of an inventory row embedded in carts and transactions."""

    id: int
    name: str
    description: str
    location: str = ""


class CartRead(BaseModel):
    id: int
    borrower_id: int
    status: CartStatus
    created_at: datetime
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CartItemRead(BaseModel):
    id: int
    cart_id: int
    inventory_id: int
    quantity: int
    return_date: date
    inventory: Optional[InventorySnapshot] = None


class CartRequestRead(CartRead):
    items: List[CartItemRead] = []


class Shortage(BaseModel):
    inventory_id: int
    requested: int
    remaining: int


class SubmitResult(BaseModel):
    cart: CartRead
    items: List[CartItemRead]
    shortages: List[Shortage] = []


class TransactionRead(BaseModel):
    id: int
    inventory_id: int
    borrower_id: int
    cart_item_id: Optional[int] = None
    quantity: int
    borrow_date: datetime
    due_date: Optional[date] = None
    return_date: Optional[datetime] = None
    status: TransactionStatus
    damaged_quantity: Optional[int] = None
    fine_amount: Optional[Decimal] = None
    damage_image_ref: Optional[str] = None
    inventory: Optional[InventorySnapshot] = None


class TransactionSummary(BaseModel):
    borrowed: int = 0
    returned: int = 0
    overdue: int = 0
    damaged_quantity: int = 0
    total_fines: Decimal = Decimal("0.00")


class CartItemAdd(BaseModel):
    inventory_id: int
    quantity: int = 1
    return_date: Optional[date] = None


class CartItemQuantity(BaseModel):
    quantity: int


class ReturnDateUpdate(BaseModel):
    return_date: date


class UserCreate(BaseModel):
    email: EmailStr
    name: str
    password: str


class UserRead(BaseModel):
    id: int
    email: EmailStr
    name: str
    borrower_id: Optional[int] = None


class LoginData(BaseModel):
    email: EmailStr
    password: str
