from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str
    password_hash: str


class Borrower(SQLModel, table=True):
    __tablename__ = "borrowers"

    id: Optional[int] = Field(default=None, primary_key=True)
    auth_id: int = Field(foreign_key="users.id", unique=True)

    name: str
    email: str


class InventoryItem(SQLModel, table=True):
    __tablename__ = "inventory"

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str
    description: str = ""
    total_quantity: int = 0
    remaining_quantity: int = 0
    location: str = ""
    # Set only by administrators; status is otherwise derived from quantity
    status_override: Optional[str] = None


class Cart(SQLModel, table=True):
    __tablename__ = "cart"
    __table_args__ = (
        Index(
            "uq_cart_one_draft_per_borrower",
            "borrower_id",
            unique=True,
            sqlite_where=text("status = 'draft'"),
            postgresql_where=text("status = 'draft'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    borrower_id: int = Field(foreign_key="borrowers.id", index=True)

    status: str = "draft"  # draft | requested | accepted | rejected
    created_at: datetime = Field(default_factory=utcnow)
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


class CartItem(SQLModel, table=True):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "inventory_id", name="uq_cart_items_cart_inventory"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    cart_id: int = Field(foreign_key="cart.id", index=True)
    inventory_id: int = Field(foreign_key="inventory.id")

    quantity: int
    return_date: date


class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    inventory_id: int = Field(foreign_key="inventory.id")
    borrower_id: int = Field(foreign_key="borrowers.id", index=True)
    cart_item_id: Optional[int] = Field(default=None, foreign_key="cart_items.id")

    quantity: int
    borrow_date: datetime = Field(default_factory=utcnow)
    due_date: Optional[date] = None
    return_date: Optional[datetime] = None
    status: str = "borrowed"  # borrowed | returned | overdue

    damaged_quantity: Optional[int] = None
    fine_amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    damage_image_ref: Optional[str] = None
