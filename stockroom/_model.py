"""
Inventory records.

Product and Order are immutable views of stored documents. ProductDraft is
the validated input for create and update.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum

from stockroom._errors import InvalidDocument


LOW_STOCK_THRESHOLD = 5


class OrderStatus(Enum):
    PENDING = "Pending"
    FULFILLED = "Fulfilled"


# ═══════════════════════════════════════════════════════════════════════════════
# Product
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ProductDraft:
    """
    Product fields as entered by an operator.

    Use `ProductDraft.of(...)` to coerce loose input (strings from a form,
    floats) and validate in one step.
    """

    name: str
    stock: int
    price: Decimal

    @classmethod
    def of(cls, name: str, stock: int | str, price: Decimal | float | str) -> ProductDraft:
        try:
            stock_value = int(stock)
        except (TypeError, ValueError):
            raise InvalidDocument("stock", f"not an integer: {stock!r}") from None
        try:
            # str() first so 19.99 stays 19.99 rather than its binary expansion
            price_value = Decimal(str(price))
        except (InvalidOperation, ValueError):
            raise InvalidDocument("price", f"not a number: {price!r}") from None
        draft = cls(name=name.strip(), stock=stock_value, price=price_value)
        draft.validate()
        return draft

    def validate(self) -> None:
        if not self.name.strip():
            raise InvalidDocument("name", "must not be empty")
        if isinstance(self.stock, bool) or not isinstance(self.stock, int):
            raise InvalidDocument("stock", "must be an integer")
        if self.stock < 0:
            raise InvalidDocument("stock", "must not be negative")
        if not self.price.is_finite():
            raise InvalidDocument("price", "must be a finite number")
        if self.price < 0:
            raise InvalidDocument("price", "must not be negative")


@dataclass(frozen=True, slots=True)
class Product:
    id: str
    name: str
    stock: int
    price: Decimal
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def stock_value(self) -> Decimal:
        return self.price * self.stock

    def is_low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> bool:
        return self.stock <= threshold


# ═══════════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Order:
    """
    A customer order.

    product_name and total_price are snapshots taken when the order was
    placed; later edits to the product do not touch them.
    """

    id: str
    product_id: str
    product_name: str
    quantity: int
    total_price: Decimal
    status: OrderStatus
    ordered_at: datetime | None = None
    fulfilled_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is OrderStatus.PENDING

    @property
    def is_fulfilled(self) -> bool:
        return self.status is OrderStatus.FULFILLED


__all__ = (
    "LOW_STOCK_THRESHOLD",
    "OrderStatus",
    "ProductDraft",
    "Product",
    "Order",
)
