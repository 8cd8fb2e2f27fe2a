"""
Order placement — the atomic stock-decrement + order-creation transaction.

    INITIATED ──commit──▶ COMMITTED
        │
        └──any error──▶ ABORTED

One OrderPlacement is one logical order. Each call is one attempt; the
executor may call it again after a transient failure. Once COMMITTED,
further calls return the committed order without touching the store, so
a retried placement never creates a second order.
"""

from __future__ import annotations

from enum import Enum, auto

from stockroom._codec import (
    decode_order,
    decode_product,
    fulfilled_fields,
    order_fields,
)
from stockroom._errors import InsufficientStock, InvalidDocument, NotFound
from stockroom._model import Order
from stockroom._types import Clock, utcnow
from stockroom.store import (
    PRODUCTS,
    DocumentStore,
    Namespace,
    Transaction,
    run_transaction,
)


class PlacementState(Enum):
    INITIATED = auto()
    COMMITTED = auto()
    ABORTED = auto()


class OrderPlacement:
    def __init__(
        self,
        store: DocumentStore,
        namespace: Namespace,
        product_id: str,
        quantity: int,
        *,
        clock: Clock = utcnow,
    ) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidDocument("quantity", f"must be a positive integer, got {quantity!r}")
        self._store = store
        self._namespace = namespace
        self._product_id = product_id
        self._quantity = quantity
        self._clock = clock
        self._state = PlacementState.INITIATED
        self._order: Order | None = None
        self._attempts = 0

    @property
    def product_id(self) -> str:
        return self._product_id

    @property
    def quantity(self) -> int:
        return self._quantity

    @property
    def state(self) -> PlacementState:
        return self._state

    @property
    def order(self) -> Order | None:
        return self._order

    @property
    def attempts(self) -> int:
        """Attempts that reached the store."""
        return self._attempts

    async def __call__(self) -> Order:
        if self._state is PlacementState.COMMITTED and self._order is not None:
            return self._order

        self._state = PlacementState.INITIATED
        self._attempts += 1
        try:
            order = await run_transaction(self._store, self._attempt)
        except BaseException:
            self._state = PlacementState.ABORTED
            raise

        self._order = order
        self._state = PlacementState.COMMITTED
        return order

    async def _attempt(self, txn: Transaction) -> Order:
        product_ref = self._namespace.products.document(self._product_id)
        doc = await txn.read_with_version(product_ref)
        if doc is None:
            raise NotFound(PRODUCTS, self._product_id)

        product = decode_product(doc.id, doc.data)
        remaining = product.stock - self._quantity
        if remaining < 0:
            raise InsufficientStock(product.id, self._quantity, product.stock)

        # name and price come from the transactional read, not the mirror
        fields = order_fields(
            product_id=product.id,
            product_name=product.name,
            quantity=self._quantity,
            total_price=product.price * self._quantity,
            now=self._clock(),
        )
        txn.conditional_write(product_ref, {"stock": remaining})
        order_ref = txn.create(self._namespace.orders, fields)
        return decode_order(order_ref.id, fields)


async def fulfill(
    store: DocumentStore,
    namespace: Namespace,
    order_id: str,
    *,
    clock: Clock = utcnow,
) -> Order:
    """
    Mark an order Fulfilled.

    Unconditional single-document update: an already fulfilled order stays
    Fulfilled and gets a fresh fulfilledAt. Raises NotFound for an unknown id.
    """
    doc = await store.update(namespace.orders.document(order_id), fulfilled_fields(clock()))
    return decode_order(doc.id, doc.data)


__all__ = ("PlacementState", "OrderPlacement", "fulfill")
