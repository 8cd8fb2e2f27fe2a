"""
Inventory — the action surface.

Every action runs through the Executor and comes back as a Result. Failures
are logged here and returned as ActionError; nothing but cancellation
escapes an action.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum, auto

import combinators as C
from kungfu import Error, LazyCoroResult, Ok, Result

from stockroom._codec import decode_product, product_fields
from stockroom._errors import (
    InsufficientStock,
    InvalidDocument,
    NotFound,
    TransactionConflict,
)
from stockroom._model import Order, Product, ProductDraft
from stockroom._types import Clock, utcnow
from stockroom.orders._placement import OrderPlacement, fulfill
from stockroom.retry import Executor, Operation
from stockroom.store import DocumentStore, Namespace
from stockroom.sync import MirrorState


logger = logging.getLogger("stockroom.orders")


MAX_SIMULATED_QUANTITY = 5


# ═══════════════════════════════════════════════════════════════════════════════
# Action Error
# ═══════════════════════════════════════════════════════════════════════════════


class ActionErrorKind(Enum):
    NOT_FOUND = auto()
    INSUFFICIENT_STOCK = auto()
    INVALID = auto()
    CONFLICT = auto()  # Retries exhausted on optimistic conflicts
    STORE = auto()  # Store unavailable or unexpected failure


@dataclass(frozen=True, slots=True)
class ActionError:
    """
    Failed action.

    Note: cause is the exception of the last attempt, unchanged.
    """

    action: str
    kind: ActionErrorKind
    message: str
    cause: Exception | None = None

    @classmethod
    def of(cls, action: str, error: Exception) -> ActionError:
        match error:
            case NotFound():
                kind = ActionErrorKind.NOT_FOUND
            case InsufficientStock():
                kind = ActionErrorKind.INSUFFICIENT_STOCK
            case InvalidDocument():
                kind = ActionErrorKind.INVALID
            case TransactionConflict():
                kind = ActionErrorKind.CONFLICT
            case _:
                kind = ActionErrorKind.STORE
        return cls(action=action, kind=kind, message=str(error), cause=error)


# ═══════════════════════════════════════════════════════════════════════════════
# Inventory
# ═══════════════════════════════════════════════════════════════════════════════


class Inventory:
    """
    Example:
        inventory = Inventory(store, namespace, state)

        match await inventory.create_product(ProductDraft.of("Widget", 10, "2.00")):
            case Ok(product):
                await inventory.place_order(product.id, 3)
            case Error(e):
                print(e.kind, e.message)
    """

    def __init__(
        self,
        store: DocumentStore,
        namespace: Namespace,
        state: MirrorState,
        *,
        executor: Executor | None = None,
        clock: Clock = utcnow,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self._state = state
        self._executor = executor or Executor()
        self._clock = clock
        self._rng = rng or random.Random()

    @property
    def state(self) -> MirrorState:
        return self._state

    # ═══════════════════════════════════════════════════════════════════════════
    # Products
    # ═══════════════════════════════════════════════════════════════════════════

    async def create_product(self, draft: ProductDraft) -> Result[Product, ActionError]:
        async def operation() -> Product:
            draft.validate()
            doc = await self._store.create(
                self._namespace.products,
                product_fields(draft, self._clock(), created=True),
            )
            return decode_product(doc.id, doc.data)

        return await self._act("create_product", operation)

    async def update_product(
        self, product_id: str, draft: ProductDraft
    ) -> Result[Product, ActionError]:
        """Overwrite name, stock and price. Existing orders keep their snapshots."""

        async def operation() -> Product:
            draft.validate()
            doc = await self._store.update(
                self._namespace.products.document(product_id),
                product_fields(draft, self._clock(), created=False),
            )
            return decode_product(doc.id, doc.data)

        return await self._act("update_product", operation)

    async def delete_product(self, product_id: str) -> Result[bool, ActionError]:
        """Ok(False) if the product was already gone. Orders referencing it stay."""

        async def operation() -> bool:
            return await self._store.delete(self._namespace.products.document(product_id))

        return await self._act("delete_product", operation)

    # ═══════════════════════════════════════════════════════════════════════════
    # Orders
    # ═══════════════════════════════════════════════════════════════════════════

    async def place_order(self, product_id: str, quantity: int) -> Result[Order, ActionError]:
        try:
            placement = OrderPlacement(
                self._store, self._namespace, product_id, quantity, clock=self._clock
            )
        except InvalidDocument as e:
            return self._failed("place_order", e)
        return await self._act("place_order", placement)

    async def simulate_order(self) -> Result[Order | None, ActionError]:
        """
        Order 1-5 units of a random mirrored product.

        Ok(None) when the mirror has no products.
        """
        products = self._state.products
        if not products:
            logger.info("simulate_order: no products to order")
            return Ok(None)
        product = self._rng.choice(products)
        quantity = self._rng.randint(1, MAX_SIMULATED_QUANTITY)
        match await self.place_order(product.id, quantity):
            case Ok(order):
                return Ok(order)
            case Error(e):
                return Error(e)

    async def simulate_orders(
        self, count: int, *, concurrency: int = 5
    ) -> list[Result[Order | None, ActionError]]:
        """
        A burst of `count` simulated orders, at most `concurrency` in flight.

        One Result per order, in submission order. Rejections are logged by
        each order's own boundary and do not stop the rest of the burst.
        """
        batch = C.batch_all(
            range(count),
            lambda _: LazyCoroResult(self.simulate_order),
            concurrency=concurrency,
        )
        # batch_all collects every outcome and cannot fail itself
        results = (await batch).unwrap()
        placed = sum(1 for r in results if isinstance(r, Ok) and r.value is not None)
        logger.info("simulate_orders: %d of %d placed", placed, count)
        return results

    async def fulfill_order(self, order_id: str) -> Result[Order, ActionError]:
        async def operation() -> Order:
            return await fulfill(self._store, self._namespace, order_id, clock=self._clock)

        return await self._act("fulfill_order", operation)

    # ═══════════════════════════════════════════════════════════════════════════
    # Boundary
    # ═══════════════════════════════════════════════════════════════════════════

    async def _act[T](self, action: str, operation: Operation[T]) -> Result[T, ActionError]:
        match await self._executor.execute(operation, name=action):
            case Ok(value):
                return Ok(value)
            case Error(error):
                return self._failed(action, error)

    def _failed(self, action: str, error: Exception) -> Error[ActionError]:
        failure = ActionError.of(action, error)
        if failure.kind is ActionErrorKind.INSUFFICIENT_STOCK:
            logger.warning("%s rejected: %s", action, failure.message)
        else:
            logger.error("%s failed (%s): %s", action, failure.kind.name, failure.message)
        return Error(failure)


__all__ = (
    "MAX_SIMULATED_QUANTITY",
    "ActionErrorKind",
    "ActionError",
    "Inventory",
)
