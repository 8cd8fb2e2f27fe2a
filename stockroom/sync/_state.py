"""
Mirror state — the local, read-only view of both collections.

Only the Synchronizer writes it, and only by full replacement. Everything
else reads `snapshot` or subscribes to changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from stockroom._model import LOW_STOCK_THRESHOLD, Order, Product
from stockroom.metrics import DashboardMetrics, compute


logger = logging.getLogger("stockroom.sync")


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Consistent view handed to observers. `revision` increases on every change."""

    products: tuple[Product, ...] = ()
    orders: tuple[Order, ...] = ()
    metrics: DashboardMetrics = DashboardMetrics()
    revision: int = 0


type Observer = Callable[[Snapshot], None]


class MirrorState:
    def __init__(self, *, low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> None:
        self._low_stock_threshold = low_stock_threshold
        self._products: dict[str, Product] = {}
        self._orders: dict[str, Order] = {}
        self._snapshot = Snapshot()
        self._observers: list[Observer] = []

    # ═══════════════════════════════════════════════════════════════════════════
    # Reads
    # ═══════════════════════════════════════════════════════════════════════════

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def products(self) -> tuple[Product, ...]:
        return self._snapshot.products

    @property
    def orders(self) -> tuple[Order, ...]:
        return self._snapshot.orders

    @property
    def metrics(self) -> DashboardMetrics:
        return self._snapshot.metrics

    @property
    def revision(self) -> int:
        return self._snapshot.revision

    def product(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def order(self, order_id: str) -> Order | None:
        return self._orders.get(order_id)

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Call `observer` after every change. Returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    # ═══════════════════════════════════════════════════════════════════════════
    # Writes (Synchronizer only)
    # ═══════════════════════════════════════════════════════════════════════════

    def replace_products(self, products: Iterable[Product]) -> None:
        self._products = {p.id: p for p in products}
        self.publish()

    def replace_orders(self, orders: Iterable[Order]) -> None:
        self._orders = {o.id: o for o in orders}
        self.publish()

    def publish(self) -> None:
        """Rebuild the snapshot from the mirrors and notify every observer."""
        products = tuple(self._products.values())
        orders = tuple(self._orders.values())
        self._snapshot = Snapshot(
            products=products,
            orders=orders,
            metrics=compute(products, orders, low_stock_threshold=self._low_stock_threshold),
            revision=self._snapshot.revision + 1,
        )
        for observer in list(self._observers):
            try:
                observer(self._snapshot)
            except Exception:
                logger.exception("mirror observer failed")


__all__ = ("Snapshot", "Observer", "MirrorState")
