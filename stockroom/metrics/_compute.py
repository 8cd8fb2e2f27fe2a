"""
Dashboard metrics — pure functions of the mirrored collections.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from stockroom._model import LOW_STOCK_THRESHOLD, Order, OrderStatus, Product


@dataclass(frozen=True, slots=True)
class DashboardMetrics:
    total_revenue: Decimal = Decimal(0)
    total_stock_value: Decimal = Decimal(0)
    pending_orders: int = 0
    low_stock_products: int = 0


def total_revenue(orders: Iterable[Order]) -> Decimal:
    return sum(
        (o.total_price for o in orders if o.status is OrderStatus.FULFILLED),
        Decimal(0),
    )


def total_stock_value(products: Iterable[Product]) -> Decimal:
    return sum((p.stock_value for p in products), Decimal(0))


def compute(
    products: Iterable[Product],
    orders: Iterable[Order],
    *,
    low_stock_threshold: int = LOW_STOCK_THRESHOLD,
) -> DashboardMetrics:
    """
    Revenue counts fulfilled orders only, stock value is Σ stock × price,
    and a product is low on stock at `stock <= low_stock_threshold`.
    Empty inputs give all-zero metrics.
    """
    products = tuple(products)
    orders = tuple(orders)
    return DashboardMetrics(
        total_revenue=total_revenue(orders),
        total_stock_value=total_stock_value(products),
        pending_orders=sum(1 for o in orders if o.status is OrderStatus.PENDING),
        low_stock_products=sum(1 for p in products if p.is_low_stock(low_stock_threshold)),
    )


__all__ = ("DashboardMetrics", "total_revenue", "total_stock_value", "compute")
