from __future__ import annotations

from decimal import Decimal

from stockroom import Order, OrderStatus, Product
from stockroom.metrics import DashboardMetrics, compute


def product(pid: str, stock: int, price: str) -> Product:
    return Product(id=pid, name=pid, stock=stock, price=Decimal(price))


def order(oid: str, total: str, status: OrderStatus) -> Order:
    return Order(
        id=oid,
        product_id="p",
        product_name="p",
        quantity=1,
        total_price=Decimal(total),
        status=status,
    )


def test_empty_mirrors_give_zero_metrics() -> None:
    assert compute([], []) == DashboardMetrics()


def test_revenue_counts_fulfilled_orders_only() -> None:
    metrics = compute(
        [],
        [
            order("o1", "6.00", OrderStatus.FULFILLED),
            order("o2", "4.50", OrderStatus.PENDING),
            order("o3", "0.10", OrderStatus.FULFILLED),
        ],
    )
    assert metrics.total_revenue == Decimal("6.10")
    assert metrics.pending_orders == 1


def test_stock_value_is_exact() -> None:
    metrics = compute([product("a", 3, "0.10"), product("b", 7, "19.99")], [])
    assert metrics.total_stock_value == Decimal("140.23")


def test_low_stock_boundary_is_inclusive() -> None:
    metrics = compute(
        [product("a", 5, "1"), product("b", 6, "1"), product("c", 0, "1")],
        [],
    )
    assert metrics.low_stock_products == 2


def test_custom_threshold() -> None:
    metrics = compute([product("a", 5, "1"), product("b", 9, "1")], [], low_stock_threshold=10)
    assert metrics.low_stock_products == 2
