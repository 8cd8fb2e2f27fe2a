"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine

from stockroom import Order, Product
from stockroom.metrics import DashboardMetrics


SEED_PRODUCTS: tuple[tuple[str, int, str], ...] = (
    ("Cable", 40, "4.99"),
    ("Charger", 12, "19.90"),
    ("Headphones", 6, "59.00"),
    ("Laptop stand", 3, "34.50"),
    ("Webcam", 8, "45.00"),
)


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())


def print_metrics(m: DashboardMetrics) -> None:
    print("┌──────────────────────────────────────┐")
    print(f"│  Revenue        {m.total_revenue:>18.2f}   │")
    print(f"│  Stock value    {m.total_stock_value:>18.2f}   │")
    print(f"│  Pending orders {m.pending_orders:>18}   │")
    print(f"│  Low stock      {m.low_stock_products:>18}   │")
    print("└──────────────────────────────────────┘")


def print_products(products: tuple[Product, ...]) -> None:
    for p in products:
        flag = "  ⚠ low" if p.is_low_stock() else ""
        print(f"  {p.name:<14} stock {p.stock:>3}  @ {p.price:>7.2f}{flag}")


def print_orders(orders: tuple[Order, ...], limit: int = 5) -> None:
    recent = sorted(orders, key=lambda o: o.ordered_at.isoformat() if o.ordered_at else "", reverse=True)[:limit]
    for o in recent:
        print(f"  {o.id[:8]}  {o.product_name:<14} ×{o.quantity}  {o.total_price:>8.2f}  {o.status.value}")
