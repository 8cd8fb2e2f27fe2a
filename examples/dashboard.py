"""
Dashboard — a burst of concurrent orders against a small catalog.

    python -m examples.dashboard --orders 30 --concurrency 8
    python -m examples.dashboard --store sqlite+aiosqlite:///stock.db

Shows:
    • concurrent placements contending on the same products
    • conflicts retried, InsufficientStock rejected without retrying
    • mirrors + metrics updated from the change feed, never by hand
"""

from __future__ import annotations

import argparse
import random
from collections import Counter

from kungfu import Error, Ok

from stockroom import ProductDraft, Settings, configure_logging, connect
from stockroom.retry import Backoff, RetryPolicy
from examples._infra import (
    SEED_PRODUCTS,
    banner,
    print_metrics,
    print_orders,
    print_products,
    run,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate orders against an inventory")
    parser.add_argument("--orders", "-n", type=int, default=20, help="Orders to simulate (default: 20)")
    parser.add_argument("--concurrency", "-c", type=int, default=5, help="Orders in flight (default: 5)")
    parser.add_argument("--fulfill", "-f", type=int, default=5, help="Pending orders to fulfill (default: 5)")
    parser.add_argument("--store", help="SQLAlchemy URL; in-memory store when omitted")
    parser.add_argument("--latency", type=float, default=0.005, help="In-memory round-trip latency, seconds")
    parser.add_argument("--seed", type=int, help="Random seed for a repeatable run")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args()


async def main() -> None:
    args = parse_args()
    configure_logging(args.log_level)

    store_config = (
        {"backend": "sqlalchemy", "url": args.store}
        if args.store
        else {"backend": "memory", "latency": args.latency}
    )
    settings = (
        Settings(app_id="dashboard-demo")
        .with_store(store_config)
        .with_retry(RetryPolicy().with_backoff(Backoff(initial=0.01, jitter=0.01)))
    )

    async with await connect(settings, rng=random.Random(args.seed)) as app:
        inventory = app.inventory

        banner("Seeding catalog")
        for name, stock, price in SEED_PRODUCTS:
            match await inventory.create_product(ProductDraft.of(name, stock, price)):
                case Ok(product):
                    print(f"  ✓ {product.name}")
                case Error(e):
                    print(f"  ✗ {name}: {e.message}")

        banner(f"Simulating {args.orders} orders ({args.concurrency} in flight)")
        results = await inventory.simulate_orders(args.orders, concurrency=args.concurrency)
        outcomes: Counter[str] = Counter()
        for r in results:
            match r:
                case Ok(None):
                    outcomes["no products"] += 1
                case Ok(_):
                    outcomes["placed"] += 1
                case Error(e):
                    outcomes[e.kind.name.lower()] += 1
        for outcome, count in sorted(outcomes.items()):
            print(f"  {outcome:<20} {count}")

        banner(f"Fulfilling up to {args.fulfill} orders")
        for order in [o for o in app.state.orders if o.is_pending][: args.fulfill]:
            match await inventory.fulfill_order(order.id):
                case Ok(done):
                    print(f"  ✓ {done.id[:8]} {done.product_name} ×{done.quantity}")
                case Error(e):
                    print(f"  ✗ {order.id[:8]}: {e.message}")

        banner("Products")
        print_products(app.state.products)
        banner("Recent orders")
        print_orders(app.state.orders)
        banner("Metrics")
        print_metrics(app.state.metrics)


if __name__ == "__main__":
    run(main)
