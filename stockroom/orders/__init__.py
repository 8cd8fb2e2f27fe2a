"""
Orders — placement transaction, fulfillment, and the action surface.

    from stockroom import orders as O

    inventory = O.Inventory(store, namespace, state)

    await inventory.create_product(ProductDraft.of("Widget", 10, "2.00"))
    await inventory.simulate_order()          # random product, 1..5 units
    await inventory.fulfill_order(order_id)

Placement is one transaction per attempt:

    read product (read-set) ─▶ missing?      ─▶ NotFound
                            ─▶ stock < qty?  ─▶ InsufficientStock
                            ─▶ write stock - qty + create Pending order
                            ─▶ commit (conflict ─▶ retried by Executor)
"""

from stockroom.orders._placement import PlacementState, OrderPlacement, fulfill
from stockroom.orders._inventory import (
    MAX_SIMULATED_QUANTITY,
    ActionErrorKind,
    ActionError,
    Inventory,
)


__all__ = (
    "PlacementState",
    "OrderPlacement",
    "fulfill",
    "MAX_SIMULATED_QUANTITY",
    "ActionErrorKind",
    "ActionError",
    "Inventory",
)
