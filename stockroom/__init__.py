"""
stockroom — inventory and order core with transactional stock control.

    from stockroom import connect, Settings, ProductDraft

    async with await connect(Settings().with_store({"backend": "memory"})) as app:
        await app.inventory.create_product(ProductDraft.of("Widget", 10, "2.00"))
        await app.inventory.simulate_order()
        print(app.state.metrics)

    from stockroom import store as St    # Durable store + transactions
    from stockroom import retry as R     # Classified retries
    from stockroom import orders as O    # Placement + action surface
    from stockroom import sync as Y      # Change-feed mirrors
    from stockroom import metrics as M   # Dashboard aggregates
"""

from stockroom._errors import (
    StockroomError,
    TransientStoreError,
    TransactionConflict,
    NotFound,
    InsufficientStock,
    InvalidDocument,
    ConfigurationError,
    is_transient,
)
from stockroom._types import Lazy, Clock, utcnow
from stockroom._model import (
    LOW_STOCK_THRESHOLD,
    OrderStatus,
    ProductDraft,
    Product,
    Order,
)
from stockroom import store
from stockroom import retry
from stockroom import metrics
from stockroom import sync
from stockroom import orders
from stockroom import identity
from stockroom.config import Settings, configure_logging
from stockroom._app import App, connect

__version__ = "0.1.0"

__all__ = (
    # Subpackages
    "store",
    "retry",
    "metrics",
    "sync",
    "orders",
    "identity",
    # Errors
    "StockroomError",
    "TransientStoreError",
    "TransactionConflict",
    "NotFound",
    "InsufficientStock",
    "InvalidDocument",
    "ConfigurationError",
    "is_transient",
    # Types
    "Lazy",
    "Clock",
    "utcnow",
    # Model
    "LOW_STOCK_THRESHOLD",
    "OrderStatus",
    "ProductDraft",
    "Product",
    "Order",
    # Startup
    "Settings",
    "configure_logging",
    "App",
    "connect",
)
