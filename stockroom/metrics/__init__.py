"""
Metrics — dashboard aggregates over the mirrored collections.

    from stockroom import metrics as M

    m = M.compute(state.products, state.orders)
    m.total_revenue, m.total_stock_value, m.pending_orders, m.low_stock_products
"""

from stockroom.metrics._compute import (
    DashboardMetrics,
    total_revenue,
    total_stock_value,
    compute,
)


__all__ = ("DashboardMetrics", "total_revenue", "total_stock_value", "compute")
