"""
Document codec — records ↔ stored field maps.

Field names are the stored camelCase names. Money travels as a decimal
string, timestamps as ISO-8601 UTC with millisecond precision.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from stockroom._errors import InvalidDocument
from stockroom._model import Order, OrderStatus, Product, ProductDraft


type Fields = dict[str, Any]


# ═══════════════════════════════════════════════════════════════════════════════
# Scalars
# ═══════════════════════════════════════════════════════════════════════════════


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any, field: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise InvalidDocument(field, f"not a timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidDocument(field, f"not a timestamp: {value!r}") from None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def encode_money(value: Decimal) -> str:
    return str(value)


def decode_money(value: Any, field: str) -> Decimal:
    """Missing money reads as zero."""
    if value is None:
        return Decimal(0)
    if isinstance(value, bool):
        raise InvalidDocument(field, f"not a number: {value!r}")
    try:
        # floats go through str() to keep their short repr
        result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidDocument(field, f"not a number: {value!r}") from None
    if not result.is_finite():
        raise InvalidDocument(field, f"not a finite number: {value!r}")
    return result


def _require(data: Mapping[str, Any], field: str) -> Any:
    if field not in data or data[field] is None:
        raise InvalidDocument(field, "missing")
    return data[field]


def _integer(data: Mapping[str, Any], field: str) -> int:
    value = _require(data, field)
    if isinstance(value, bool):
        raise InvalidDocument(field, f"not an integer: {value!r}")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise InvalidDocument(field, f"not an integer: {value!r}")
    return value


def _string(data: Mapping[str, Any], field: str) -> str:
    value = _require(data, field)
    if not isinstance(value, str):
        raise InvalidDocument(field, f"not a string: {value!r}")
    return value


# ═══════════════════════════════════════════════════════════════════════════════
# Product
# ═══════════════════════════════════════════════════════════════════════════════


def product_fields(draft: ProductDraft, now: datetime, *, created: bool) -> Fields:
    fields: Fields = {
        "name": draft.name,
        "stock": draft.stock,
        "price": encode_money(draft.price),
        "updatedAt": format_timestamp(now),
    }
    if created:
        fields["createdAt"] = format_timestamp(now)
    return fields


def decode_product(document_id: str, data: Mapping[str, Any]) -> Product:
    return Product(
        id=document_id,
        name=_string(data, "name"),
        stock=_integer(data, "stock"),
        price=decode_money(data.get("price"), "price"),
        created_at=parse_timestamp(data.get("createdAt"), "createdAt"),
        updated_at=parse_timestamp(data.get("updatedAt"), "updatedAt"),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════════


def order_fields(
    product_id: str,
    product_name: str,
    quantity: int,
    total_price: Decimal,
    now: datetime,
) -> Fields:
    return {
        "productId": product_id,
        "productName": product_name,
        "quantity": quantity,
        "totalPrice": encode_money(total_price),
        "status": OrderStatus.PENDING.value,
        "orderedAt": format_timestamp(now),
    }


def fulfilled_fields(now: datetime) -> Fields:
    return {
        "status": OrderStatus.FULFILLED.value,
        "fulfilledAt": format_timestamp(now),
    }


def decode_order(document_id: str, data: Mapping[str, Any]) -> Order:
    raw_status = _string(data, "status")
    try:
        status = OrderStatus(raw_status)
    except ValueError:
        raise InvalidDocument("status", f"unknown status {raw_status!r}") from None
    return Order(
        id=document_id,
        product_id=_string(data, "productId"),
        product_name=_string(data, "productName"),
        quantity=_integer(data, "quantity"),
        total_price=decode_money(data.get("totalPrice"), "totalPrice"),
        status=status,
        ordered_at=parse_timestamp(data.get("orderedAt"), "orderedAt"),
        fulfilled_at=parse_timestamp(data.get("fulfilledAt"), "fulfilledAt"),
    )


__all__ = (
    "Fields",
    "format_timestamp",
    "parse_timestamp",
    "encode_money",
    "decode_money",
    "product_fields",
    "decode_product",
    "order_fields",
    "fulfilled_fields",
    "decode_order",
)
