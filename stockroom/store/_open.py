"""
Store construction from a configuration mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import ArgumentError

from stockroom._errors import ConfigurationError
from stockroom.store._memory import MemoryDocumentStore
from stockroom.store._protocol import DocumentStore
from stockroom.store._sqlalchemy import SQLAlchemyDocumentStore


BACKENDS = ("memory", "sqlalchemy")


async def open_store(config: Mapping[str, Any] | None) -> DocumentStore:
    """
    Open the store described by `config`.

        {"backend": "memory", "latency": 0.05}
        {"backend": "sqlalchemy", "url": "sqlite+aiosqlite:///stock.db"}

    Raises ConfigurationError for a missing, empty or unusable config; the
    caller must not proceed without a store.
    """
    if not config:
        raise ConfigurationError("store configuration is missing")

    backend = config.get("backend")
    match backend:
        case "memory":
            latency = config.get("latency", 0.0)
            if not isinstance(latency, (int, float)) or isinstance(latency, bool) or latency < 0:
                raise ConfigurationError(f"invalid memory store latency: {latency!r}")
            return MemoryDocumentStore(latency=float(latency))
        case "sqlalchemy":
            url = config.get("url")
            if not isinstance(url, str) or not url:
                raise ConfigurationError("sqlalchemy store requires a 'url'")
            try:
                return await SQLAlchemyDocumentStore.connect(url, echo=bool(config.get("echo", False)))
            except (ArgumentError, ValueError, ImportError) as e:
                raise ConfigurationError(f"cannot open store at {url!r}: {e}") from e
        case _:
            raise ConfigurationError(
                f"unknown store backend {backend!r}, expected one of {', '.join(BACKENDS)}"
            )


__all__ = ("BACKENDS", "open_store")
