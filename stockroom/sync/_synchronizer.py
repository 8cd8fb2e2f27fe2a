"""
Synchronizer — keeps MirrorState equal to the store via change feeds.

Every snapshot fully replaces the corresponding mirror; nothing is merged.
A feed error is logged, the collection is marked stale, and the mirror
keeps its last good contents until `resubscribe()` is called.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from stockroom._codec import decode_order, decode_product
from stockroom._errors import InvalidDocument
from stockroom.store import (
    ORDERS,
    PRODUCTS,
    CollectionRef,
    CollectionSnapshot,
    DocumentStore,
    Namespace,
    Subscription,
)
from stockroom.sync._state import MirrorState


logger = logging.getLogger("stockroom.sync")


def _decode_all[T](
    snapshot: CollectionSnapshot,
    decode: Callable[[str, Mapping[str, Any]], T],
) -> list[T]:
    records: list[T] = []
    for doc in snapshot.documents:
        try:
            records.append(decode(doc.id, doc.data))
        except InvalidDocument as e:
            logger.warning("skipping malformed document %s: %s", doc.ref.path, e)
    return records


class Synchronizer:
    """
    Example:
        state = MirrorState()
        async with Synchronizer(store, namespace, state) as sync:
            await sync.wait_synced()
            print(state.metrics)
    """

    def __init__(
        self,
        store: DocumentStore,
        namespace: Namespace,
        state: MirrorState | None = None,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self._state = state or MirrorState()
        self._subs: dict[str, Subscription] = {}
        self._synced: dict[str, asyncio.Event] = {}
        self._stale: set[str] = set()

    @property
    def state(self) -> MirrorState:
        return self._state

    @property
    def stale(self) -> frozenset[str]:
        """Collections whose feed ended with an error."""
        return frozenset(self._stale)

    @property
    def running(self) -> bool:
        return any(sub.active for sub in self._subs.values())

    # ═══════════════════════════════════════════════════════════════════════════
    # Lifecycle
    # ═══════════════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Open both feeds. Idempotent for feeds that are still active."""
        self._open(PRODUCTS)
        self._open(ORDERS)

    def resubscribe(self) -> None:
        """Re-open feeds that have failed."""
        for name in sorted(self._stale):
            logger.info("resubscribing to %s", name)
            self._open(name)

    def stop(self) -> None:
        for sub in self._subs.values():
            sub.close()
        self._subs.clear()

    async def wait_synced(self, timeout: float | None = None) -> None:
        """
        Wait until both feeds have delivered their first snapshot or failed.
        Check `stale` afterwards to tell the two apart.
        """
        async with asyncio.timeout(timeout):
            for name in (PRODUCTS, ORDERS):
                event = self._synced.get(name)
                if event is None:
                    raise RuntimeError("synchronizer is not started")
                await event.wait()

    async def __aenter__(self) -> Synchronizer:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()

    # ═══════════════════════════════════════════════════════════════════════════
    # Feed handling
    # ═══════════════════════════════════════════════════════════════════════════

    def _open(self, name: str) -> None:
        current = self._subs.get(name)
        if current is not None and current.active:
            return
        self._synced.setdefault(name, asyncio.Event())
        self._stale.discard(name)
        collection = self._namespace.collection(name)
        on_snapshot = self._on_products if name == PRODUCTS else self._on_orders
        self._subs[name] = self._store.subscribe_change_feed(
            collection, on_snapshot, self._on_error
        )

    def _on_products(self, snapshot: CollectionSnapshot) -> None:
        self._state.replace_products(_decode_all(snapshot, decode_product))
        self._synced[PRODUCTS].set()

    def _on_orders(self, snapshot: CollectionSnapshot) -> None:
        self._state.replace_orders(_decode_all(snapshot, decode_order))
        self._synced[ORDERS].set()

    def _on_error(self, collection: CollectionRef, error: Exception) -> None:
        logger.error("change feed for %s failed: %s", collection.path, error)
        self._stale.add(collection.name)
        if collection.name in self._synced:
            self._synced[collection.name].set()


__all__ = ("Synchronizer",)
