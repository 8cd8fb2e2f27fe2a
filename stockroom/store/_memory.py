"""
In-memory document store.

Behaves like a remote optimistic-concurrency store: every round trip is a
suspension point (optionally with latency), commits validate the whole
read-set, and change feeds deliver full snapshots after each commit.
Intended for tests, demos and single-process use.
"""

from __future__ import annotations

import asyncio
import itertools
from collections import deque
from collections.abc import Mapping
from typing import Any

from stockroom._errors import NotFound, TransactionConflict, TransientStoreError
from stockroom.store._feed import ChangeFeedHub, FeedSubscription
from stockroom.store._types import (
    CollectionRef,
    CollectionSnapshot,
    Document,
    DocumentRef,
    ErrorListener,
    SnapshotListener,
    new_document_id,
)


class MemoryTransaction:
    def __init__(self, store: MemoryDocumentStore) -> None:
        self._store = store
        self._reads: dict[DocumentRef, int | None] = {}
        self._writes: dict[DocumentRef, dict[str, Any]] = {}
        self._creates: dict[DocumentRef, dict[str, Any]] = {}
        self._done = False

    async def read_with_version(self, ref: DocumentRef) -> Document | None:
        self._ensure_open()
        await self._store._round_trip()
        doc = self._store._peek(ref)
        self._reads[ref] = doc.version if doc else None
        return doc

    def conditional_write(self, ref: DocumentRef, fields: Mapping[str, Any]) -> None:
        self._ensure_open()
        if ref not in self._reads:
            raise ValueError(f"{ref.path} was not read in this transaction")
        if self._reads[ref] is None:
            raise NotFound(ref.collection.name, ref.id)
        self._writes.setdefault(ref, {}).update(fields)

    def create(self, collection: CollectionRef, fields: Mapping[str, Any]) -> DocumentRef:
        self._ensure_open()
        ref = collection.document(new_document_id())
        self._creates[ref] = dict(fields)
        return ref

    async def commit_or_abort(self) -> None:
        self._ensure_open()
        try:
            await self._store._commit(self._reads, self._writes, self._creates)
        finally:
            self._done = True

    async def abort(self) -> None:
        self._done = True

    def _ensure_open(self) -> None:
        if self._done:
            raise RuntimeError("transaction already finished")


class MemoryDocumentStore:
    """
    Example:
        store = MemoryDocumentStore(latency=0.01)
        ns = Namespace("demo", "user-1")
        doc = await store.create(ns.products, {"name": "Widget", "stock": 3})
    """

    def __init__(self, latency: float = 0.0) -> None:
        self._latency = latency
        self._collections: dict[str, dict[str, Document]] = {}
        self._versions = itertools.count(1)
        self._lock = asyncio.Lock()
        self._feeds = ChangeFeedHub()
        self._commit_faults: deque[Exception] = deque()
        self._closed = False

    # ═══════════════════════════════════════════════════════════════════════════
    # Plain operations
    # ═══════════════════════════════════════════════════════════════════════════

    async def create(self, collection: CollectionRef, fields: Mapping[str, Any]) -> Document:
        await self._round_trip()
        async with self._lock:
            doc = self._put(collection.document(new_document_id()), dict(fields))
        self._publish({collection.path: collection})
        return doc

    async def get(self, ref: DocumentRef) -> Document | None:
        await self._round_trip()
        return self._peek(ref)

    async def update(self, ref: DocumentRef, fields: Mapping[str, Any]) -> Document:
        await self._round_trip()
        async with self._lock:
            current = self._peek(ref)
            if current is None:
                raise NotFound(ref.collection.name, ref.id)
            doc = self._put(ref, {**current.data, **fields})
        self._publish({ref.collection.path: ref.collection})
        return doc

    async def delete(self, ref: DocumentRef) -> bool:
        await self._round_trip()
        async with self._lock:
            existed = self._collections.get(ref.collection.path, {}).pop(ref.id, None)
        if existed is None:
            return False
        self._publish({ref.collection.path: ref.collection})
        return True

    async def list(self, collection: CollectionRef) -> tuple[Document, ...]:
        await self._round_trip()
        return self._snapshot(collection).documents

    async def begin_transaction(self) -> MemoryTransaction:
        self._ensure_open()
        return MemoryTransaction(self)

    # ═══════════════════════════════════════════════════════════════════════════
    # Change feed
    # ═══════════════════════════════════════════════════════════════════════════

    def subscribe_change_feed(
        self,
        collection: CollectionRef,
        on_snapshot: SnapshotListener,
        on_error: ErrorListener,
    ) -> FeedSubscription:
        self._ensure_open()
        sub = self._feeds.add(collection, on_snapshot, on_error)
        sub.deliver(self._snapshot(collection))
        return sub

    def interrupt_feed(self, collection: CollectionRef, error: Exception | None = None) -> None:
        """End every subscription on `collection` with an error."""
        self._feeds.fail(collection, error or TransientStoreError("change feed interrupted"))

    def fail_commits(self, *errors: Exception) -> None:
        """Make the next len(errors) commits fail with these errors, in order."""
        self._commit_faults.extend(errors)

    async def close(self) -> None:
        self._closed = True
        self._feeds.close_all()

    # ═══════════════════════════════════════════════════════════════════════════
    # Internals
    # ═══════════════════════════════════════════════════════════════════════════

    async def _round_trip(self) -> None:
        self._ensure_open()
        await asyncio.sleep(self._latency)
        self._ensure_open()

    def _ensure_open(self) -> None:
        if self._closed:
            raise TransientStoreError("store is closed")

    def _peek(self, ref: DocumentRef) -> Document | None:
        doc = self._collections.get(ref.collection.path, {}).get(ref.id)
        if doc is None:
            return None
        return Document(doc.ref, dict(doc.data), doc.version)

    def _put(self, ref: DocumentRef, data: dict[str, Any]) -> Document:
        doc = Document(ref, data, next(self._versions))
        self._collections.setdefault(ref.collection.path, {})[ref.id] = doc
        return Document(ref, dict(data), doc.version)

    def _snapshot(self, collection: CollectionRef) -> CollectionSnapshot:
        docs = self._collections.get(collection.path, {})
        return CollectionSnapshot(
            collection,
            tuple(
                Document(doc.ref, dict(doc.data), doc.version)
                for _, doc in sorted(docs.items())
            ),
        )

    def _publish(self, touched: dict[str, CollectionRef]) -> None:
        for collection in touched.values():
            if self._feeds.watching(collection):
                self._feeds.publish(self._snapshot(collection))

    async def _commit(
        self,
        reads: dict[DocumentRef, int | None],
        writes: dict[DocumentRef, dict[str, Any]],
        creates: dict[DocumentRef, dict[str, Any]],
    ) -> None:
        await self._round_trip()
        async with self._lock:
            if self._commit_faults:
                raise self._commit_faults.popleft()
            for ref, seen in reads.items():
                current = self._peek(ref)
                if (current.version if current else None) != seen:
                    raise TransactionConflict(ref.path)
            touched: dict[str, CollectionRef] = {}
            for ref, fields in writes.items():
                current = self._collections[ref.collection.path][ref.id]
                self._put(ref, {**current.data, **fields})
                touched[ref.collection.path] = ref.collection
            for ref, fields in creates.items():
                self._put(ref, fields)
                touched[ref.collection.path] = ref.collection
        self._publish(touched)


__all__ = ("MemoryDocumentStore", "MemoryTransaction")
