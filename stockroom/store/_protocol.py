"""
Transactional document store protocol.

Any backend offering versioned reads, conditional writes and a change feed
can back stockroom. Two ship with it: MemoryDocumentStore and
SQLAlchemyDocumentStore.

Transaction contract:
    - read_with_version records (document, version) in the read-set,
      including "observed missing"
    - conditional_write / create are buffered until commit
    - commit_or_abort applies every buffered write atomically iff every
      read-set entry is still at its observed version, otherwise raises
      TransactionConflict and applies nothing
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from stockroom.store._types import (
    CollectionRef,
    DocumentRef,
    Document,
    SnapshotListener,
    ErrorListener,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction
# ═══════════════════════════════════════════════════════════════════════════════


class Transaction(Protocol):
    async def read_with_version(self, ref: DocumentRef) -> Document | None:
        """Read a document and add it to the read-set. None if missing."""
        ...

    def conditional_write(self, ref: DocumentRef, fields: Mapping[str, Any]) -> None:
        """Buffer a merge-write. The document must have been read in this transaction."""
        ...

    def create(self, collection: CollectionRef, fields: Mapping[str, Any]) -> DocumentRef:
        """Buffer a new document. The id is assigned now, the write lands at commit."""
        ...

    async def commit_or_abort(self) -> None: ...

    async def abort(self) -> None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Subscription
# ═══════════════════════════════════════════════════════════════════════════════


class Subscription(Protocol):
    @property
    def active(self) -> bool: ...

    def close(self) -> None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


class DocumentStore(Protocol):
    async def create(self, collection: CollectionRef, fields: Mapping[str, Any]) -> Document: ...

    async def get(self, ref: DocumentRef) -> Document | None: ...

    async def update(self, ref: DocumentRef, fields: Mapping[str, Any]) -> Document:
        """Merge fields into an existing document. Raises NotFound."""
        ...

    async def delete(self, ref: DocumentRef) -> bool:
        """Returns True if the document existed."""
        ...

    async def list(self, collection: CollectionRef) -> tuple[Document, ...]: ...

    async def begin_transaction(self) -> Transaction: ...

    def subscribe_change_feed(
        self,
        collection: CollectionRef,
        on_snapshot: SnapshotListener,
        on_error: ErrorListener,
    ) -> Subscription:
        """
        Deliver the current snapshot, then a full snapshot after every
        committed change. A feed error is delivered once and ends the
        subscription.
        """
        ...

    async def close(self) -> None: ...


async def run_transaction[T](
    store: DocumentStore,
    body: Callable[[Transaction], Awaitable[T]],
) -> T:
    """
    One transactional attempt: begin, run body, commit.

    Any exception from body aborts the transaction and propagates unchanged.
    Retrying is the caller's business (see stockroom.retry).
    """
    txn = await store.begin_transaction()
    try:
        value = await body(txn)
    except BaseException:
        await txn.abort()
        raise
    await txn.commit_or_abort()
    return value


__all__ = (
    "Transaction",
    "Subscription",
    "DocumentStore",
    "run_transaction",
)
