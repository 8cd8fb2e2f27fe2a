"""
Store — transactional document storage with change feeds.

    from stockroom import store as St

    store = await St.open_store({"backend": "memory"})
    ns = St.Namespace("my-app", principal.uid)

    doc = await store.create(ns.products, {"name": "Widget", "stock": 3})

    async def body(txn: St.Transaction) -> int:
        current = await txn.read_with_version(doc.ref)
        txn.conditional_write(doc.ref, {"stock": current.data["stock"] - 1})
        return current.data["stock"] - 1

    remaining = await St.run_transaction(store, body)

Backends:
    MemoryDocumentStore      — in-process, optional latency, fault hooks
    SQLAlchemyDocumentStore  — durable, any async SQLAlchemy engine
"""

from stockroom.store._types import (
    PRODUCTS,
    ORDERS,
    new_document_id,
    CollectionRef,
    DocumentRef,
    Namespace,
    Document,
    CollectionSnapshot,
    SnapshotListener,
    ErrorListener,
)
from stockroom.store._protocol import (
    Transaction,
    Subscription,
    DocumentStore,
    run_transaction,
)
from stockroom.store._feed import ChangeFeedHub, FeedSubscription
from stockroom.store._memory import MemoryDocumentStore, MemoryTransaction
from stockroom.store._sqlalchemy import (
    SQLAlchemyDocumentStore,
    SQLAlchemyTransaction,
    DocumentRow,
)
from stockroom.store._open import BACKENDS, open_store


__all__ = (
    # Types
    "PRODUCTS",
    "ORDERS",
    "new_document_id",
    "CollectionRef",
    "DocumentRef",
    "Namespace",
    "Document",
    "CollectionSnapshot",
    "SnapshotListener",
    "ErrorListener",
    # Protocol
    "Transaction",
    "Subscription",
    "DocumentStore",
    "run_transaction",
    # Feed
    "ChangeFeedHub",
    "FeedSubscription",
    # Backends
    "MemoryDocumentStore",
    "MemoryTransaction",
    "SQLAlchemyDocumentStore",
    "SQLAlchemyTransaction",
    "DocumentRow",
    "BACKENDS",
    "open_store",
)
