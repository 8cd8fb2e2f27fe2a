"""
SQLAlchemy document store — durable backend on any async SQLAlchemy engine.

Layout: one `documents` table keyed by (collection path, document id) with
an integer version and a JSON payload. Optimistic transactions read outside
any database transaction and commit with version-guarded writes:

    UPDATE documents SET data = :merged, version = :seen + 1
     WHERE collection = :c AND id = :id AND version = :seen

Zero affected rows means someone else committed first → TransactionConflict.

Usage:
    store = await SQLAlchemyDocumentStore.connect("sqlite+aiosqlite:///stock.db")
    doc = await store.create(ns.products, {"name": "Widget", "stock": 3})
    await store.close()

The change feed is in-process: subscribers see commits made through this
store object, not through other processes sharing the database.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any, cast

from sqlalchemy import JSON, Integer, String, delete, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

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


logger = logging.getLogger("stockroom.store")


# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class DocumentRow(Base):
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(512), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


def _to_document(collection: CollectionRef, row: DocumentRow) -> Document:
    return Document(collection.document(row.id), dict(row.data), row.version)


@asynccontextmanager
async def _translate(operation: str) -> AsyncIterator[None]:
    """Driver connectivity failures become TransientStoreError."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.debug("%s failed: %s", operation, e)
        raise TransientStoreError(f"{operation} failed: {e.orig}", e) from e


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyTransaction:
    def __init__(self, store: SQLAlchemyDocumentStore) -> None:
        self._store = store
        self._reads: dict[DocumentRef, Document | None] = {}
        self._writes: dict[DocumentRef, dict[str, Any]] = {}
        self._creates: dict[DocumentRef, dict[str, Any]] = {}
        self._done = False

    async def read_with_version(self, ref: DocumentRef) -> Document | None:
        self._ensure_open()
        doc = await self._store.get(ref)
        self._reads[ref] = doc
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
        self._done = True
        touched: dict[str, CollectionRef] = {}

        async with _translate("commit"):
            async with self._store._session_factory() as session, session.begin():
                # writes first: once the first guarded UPDATE lands, this
                # transaction holds the write lock for the read checks below
                for ref, fields in self._writes.items():
                    seen = cast(Document, self._reads[ref])
                    stmt = (
                        update(DocumentRow)
                        .where(
                            DocumentRow.collection == ref.collection.path,
                            DocumentRow.id == ref.id,
                            DocumentRow.version == seen.version,
                        )
                        .values(data={**seen.data, **fields}, version=seen.version + 1)
                    )
                    cursor = cast(CursorResult[Any], await session.execute(stmt))
                    if cursor.rowcount == 0:
                        raise TransactionConflict(ref.path)
                    touched[ref.collection.path] = ref.collection

                for ref, fields in self._creates.items():
                    session.add(DocumentRow(
                        collection=ref.collection.path,
                        id=ref.id,
                        version=1,
                        data=fields,
                    ))
                    touched[ref.collection.path] = ref.collection
                try:
                    await session.flush()
                except IntegrityError as e:
                    raise TransactionConflict(next(iter(self._creates)).path) from e

                for ref, seen in self._reads.items():
                    if ref in self._writes:
                        continue
                    current = await session.scalar(
                        select(DocumentRow.version).where(
                            DocumentRow.collection == ref.collection.path,
                            DocumentRow.id == ref.id,
                        )
                    )
                    if current != (seen.version if seen else None):
                        raise TransactionConflict(ref.path)

        await self._store._publish(touched)

    async def abort(self) -> None:
        self._done = True

    def _ensure_open(self) -> None:
        if self._done:
            raise RuntimeError("transaction already finished")


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyDocumentStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        """
        Args:
            session_factory: SQLAlchemy async session factory
            engine: disposed on close() when given
        """
        self._session_factory = session_factory
        self._engine = engine
        self._feeds = ChangeFeedHub()
        self._initial_loads: set[asyncio.Task[None]] = set()
        self._feed_locks: dict[str, asyncio.Lock] = {}

    @classmethod
    async def connect(cls, url: str, **engine_options: Any) -> SQLAlchemyDocumentStore:
        """Create the engine and the documents table, return a ready store."""
        engine = create_async_engine(url, **engine_options)
        async with _translate("connect"):
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        return cls(async_sessionmaker(engine, expire_on_commit=False), engine)

    async def create(self, collection: CollectionRef, fields: Mapping[str, Any]) -> Document:
        row = DocumentRow(
            collection=collection.path,
            id=new_document_id(),
            version=1,
            data=dict(fields),
        )
        doc = _to_document(collection, row)
        async with _translate("create"):
            async with self._session_factory() as session, session.begin():
                session.add(row)
        await self._publish({collection.path: collection})
        return doc

    async def get(self, ref: DocumentRef) -> Document | None:
        async with _translate("get"):
            async with self._session_factory() as session:
                row = await session.get(DocumentRow, (ref.collection.path, ref.id))
                return _to_document(ref.collection, row) if row else None

    async def update(self, ref: DocumentRef, fields: Mapping[str, Any]) -> Document:
        async with _translate("update"):
            async with self._session_factory() as session, session.begin():
                row = await session.get(DocumentRow, (ref.collection.path, ref.id))
                if row is None:
                    raise NotFound(ref.collection.name, ref.id)
                merged = {**row.data, **fields}
                stmt = (
                    update(DocumentRow)
                    .where(
                        DocumentRow.collection == ref.collection.path,
                        DocumentRow.id == ref.id,
                        DocumentRow.version == row.version,
                    )
                    .values(data=merged, version=row.version + 1)
                    .execution_options(synchronize_session=False)
                )
                cursor = cast(CursorResult[Any], await session.execute(stmt))
                if cursor.rowcount == 0:
                    raise TransactionConflict(ref.path)
                doc = Document(ref, dict(merged), row.version + 1)
        await self._publish({ref.collection.path: ref.collection})
        return doc

    async def delete(self, ref: DocumentRef) -> bool:
        async with _translate("delete"):
            async with self._session_factory() as session, session.begin():
                stmt = delete(DocumentRow).where(
                    DocumentRow.collection == ref.collection.path,
                    DocumentRow.id == ref.id,
                )
                cursor = cast(CursorResult[Any], await session.execute(stmt))
                existed = cursor.rowcount > 0
        if existed:
            await self._publish({ref.collection.path: ref.collection})
        return existed

    async def list(self, collection: CollectionRef) -> tuple[Document, ...]:
        async with _translate("list"):
            async with self._session_factory() as session:
                rows = await session.scalars(
                    select(DocumentRow)
                    .where(DocumentRow.collection == collection.path)
                    .order_by(DocumentRow.id)
                )
                return tuple(_to_document(collection, row) for row in rows)

    async def begin_transaction(self) -> SQLAlchemyTransaction:
        return SQLAlchemyTransaction(self)

    def subscribe_change_feed(
        self,
        collection: CollectionRef,
        on_snapshot: SnapshotListener,
        on_error: ErrorListener,
    ) -> FeedSubscription:
        """
        The initial snapshot is loaded in the background; listeners get it
        once the load finishes rather than before this call returns. It is
        dropped if a commit snapshot reached the listener first.
        """
        sub = self._feeds.add(collection, on_snapshot, on_error)

        async def initial() -> None:
            async with self._feed_lock(collection):
                try:
                    docs = await self.list(collection)
                except TransientStoreError as e:
                    logger.error("change feed for %s failed: %s", collection.path, e)
                    sub.fail(e)
                    return
                if sub.delivered == 0:
                    sub.deliver(CollectionSnapshot(collection, docs))

        task = asyncio.get_running_loop().create_task(initial())
        self._initial_loads.add(task)
        task.add_done_callback(self._initial_loads.discard)
        return sub

    async def close(self) -> None:
        self._feeds.close_all()
        for task in list(self._initial_loads):
            task.cancel()
        if self._engine is not None:
            await self._engine.dispose()

    def _feed_lock(self, collection: CollectionRef) -> asyncio.Lock:
        """
        Serializes list-then-deliver per collection.

        A snapshot is read only after the previous one was delivered, so it
        reflects every commit that finished before it; deliveries never go
        back in time.
        """
        lock = self._feed_locks.get(collection.path)
        if lock is None:
            lock = self._feed_locks[collection.path] = asyncio.Lock()
        return lock

    async def _publish(self, touched: dict[str, CollectionRef]) -> None:
        for collection in touched.values():
            if not self._feeds.watching(collection):
                continue
            async with self._feed_lock(collection):
                try:
                    docs = await self.list(collection)
                except TransientStoreError as e:
                    logger.error("change feed for %s failed: %s", collection.path, e)
                    self._feeds.fail(collection, e)
                    continue
                self._feeds.publish(CollectionSnapshot(collection, docs))


__all__ = (
    "Base",
    "DocumentRow",
    "SQLAlchemyDocumentStore",
    "SQLAlchemyTransaction",
)
