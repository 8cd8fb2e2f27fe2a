from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from kungfu import Error, Ok

from stockroom import ConfigurationError, NotFound, ProductDraft, TransactionConflict
from stockroom.orders import ActionErrorKind, Inventory
from stockroom.retry import Backoff, Executor, RetryPolicy
from stockroom.store import (
    CollectionRef,
    CollectionSnapshot,
    Document,
    Namespace,
    SQLAlchemyDocumentStore,
    open_store,
)
from stockroom.sync import MirrorState, Synchronizer


NS = Namespace("test-app", "user-1")


def url_for(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'stock.db'}"


async def eventually(predicate, timeout: float = 2.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.01)


def test_crud_round_trip(tmp_path: Path) -> None:
    async def main() -> None:
        store = await SQLAlchemyDocumentStore.connect(url_for(tmp_path))
        try:
            created = await store.create(NS.products, {"name": "Widget", "stock": 3, "price": "2.50"})
            fetched = await store.get(created.ref)
            assert fetched is not None
            assert fetched.data == {"name": "Widget", "stock": 3, "price": "2.50"}
            assert fetched.version == 1

            updated = await store.update(created.ref, {"stock": 2})
            assert updated.version == 2
            assert updated.data["name"] == "Widget" and updated.data["stock"] == 2

            assert await store.delete(created.ref) is True
            assert await store.delete(created.ref) is False
            with pytest.raises(NotFound):
                await store.update(created.ref, {"stock": 1})
        finally:
            await store.close()

    asyncio.run(main())


def test_data_survives_reconnect(tmp_path: Path) -> None:
    async def main() -> None:
        store = await SQLAlchemyDocumentStore.connect(url_for(tmp_path))
        for i in range(3):
            await store.create(NS.products, {"n": i})
        await store.close()

        reopened = await SQLAlchemyDocumentStore.connect(url_for(tmp_path))
        try:
            docs = await reopened.list(NS.products)
            assert len(docs) == 3
            assert [d.id for d in docs] == sorted(d.id for d in docs)
        finally:
            await reopened.close()

    asyncio.run(main())


def test_guarded_write_conflicts_after_concurrent_commit(tmp_path: Path) -> None:
    async def main() -> None:
        store = await SQLAlchemyDocumentStore.connect(url_for(tmp_path))
        try:
            product = await store.create(NS.products, {"stock": 10})

            first = await store.begin_transaction()
            second = await store.begin_transaction()
            await first.read_with_version(product.ref)
            await second.read_with_version(product.ref)
            first.conditional_write(product.ref, {"stock": 7})
            first.create(NS.orders, {"quantity": 3})
            second.conditional_write(product.ref, {"stock": 5})
            second.create(NS.orders, {"quantity": 5})

            await first.commit_or_abort()
            with pytest.raises(TransactionConflict):
                await second.commit_or_abort()

            after = await store.get(product.ref)
            assert after is not None and after.data["stock"] == 7
            orders = await store.list(NS.orders)
            assert [o.data["quantity"] for o in orders] == [3]
        finally:
            await store.close()

    asyncio.run(main())


def test_read_only_entries_are_validated(tmp_path: Path) -> None:
    async def main() -> None:
        store = await SQLAlchemyDocumentStore.connect(url_for(tmp_path))
        try:
            a = await store.create(NS.products, {"stock": 1})
            b = await store.create(NS.products, {"stock": 1})

            txn = await store.begin_transaction()
            await txn.read_with_version(a.ref)
            await txn.read_with_version(b.ref)
            txn.conditional_write(a.ref, {"stock": 0})
            await store.update(b.ref, {"stock": 9})

            with pytest.raises(TransactionConflict):
                await txn.commit_or_abort()

            after = await store.get(a.ref)
            assert after is not None and after.data["stock"] == 1
        finally:
            await store.close()

    asyncio.run(main())


def test_change_feed_follows_commits(tmp_path: Path) -> None:
    async def main() -> None:
        store = await SQLAlchemyDocumentStore.connect(url_for(tmp_path))
        try:
            await store.create(NS.products, {"n": 1})
            seen: list[CollectionSnapshot] = []
            store.subscribe_change_feed(NS.products, seen.append, lambda c, e: None)

            await eventually(lambda: len(seen) >= 1)
            assert len(seen[-1]) == 1

            await store.create(NS.products, {"n": 2})
            assert len(seen[-1]) == 2
        finally:
            await store.close()

    asyncio.run(main())


class SlowSnapshotStore(SQLAlchemyDocumentStore):
    """Holds the next listed snapshot back after reading it."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.hold: float = 0.0
        self.read = asyncio.Event()

    async def list(self, collection: CollectionRef) -> tuple[Document, ...]:
        docs = await super().list(collection)
        if self.hold:
            delay, self.hold = self.hold, 0.0
            self.read.set()
            await asyncio.sleep(delay)
        return docs


def test_change_feed_never_delivers_an_older_snapshot_last(tmp_path: Path) -> None:
    async def main() -> None:
        store = await SlowSnapshotStore.connect(url_for(tmp_path))
        try:
            product = await store.create(NS.products, {"stock": 10})
            seen: list[CollectionSnapshot] = []
            store.subscribe_change_feed(NS.products, seen.append, lambda c, e: None)
            await eventually(lambda: len(seen) >= 1)

            store.hold = 0.1
            first = asyncio.create_task(store.update(product.ref, {"stock": 7}))
            await store.read.wait()
            await store.update(product.ref, {"stock": 4})
            await first

            assert [doc.data["stock"] for doc in seen[-1].documents] == [4]
        finally:
            await store.close()

    asyncio.run(main())


def test_no_oversell_and_no_mirror_drift_under_concurrent_orders(tmp_path: Path) -> None:
    async def main() -> None:
        store = await SQLAlchemyDocumentStore.connect(url_for(tmp_path))
        state = MirrorState()
        policy = RetryPolicy(max_attempts=10, backoff=Backoff(initial=0.001, jitter=0.001))
        inventory = Inventory(store, NS, state, executor=Executor(policy))
        try:
            async with Synchronizer(store, NS, state) as sync:
                await sync.wait_synced(timeout=2.0)
                match await inventory.create_product(ProductDraft.of("Widget", 10, "1.00")):
                    case Ok(product):
                        pid = product.id
                    case Error(e):
                        raise AssertionError(e.message)

                results = await asyncio.gather(
                    *(inventory.place_order(pid, 3) for _ in range(6))
                )

                placed = [r for r in results if isinstance(r, Ok)]
                rejected = [r for r in results if isinstance(r, Error)]
                assert len(placed) == 3
                assert all(r.error.kind is ActionErrorKind.INSUFFICIENT_STOCK for r in rejected)

                stored = await store.get(NS.products.document(pid))
                assert stored is not None and stored.data["stock"] == 1
                assert len(await store.list(NS.orders)) == 3

                mirrored = state.product(pid)
                assert mirrored is not None and mirrored.stock == 1
                assert len(state.orders) == 3
                assert state.metrics.total_stock_value == 1
                assert not sync.stale
        finally:
            await store.close()

    asyncio.run(main())


def test_open_store_builds_sqlalchemy_backend(tmp_path: Path) -> None:
    async def main() -> None:
        store = await open_store({"backend": "sqlalchemy", "url": url_for(tmp_path)})
        try:
            assert isinstance(store, SQLAlchemyDocumentStore)
        finally:
            await store.close()

    asyncio.run(main())


@pytest.mark.parametrize(
    "config",
    [
        None,
        {},
        {"backend": "firestore"},
        {"backend": "sqlalchemy"},
        {"backend": "sqlalchemy", "url": "not a url"},
        {"backend": "memory", "latency": -1},
    ],
)
def test_open_store_rejects_bad_config(config) -> None:
    with pytest.raises(ConfigurationError):
        asyncio.run(open_store(config))
