from __future__ import annotations

import asyncio

from stockroom.metrics import compute
from stockroom.store import MemoryDocumentStore, Namespace
from stockroom.sync import MirrorState, Snapshot, Synchronizer


NS = Namespace("test-app", "user-1")
PRODUCT = {"name": "Widget", "stock": 4, "price": "2.00"}
ORDER = {
    "productId": "p1",
    "productName": "Widget",
    "quantity": 2,
    "totalPrice": "4.00",
    "status": "Pending",
    "orderedAt": "2026-03-01T09:30:00.000Z",
}


def test_initial_snapshot_populates_both_mirrors() -> None:
    async def main() -> None:
        store = MemoryDocumentStore()
        await store.create(NS.products, PRODUCT)
        await store.create(NS.orders, ORDER)

        async with Synchronizer(store, NS) as sync:
            await sync.wait_synced(timeout=1.0)
            assert len(sync.state.products) == 1
            assert len(sync.state.orders) == 1
            assert sync.state.metrics.low_stock_products == 1
            assert sync.stale == frozenset()

    asyncio.run(main())


def test_mirror_is_replaced_not_merged() -> None:
    async def main() -> None:
        store = MemoryDocumentStore()
        first = await store.create(NS.products, PRODUCT)
        state = MirrorState()

        async with Synchronizer(store, NS, state):
            await store.create(NS.products, {**PRODUCT, "name": "Gadget"})
            assert {p.name for p in state.products} == {"Widget", "Gadget"}

            await store.delete(first.ref)
            assert [p.name for p in state.products] == ["Gadget"]
            assert state.product(first.id) is None

    asyncio.run(main())


def test_observers_get_every_revision() -> None:
    async def main() -> None:
        store = MemoryDocumentStore()
        state = MirrorState()
        seen: list[Snapshot] = []
        unsubscribe = state.subscribe(seen.append)

        async with Synchronizer(store, NS, state):
            await store.create(NS.products, PRODUCT)
            unsubscribe()
            await store.create(NS.products, PRODUCT)

        revisions = [s.revision for s in seen]
        assert revisions == sorted(revisions) and len(set(revisions)) == len(revisions)
        assert len(seen[-1].products) == 1
        assert state.revision > seen[-1].revision

    asyncio.run(main())


def test_failing_observer_does_not_stop_others() -> None:
    async def main() -> None:
        store = MemoryDocumentStore()
        state = MirrorState()
        seen: list[Snapshot] = []

        def broken(snapshot: Snapshot) -> None:
            raise RuntimeError("render failed")

        state.subscribe(broken)
        state.subscribe(seen.append)
        async with Synchronizer(store, NS, state):
            await store.create(NS.products, PRODUCT)

        assert seen and len(seen[-1].products) == 1

    asyncio.run(main())


def test_malformed_documents_are_skipped() -> None:
    async def main() -> None:
        store = MemoryDocumentStore()
        await store.create(NS.products, PRODUCT)
        await store.create(NS.products, {"name": "No stock"})
        await store.create(NS.orders, {**ORDER, "status": "Shipped"})

        async with Synchronizer(store, NS) as sync:
            assert [p.name for p in sync.state.products] == ["Widget"]
            assert sync.state.orders == ()

    asyncio.run(main())


def test_feed_error_leaves_mirror_stale_until_resubscribe() -> None:
    async def main() -> None:
        store = MemoryDocumentStore()
        await store.create(NS.products, PRODUCT)

        async with Synchronizer(store, NS) as sync:
            store.interrupt_feed(NS.products)
            assert sync.stale == frozenset({"products"})

            await store.create(NS.products, {**PRODUCT, "name": "Gadget"})
            assert [p.name for p in sync.state.products] == ["Widget"]

            sync.resubscribe()
            assert sync.stale == frozenset()
            assert {p.name for p in sync.state.products} == {"Widget", "Gadget"}

    asyncio.run(main())


def test_stop_detaches_feeds() -> None:
    async def main() -> None:
        store = MemoryDocumentStore()
        sync = Synchronizer(store, NS)
        sync.start()
        assert sync.running
        sync.stop()
        assert not sync.running

        await store.create(NS.products, PRODUCT)
        assert sync.state.products == ()

    asyncio.run(main())


def test_metrics_match_recomputation_from_mirrors() -> None:
    async def main() -> None:
        store = MemoryDocumentStore()
        async with Synchronizer(store, NS) as sync:
            await store.create(NS.products, PRODUCT)
            await store.create(NS.products, {**PRODUCT, "stock": 50})
            await store.create(NS.orders, ORDER)
            await store.create(NS.orders, {**ORDER, "status": "Fulfilled"})

            state = sync.state
            assert state.metrics == compute(state.products, state.orders)

    asyncio.run(main())
