"""
Application wiring — startup sequence and lifetime.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from types import TracebackType

from stockroom.config import Settings
from stockroom.identity import IdentityProvider, LocalIdentityProvider, Principal, authenticate
from stockroom.orders import Inventory
from stockroom.retry import Executor
from stockroom.store import DocumentStore, Namespace, open_store
from stockroom.sync import MirrorState, Synchronizer


logger = logging.getLogger("stockroom")


@dataclass(slots=True)
class App:
    settings: Settings
    store: DocumentStore
    principal: Principal
    namespace: Namespace
    state: MirrorState
    synchronizer: Synchronizer
    inventory: Inventory

    async def close(self) -> None:
        self.synchronizer.stop()
        await self.store.close()

    async def __aenter__(self) -> App:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


async def connect(
    settings: Settings | None = None,
    *,
    identity: IdentityProvider | None = None,
    store: DocumentStore | None = None,
    rng: random.Random | None = None,
) -> App:
    """
    Start a session: validate settings → open store → sign in → start feeds.

    A passed-in `store` skips settings.store. Any ConfigurationError stops
    startup before a store is left open.

    Example:
        async with await connect(Settings().with_store({"backend": "memory"})) as app:
            await app.inventory.simulate_order()
            print(app.state.metrics)
    """
    settings = settings or Settings.from_env()
    if store is None:
        settings.validate()
        store = await open_store(settings.store)

    try:
        principal = await authenticate(
            identity or LocalIdentityProvider(settings.identity_secret),
            settings.auth_token,
        )
        namespace = Namespace(settings.app_id, principal.uid)
        state = MirrorState()
        synchronizer = Synchronizer(store, namespace, state)
        synchronizer.start()
        await synchronizer.wait_synced()
    except BaseException:
        await store.close()
        raise

    if synchronizer.stale:
        logger.warning("starting with stale mirrors: %s", ", ".join(sorted(synchronizer.stale)))

    logger.info(
        "connected as %s%s, namespace %s",
        principal.uid, " (anonymous)" if principal.anonymous else "", namespace.root,
    )
    return App(
        settings=settings,
        store=store,
        principal=principal,
        namespace=namespace,
        state=state,
        synchronizer=synchronizer,
        inventory=Inventory(
            store,
            namespace,
            state,
            executor=Executor(settings.retry, rng=rng),
            rng=rng,
        ),
    )


__all__ = ("App", "connect")
