"""
In-process change-feed fan-out shared by the bundled stores.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from stockroom.store._types import (
    CollectionRef,
    CollectionSnapshot,
    SnapshotListener,
    ErrorListener,
)


logger = logging.getLogger("stockroom.store")


@dataclass(slots=True, eq=False)
class FeedSubscription:
    collection: CollectionRef
    on_snapshot: SnapshotListener
    on_error: ErrorListener
    _detach: Callable[[FeedSubscription], None] = field(repr=False)
    _active: bool = True
    delivered: int = 0

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if self._active:
            self._active = False
            self._detach(self)

    def deliver(self, snapshot: CollectionSnapshot) -> None:
        if not self._active:
            return
        self.delivered += 1
        try:
            self.on_snapshot(snapshot)
        except Exception:
            logger.exception("snapshot listener for %s failed", self.collection.path)

    def fail(self, error: Exception) -> None:
        if not self._active:
            return
        self.close()
        try:
            self.on_error(self.collection, error)
        except Exception:
            logger.exception("error listener for %s failed", self.collection.path)


class ChangeFeedHub:
    """
    Subscriptions by collection path.

    Delivery is synchronous, in commit order. A listener that raises is
    logged and does not affect the writer or other listeners.
    """

    def __init__(self) -> None:
        self._subs: dict[str, list[FeedSubscription]] = {}

    def add(
        self,
        collection: CollectionRef,
        on_snapshot: SnapshotListener,
        on_error: ErrorListener,
    ) -> FeedSubscription:
        sub = FeedSubscription(collection, on_snapshot, on_error, self._remove)
        self._subs.setdefault(collection.path, []).append(sub)
        return sub

    def _remove(self, sub: FeedSubscription) -> None:
        subs = self._subs.get(sub.collection.path, [])
        if sub in subs:
            subs.remove(sub)
        if not subs:
            self._subs.pop(sub.collection.path, None)

    def watching(self, collection: CollectionRef) -> bool:
        return bool(self._subs.get(collection.path))

    def publish(self, snapshot: CollectionSnapshot) -> None:
        for sub in list(self._subs.get(snapshot.collection.path, ())):
            sub.deliver(snapshot)

    def fail(self, collection: CollectionRef, error: Exception) -> None:
        for sub in list(self._subs.get(collection.path, ())):
            sub.fail(error)

    def close_all(self) -> None:
        for subs in list(self._subs.values()):
            for sub in list(subs):
                sub.close()
        self._subs.clear()


__all__ = ("FeedSubscription", "ChangeFeedHub")
