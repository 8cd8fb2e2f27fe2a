"""
Sync — local mirrors of the product and order collections.

    from stockroom import sync as Y

    state = Y.MirrorState()
    unsubscribe = state.subscribe(lambda snap: render(snap.metrics))

    async with Y.Synchronizer(store, namespace, state) as sync:
        ...
        if sync.stale:
            sync.resubscribe()
"""

from stockroom.sync._state import Snapshot, Observer, MirrorState
from stockroom.sync._synchronizer import Synchronizer


__all__ = ("Snapshot", "Observer", "MirrorState", "Synchronizer")
