"""Per-bundle mutual exclusion within one process.

Writers to the same bundle id are serialized; different bundle ids use
independent locks. Nothing here coordinates separate processes, so
concurrent writers to one bundle from several processes are unsafe.
A registry with the same ``hold`` signature backed by advisory lock
files can be passed to ``BundleStore`` to cover that case.
"""

from __future__ import annotations

from contextlib import contextmanager
import threading
from typing import Iterator


class BundleLockRegistry:
    """Lazily created ``threading.Lock`` per bundle id.

    Entries are never evicted, including after the bundle is removed: a
    thread may still be waiting on a lock, and replacing it would let a
    second writer into the same bundle. The registry therefore grows by
    one small lock per distinct bundle path touched in the process.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, bundle_id: str) -> threading.Lock:
        """Return the lock owned by a bundle id, creating it once."""
        with self._guard:
            lock = self._locks.get(bundle_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[bundle_id] = lock
            return lock

    @contextmanager
    def hold(self, bundle_id: str) -> Iterator[None]:
        """Hold the bundle lock for the duration of the block."""
        with self.lock_for(bundle_id):
            yield
