"""Unit tests for per-bundle lock registry."""

from __future__ import annotations

import threading

from store.bundle_locks import BundleLockRegistry


def test_same_bundle_shares_one_lock() -> None:
    """Repeated lookups for one bundle should return the same lock."""
    registry = BundleLockRegistry()

    assert registry.lock_for("prices") is registry.lock_for("prices")


def test_different_bundles_do_not_block_each_other() -> None:
    """Holding one bundle lock should leave other bundles free."""
    registry = BundleLockRegistry()

    with registry.hold("prices"):
        acquired = registry.lock_for("volumes").acquire(blocking=False)
        registry.lock_for("volumes").release()

    assert acquired


def test_hold_excludes_other_threads() -> None:
    """A second thread should wait while the bundle lock is held."""
    registry = BundleLockRegistry()
    acquired_in_thread: list[bool] = []

    def _try_acquire() -> None:
        lock = registry.lock_for("prices")
        acquired_in_thread.append(lock.acquire(blocking=False))

    with registry.hold("prices"):
        worker = threading.Thread(target=_try_acquire)
        worker.start()
        worker.join()

    assert acquired_in_thread == [False]
    assert not registry.lock_for("prices").locked()


def test_released_lock_is_kept_for_later_writers() -> None:
    """Releasing a bundle lock should not replace it for the next writer."""
    registry = BundleLockRegistry()
    first = registry.lock_for("prices")

    with registry.hold("prices"):
        pass

    assert registry.lock_for("prices") is first
