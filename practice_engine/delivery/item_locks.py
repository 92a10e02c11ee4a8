"""
Per-item locks for wrong-item mutation.

Recording a review reads the prior schedule, computes the next one and
persists it. Two concurrent recordings for one item would both read the
same prior state, so each item id gets its own lock and persistence
refuses items whose lock the current thread does not hold.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from practice_engine.core.exceptions import ConflictError


class ItemLockRegistry:
    """
    Thread-safe registry of one lock per wrong-item id.

    An entry lives only while some thread holds or waits on it.
    """

    def __init__(self, timeout_seconds: float | None = None):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}
        self._owners: dict[str, int] = {}
        self.timeout_seconds = timeout_seconds

    def _checkout(self, item_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(item_id)
            if lock is None:
                lock = self._locks[item_id] = threading.Lock()
            self._users[item_id] = self._users.get(item_id, 0) + 1
            return lock

    def _checkin(self, item_id: str) -> None:
        # Caller holds _guard
        remaining = self._users[item_id] - 1
        if remaining:
            self._users[item_id] = remaining
        else:
            del self._users[item_id]
            del self._locks[item_id]

    @property
    def active_count(self) -> int:
        """Number of ids currently held or waited on."""
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, item_id: str) -> Iterator[None]:
        """Hold the lock for ``item_id`` for the duration of the block."""
        if self.is_held(item_id):
            raise ConflictError(f"lock for wrong item {item_id} is already held by this thread")

        lock = self._checkout(item_id)
        acquired = lock.acquire(timeout=-1 if self.timeout_seconds is None else self.timeout_seconds)
        if not acquired:
            with self._guard:
                self._checkin(item_id)
            raise ConflictError(f"timed out waiting for the lock on wrong item {item_id}")

        with self._guard:
            self._owners[item_id] = threading.get_ident()
        try:
            yield
        finally:
            with self._guard:
                self._owners.pop(item_id, None)
                lock.release()
                self._checkin(item_id)

    def is_held(self, item_id: str) -> bool:
        """True when the current thread holds the lock for ``item_id``."""
        with self._guard:
            return self._owners.get(item_id) == threading.get_ident()

    def require(self, item_id: str) -> None:
        """Raise ConflictError unless the current thread holds the item's lock."""
        if not self.is_held(item_id):
            raise ConflictError(f"wrong item {item_id} mutated without holding its lock")
