"""
Keyed lock registry.

Seat counters are serialized per flight and booking transitions per booking.
Locks are re-entrant so a caller already holding a flight lock can call
inventory primitives that take the same lock.

A key's lock only lives while someone holds or waits on it, so keys taken
from request paths never pile up.
"""

import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Hashable, Iterator, List


class LockRegistry:
    """Hands out one RLock per key, created on first use and dropped when idle"""

    def __init__(self, name: str = "locks"):
        self.name = name
        # key -> [lock, number of holders and waiters]
        self._locks: Dict[Hashable, List] = {}
        self._guard = threading.Lock()

    def _checkout(self, key: Hashable) -> threading.RLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[key] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: Hashable) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def _hold_one(self, key: Hashable) -> Iterator[None]:
        lock = self._checkout(key)
        try:
            with lock:
                yield
        finally:
            self._checkin(key)

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        """Acquire the locks for all keys in sorted order to avoid deadlocks"""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._hold_one(key))
            yield

    def __len__(self) -> int:
        return len(self._locks)
