"""KeyedLock — per-key mutual exclusion for in-process stores.

Operations on different keys never contend; operations on the same key
are serialized. Lock objects are reference counted and dropped once no
thread holds or waits on them, so the table does not grow with the
number of keys ever seen.
"""
from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class KeyedLock:
    """A table of re-entrant locks keyed by string.

    Example
    -------
    ::

        locks = KeyedLock()
        with locks.hold("did:ethr:codemtn:abc"):
            ...  # exclusive for this key only
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}
        self._refcounts: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the lock for *key* for the duration of the ``with`` block."""
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            self._refcounts[key] = self._refcounts.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                remaining = self._refcounts[key] - 1
                if remaining:
                    self._refcounts[key] = remaining
                else:
                    del self._refcounts[key]
                    del self._locks[key]

    def __len__(self) -> int:
        """Return the number of keys currently held or awaited."""
        with self._guard:
            return len(self._locks)


__all__ = ["KeyedLock"]
