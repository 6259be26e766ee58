"""Per-record critical sections for concurrent request handlers."""

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLocks:
    """
    Registry of one lock per key, created on demand and dropped when unused.

    Requests touching different records never contend; requests touching the
    same record serialize their ownership check and mutation.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> (lock, number of threads holding or waiting on it)
        self._locks: dict[Hashable, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                _, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Process-wide registry keyed by call record id.
record_locks = KeyedLocks()
