"""Per-key locking for the score cache."""

import logging
import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class KeyedLock:
    """
    Mutual exclusion per key, no coordination across keys.

    Entries are reference counted and removed once the last holder or waiter
    leaves, so the table only grows with concurrently active keys.

    The cleanup follows the singleflight rules:
    - Registration and cleanup happen under a short guard lock
    - The per-key lock is awaited outside the guard
    - An entry is only removed if it is still THIS entry
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _LockEntry] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for key for the duration of the with-block."""
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _LockEntry()
                self._entries[key] = entry
            else:
                logger.debug(f"KeyedLock({key}): waiting on in-flight holder")
            entry.holders += 1

        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0 and self._entries.get(key) is entry:
                    self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


class GlobalLock:
    """KeyedLock-compatible lock that serializes every key behind one mutex."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._lock:
            yield
