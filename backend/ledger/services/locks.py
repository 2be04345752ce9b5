"""Per-entity mutexes serialising reconciliations inside one process.

Two edits to payments of the same party could otherwise interleave between
"reverse" and "reapply".  Keys are tuples such as ``("party", 7)``; they are
always acquired in sorted order so overlapping key sets cannot deadlock.  The
locks are re-entrant, so a service method may call another one that locks the
same keys.  A key's lock is dropped once no thread holds or waits for it.
"""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Hashable, Iterable, Iterator


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class KeyedLock:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: dict[Hashable, _Slot] = {}

    def _checkout(self, key: Hashable) -> threading.RLock:
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = _Slot()
            slot.users += 1
            return slot.lock

    def _checkin(self, key: Hashable) -> None:
        with self._guard:
            slot = self._slots[key]
            slot.users -= 1
            if slot.users == 0:
                del self._slots[key]

    @contextmanager
    def hold(self, keys: Iterable[Hashable]) -> Iterator[None]:
        ordered = sorted({key for key in keys if key is not None}, key=repr)
        with ExitStack() as stack:
            for key in ordered:
                lock = self._checkout(key)
                stack.callback(self._checkin, key)
                lock.acquire()
                stack.callback(lock.release)
            yield

    def __len__(self) -> int:
        """Number of keys currently held or waited for."""
        with self._guard:
            return len(self._slots)


# Shared by every service instance of this process; the services themselves
# are built per call with their own store.
process_locks = KeyedLock()
