"""Per-deal locks serializing mutations within one process."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class DealLockRegistry:
    """Hands out one lock per deal id.

    Mutations of the same deal run one at a time; different deals never
    wait on each other. An entry lives only while someone holds or waits on
    it, so ids that fail lookup leave nothing behind. Cross-process safety
    comes from the repository's version check, not from here.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    @contextmanager
    def hold(self, deal_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(deal_id)
            if lock is None:
                lock = self._locks[deal_id] = threading.Lock()
            self._users[deal_id] = self._users.get(deal_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[deal_id] -= 1
                if self._users[deal_id] == 0:
                    del self._users[deal_id]
                    del self._locks[deal_id]

    def __len__(self) -> int:
        return len(self._locks)
