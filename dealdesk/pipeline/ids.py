"""Deal identifier generation."""

from __future__ import annotations

import itertools
import threading
import time
from typing import Callable


class DealIdGenerator:
    """Produces ids shaped ``{prefix}-{epoch_ms}-{sequence}``.

    The sequence continues from ``start`` (usually the number of stored
    deals) so ids stay distinguishable across restarts.
    """

    def __init__(
        self,
        prefix: str = "DEAL",
        start: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        self.prefix = prefix
        self._clock = clock
        self._counter = itertools.count(start + 1)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            seq = next(self._counter)
        return f"{self.prefix}-{int(self._clock() * 1000)}-{seq}"
