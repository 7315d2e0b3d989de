"""Bounded, thread-safe FIFO of text units."""

from __future__ import annotations

import threading
from collections import deque

from companion.common.logging import get_logger

from .models import TextUnit

logger = get_logger(__name__)


class TextBuffer:
    """Fixed-capacity FIFO that evicts the oldest unit on overflow.

    All operations share one lock and none of them block waiting for data:
    ``pop_oldest`` returns ``None`` straight away on an empty buffer.
    """

    def __init__(self, capacity: int = 4096) -> None:
        if capacity < 1:
            raise ValueError("Buffer capacity must be at least 1")
        self._capacity = capacity
        self._units: deque[TextUnit] = deque()
        self._lock = threading.Lock()
        self._evicted = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted_count(self) -> int:
        with self._lock:
            return self._evicted

    def push(self, unit: TextUnit) -> None:
        evicted = 0
        with self._lock:
            self._units.append(unit)
            while len(self._units) > self._capacity:
                self._units.popleft()
                evicted += 1
            self._evicted += evicted
            depth = len(self._units)

        if evicted:
            logger.debug("text_buffer.evicted", evicted=evicted, depth=depth)
        logger.debug("text_buffer.pushed", source=unit.source, depth=depth)

    def pop_oldest(self) -> TextUnit | None:
        with self._lock:
            if not self._units:
                return None
            return self._units.popleft()

    def snapshot(self) -> list[TextUnit]:
        with self._lock:
            return list(self._units)

    def __len__(self) -> int:
        with self._lock:
            return len(self._units)


__all__ = ["TextBuffer"]
