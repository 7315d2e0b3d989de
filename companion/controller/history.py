"""Capped, thread-safe chat history."""

from __future__ import annotations

import threading
from collections import deque

from .models import ChatRole, ChatTurn


class ChatHistory:
    """Ordered user/assistant turns, capped at ``max_turns`` (oldest evicted first).

    System turns are not stored; the inference client prepends the current
    system prompt to each request instead.
    """

    def __init__(self, max_turns: int = 10) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self._turns: deque[ChatTurn] = deque(maxlen=max_turns)
        self._lock = threading.Lock()

    @property
    def max_turns(self) -> int:
        return self._turns.maxlen or 0

    def append(self, turn: ChatTurn) -> None:
        if turn.role == ChatRole.SYSTEM:
            raise ValueError("System turns are not kept in chat history")
        with self._lock:
            self._turns.append(turn)

    def turns(self) -> list[ChatTurn]:
        with self._lock:
            return list(self._turns)

    def clear(self) -> None:
        with self._lock:
            self._turns.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)


__all__ = ["ChatHistory"]
