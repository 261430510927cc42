"""Caller-owned undo history of route snapshots."""

from __future__ import annotations

from collections import deque
from typing import Deque, Optional

from .config import UNDO_HISTORY_DEPTH
from .models import RouteSnapshot


class RouteHistory:
    """Bounded LIFO stack of :class:`RouteSnapshot` objects.

    Push a snapshot before each mutating call on the engine and pop it to
    undo. When the stack is full the oldest snapshot is discarded.
    """

    def __init__(self, max_depth: int = UNDO_HISTORY_DEPTH) -> None:
        self._max_depth = max(1, max_depth)
        self._stack: Deque[RouteSnapshot] = deque(maxlen=self._max_depth)

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def can_undo(self) -> bool:
        return bool(self._stack)

    def push(self, snapshot: RouteSnapshot) -> None:
        self._stack.append(snapshot)

    def pop(self) -> Optional[RouteSnapshot]:
        """Return the most recent snapshot, or ``None`` when empty."""
        if not self._stack:
            return None
        return self._stack.pop()

    def peek(self) -> Optional[RouteSnapshot]:
        return self._stack[-1] if self._stack else None

    def clear(self) -> None:
        self._stack.clear()

    def __len__(self) -> int:
        return len(self._stack)


__all__ = ["RouteHistory"]
