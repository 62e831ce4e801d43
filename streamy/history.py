"""
Bounded per-room chat log
"""
from collections import deque
from typing import Any, Deque, List

DEFAULT_HISTORY_LIMIT = 50


class ChatHistory:
    """Ordered chat log holding at most ``limit`` entries.

    Appending beyond the cap evicts the oldest entry, so the newest
    ``limit`` payloads are always retained in insertion order.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("history limit must be at least 1")
        self.limit = limit
        self._entries: Deque[Any] = deque(maxlen=limit)

    def append(self, entry: Any) -> None:
        self._entries.append(entry)

    def snapshot(self) -> List[Any]:
        """Return a copy of the retained entries, oldest first"""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)
