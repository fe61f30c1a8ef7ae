from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterator


class BoundedLRUSet:
    """Insertion-ordered set that evicts the least recently touched key."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._items: OrderedDict[str, None] = OrderedDict()

    def add(self, key: str) -> None:
        if key in self._items:
            self._items.move_to_end(key)
            return
        self._items[key] = None
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)


class RecentKeys:
    """Keys remembered for a time window, bounded to ``capacity`` entries."""

    def __init__(self, capacity: int, window_ms: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.window_ms = window_ms
        self._seen: OrderedDict[str, int] = OrderedDict()

    def seen_within_window(self, key: str, now_ms: int) -> bool:
        last = self._seen.get(key)
        if last is None:
            return False
        return now_ms - last < self.window_ms

    def mark(self, key: str, now_ms: int) -> None:
        self._seen.pop(key, None)
        self._seen[key] = now_ms
        while len(self._seen) > self.capacity:
            self._seen.popitem(last=False)

    def __len__(self) -> int:
        return len(self._seen)
