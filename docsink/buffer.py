"""
In-memory buffer of records awaiting a flush.
"""

from typing import Any, List


class EventBuffer:
    """Ordered, append-only queue of records with a fixed capacity.

    The owning WriteManager flushes as soon as is_full() turns true, so the
    length never exceeds the capacity. A capacity of 0 means unbuffered.
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"Buffer capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self.buffer: List[Any] = []

    @property
    def enabled(self) -> bool:
        return self.capacity > 0

    def append(self, record: Any) -> None:
        self.buffer.append(record)

    def is_full(self) -> bool:
        return len(self.buffer) >= self.capacity

    def drain(self) -> List[Any]:
        """Remove and return all buffered records."""
        batch = list(self.buffer)
        self.buffer.clear()
        return batch

    def __len__(self) -> int:
        return len(self.buffer)

    def __bool__(self) -> bool:
        return bool(self.buffer)
