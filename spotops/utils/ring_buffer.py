"""Fixed-capacity circular index bookkeeping."""

from typing import Iterator, Optional


class RingBuffer:
    """
    Tracks which slots of a fixed-size store are occupied and in what order.

    Only indices are managed here; callers keep their own arrays of length
    ``capacity`` and use the slot returned by ``push``. Once full, each push
    overwrites the oldest slot.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"Capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.head = 0    # next slot to overwrite
        self.count = 0   # occupied slots

    def __len__(self) -> int:
        return self.count

    def is_full(self) -> bool:
        return self.count == self.capacity

    def push(self) -> int:
        """Claim the next slot, evicting the oldest if full. Returns its index."""
        slot = self.head
        self.head = (self.head + 1) % self.capacity
        self.count = min(self.count + 1, self.capacity)
        return slot

    def is_occupied(self, slot: int) -> bool:
        """True if slot holds one of the stored entries."""
        if not 0 <= slot < self.capacity:
            raise IndexError(f"Slot {slot} out of range for capacity {self.capacity}")
        age = (self.head - 1 - slot) % self.capacity  # 0 for newest
        return age < self.count

    @property
    def newest(self) -> Optional[int]:
        """Slot of the most recent entry, or None when empty."""
        if self.count == 0:
            return None
        return (self.head - 1) % self.capacity

    @property
    def oldest(self) -> Optional[int]:
        if self.count == 0:
            return None
        return (self.head - self.count) % self.capacity

    def oldest_to_newest(self) -> Iterator[int]:
        """Occupied slots in insertion order."""
        start = self.head - self.count
        for i in range(self.count):
            yield (start + i) % self.capacity

    def newest_to_oldest(self) -> Iterator[int]:
        for i in range(1, self.count + 1):
            yield (self.head - i) % self.capacity
