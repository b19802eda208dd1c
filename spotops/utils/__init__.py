"""Small helpers shared across operators."""

from spotops.utils.ring_buffer import RingBuffer

__all__ = [
    "RingBuffer",
]
