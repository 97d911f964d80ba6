"""
Accumulation Buffer

Growable byte storage threaded through repeated chunked reads. Capacity
doubles when a write would reach it, which keeps reallocation cost amortized
O(1) per received byte.

A failed growth never touches the existing contents, capacity or length, so a
caller can retry or abandon the message with its data intact.
"""

from typing import Optional
import logging

from ..errors import AllocationFailed

logger = logging.getLogger(__name__)


class AccumulationBuffer:
    """
    Caller-owned byte buffer with explicit capacity and fill length.

    Only the first ``length`` bytes of the backing storage are meaningful.
    """

    def __init__(self, capacity: int, max_capacity: Optional[int] = None):
        """
        Initialize buffer.

        Args:
            capacity: Initial capacity in bytes (must be positive)
            max_capacity: Optional ceiling growth may not exceed
        """
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if max_capacity is not None and max_capacity < capacity:
            raise ValueError("max_capacity must be >= capacity")

        self.max_capacity = max_capacity
        self._storage = self._allocate(capacity)
        self._length = 0

    @property
    def capacity(self) -> int:
        return len(self._storage)

    @property
    def length(self) -> int:
        return self._length

    @property
    def remaining(self) -> int:
        """Free bytes before capacity is reached."""
        return self.capacity - self._length

    @property
    def data(self) -> bytes:
        """Copy of the accumulated bytes."""
        return bytes(self._storage[:self._length])

    def view(self) -> memoryview:
        """Zero-copy view of the accumulated bytes."""
        return memoryview(self._storage)[:self._length]

    def __len__(self) -> int:
        return self._length

    def __bytes__(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"AccumulationBuffer(length={self._length}, capacity={self.capacity})"

    def reserve(self, additional: int) -> None:
        """
        Make room for ``additional`` more bytes.

        Capacity is doubled while ``length + additional >= capacity``, so the
        buffer always keeps at least one spare byte after a write. On failure
        the buffer is left exactly as it was.

        Raises:
            AllocationFailed: growth exceeds max_capacity or memory is exhausted
        """
        if additional < 0:
            raise ValueError("additional must be non-negative")

        needed = self._length + additional
        new_capacity = self.capacity
        while needed >= new_capacity:
            new_capacity *= 2

        if new_capacity == self.capacity:
            return

        if self.max_capacity is not None and new_capacity > self.max_capacity:
            raise AllocationFailed(
                f"Buffer growth to {new_capacity} bytes exceeds limit of {self.max_capacity}"
            )

        grown = self._allocate(new_capacity)
        grown[:self._length] = self._storage[:self._length]

        logger.debug(f"Grew accumulation buffer {self.capacity} -> {new_capacity} bytes")
        self._storage = grown

    def append(self, chunk: bytes) -> None:
        """
        Copy ``chunk`` to the end of the accumulated data, growing if needed.

        Raises:
            AllocationFailed: buffer could not grow (contents unchanged)
        """
        size = len(chunk)
        self.reserve(size)
        self._storage[self._length:self._length + size] = chunk
        self._length += size

    def clear(self) -> None:
        """Forget accumulated bytes, keeping the current capacity."""
        self._length = 0

    @staticmethod
    def _allocate(size: int) -> bytearray:
        try:
            return bytearray(size)
        except MemoryError as e:
            raise AllocationFailed(f"Could not allocate {size} bytes") from e
