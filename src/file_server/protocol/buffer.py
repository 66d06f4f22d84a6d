"""
Connection Buffer
=================

Fixed-capacity read window for one connection.

The buffer tracks two offsets into a preallocated bytearray:

    0 ........ offset ........ valid ........ capacity
    | consumed | unconsumed    | free         |

Bytes between offset and valid are leftovers: data already read from
the socket that belongs to a frame not yet decoded. They are processed
again on the next pass without another socket read.

Design Rules:
    - Invariant 0 <= offset <= valid <= capacity
    - Leftovers are moved to the start only when new data would not fit
      at the tail (in practice a partial header of at most 14 bytes)
    - Consumers read through memoryview windows, not copies
"""

import logging


logger = logging.getLogger(__name__)


class ConnectionBuffer:
    """
    Cursor buffer with explicit consumed/available offsets.

    Attributes:
        capacity: Total size of the backing storage
        offset: Index of the first unconsumed byte
        valid: Index one past the last byte read from the socket
        available: Unconsumed byte count (valid - offset)
        writable: How many bytes the next fill() may accept

    Example:
        buffer = ConnectionBuffer(capacity=65536)

        data = await reader.read(buffer.writable)
        buffer.fill(data)

        window = buffer.window()
        ...
        buffer.consume(n)
    """

    def __init__(self, capacity: int) -> None:
        """
        Initialize connection buffer.

        Args:
            capacity: Size of the backing storage in bytes. Must be >= 1.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")

        self._capacity = capacity
        self._data = bytearray(capacity)
        self._offset = 0
        self._valid = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def valid(self) -> int:
        return self._valid

    @property
    def available(self) -> int:
        return self._valid - self._offset

    @property
    def has_leftover(self) -> bool:
        return self._offset < self._valid

    @property
    def writable(self) -> int:
        return self._capacity - self.available

    def fill(self, data: bytes) -> None:
        """
        Append freshly read socket bytes after any leftover.

        Args:
            data: Bytes returned by the socket read

        Raises:
            ValueError: If data exceeds the writable space
        """
        size = len(data)
        if size > self.writable:
            raise ValueError(
                f"Cannot fill {size} bytes, only {self.writable} writable"
            )

        if not self.has_leftover:
            self._offset = self._valid = 0
        elif self._valid + size > self._capacity:
            self._compact()

        self._data[self._valid:self._valid + size] = data
        self._valid += size

    def window(self) -> memoryview:
        """View of the unconsumed bytes. Invalidated by fill()."""
        return memoryview(self._data)[self._offset:self._valid]

    def consume(self, count: int) -> None:
        """
        Mark bytes at the front of the window as processed.

        Raises:
            ValueError: If count is negative or exceeds available bytes
        """
        if count < 0 or count > self.available:
            raise ValueError(
                f"Cannot consume {count} bytes, {self.available} available"
            )
        self._offset += count

    def _compact(self) -> None:
        """Move leftover bytes to the start of the storage."""
        leftover = self.available
        logger.debug(f"Compacting {leftover} leftover bytes")
        self._data[:leftover] = self._data[self._offset:self._valid]
        self._offset = 0
        self._valid = leftover
