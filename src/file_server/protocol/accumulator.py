"""
Frame Accumulator
=================

Mutable assembly form of a frame whose payload arrives over several
socket reads.

Design Rules:
    - Payload grows only up to the declared length, never past it
    - Unmasking happens exactly once, when the payload is complete;
      the masking key rotates over the absolute payload offset, so
      unmasking a partial chunk would corrupt everything after it
    - finalize() is the only way to obtain a Frame
"""

from file_server.errors import ProtocolViolation
from file_server.protocol.masking import apply_mask
from file_server.protocol.frame import Frame, FrameHeader


class FrameAccumulator:
    """
    Collects payload chunks for one frame.

    Attributes:
        header: Decoded header of the frame being assembled
        received: Payload bytes collected so far
        bytes_remaining: Payload bytes still expected
        is_complete: Whether the full payload has arrived

    Example:
        accumulator = FrameAccumulator(header)
        accumulator.append(chunk_1)
        accumulator.append(chunk_2)
        if accumulator.is_complete:
            frame = accumulator.finalize()
    """

    __slots__ = ("header", "_data")

    def __init__(self, header: FrameHeader) -> None:
        self.header = header
        self._data = bytearray()

    @property
    def received(self) -> int:
        return len(self._data)

    @property
    def bytes_remaining(self) -> int:
        return self.header.payload_length - len(self._data)

    @property
    def is_complete(self) -> bool:
        return len(self._data) == self.header.payload_length

    def append(self, chunk: bytes) -> None:
        """
        Append a payload chunk.

        Args:
            chunk: Raw (still masked) payload bytes

        Raises:
            ProtocolViolation: If the chunk would overflow the declared length
        """
        if len(chunk) > self.bytes_remaining:
            raise ProtocolViolation(
                f"Payload overflow: {len(chunk)} bytes appended with "
                f"{self.bytes_remaining} remaining"
            )
        self._data += chunk

    def finalize(self) -> Frame:
        """
        Unmask the payload and freeze it into a Frame.

        Raises:
            RuntimeError: If called before the payload is complete
        """
        if not self.is_complete:
            raise RuntimeError(
                f"Cannot finalize frame with {self.bytes_remaining} bytes missing"
            )

        header = self.header
        payload = bytes(self._data)
        if header.mask is not None:
            payload = apply_mask(payload, header.mask)

        return Frame(
            fin=header.fin,
            opcode=header.opcode,
            payload=payload,
            rsv1=header.rsv1,
            rsv2=header.rsv2,
            rsv3=header.rsv3,
        )

    def __repr__(self) -> str:
        return (
            f"FrameAccumulator(opcode={self.header.opcode.name}, "
            f"received={self.received}/{self.header.payload_length})"
        )
