"""
Frame Data Model
=================

Typed representation of WebSocket frames.

Two shapes exist:
    - FrameHeader: the fields decoded from the first 2-14 bytes of a frame
    - Frame: a complete, unmasked frame handed to the upload session

Design Rules:
    - Frame is immutable; payload bytes are final when it is built
    - Only FrameAccumulator creates Frames from wire data, so nothing
      downstream can observe a partially received or still-masked payload
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class Opcode(IntEnum):
    """Frame opcodes defined by RFC 6455."""

    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA

    @property
    def is_control(self) -> bool:
        return self >= Opcode.CLOSE


@dataclass(frozen=True, slots=True)
class FrameHeader:
    """
    Decoded frame header.

    Attributes:
        fin: Final fragment of a message
        rsv1: Reserved bit 1 (always False, no extensions negotiated)
        rsv2: Reserved bit 2
        rsv3: Reserved bit 3
        opcode: Frame type
        payload_length: Declared payload size in bytes
        mask: 4-byte masking key, None for unmasked frames
        header_length: Number of wire bytes the header occupied
    """

    fin: bool
    rsv1: bool
    rsv2: bool
    rsv3: bool
    opcode: Opcode
    payload_length: int
    mask: Optional[bytes]
    header_length: int

    @property
    def is_masked(self) -> bool:
        return self.mask is not None


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Complete WebSocket frame with an unmasked payload.

    Attributes:
        fin: Final fragment of a message
        opcode: Frame type
        payload: Unmasked payload bytes
        rsv1: Reserved bit 1
        rsv2: Reserved bit 2
        rsv3: Reserved bit 3
    """

    fin: bool
    opcode: Opcode
    payload: bytes
    rsv1: bool = False
    rsv2: bool = False
    rsv3: bool = False

    @property
    def is_control(self) -> bool:
        """Close, Ping or Pong."""
        return self.opcode.is_control

    @property
    def is_data(self) -> bool:
        """Text, Binary or a continuation of either."""
        return not self.opcode.is_control

    @property
    def is_fragment(self) -> bool:
        """Part of a message spanning several frames."""
        return not self.fin or self.opcode == Opcode.CONTINUATION

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the payload."""
        return (
            f"Frame(opcode={self.opcode.name}, "
            f"fin={self.fin}, "
            f"length={len(self.payload)})"
        )
