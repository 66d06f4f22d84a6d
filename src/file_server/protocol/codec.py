"""
Frame Codec
===========

Encoding and decoding of single WebSocket frames (RFC 6455 section 5.2).

Wire layout:
    byte 0      FIN | RSV1 | RSV2 | RSV3 | opcode(4)
    byte 1      MASK | length(7)
    [2 or 8]    extended length, big-endian (length 126 / 127)
    [4]         masking key (MASK set)
    payload

Design Rules:
    - Decoding never assumes a whole frame is present; a short header
      returns None so the caller can wait for more bytes
    - Server frames are encoded unmasked with the minimal length form
    - The codec does not unmask; FrameAccumulator does, once complete
"""

import struct
from typing import NamedTuple, Optional, Tuple

from file_server.errors import ProtocolViolation
from file_server.models.close_codes import CloseCode
from file_server.protocol.accumulator import FrameAccumulator
from file_server.protocol.frame import FrameHeader, Opcode
from file_server.protocol.masking import MASK_KEY_LENGTH, apply_mask


FIN_BIT = 0b1000_0000
RSV1_BIT = 0b0100_0000
RSV2_BIT = 0b0010_0000
RSV3_BIT = 0b0001_0000
OPCODE_BITS = 0b0000_1111
MASK_BIT = 0b1000_0000
LENGTH_BITS = 0b0111_1111

LENGTH_16 = 126
LENGTH_64 = 127
MAX_LITERAL_LENGTH = 125
MAX_16BIT_LENGTH = 0xFFFF
MAX_CONTROL_PAYLOAD = 125

# Longest possible header: 2 + 8 extended length + 4 mask
MAX_HEADER_LENGTH = 14

_VALID_OPCODES = {opcode.value for opcode in Opcode}


class Decoded(NamedTuple):
    """
    Result of decoding a frame from one read window.

    Attributes:
        frame: Accumulator holding the header and the first payload chunk
        residual: payload_length minus payload bytes available in the
            window; negative when the window also holds bytes of the next
            frame, positive when more reads are needed
        consumed: Bytes of the window taken by this frame
    """

    frame: FrameAccumulator
    residual: int
    consumed: int


def parse_header(data: bytes) -> Optional[FrameHeader]:
    """
    Decode a frame header from the start of a byte window.

    Args:
        data: Window of unconsumed bytes (bytes, bytearray or memoryview)

    Returns:
        FrameHeader, or None if the window is too short to hold the
        complete header.

    Raises:
        ProtocolViolation: On reserved bits, unknown opcodes, fragmented
            or oversized control frames, or an out-of-range 64-bit length
    """
    available = len(data)
    if available < 2:
        return None

    byte0 = data[0]
    byte1 = data[1]

    rsv1 = bool(byte0 & RSV1_BIT)
    rsv2 = bool(byte0 & RSV2_BIT)
    rsv3 = bool(byte0 & RSV3_BIT)
    if rsv1 or rsv2 or rsv3:
        raise ProtocolViolation("Reserved bits set without a negotiated extension")

    raw_opcode = byte0 & OPCODE_BITS
    if raw_opcode not in _VALID_OPCODES:
        raise ProtocolViolation(f"Unknown opcode: {raw_opcode:#x}")
    opcode = Opcode(raw_opcode)
    fin = bool(byte0 & FIN_BIT)

    masked = bool(byte1 & MASK_BIT)
    payload_length = byte1 & LENGTH_BITS
    offset = 2

    if payload_length == LENGTH_16:
        if available < offset + 2:
            return None
        (payload_length,) = struct.unpack_from("!H", data, offset)
        offset += 2
    elif payload_length == LENGTH_64:
        if available < offset + 8:
            return None
        (payload_length,) = struct.unpack_from("!Q", data, offset)
        if payload_length >> 63:
            raise ProtocolViolation("64-bit payload length has the most significant bit set")
        offset += 8

    if opcode.is_control:
        if not fin:
            raise ProtocolViolation(f"Fragmented control frame: {opcode.name}")
        if payload_length > MAX_CONTROL_PAYLOAD:
            raise ProtocolViolation(
                f"Control frame payload too long: {payload_length} bytes"
            )

    mask = None
    if masked:
        if available < offset + MASK_KEY_LENGTH:
            return None
        mask = bytes(data[offset:offset + MASK_KEY_LENGTH])
        offset += MASK_KEY_LENGTH

    return FrameHeader(
        fin=fin,
        rsv1=rsv1,
        rsv2=rsv2,
        rsv3=rsv3,
        opcode=opcode,
        payload_length=payload_length,
        mask=mask,
        header_length=offset,
    )


def decode_frame(data: bytes) -> Optional[Decoded]:
    """
    Decode a header and take the first payload chunk from a window.

    Args:
        data: Window of unconsumed bytes starting at a frame boundary

    Returns:
        Decoded(frame, residual, consumed), or None if the header is
        incomplete.
    """
    header = parse_header(data)
    if header is None:
        return None

    available = len(data) - header.header_length
    take = min(header.payload_length, available)

    frame = FrameAccumulator(header)
    frame.append(bytes(data[header.header_length:header.header_length + take]))

    return Decoded(
        frame=frame,
        residual=header.payload_length - available,
        consumed=header.header_length + take,
    )


def encode_length(length: int) -> bytes:
    """Minimal payload length encoding for byte 1 and the extended field."""
    if length <= MAX_LITERAL_LENGTH:
        return bytes([length])
    if length <= MAX_16BIT_LENGTH:
        return struct.pack("!BH", LENGTH_16, length)
    return struct.pack("!BQ", LENGTH_64, length)


def encode_frame(
    opcode: Opcode,
    payload: bytes,
    fin: bool = True,
    mask: Optional[bytes] = None,
) -> bytes:
    """
    Serialize a frame.

    Args:
        opcode: Frame type
        payload: Unmasked payload bytes
        fin: Final fragment flag
        mask: Masking key for client-role frames; server frames pass None

    Returns:
        Wire bytes of the frame
    """
    first = (FIN_BIT if fin else 0) | (opcode & OPCODE_BITS)
    length = encode_length(len(payload))

    if mask is None:
        return bytes([first]) + length + bytes(payload)

    # MASK flag lives in the top bit of the length byte
    length = bytes([length[0] | MASK_BIT]) + length[1:]
    return bytes([first]) + length + mask + apply_mask(payload, mask)


def text_frame(text: str) -> bytes:
    return encode_frame(Opcode.TEXT, text.encode("utf-8"))


def close_frame(code: CloseCode, reason: str = "") -> bytes:
    """
    Build a Close frame with a status code and UTF-8 reason.

    The reason is truncated on a character boundary so the payload fits
    the 125-byte control frame limit.
    """
    encoded = reason.encode("utf-8")
    limit = MAX_CONTROL_PAYLOAD - 2
    if len(encoded) > limit:
        encoded = encoded[:limit].decode("utf-8", errors="ignore").encode("utf-8")
    return encode_frame(Opcode.CLOSE, struct.pack("!H", int(code)) + encoded)


def parse_close_payload(payload: bytes) -> Tuple[Optional[int], str]:
    """
    Split a Close frame payload into status code and reason.

    Returns:
        (code, reason); code is None for an empty payload
    """
    if len(payload) < 2:
        return None, ""
    (code,) = struct.unpack_from("!H", payload, 0)
    return code, payload[2:].decode("utf-8", errors="replace")
