"""
Protocol Module
===============

Hand-rolled WebSocket protocol engine.

This module provides the framing layer of the upload server:
    - Frame / FrameHeader / Opcode: Typed frame values
    - Codec: Header decoding, masking, frame encoding, close frames
    - FrameAccumulator: In-progress frame, unmasked once complete
    - ConnectionBuffer: Fixed-capacity read window with leftover tracking
    - FrameReassembler: Byte stream to complete frames
    - Handshake: HTTP Upgrade request parsing and 101 response

Example:
    from file_server.protocol import ConnectionBuffer, FrameReassembler

    buffer = ConnectionBuffer(capacity=65536)
    reassembler = FrameReassembler(require_mask=True)

    buffer.fill(data)
    for frame in reassembler.feed(buffer):
        print(frame.opcode, len(frame.payload))
"""

from file_server.protocol.frame import Frame, FrameHeader, Opcode
from file_server.protocol.masking import apply_mask
from file_server.protocol.accumulator import FrameAccumulator
from file_server.protocol.codec import (
    Decoded,
    close_frame,
    decode_frame,
    encode_frame,
    parse_close_payload,
    parse_header,
    text_frame,
)
from file_server.protocol.buffer import ConnectionBuffer
from file_server.protocol.reassembler import FrameReassembler
from file_server.protocol.handshake import (
    HandshakeRequest,
    build_response,
    compute_accept_key,
    is_health_check,
    parse_request,
)


__all__ = [
    "Frame",
    "FrameHeader",
    "Opcode",
    "apply_mask",
    "FrameAccumulator",
    "Decoded",
    "close_frame",
    "decode_frame",
    "encode_frame",
    "parse_close_payload",
    "parse_header",
    "text_frame",
    "ConnectionBuffer",
    "FrameReassembler",
    "HandshakeRequest",
    "build_response",
    "compute_accept_key",
    "is_health_check",
    "parse_request",
]
