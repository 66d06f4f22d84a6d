"""
Frame Codec Tests
=================

Header decoding, length encodings, masking and close frames.
"""

import pytest

from file_server.errors import ProtocolViolation
from file_server.models.close_codes import CloseCode
from file_server.protocol import (
    Opcode,
    apply_mask,
    close_frame,
    decode_frame,
    encode_frame,
    parse_close_payload,
    parse_header,
)


MASK = b"\x37\xfa\x21\x3d"


class TestKnownVectors:
    """Examples from RFC 6455 section 5.7."""

    def test_unmasked_hello(self):
        assert encode_frame(Opcode.TEXT, b"Hello") == bytes(
            [0x81, 0x05, 0x48, 0x65, 0x6C, 0x6C, 0x6F]
        )

    def test_masked_hello(self):
        wire = bytes([0x81, 0x85, 0x37, 0xFA, 0x21, 0x3D, 0x7F, 0x9F, 0x4D, 0x51, 0x58])
        assert encode_frame(Opcode.TEXT, b"Hello", mask=MASK) == wire

        decoded = decode_frame(wire)
        assert decoded.residual == 0
        assert decoded.consumed == len(wire)
        frame = decoded.frame.finalize()
        assert frame.opcode == Opcode.TEXT
        assert frame.fin is True
        assert frame.payload == b"Hello"


class TestRoundTrip:
    """decode(encode(frame)) keeps fin, opcode and payload."""

    @pytest.mark.parametrize("mask", [None, MASK], ids=["unmasked", "masked"])
    @pytest.mark.parametrize(
        "opcode,fin,payload",
        [
            (Opcode.TEXT, False, b'{"id": 5,'),
            (Opcode.CONTINUATION, True, b' "size": 3}'),
            (Opcode.CONTINUATION, False, b"middle"),
            (Opcode.BINARY, True, b""),
            (Opcode.BINARY, False, bytes(range(256)) * 300),
            (Opcode.CLOSE, True, b"\x03\xe8done"),
        ],
    )
    def test_round_trip(self, opcode, fin, payload, mask):
        wire = encode_frame(opcode, payload, fin=fin, mask=mask)

        decoded = decode_frame(wire)
        assert decoded.residual == 0
        assert decoded.consumed == len(wire)
        assert decoded.frame.header.is_masked == (mask is not None)

        frame = decoded.frame.finalize()
        assert frame.opcode == opcode
        assert frame.fin is fin
        assert frame.payload == payload
        assert frame.is_fragment == (not fin or opcode == Opcode.CONTINUATION)


class TestLengthEncoding:
    """Minimal length form at every boundary."""

    @pytest.mark.parametrize(
        "length,header_length",
        [(0, 2), (125, 2), (126, 4), (65535, 4), (65536, 10)],
    )
    def test_header_length(self, length, header_length):
        payload = bytes(length)
        wire = encode_frame(Opcode.BINARY, payload)
        assert len(wire) == header_length + length

        header = parse_header(wire)
        assert header.header_length == header_length
        assert header.payload_length == length
        assert header.is_masked is False

    def test_masked_header_adds_key(self):
        wire = encode_frame(Opcode.BINARY, bytes(200), mask=MASK)
        header = parse_header(wire)
        assert header.header_length == 8
        assert header.mask == MASK

    def test_decode_reports_missing_payload(self):
        wire = encode_frame(Opcode.BINARY, bytes(300), mask=MASK)
        decoded = decode_frame(wire[:100])
        assert decoded.residual == 300 - (100 - 8)
        assert decoded.consumed == 100
        assert decoded.frame.received == 92

    def test_decode_reports_next_frame_bytes(self):
        wire = encode_frame(Opcode.BINARY, b"abc") + encode_frame(Opcode.BINARY, b"de")
        decoded = decode_frame(wire)
        assert decoded.consumed == 5
        assert decoded.residual == -4


class TestMasking:
    """XOR masking is its own inverse."""

    @pytest.mark.parametrize("length", [0, 1, 3, 4, 5, 1000])
    def test_mask_twice_is_identity(self, length):
        data = bytes((i * 7) % 256 for i in range(length))
        masked = apply_mask(data, MASK)
        assert len(masked) == length
        assert apply_mask(masked, MASK) == data

    def test_key_rotates_over_offset(self):
        assert apply_mask(b"\x00" * 6, MASK) == MASK + MASK[:2]

    def test_rejects_bad_key(self):
        with pytest.raises(ValueError):
            apply_mask(b"abc", b"\x01\x02")


class TestHeaderValidation:
    """Malformed headers are protocol violations."""

    def test_short_header_needs_more_bytes(self):
        assert parse_header(b"") is None
        assert parse_header(b"\x82") is None
        # 16-bit length announced, extended field incomplete
        assert parse_header(bytes([0x82, 126, 0x01])) is None
        # masked, key incomplete
        assert parse_header(bytes([0x82, 0x85, 0x01, 0x02])) is None
        assert decode_frame(b"\x82") is None

    @pytest.mark.parametrize("first_byte", [0xC2, 0xA2, 0x92])
    def test_reserved_bits(self, first_byte):
        with pytest.raises(ProtocolViolation):
            parse_header(bytes([first_byte, 0x00]))

    @pytest.mark.parametrize("opcode", [0x3, 0x7, 0xB, 0xF])
    def test_unknown_opcode(self, opcode):
        with pytest.raises(ProtocolViolation):
            parse_header(bytes([0x80 | opcode, 0x00]))

    def test_fragmented_control_frame(self):
        with pytest.raises(ProtocolViolation):
            parse_header(bytes([0x09, 0x00]))

    def test_oversized_control_frame(self):
        with pytest.raises(ProtocolViolation):
            parse_header(bytes([0x89, 126, 0x00, 126]))

    def test_64bit_length_msb(self):
        wire = bytes([0x82, 127]) + (1 << 63).to_bytes(8, "big")
        with pytest.raises(ProtocolViolation):
            parse_header(wire)

    def test_violation_closes_with_protocol_error(self):
        with pytest.raises(ProtocolViolation) as exc_info:
            parse_header(bytes([0xC2, 0x00]))
        assert exc_info.value.close_code == CloseCode.PROTOCOL_ERROR


class TestCloseFrames:
    """Close frame payloads."""

    def test_code_and_reason(self):
        wire = close_frame(CloseCode.INVALID_DATA, "Authentication failed")
        frame = decode_frame(wire).frame.finalize()
        assert frame.opcode == Opcode.CLOSE
        assert parse_close_payload(frame.payload) == (1003, "Authentication failed")

    def test_long_reason_fits_control_limit(self):
        wire = close_frame(CloseCode.PROTOCOL_ERROR, "é" * 100)
        frame = decode_frame(wire).frame.finalize()
        assert len(frame.payload) <= 125
        code, reason = parse_close_payload(frame.payload)
        assert code == 1002
        assert set(reason) == {"é"}

    def test_empty_payload(self):
        assert parse_close_payload(b"") == (None, "")
