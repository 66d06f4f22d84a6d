"""
Handshake Tests
===============

Upgrade request parsing, accept key derivation and probe detection.
"""

import pytest

from file_server.errors import HandshakeError
from file_server.protocol import (
    build_response,
    compute_accept_key,
    is_health_check,
    parse_request,
)


class TestAcceptKey:
    """Sec-WebSocket-Accept derivation."""

    def test_rfc_sample(self):
        assert compute_accept_key("dGhlIHNhbXBsZSBub25jZQ==") == "s3pPLMBiTxaQ9kYGzzhZRbK+xOo="

    def test_surrounding_whitespace_ignored(self):
        assert compute_accept_key("  dGhlIHNhbXBsZSBub25jZQ== ") == "s3pPLMBiTxaQ9kYGzzhZRbK+xOo="

    def test_response_bytes(self):
        assert build_response("dGhlIHNhbXBsZSBub25jZQ==") == (
            b"HTTP/1.1 101 Switching Protocols\r\n"
            b"Connection: Upgrade\r\n"
            b"Upgrade: websocket\r\n"
            b"Sec-WebSocket-Accept: s3pPLMBiTxaQ9kYGzzhZRbK+xOo=\r\n"
            b"\r\n"
        )


class TestParseRequest:
    """Request line and header parsing."""

    def test_valid_request(self, upgrade_request):
        request = parse_request(upgrade_request)
        assert request.method == "GET"
        assert request.path == "/upload"
        assert request.websocket_key == "dGhlIHNhbXBsZSBub25jZQ=="
        assert request.headers["upgrade"] == "websocket"

    def test_header_names_case_insensitive(self):
        request = parse_request(
            b"GET / HTTP/1.1\r\nsec-websocket-KEY: abc\r\nUSER-AGENT: curl/8\r\n\r\n"
        )
        assert request.websocket_key == "abc"
        assert request.user_agent == "curl/8"

    def test_bare_lf_lines(self):
        request = parse_request(b"GET / HTTP/1.1\nSec-WebSocket-Key: abc\n\n")
        assert request.websocket_key == "abc"

    def test_first_repeated_header_wins(self):
        request = parse_request(
            b"GET / HTTP/1.1\r\nSec-WebSocket-Key: first\r\nSec-WebSocket-Key: second\r\n\r\n"
        )
        assert request.websocket_key == "first"

    def test_missing_key(self):
        request = parse_request(b"GET / HTTP/1.1\r\nHost: x\r\n\r\n")
        assert request.websocket_key is None
        assert request.user_agent == ""

    @pytest.mark.parametrize(
        "raw",
        [b"\r\n\r\n", b"GET /\r\n\r\n", b"hello world again\r\n\r\n"],
    )
    def test_malformed_request_line(self, raw):
        with pytest.raises(HandshakeError):
            parse_request(raw)


class TestHealthCheck:
    """Load balancer probe detection."""

    AGENTS = ("ELB-HealthChecker", "GoogleHC", "kube-probe")

    @pytest.mark.parametrize(
        "user_agent",
        ["ELB-HealthChecker/2.0", "googlehc/1.0", "kube-probe/1.29"],
    )
    def test_health_check_agents(self, user_agent):
        request = parse_request(
            f"GET / HTTP/1.1\r\nUser-Agent: {user_agent}\r\n\r\n".encode()
        )
        assert is_health_check(request, self.AGENTS)

    def test_regular_client(self, upgrade_request):
        request = parse_request(upgrade_request)
        assert not is_health_check(request, self.AGENTS)

    def test_no_agents_configured(self):
        request = parse_request(b"GET / HTTP/1.1\r\nUser-Agent: kube-probe/1.29\r\n\r\n")
        assert not is_health_check(request, ())
