"""
Opening Handshake
=================

HTTP/1.1 Upgrade handling (RFC 6455 section 4.2).

The request is parsed line by line at the byte level; no HTTP library is
involved because the same socket continues as a raw frame stream once the
101 response is written.

Response contract (byte exact):
    HTTP/1.1 101 Switching Protocols\\r\\n
    Connection: Upgrade\\r\\n
    Upgrade: websocket\\r\\n
    Sec-WebSocket-Accept: <base64(SHA1(key + GUID))>\\r\\n
    \\r\\n
"""

import base64
import hashlib
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from file_server.errors import HandshakeError


WEBSOCKET_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"
REQUEST_TERMINATOR = b"\r\n\r\n"


@dataclass(frozen=True)
class HandshakeRequest:
    """
    Parsed upgrade request.

    Attributes:
        method: Request method (GET for a valid upgrade)
        path: Request target
        headers: Header map with lower-cased names
    """

    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def websocket_key(self) -> Optional[str]:
        return self.headers.get("sec-websocket-key")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")


def parse_request(raw: bytes) -> HandshakeRequest:
    """
    Parse the request line and headers of an upgrade request.

    Accepts both CRLF and bare LF line endings. Repeated headers keep the
    first value.

    Raises:
        HandshakeError: If the request line is missing or malformed
    """
    text = raw.decode("latin-1")
    lines = text.replace("\r\n", "\n").split("\n")

    request_line = lines[0].strip()
    parts = request_line.split()
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        raise HandshakeError(f"Malformed request line: {request_line[:80]!r}")
    method, path, _version = parts

    headers: Dict[str, str] = {}
    for line in lines[1:]:
        if not line.strip():
            break
        name, sep, value = line.partition(":")
        if not sep:
            continue
        headers.setdefault(name.strip().lower(), value.strip())

    return HandshakeRequest(method=method, path=path, headers=headers)


def compute_accept_key(websocket_key: str) -> str:
    """base64(SHA1(key + GUID)), the Sec-WebSocket-Accept value."""
    digest = hashlib.sha1((websocket_key.strip() + WEBSOCKET_GUID).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def build_response(websocket_key: str) -> bytes:
    """Build the 101 Switching Protocols response for a client key."""
    return (
        "HTTP/1.1 101 Switching Protocols\r\n"
        "Connection: Upgrade\r\n"
        "Upgrade: websocket\r\n"
        f"Sec-WebSocket-Accept: {compute_accept_key(websocket_key)}\r\n"
        "\r\n"
    ).encode("ascii")


def is_health_check(request: HandshakeRequest, probe_agents: Iterable[str]) -> bool:
    """Whether the User-Agent names a load balancer or orchestrator probe."""
    user_agent = request.user_agent.lower()
    if not user_agent:
        return False
    return any(agent.lower() in user_agent for agent in probe_agents if agent)
