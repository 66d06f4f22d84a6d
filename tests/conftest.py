"""
Test Configuration
==================

Pytest fixtures and test configuration for the upload server.
"""

import json

import pytest

from file_server.auth import MockAuthenticator
from file_server.upload import UploadSession, UploadStore


class RecordingTransport:
    """Collects every byte string the session sends."""

    def __init__(self):
        self.sent = []

    async def __call__(self, data: bytes) -> None:
        self.sent.append(bytes(data))


@pytest.fixture
def upgrade_request():
    """Provide a valid HTTP upgrade request."""
    return (
        b"GET /upload HTTP/1.1\r\n"
        b"Host: localhost:11000\r\n"
        b"Upgrade: websocket\r\n"
        b"Connection: Upgrade\r\n"
        b"Sec-WebSocket-Key: dGhlIHNhbXBsZSBub25jZQ==\r\n"
        b"Sec-WebSocket-Version: 13\r\n"
        b"\r\n"
    )


@pytest.fixture
def metadata_json():
    """Build the JSON bytes of a metadata message."""

    def build(upload_id=5, mime_type="image/png", size=1024, token="t"):
        return json.dumps({
            "id": upload_id,
            "mimeType": mime_type,
            "size": size,
            "token": token,
        }).encode("utf-8")

    return build


@pytest.fixture
def store(tmp_path):
    """Provide an UploadStore rooted in a temporary directory."""
    store = UploadStore(tmp_path / "uploads")
    store.ensure_directory()
    return store


@pytest.fixture
def authenticator():
    """Provide a MockAuthenticator that approves everything."""
    return MockAuthenticator(allow=True)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def session(transport, authenticator, store):
    """Provide an UploadSession wired to the recording transport."""
    return UploadSession(
        transport,
        authenticator=authenticator,
        store=store,
        probe_agents=("ELB-HealthChecker", "kube-probe"),
        peer="test",
    )
