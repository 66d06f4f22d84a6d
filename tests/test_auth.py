"""
Authenticator Tests
===================

HTTP request contract and status mapping, using a stand-in session
object instead of the network.
"""

import asyncio
from types import SimpleNamespace

import pytest
import requests

from file_server.auth import HttpAuthenticator, MockAuthenticator


class FakeSession:
    """Records GET calls and answers with a fixed status."""

    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.requests = []
        self.closed = False

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(status_code=self.status_code)

    def close(self):
        self.closed = True


class TestHttpAuthenticator:
    """Attachment service client."""

    def test_request_contract(self):
        session = FakeSession()
        authenticator = HttpAuthenticator("http://auth:5000/", timeout=3.0, session=session)

        assert asyncio.run(authenticator.authenticate(5, "image/png", "secret")) is True

        url, kwargs = session.requests[0]
        assert url == "http://auth:5000/api/attachments/5/authenticate"
        assert kwargs["params"] == {"mimeType": "image/png"}
        assert kwargs["headers"] == {"Authorization": "Bearer secret"}
        assert kwargs["timeout"] == 3.0
        assert kwargs["verify"] is True

    @pytest.mark.parametrize("status", [201, 204, 401, 403, 404, 500])
    def test_non_200_rejects(self, status):
        authenticator = HttpAuthenticator("http://auth", session=FakeSession(status))
        assert asyncio.run(authenticator.authenticate(5, "image/png", "t")) is False

    def test_transport_error_rejects(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        authenticator = HttpAuthenticator("http://auth", session=session)

        assert asyncio.run(authenticator.authenticate(5, "image/png", "t")) is False
        assert authenticator.get_metrics() == {"call_count": 1, "error_count": 1}

    def test_close(self):
        session = FakeSession()
        HttpAuthenticator("http://auth", session=session).close()
        assert session.closed


class TestMockAuthenticator:
    """In-process authenticator."""

    def test_records_calls(self):
        authenticator = MockAuthenticator()
        assert asyncio.run(authenticator.authenticate(1, "image/png", "t")) is True
        assert authenticator.calls == [(1, "image/png", "t")]

    def test_denied_ids(self):
        authenticator = MockAuthenticator(denied_ids={2})
        assert asyncio.run(authenticator.authenticate(2, "image/png", "t")) is False
        assert asyncio.run(authenticator.authenticate(3, "image/png", "t")) is True

    def test_deny_all(self):
        authenticator = MockAuthenticator(allow=False)
        assert asyncio.run(authenticator.authenticate(1, "image/png", "t")) is False
