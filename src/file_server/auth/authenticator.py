"""
Authenticator
=============

Capability interface for upload authentication.

This module provides the Authenticator protocol and MockAuthenticator
implementation, used for local development and tests, WITHOUT any
network calls.

Design Rules:
    - authenticate() is awaited by the session; it must not block the
      event loop, so network backends offload to a worker thread
    - A False result is a rejection, never an exception
"""

import logging
from typing import List, Optional, Protocol, Set, Tuple


logger = logging.getLogger(__name__)


class Authenticator(Protocol):
    """
    Protocol for authentication backends.

    This interface is implemented by:
        - MockAuthenticator (local development, tests)
        - HttpAuthenticator (production, external attachment service)
    """

    async def authenticate(self, upload_id: int, mime_type: str, token: str) -> bool:
        """
        Decide whether the bearer of token may upload this attachment.

        Args:
            upload_id: Attachment identifier from the metadata
            mime_type: Declared content type
            token: Bearer credential

        Returns:
            True if the upload is authorized
        """
        ...


class MockAuthenticator:
    """
    Deterministic authenticator for testing.

    Approves every request unless configured otherwise, and records each
    call so tests can assert on what the session sent.

    Attributes:
        allow: Default decision
        denied_ids: Attachment ids that are always rejected
        calls: (upload_id, mime_type, token) for every call, in order
    """

    def __init__(self, allow: bool = True, denied_ids: Optional[Set[int]] = None) -> None:
        self.allow = allow
        self.denied_ids = set(denied_ids or ())
        self.calls: List[Tuple[int, str, str]] = []

        logger.info(f"MockAuthenticator initialized: allow={allow}")

    async def authenticate(self, upload_id: int, mime_type: str, token: str) -> bool:
        self.calls.append((upload_id, mime_type, token))
        if upload_id in self.denied_ids:
            return False
        return self.allow
