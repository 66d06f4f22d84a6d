"""
HTTP Authenticator
==================

Production authenticator backed by the attachment service's REST API.

Request contract:
    GET {base_url}/api/attachments/{id}/authenticate?mimeType={mime_type}
    Authorization: Bearer {token}

HTTP 200 authorizes the upload. Any other status, a timeout or a
transport error is a rejection.

Design Rules:
    - requests is synchronous; calls run via asyncio.to_thread so one
      slow auth round trip never stalls other connections
    - Never raise on API errors, log and reject
"""

import asyncio
import logging
from typing import Optional

import requests


logger = logging.getLogger(__name__)


class HttpAuthenticator:
    """
    Authenticator calling the external attachment service.

    Attributes:
        base_url: Service root, without trailing slash
        timeout: Per-request timeout in seconds
        verify_tls: Verify server certificates on https URLs
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        verify_tls: bool = True,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize HTTP authenticator.

        Args:
            base_url: Root URL of the attachment service
            timeout: Seconds before a request is abandoned
            verify_tls: Whether to verify TLS certificates
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.verify_tls = verify_tls

        self._session = session or requests.Session()
        self._call_count: int = 0
        self._error_count: int = 0

        logger.info(f"HttpAuthenticator initialized: base_url={self.base_url}")

    def url_for(self, upload_id: int) -> str:
        return f"{self.base_url}/api/attachments/{upload_id}/authenticate"

    async def authenticate(self, upload_id: int, mime_type: str, token: str) -> bool:
        """
        Ask the attachment service whether the upload is authorized.

        Args:
            upload_id: Attachment identifier
            mime_type: Declared content type
            token: Bearer credential

        Returns:
            True only for an HTTP 200 response
        """
        self._call_count += 1

        try:
            response = await asyncio.to_thread(
                self._session.get,
                self.url_for(upload_id),
                params={"mimeType": mime_type},
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
                verify=self.verify_tls,
            )
        except requests.RequestException as e:
            self._error_count += 1
            logger.error(f"Auth request failed (id={upload_id}): {e}")
            return False

        if response.status_code != 200:
            logger.warning(
                f"Auth rejected (id={upload_id}): HTTP {response.status_code}"
            )
            return False

        logger.debug(f"Auth accepted (id={upload_id})")
        return True

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self._session.close()

    def get_metrics(self) -> dict:
        """Get authenticator metrics for observability."""
        return {
            "call_count": self._call_count,
            "error_count": self._error_count,
        }
