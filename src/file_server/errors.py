"""
Upload Errors
=============

Exception taxonomy for the upload server.

Every exception carries the close code (if any) the server sends before
dropping the connection, plus a human-readable reason that goes into the
Close frame payload.

Hierarchy:
    UploadError
        ProtocolViolation      - frame stream cannot be trusted
            HandshakeError     - upgrade request unusable, no frames yet
        MetadataError          - first message is not valid upload metadata
        AuthenticationError    - auth service refused the transfer
        StorageConflict        - destination file already exists
        ConnectionClosedByPeer - client left before the upload finished
"""

from typing import Optional

from file_server.models.close_codes import CloseCode


class UploadError(Exception):
    """Base class for errors that terminate an upload session."""

    close_code: Optional[CloseCode] = None

    def __init__(self, reason: str, close_code: Optional[CloseCode] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        if close_code is not None:
            self.close_code = close_code


class ProtocolViolation(UploadError):
    """Malformed frame header, reserved bits set or payload overflow."""

    close_code = CloseCode.PROTOCOL_ERROR


class HandshakeError(ProtocolViolation):
    """The HTTP upgrade request could not be answered."""

    close_code = None


class MetadataError(UploadError):
    """Malformed JSON, missing fields or an unsupported mime type."""

    close_code = CloseCode.INVALID_DATA


class AuthenticationError(UploadError):
    """The authentication collaborator rejected the upload."""

    close_code = CloseCode.INVALID_DATA


class StorageConflict(UploadError):
    """A file already exists at the destination path."""

    close_code = CloseCode.INVALID_DATA


class ConnectionClosedByPeer(UploadError):
    """The client went away (Close frame or EOF) before the upload finished."""
