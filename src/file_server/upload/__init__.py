"""
Upload Module
=============

Upload semantics on top of the WebSocket protocol engine.

Components:
    - UploadSession: Per-connection state machine (handshake to close)
    - UploadStore: Destination paths, mime table, exclusive file creation
"""

from file_server.upload.storage import DEFAULT_MIME_TYPES, UploadStore
from file_server.upload.session import UploadSession

__all__ = [
    "DEFAULT_MIME_TYPES",
    "UploadStore",
    "UploadSession",
]
