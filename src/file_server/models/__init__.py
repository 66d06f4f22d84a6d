"""
Data Models
===========

Models shared across the upload server.

Models:
    - UploadMetadata: Schema of the first client message
    - SessionState: Upload session lifecycle states
    - CloseCode: Status codes carried in Close frames
"""

from file_server.models.close_codes import CloseCode
from file_server.models.metadata import UploadMetadata
from file_server.models.session import SessionState

__all__ = [
    "CloseCode",
    "UploadMetadata",
    "SessionState",
]
