"""
Upload Metadata Schema
======================

Pydantic model for the JSON document a client sends as its first
WebSocket message, before any file bytes.

Input Contract:
    {
        "id": 5,
        "mimeType": "image/png",
        "size": 1024,
        "token": "<bearer token>"
    }

The mime type is only checked for shape here. Whether it maps to a
known file extension is decided by the UploadStore, which owns the
mime table.

Example:
    from file_server.models.metadata import UploadMetadata

    metadata = UploadMetadata.model_validate_json(payload)
    print(metadata.id, metadata.mime_type, metadata.size)
"""

from pydantic import BaseModel, ConfigDict, Field


class UploadMetadata(BaseModel):
    """
    Description of the file a client is about to upload.

    Attributes:
        id: Attachment identifier, also the destination file stem
        mime_type: Declared content type (JSON key "mimeType")
        size: Exact number of payload bytes that will follow
        token: Bearer credential forwarded to the auth service
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(
        ...,
        description="Attachment identifier",
    )

    mime_type: str = Field(
        ...,
        alias="mimeType",
        min_length=1,
        description="Declared content type, e.g. image/png",
    )

    size: int = Field(
        ...,
        ge=0,
        description="Total upload size in bytes",
    )

    token: str = Field(
        ...,
        description="Bearer token for the authentication service",
    )

    def __repr__(self) -> str:
        """Repr that keeps the token out of logs."""
        return (
            f"UploadMetadata(id={self.id}, "
            f"mime_type={self.mime_type!r}, "
            f"size={self.size})"
        )
