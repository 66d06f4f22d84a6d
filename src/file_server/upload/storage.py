"""
Upload Store
============

Destination files for completed uploads.

Layout:
    {data_dir}/{id}.{extension}

The mime type to extension table is injected (normally from config), so
tests and deployments can substitute their own mapping.

Design Rules:
    - Files are created exclusively; an existing path is a conflict and
      is never opened for writing, truncated or removed
    - Only files this store created may be discarded
"""

import logging
from pathlib import Path
from typing import BinaryIO, Dict, Mapping, Union

from file_server.errors import MetadataError, StorageConflict
from file_server.models.metadata import UploadMetadata


logger = logging.getLogger(__name__)


DEFAULT_MIME_TYPES: Dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/jpg": "jpg",
    "video/mp4": "mp4",
}


class UploadStore:
    """
    Filesystem store for uploaded attachments.

    Attributes:
        data_dir: Directory holding uploaded files
        mime_types: Mapping of accepted mime types to file extensions

    Example:
        store = UploadStore("./data/uploads", {"image/png": "png"})
        store.ensure_directory()

        handle = store.create(metadata)
        handle.write(chunk)
        handle.close()
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        mime_types: Mapping[str, str] = DEFAULT_MIME_TYPES,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.mime_types = dict(mime_types)

    def ensure_directory(self) -> None:
        """Create the data directory if it doesn't exist."""
        if not self.data_dir.exists():
            logger.info(f"Creating data directory: {self.data_dir}")
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def extension_for(self, mime_type: str) -> str:
        """
        Look up the file extension of a mime type.

        Raises:
            MetadataError: If the mime type is not accepted
        """
        try:
            return self.mime_types[mime_type]
        except KeyError:
            raise MetadataError(f"Unsupported mime type: {mime_type}") from None

    def path_for(self, metadata: UploadMetadata) -> Path:
        return self.data_dir / f"{metadata.id}.{self.extension_for(metadata.mime_type)}"

    def create(self, metadata: UploadMetadata) -> BinaryIO:
        """
        Open a new destination file for writing.

        Returns:
            Binary file handle positioned at the start of an empty file

        Raises:
            MetadataError: If the mime type is not accepted
            StorageConflict: If the destination already exists
        """
        path = self.path_for(metadata)
        try:
            handle = open(path, "xb")
        except FileExistsError:
            raise StorageConflict(f"File already exists: {path.name}") from None

        logger.info(f"Created {path}")
        return handle

    def discard(self, metadata: UploadMetadata) -> None:
        """Remove a partially written file created by this store."""
        path = self.path_for(metadata)
        path.unlink(missing_ok=True)
        logger.info(f"Discarded partial upload {path}")
