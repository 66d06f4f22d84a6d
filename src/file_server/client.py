"""
Upload Client
=============

Reference client for the upload protocol, built on the websockets library.

Protocol (client side):
    1. Open a WebSocket connection
    2. Send the metadata JSON as a text message
    3. Wait for {"status": "accepted"} (or a Close frame on rejection)
    4. Send the file as binary messages of chunk_size bytes
    5. Wait for the server's Close frame: 1000 means stored

Example:
    from file_server.client import upload_file

    result = await upload_file(
        "ws://localhost:11000",
        "photo.png",
        upload_id=5,
        token="secret",
    )
    print(result.close_code, result.close_reason)
"""

import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed


logger = logging.getLogger(__name__)


DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class UploadResult:
    """
    Outcome of an upload attempt.

    Attributes:
        accepted: Server acknowledged the metadata
        bytes_sent: File bytes handed to the connection
        close_code: Close code sent by the server, if any
        close_reason: Close reason sent by the server
    """

    accepted: bool = False
    bytes_sent: int = 0
    close_code: Optional[int] = None
    close_reason: str = ""

    @property
    def success(self) -> bool:
        return self.close_code == 1000


async def upload_bytes(
    url: str,
    data: bytes,
    upload_id: int,
    mime_type: str,
    token: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    wait_for_ack: bool = True,
) -> UploadResult:
    """
    Upload an in-memory payload.

    Args:
        url: ws:// URL of the upload server
        data: File contents
        upload_id: Attachment identifier
        mime_type: Content type, must be accepted by the server
        token: Bearer token forwarded to the auth service
        chunk_size: Bytes per binary message
        wait_for_ack: Wait for the acceptance message before streaming

    Returns:
        UploadResult with the server's close code and reason
    """
    result = UploadResult()
    metadata = {"id": upload_id, "mimeType": mime_type, "size": len(data), "token": token}

    async with websockets.connect(url, compression=None, max_size=None) as ws:
        try:
            await ws.send(json.dumps(metadata))

            if wait_for_ack:
                reply = json.loads(await ws.recv())
                result.accepted = reply.get("status") == "accepted"
                logger.info(f"Server replied: {reply}")

            for start in range(0, len(data), chunk_size):
                chunk = data[start:start + chunk_size]
                await ws.send(chunk)
                result.bytes_sent += len(chunk)

            # The server closes the connection once the upload is stored
            async for message in ws:
                logger.info(f"Server message: {message}")
        except ConnectionClosed as e:
            logger.info(f"Connection closed by server: {e}")

    result.close_code = ws.close_code
    result.close_reason = ws.close_reason or ""
    return result


async def upload_file(
    url: str,
    path: Union[str, Path],
    upload_id: int,
    token: str,
    mime_type: Optional[str] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> UploadResult:
    """
    Upload a file from disk.

    The mime type is guessed from the file name when not given.

    Raises:
        ValueError: If no mime type is given and none can be guessed
    """
    path = Path(path)
    if mime_type is None:
        mime_type, _ = mimetypes.guess_type(path.name)
        if mime_type is None:
            raise ValueError(f"Cannot guess mime type of {path.name}")

    data = path.read_bytes()
    logger.info(f"Uploading {path} ({len(data)} bytes, {mime_type}) as id {upload_id}")

    return await upload_bytes(
        url,
        data,
        upload_id=upload_id,
        mime_type=mime_type,
        token=token,
        chunk_size=chunk_size,
    )
