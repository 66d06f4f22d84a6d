"""
Upload Session
==============

Per-connection protocol state machine.

Flow:
    AWAITING_HANDSHAKE  HTTP upgrade request → 101 response
    AWAITING_METADATA   first data message → UploadMetadata (JSON)
    AUTHENTICATING      authenticator.authenticate(id, mime_type, token)
    STREAMING           data frames appended to the destination file
    COMPLETED           bytes_written == size → Close(NORMAL)
    ABORTED             any rejection → Close(<code>, <reason>) if possible

Design Rules:
    - One session serves exactly one upload; terminal states are final
    - Rejections are reported to the client with a close code and reason,
      they are not raised to the connection handler
    - No file is created before authentication succeeds
    - A file this session created is closed on every exit path and, unless
      keep_partial is set, removed when the upload did not complete
"""

import asyncio
import json
import logging
from typing import Awaitable, BinaryIO, Callable, Iterable, Optional

from pydantic import ValidationError

from file_server.auth.authenticator import Authenticator
from file_server.errors import (
    AuthenticationError,
    ConnectionClosedByPeer,
    HandshakeError,
    MetadataError,
    UploadError,
)
from file_server.models.close_codes import CloseCode
from file_server.models.metadata import UploadMetadata
from file_server.models.session import SessionState
from file_server.observability.metrics import ServerMetrics
from file_server.observability.progress import ProgressReporter
from file_server.protocol.codec import close_frame, parse_close_payload, text_frame
from file_server.protocol.frame import Frame, Opcode
from file_server.protocol.handshake import build_response, is_health_check, parse_request
from file_server.upload.storage import UploadStore


logger = logging.getLogger(__name__)


# Upper bound for the metadata message, which is a few hundred bytes in practice
MAX_METADATA_BYTES = 64 * 1024


class UploadSession:
    """
    State machine for one upload connection.

    The session is transport-agnostic: outgoing bytes go through the async
    send callable, incoming data arrives as handshake bytes and complete
    frames from the connection handler.

    Attributes:
        state: Current SessionState
        metadata: Parsed UploadMetadata, once received
        bytes_written: File bytes stored so far
        close_code: Close code sent to the client, if any
        is_probe: Handshake came from a health-check probe
        peer: Remote address used in log lines

    Example:
        session = UploadSession(send, authenticator, store)

        if await session.handshake(request_bytes):
            for frame in frames:
                await session.handle_frame(frame)
                if session.state.is_terminal:
                    break
    """

    def __init__(
        self,
        send: Callable[[bytes], Awaitable[None]],
        authenticator: Authenticator,
        store: UploadStore,
        probe_agents: Iterable[str] = (),
        progress_step: int = 10,
        keep_partial: bool = False,
        metrics: Optional[ServerMetrics] = None,
        peer: str = "unknown",
    ) -> None:
        """
        Initialize upload session.

        Args:
            send: Coroutine writing raw bytes to the client
            authenticator: Backend deciding whether the upload is allowed
            store: Destination file store
            probe_agents: User-Agent markers of health-check probes
            progress_step: Percentage step between INFO progress lines
            keep_partial: Keep incomplete files instead of removing them
            metrics: Shared server counters, optional
            peer: Remote address for log lines
        """
        self._send = send
        self.authenticator = authenticator
        self.store = store
        self.probe_agents = tuple(probe_agents)
        self.progress_step = progress_step
        self.keep_partial = keep_partial
        self.metrics = metrics
        self.peer = peer

        self._state = SessionState.AWAITING_HANDSHAKE
        self.metadata: Optional[UploadMetadata] = None
        self.bytes_written: int = 0
        self.close_code: Optional[int] = None
        self.is_probe: bool = False

        self._message = bytearray()
        self._file: Optional[BinaryIO] = None
        self._created: bool = False
        self._progress: Optional[ProgressReporter] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return not self._state.is_terminal

    @property
    def payload_limit(self) -> Optional[int]:
        """
        Largest data frame payload the session can take right now.

        While waiting for metadata this is what is left of
        MAX_METADATA_BYTES, so an oversized metadata frame is refused at
        its header instead of being buffered. None when streaming.
        """
        if self._state == SessionState.AWAITING_METADATA:
            return MAX_METADATA_BYTES - len(self._message)
        return None

    # =========================================================================
    # Handshake
    # =========================================================================

    async def handshake(self, raw: bytes) -> bool:
        """
        Answer the HTTP upgrade request.

        Args:
            raw: Request bytes up to and including the blank line

        Returns:
            True if the connection was upgraded, False if it was dropped
            (health-check probe or unusable request)
        """
        if self._state != SessionState.AWAITING_HANDSHAKE:
            raise RuntimeError(f"Handshake in state {self._state.value}")

        try:
            request = parse_request(raw)

            if is_health_check(request, self.probe_agents):
                logger.debug(f"Health check probe from {self.peer}: {request.user_agent}")
                self.is_probe = True
                self._state = SessionState.ABORTED
                return False

            key = request.websocket_key
            if not key:
                raise HandshakeError("Missing Sec-WebSocket-Key header")
        except HandshakeError as e:
            await self.abort(e)
            return False

        await self._send(build_response(key))
        self._state = SessionState.AWAITING_METADATA
        logger.info(f"WebSocket handshake completed with {self.peer}")
        return True

    # =========================================================================
    # Frames
    # =========================================================================

    async def handle_frame(self, frame: Frame) -> None:
        """
        Advance the session with one complete frame.

        Frames arriving after a terminal state are ignored.
        """
        if self._state.is_terminal:
            return
        if self._state == SessionState.AWAITING_HANDSHAKE:
            raise RuntimeError("Frame received before handshake")

        try:
            if frame.is_control:
                await self._handle_control(frame)
            elif self._state == SessionState.AWAITING_METADATA:
                await self._handle_metadata(frame)
            elif self._state == SessionState.STREAMING:
                await self._write(frame.payload)
        except UploadError as e:
            await self.abort(e)

    async def _handle_control(self, frame: Frame) -> None:
        if frame.opcode != Opcode.CLOSE:
            logger.debug(f"Ignoring {frame.opcode.name} from {self.peer}")
            return

        code, reason = parse_close_payload(frame.payload)
        logger.info(f"Client {self.peer} sent Close: code={code} reason={reason!r}")
        try:
            echo = CloseCode(code)
        except ValueError:
            echo = CloseCode.NORMAL
        raise ConnectionClosedByPeer("Client closed before upload completed", close_code=echo)

    async def _handle_metadata(self, frame: Frame) -> None:
        self._message += frame.payload
        if len(self._message) > MAX_METADATA_BYTES:
            raise MetadataError(f"Metadata exceeds {MAX_METADATA_BYTES} bytes")
        if not frame.fin:
            return

        raw = bytes(self._message)
        self._message.clear()

        try:
            metadata = UploadMetadata.model_validate_json(raw)
        except ValidationError as e:
            errors = e.errors(include_url=False, include_input=False)
            fields = ", ".join(".".join(str(p) for p in err["loc"]) or err["type"] for err in errors)
            raise MetadataError(f"Invalid metadata: {fields}") from None

        # Unknown mime types are rejected before anyone is asked to authenticate
        self.store.extension_for(metadata.mime_type)
        self.metadata = metadata
        logger.info(f"Metadata from {self.peer}: {metadata!r}")

        self._state = SessionState.AUTHENTICATING
        allowed = await self.authenticator.authenticate(metadata.id, metadata.mime_type, metadata.token)
        if not allowed:
            raise AuthenticationError("Authentication failed")

        self._file = self.store.create(metadata)
        self._created = True
        self._state = SessionState.STREAMING
        self._progress = ProgressReporter(metadata.id, metadata.size, self.progress_step)

        await self._send(text_frame(json.dumps({"status": "accepted", "id": metadata.id})))

        if metadata.size == 0:
            await self._complete()

    async def _write(self, payload: bytes) -> None:
        assert self.metadata is not None and self._file is not None

        remaining = self.metadata.size - self.bytes_written
        if len(payload) > remaining:
            raise MetadataError(
                f"Payload exceeds declared size of {self.metadata.size} bytes"
            )

        try:
            await asyncio.to_thread(self._file.write, payload)
        except OSError as e:
            logger.error(f"Write failed for upload {self.metadata.id}: {e}")
            raise UploadError("Storage write failed", close_code=CloseCode.INTERNAL_ERROR) from e

        self.bytes_written += len(payload)
        if self.metrics is not None:
            self.metrics.bytes_received += len(payload)
        self._progress.update(self.bytes_written)

        if self.bytes_written == self.metadata.size:
            await self._complete()

    # =========================================================================
    # Termination
    # =========================================================================

    async def _complete(self) -> None:
        self._close_file()
        self._state = SessionState.COMPLETED
        if self.metrics is not None:
            self.metrics.uploads_completed += 1

        logger.info(
            f"Upload {self.metadata.id} complete: {self.bytes_written} bytes "
            f"from {self.peer}"
        )
        await self._send_close(CloseCode.NORMAL, "Upload complete")

    async def abort(self, error: UploadError) -> None:
        """
        Terminate the session after a rejection or failure.

        Sends a Close frame when the error carries a close code. Safe to
        call more than once; only the first call has an effect.
        """
        if self._state.is_terminal:
            return

        handshake_done = self._state != SessionState.AWAITING_HANDSHAKE
        self._state = SessionState.ABORTED
        logger.warning(f"Upload from {self.peer} aborted: {error.reason}")

        if self.metrics is not None:
            self.metrics.uploads_aborted += 1
            self.metrics.record_rejection(type(error).__name__)

        self.release()

        if handshake_done and error.close_code is not None:
            await self._send_close(error.close_code, error.reason)

    async def _send_close(self, code: CloseCode, reason: str) -> None:
        self.close_code = int(code)
        try:
            await self._send(close_frame(code, reason))
        except (ConnectionError, OSError) as e:
            logger.debug(f"Could not send Close to {self.peer}: {e}")

    def release(self) -> None:
        """
        Close the destination file and drop an incomplete one.

        Called on abort and by the connection handler on every exit path.
        """
        self._close_file()
        if not self._created or self._state == SessionState.COMPLETED:
            return
        self._created = False
        if self.keep_partial:
            logger.info(f"Keeping partial upload {self.metadata.id} ({self.bytes_written} bytes)")
            return
        try:
            self.store.discard(self.metadata)
        except OSError as e:
            logger.error(f"Failed to remove partial upload {self.metadata.id}: {e}")

    def _close_file(self) -> None:
        if self._file is None:
            return
        handle, self._file = self._file, None
        try:
            handle.close()
        except OSError as e:
            logger.error(f"Failed to close upload file: {e}")
