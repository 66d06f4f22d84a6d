"""
Connection Handler
==================

Read loop for one accepted TCP connection.

This module provides the ConnectionHandler class which:
    - Reads the HTTP upgrade request and hands it to the session
    - Reads socket bytes into a ConnectionBuffer
    - Feeds the FrameReassembler and forwards each frame to the
      UploadSession as soon as it completes, in wire order
    - Closes the socket when the session ends or the peer disconnects

Design Rules:
    - The socket is read only when the reassembler has consumed every
      byte it can; leftovers are decoded without another read
    - A zero-byte read means the peer closed the connection
    - Failures end this connection only, never the listener
"""

import asyncio
import logging
from typing import Optional

from file_server.errors import ConnectionClosedByPeer, HandshakeError, ProtocolViolation, UploadError
from file_server.models.session import SessionState
from file_server.observability.metrics import ServerMetrics
from file_server.protocol.buffer import ConnectionBuffer
from file_server.protocol.handshake import REQUEST_TERMINATOR
from file_server.protocol.reassembler import FrameReassembler
from file_server.upload.session import UploadSession


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Drives one connection from handshake to close.

    Attributes:
        session: Upload state machine for this connection
        reassembler: Frame extractor holding the frame in progress
        buffer: Read window for socket bytes
        peer: Remote address used in log lines

    Example:
        handler = ConnectionHandler(reader, writer, session, reassembler)
        state = await handler.run()
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        session: UploadSession,
        reassembler: FrameReassembler,
        buffer_size: int = 1024 * 1024,
        metrics: Optional[ServerMetrics] = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.session = session
        self.reassembler = reassembler
        self.buffer = ConnectionBuffer(buffer_size)
        self.metrics = metrics
        self.peer = session.peer

    async def run(self) -> SessionState:
        """
        Serve the connection until the session ends.

        Returns:
            Final session state
        """
        try:
            await self._serve()
        except HandshakeError as e:
            self._count("handshake_failures")
            await self.session.abort(e)
        except ProtocolViolation as e:
            self._count("protocol_errors")
            logger.warning(f"Protocol violation from {self.peer}: {e.reason}")
            await self.session.abort(e)
        except OSError as e:
            self._count("io_errors")
            logger.error(f"I/O error on connection {self.peer}: {e}")
            await self.session.abort(UploadError(f"I/O error: {e}"))
        finally:
            self.session.release()
            await self._close()

        return self.session.state

    async def _serve(self) -> None:
        request = await self._read_handshake()
        if request is None:
            await self.session.abort(ConnectionClosedByPeer("Connection closed during handshake"))
            return

        if not await self.session.handshake(request):
            if self.session.is_probe:
                self._count("probes_ignored")
            else:
                self._count("handshake_failures")
            return

        while self.session.is_open:
            data = await self.reader.read(self.buffer.writable)
            if not data:
                await self.session.abort(ConnectionClosedByPeer("Connection closed by peer"))
                break

            self.buffer.fill(data)
            self.reassembler.payload_limit = self.session.payload_limit
            for frame in self.reassembler.frames(self.buffer):
                await self.session.handle_frame(frame)
                if not self.session.is_open:
                    break
                self.reassembler.payload_limit = self.session.payload_limit

    async def _read_handshake(self) -> Optional[bytes]:
        """
        Read the upgrade request up to the blank line.

        Bytes after the blank line stay in the stream reader and are read
        as the start of the frame stream.

        Returns:
            Request bytes, or None if the peer closed before sending any
        """
        try:
            return await self.reader.readuntil(REQUEST_TERMINATOR)
        except asyncio.IncompleteReadError as e:
            if e.partial:
                raise HandshakeError("Connection closed mid upgrade request") from None
            return None
        except asyncio.LimitOverrunError:
            raise HandshakeError("Upgrade request too large") from None

    async def _close(self) -> None:
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error closing connection {self.peer}: {e}")
        logger.info(
            f"Connection {self.peer} closed: state={self.session.state.value}, "
            f"frames={self.reassembler.frames_decoded}"
        )

    def _count(self, counter: str) -> None:
        if self.metrics is not None:
            setattr(self.metrics, counter, getattr(self.metrics, counter) + 1)
