"""
Upload Server
=============

asyncio TCP listener for WebSocket uploads.

Every accepted connection gets its own task running a ConnectionHandler
with a fresh UploadSession and FrameReassembler. Nothing is shared
between connections except the UploadStore directory and ServerMetrics.

Design Rules:
    - The accept loop never waits on a connection's progress
    - stop() closes the listening socket; in-flight uploads keep running
      until they finish or fail on their own
    - An unexpected error in one connection is logged and contained
"""

import asyncio
import logging
from typing import Iterable, Optional, Set

from file_server.auth.authenticator import Authenticator
from file_server.observability.metrics import ServerMetrics
from file_server.protocol.reassembler import FrameReassembler
from file_server.transport.connection import ConnectionHandler
from file_server.upload.session import UploadSession
from file_server.upload.storage import UploadStore


logger = logging.getLogger(__name__)


class UploadServer:
    """
    TCP listener accepting one upload per connection.

    Attributes:
        host: Bind address
        port: Bind port (0 picks a free port, see bound_port)
        metrics: Listener-wide counters
        is_serving: Whether the listening socket is open

    Example:
        server = UploadServer(
            host="0.0.0.0",
            port=11000,
            authenticator=MockAuthenticator(),
            store=UploadStore("./data/uploads"),
        )
        await server.start()
        ...
        await server.stop()
    """

    def __init__(
        self,
        host: str,
        port: int,
        authenticator: Authenticator,
        store: UploadStore,
        buffer_size: int = 1024 * 1024,
        max_frame_size: int = 0,
        require_mask: bool = True,
        probe_agents: Iterable[str] = (),
        progress_step: int = 10,
        keep_partial: bool = False,
    ) -> None:
        """
        Initialize upload server.

        Args:
            host: Bind address
            port: Bind port
            authenticator: Backend approving uploads
            store: Destination file store
            buffer_size: Per-connection read buffer capacity in bytes
            max_frame_size: Largest accepted frame payload (0 = unlimited)
            require_mask: Reject unmasked client frames
            probe_agents: User-Agent markers of health-check probes
            progress_step: Percentage step between INFO progress lines
            keep_partial: Keep incomplete files after a failed upload
        """
        self.host = host
        self.port = port
        self.authenticator = authenticator
        self.store = store
        self.buffer_size = buffer_size
        self.max_frame_size = max_frame_size
        self.require_mask = require_mask
        self.probe_agents = tuple(probe_agents)
        self.progress_step = progress_step
        self.keep_partial = keep_partial

        self.metrics = ServerMetrics()

        self._server: Optional[asyncio.AbstractServer] = None
        self._connections: Set[asyncio.Task] = set()

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def bound_port(self) -> Optional[int]:
        """Actual listening port, once started."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    async def start(self) -> None:
        """Create the data directory and open the listening socket."""
        self.store.ensure_directory()
        self._server = await asyncio.start_server(
            self._on_connection,
            host=self.host,
            port=self.port,
            limit=self.buffer_size,
        )
        logger.info(f"Listening for uploads on {self.host}:{self.bound_port}")

    async def serve_forever(self) -> None:
        """Start if needed and accept connections until stopped."""
        if self._server is None:
            await self.start()
        try:
            await self._server.serve_forever()
        except asyncio.CancelledError:
            logger.info("Upload listener cancelled")
            raise

    async def stop(self, drain_timeout: Optional[float] = None) -> None:
        """
        Stop accepting connections.

        Args:
            drain_timeout: Seconds to wait for in-flight uploads.
                None waits until they all finish.
        """
        if self._server is not None:
            self._server.close()
            logger.info("Upload listener closed")

        if self._connections:
            logger.info(f"Waiting for {len(self._connections)} in-flight uploads")
            await asyncio.wait(set(self._connections), timeout=drain_timeout)

    async def _on_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        task = asyncio.current_task()
        self._connections.add(task)
        self.metrics.connections_accepted += 1
        self.metrics.active_connections += 1

        peername = writer.get_extra_info("peername")
        peer = f"{peername[0]}:{peername[1]}" if peername else "unknown"
        logger.info(f"Connection accepted from {peer}")

        async def send(data: bytes) -> None:
            writer.write(data)
            await writer.drain()

        session = UploadSession(
            send,
            authenticator=self.authenticator,
            store=self.store,
            probe_agents=self.probe_agents,
            progress_step=self.progress_step,
            keep_partial=self.keep_partial,
            metrics=self.metrics,
            peer=peer,
        )
        handler = ConnectionHandler(
            reader,
            writer,
            session,
            FrameReassembler(
                max_frame_size=self.max_frame_size,
                require_mask=self.require_mask,
            ),
            buffer_size=self.buffer_size,
            metrics=self.metrics,
        )

        try:
            await handler.run()
        except Exception as e:
            logger.exception(f"Unhandled error on connection {peer}: {e}")
        finally:
            self.metrics.active_connections -= 1
            self._connections.discard(task)
