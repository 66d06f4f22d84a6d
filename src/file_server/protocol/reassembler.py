"""
Frame Reassembler
=================

Turns a byte stream delivered in arbitrary chunks into complete frames.

A single socket read may:
    - end in the middle of a header
    - end in the middle of a payload
    - contain the tail of one frame plus several more frames

The reassembler keeps the frame in progress across reads and drains the
connection buffer until it is empty or the next frame (or header) needs
more bytes from the socket.

Design Rules:
    - Headers are decoded only at frame boundaries, never mid-frame
    - Leftover bytes stay in the ConnectionBuffer and are decoded on the
      same pass, without another socket read
    - Frames come out in wire order, one at a time, before the next
      header is decoded
"""

import logging
from typing import Iterator, List, Optional

from file_server.errors import ProtocolViolation
from file_server.models.close_codes import CloseCode
from file_server.protocol.accumulator import FrameAccumulator
from file_server.protocol.codec import decode_frame
from file_server.protocol.frame import Frame
from file_server.protocol.buffer import ConnectionBuffer


logger = logging.getLogger(__name__)


class FrameReassembler:
    """
    Stateful frame extractor for one connection.

    Attributes:
        max_frame_size: Largest accepted payload (0 = unlimited)
        require_mask: Reject frames without a masking key
        payload_limit: Extra cap on data frame payloads for the current
            protocol phase, None when only max_frame_size applies
        in_progress: Frame still waiting for payload bytes, if any
        frames_decoded: Number of complete frames produced

    Example:
        reassembler = FrameReassembler(require_mask=True)

        buffer.fill(await reader.read(buffer.writable))
        for frame in reassembler.frames(buffer):
            await session.handle_frame(frame)
    """

    def __init__(self, max_frame_size: int = 0, require_mask: bool = False) -> None:
        self.max_frame_size = max_frame_size
        self.require_mask = require_mask
        self.payload_limit: Optional[int] = None

        self._current: Optional[FrameAccumulator] = None
        self._frames_decoded: int = 0

    @property
    def in_progress(self) -> Optional[FrameAccumulator]:
        return self._current

    @property
    def frames_decoded(self) -> int:
        return self._frames_decoded

    def frames(self, buffer: ConnectionBuffer) -> Iterator[Frame]:
        """
        Consume the buffer, yielding each frame as soon as it completes.

        The next header is decoded only when the consumer asks for the
        next frame, so a malformed header later in the same read never
        hides frames that came before it. Settings changed between
        iterations (payload_limit) apply to the next header.

        Args:
            buffer: Connection buffer holding unconsumed bytes

        Yields:
            Complete frames in wire order. Bytes of an incomplete header
            are left unconsumed in the buffer.

        Raises:
            ProtocolViolation: On malformed frames
        """
        while buffer.available:
            window = buffer.window()

            if self._current is None:
                decoded = decode_frame(window)
                if decoded is None:
                    # Partial header, wait for the next read
                    break
                self._check_header(decoded.frame)
                buffer.consume(decoded.consumed)

                if decoded.residual > 0:
                    self._current = decoded.frame
                    break
                yield self._complete(decoded.frame)
                continue

            take = min(self._current.bytes_remaining, len(window))
            self._current.append(bytes(window[:take]))
            buffer.consume(take)

            if not self._current.is_complete:
                break
            frame, self._current = self._current, None
            yield self._complete(frame)

    def feed(self, buffer: ConnectionBuffer) -> List[Frame]:
        """Collect every frame frames() produces from the buffer."""
        return list(self.frames(buffer))

    def _check_header(self, frame: FrameAccumulator) -> None:
        header = frame.header
        if self.require_mask and not header.is_masked:
            raise ProtocolViolation("Client frame is not masked")

        limit = self.max_frame_size or None
        if self.payload_limit is not None and not header.opcode.is_control:
            limit = self.payload_limit if limit is None else min(limit, self.payload_limit)

        if limit is not None and header.payload_length > limit:
            raise ProtocolViolation(
                f"Frame payload of {header.payload_length} bytes exceeds "
                f"limit of {limit}",
                close_code=CloseCode.MESSAGE_TOO_BIG,
            )

    def _complete(self, frame: FrameAccumulator) -> Frame:
        self._frames_decoded += 1
        result = frame.finalize()
        logger.debug(f"Frame complete: {result!r}")
        return result
