"""
Session State Model
===================

Discrete protocol states of one upload connection.

Transitions:
    AWAITING_HANDSHAKE → AWAITING_METADATA   (101 response sent)
    AWAITING_METADATA  → AUTHENTICATING      (metadata parsed)
    AUTHENTICATING     → STREAMING           (auth ok, file created)
    STREAMING          → COMPLETED           (bytes_written == size)
    any non-terminal   → ABORTED             (rejection, violation, peer gone)
"""

from enum import Enum


class SessionState(str, Enum):
    """
    Lifecycle states of an UploadSession.

    COMPLETED and ABORTED are terminal; the connection is closed as soon
    as either is reached.
    """

    AWAITING_HANDSHAKE = "AWAITING_HANDSHAKE"
    AWAITING_METADATA = "AWAITING_METADATA"
    AUTHENTICATING = "AUTHENTICATING"
    STREAMING = "STREAMING"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"

    @property
    def is_terminal(self) -> bool:
        """Whether the session has finished, successfully or not."""
        return self in (SessionState.COMPLETED, SessionState.ABORTED)
