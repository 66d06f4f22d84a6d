"""
Close Codes
===========

WebSocket status codes carried in the payload of a Close frame.

Only the codes the upload protocol actually emits are listed. Each
rejection maps to exactly one code so clients can tell a finished
upload from a refused one without parsing the reason string.
"""

from enum import IntEnum


class CloseCode(IntEnum):
    """
    Status codes sent in server Close frames.

    Attributes:
        NORMAL: Upload finished, every declared byte stored
        GOING_AWAY: Peer is leaving (echoed back, never originated here)
        PROTOCOL_ERROR: Frame stream violated the framing rules
        INVALID_DATA: Metadata, authentication or storage rejection
        MESSAGE_TOO_BIG: Frame declared a payload above the configured limit
        INTERNAL_ERROR: Server-side failure (disk I/O)
    """

    NORMAL = 1000
    GOING_AWAY = 1001
    PROTOCOL_ERROR = 1002
    INVALID_DATA = 1003
    MESSAGE_TOO_BIG = 1009
    INTERNAL_ERROR = 1011
