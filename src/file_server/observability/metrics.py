"""
Server Metrics
==============

Process-wide counters for the upload listener.

All connections run on one event loop, so plain integer increments are
safe without locking. Exposed through the ops API's /metrics endpoint.
"""

from typing import Dict


class ServerMetrics:
    """Metrics for UploadServer observability."""

    __slots__ = (
        "connections_accepted",
        "active_connections",
        "probes_ignored",
        "handshake_failures",
        "protocol_errors",
        "io_errors",
        "uploads_completed",
        "uploads_aborted",
        "bytes_received",
        "rejections",
    )

    def __init__(self) -> None:
        self.connections_accepted: int = 0
        self.active_connections: int = 0
        self.probes_ignored: int = 0
        self.handshake_failures: int = 0
        self.protocol_errors: int = 0
        self.io_errors: int = 0
        self.uploads_completed: int = 0
        self.uploads_aborted: int = 0
        self.bytes_received: int = 0
        self.rejections: Dict[str, int] = {}

    def record_rejection(self, kind: str) -> None:
        """Count a rejected upload by exception class name."""
        self.rejections[kind] = self.rejections.get(kind, 0) + 1

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "connections_accepted": self.connections_accepted,
            "active_connections": self.active_connections,
            "probes_ignored": self.probes_ignored,
            "handshake_failures": self.handshake_failures,
            "protocol_errors": self.protocol_errors,
            "io_errors": self.io_errors,
            "uploads_completed": self.uploads_completed,
            "uploads_aborted": self.uploads_aborted,
            "bytes_received": self.bytes_received,
            "rejections": dict(self.rejections),
        }
