"""
Observability Module
====================

Counters and progress reporting for the upload server.

Components:
    - ServerMetrics: Listener-wide counters served at /metrics
    - ProgressReporter: Per-upload progress log lines
    - format_size / progress_bar: Human-readable formatting helpers
"""

from file_server.observability.metrics import ServerMetrics
from file_server.observability.progress import (
    ProgressReporter,
    format_size,
    progress_bar,
    reduce_size,
)

__all__ = [
    "ServerMetrics",
    "ProgressReporter",
    "format_size",
    "progress_bar",
    "reduce_size",
]
