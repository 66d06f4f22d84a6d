"""
Upload Progress
===============

Human-readable sizes and progress lines for upload logging.

Sizes use decimal units (1 KB = 1000 B), matching what clients see in
file browsers. The progress bar has ten cells, one per 10%.

Example:
    reporter = ProgressReporter(upload_id=5, total=2_500_000)
    reporter.update(1_000_000)
    # Upload 5: 1.0 MB / 2.5 MB | 40% ████░░░░░░
"""

import logging
from typing import Tuple


logger = logging.getLogger(__name__)


SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")
BAR_CELLS = 10
FILLED_CELL = "█"
EMPTY_CELL = "░"


def reduce_size(size: float) -> Tuple[float, str]:
    """
    Scale a byte count to the largest unit below 1000.

    Returns:
        (value rounded to 2 decimals, unit)
    """
    value = float(size)
    for unit in SIZE_UNITS[:-1]:
        if value < 1000:
            return round(value, 2), unit
        value /= 1000
    return round(value, 2), SIZE_UNITS[-1]


def format_size(size: float) -> str:
    value, unit = reduce_size(size)
    return f"{value} {unit}"


def progress_bar(percent: float) -> str:
    """Ten-cell bar; a cell fills once its 10% step is reached."""
    return "".join(
        FILLED_CELL if percent >= (cell + 1) * (100 / BAR_CELLS) else EMPTY_CELL
        for cell in range(BAR_CELLS)
    )


class ProgressReporter:
    """
    Logs the progress of a single upload.

    Every write is logged at DEBUG. An INFO line is emitted each time the
    percentage crosses another step_percent boundary, so a multi-gigabyte
    upload produces a bounded number of INFO lines.

    Attributes:
        upload_id: Attachment id used in log lines
        total: Declared upload size in bytes
        step_percent: INFO logging granularity
    """

    def __init__(self, upload_id: int, total: int, step_percent: int = 10) -> None:
        self.upload_id = upload_id
        self.total = total
        self.step_percent = max(1, step_percent)
        self._last_step: int = -1

    def percent(self, written: int) -> float:
        if self.total == 0:
            return 100.0
        return round(written / self.total * 100, 1)

    def line(self, written: int) -> str:
        percent = self.percent(written)
        return (
            f"Upload {self.upload_id}: {format_size(written)} / "
            f"{format_size(self.total)} | {percent:g}% {progress_bar(percent)}"
        )

    def update(self, written: int) -> None:
        """Report the new byte count."""
        line = self.line(written)
        step = int(self.percent(written)) // self.step_percent
        if step > self._last_step:
            self._last_step = step
            logger.info(line)
        else:
            logger.debug(line)
