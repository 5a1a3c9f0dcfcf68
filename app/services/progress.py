"""
app/services/progress.py

Row-count driven progress reporting for aggregation runs.
"""

from __future__ import annotations

DEFAULT_PROGRESS_STEPS = 20
INITIAL_HEARTBEAT_PERCENT = 1


def percent_complete(rows_processed: int, total_rows: int) -> int:
    """
    Half-up rounded completion percentage, clamped to [0, 100].
    """

    if total_rows <= 0:
        return 100
    percent = (200 * rows_processed + total_rows) // (2 * total_rows)
    return max(0, min(100, percent))


class ProgressReporter:
    """
    Decides when a run reports progress and what percentage it reports.

    The stride is ``max(1, total_rows // steps)`` rows; the final row always
    reports. Reported values never decrease and a finished run ends on 100.
    """

    def __init__(self, total_rows: int, *, steps: int = DEFAULT_PROGRESS_STEPS) -> None:
        self._total_rows = max(0, total_rows)
        self._stride = max(1, self._total_rows // max(1, steps))
        self._last_percent: int | None = None

    @property
    def total_rows(self) -> int:
        return self._total_rows

    @property
    def stride(self) -> int:
        return self._stride

    @property
    def last_percent(self) -> int | None:
        return self._last_percent

    def start(self) -> int:
        """
        Percentage to report when a run begins.

        A run with no data rows is already complete and reports 100; any other
        run reports a small heartbeat before its first stride.
        """

        if self._total_rows == 0:
            return self._record(100)
        return self._record(INITIAL_HEARTBEAT_PERCENT)

    def is_checkpoint(self, rows_processed: int) -> bool:
        """
        Whether the row just processed is a reporting (and yielding) point.
        """

        if self._total_rows == 0:
            return False
        return rows_processed % self._stride == 0 or rows_processed == self._total_rows

    def advance(self, rows_processed: int) -> int | None:
        """
        Percentage to report after ``rows_processed`` rows, or ``None``.
        """

        if not self.is_checkpoint(rows_processed):
            return None
        return self._record(percent_complete(rows_processed, self._total_rows))

    def _record(self, percent: int) -> int:
        if self._last_percent is not None and percent < self._last_percent:
            percent = self._last_percent
        self._last_percent = percent
        return percent
