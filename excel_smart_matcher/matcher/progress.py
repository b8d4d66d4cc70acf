"""
Progress reporting and cooperative cancellation for long joins.

The join executor polls is_cancelled() every few rows and reports progress
as chunks finish. Hosts plug in their own monitor; CancellationToken is
the stock thread-safe implementation.
"""

import logging
import threading


logger = logging.getLogger(__name__)


class ProgressMonitor:
    """No-op monitor. Subclass and override either method."""

    def report_progress(self, current: int, total: int) -> None:
        pass

    def is_cancelled(self) -> bool:
        return False


class CancellationToken(ProgressMonitor):
    """Monitor that can be cancelled from any thread and remembers the last progress."""

    def __init__(self, cancel_after_progress: int = None):
        """
        Args:
            cancel_after_progress: Cancel automatically once progress reaches this row count
        """
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._cancel_after = cancel_after_progress
        self.last_progress = (0, 0)

    def cancel(self) -> None:
        if not self._event.is_set():
            logger.info("Cancellation requested")
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def report_progress(self, current: int, total: int) -> None:
        with self._lock:
            self.last_progress = (current, total)
        if self._cancel_after is not None and current >= self._cancel_after:
            self.cancel()


NULL_MONITOR = ProgressMonitor()


# End of file #
