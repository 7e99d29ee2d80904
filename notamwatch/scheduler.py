"""Background wake-up trigger for periodic refreshes."""
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from notamwatch.models.notam import utc_now

logger = logging.getLogger(__name__)


class BackgroundRefreshScheduler:
    """
    Holds the next wake time and invokes a handler when it is reached.

    The refresh orchestrator calls schedule_refresh() at the end of each
    cycle; run_forever() sleeps until then. stop() wakes the loop and ends it.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock
        self._next_wake: Optional[datetime] = None
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._stopped = threading.Event()

    @property
    def next_wake(self) -> Optional[datetime]:
        with self._lock:
            return self._next_wake

    def schedule_refresh(self, seconds: float) -> datetime:
        """Set the next wake to `seconds` from now, replacing any earlier schedule."""
        wake = self.clock() + timedelta(seconds=seconds)
        with self._lock:
            self._next_wake = wake
        self._wakeup.set()
        logger.info(f"Background refresh scheduled for {seconds / 3600:.1f}h from now ({wake.isoformat()})")
        return wake

    def cancel(self):
        with self._lock:
            self._next_wake = None
        self._wakeup.set()
        logger.info("Scheduled background refresh cancelled")

    def stop(self):
        self._stopped.set()
        self._wakeup.set()

    def seconds_until_wake(self) -> Optional[float]:
        wake = self.next_wake
        if wake is None:
            return None
        return max(0.0, (wake - self.clock()).total_seconds())

    def run_forever(self, handler: Callable[[], object]):
        """Invoke handler every time the scheduled wake time is reached, until stop()."""
        logger.info("Background scheduler started")
        while not self._stopped.is_set():
            remaining = self.seconds_until_wake()
            if remaining is None:
                self._wakeup.wait()
                self._wakeup.clear()
                continue
            if remaining > 0:
                self._wakeup.wait(remaining)
                self._wakeup.clear()
                continue

            with self._lock:
                self._next_wake = None
            try:
                handler()
            except Exception as e:
                logger.error(f"Background refresh handler failed: {e}", exc_info=True)
        logger.info("Background scheduler stopped")
