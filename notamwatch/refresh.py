"""Refresh orchestrator: fetch, persist, detect, log and notify in one cycle."""
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

from notamwatch.alerts import NtfyNotifier
from notamwatch.change_detector import NotamChangeDetector
from notamwatch.change_log import ChangeLog
from notamwatch.config import Config
from notamwatch.errors import AllFetchesFailedError, RefreshCancelledError
from notamwatch.models.change import NotamChange
from notamwatch.models.notam import Notam, utc_now
from notamwatch.notam_client import BaseNotamClient, aggregate_results
from notamwatch.notified_store import NotifiedNotamStore
from notamwatch.scheduler import BackgroundRefreshScheduler
from notamwatch.settings_store import SettingsStore
from notamwatch.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class RefreshState(Enum):
    """Phase of the running cycle, declared in the order a cycle passes through them."""
    IDLE = "idle"
    FETCHING = "fetching"
    DIFFING = "diffing"
    PERSISTING = "persisting"
    NOTIFYING = "notifying"


@dataclass
class RefreshResult:
    """What one refresh invocation did."""
    regions: List[str] = field(default_factory=list)
    fetched: Dict[str, int] = field(default_factory=dict)
    failed: Dict[str, Exception] = field(default_factory=dict)
    changes: List[NotamChange] = field(default_factory=list)
    critical_alerts: List[str] = field(default_factory=list)
    summaries_sent: int = 0
    skipped: bool = False
    elapsed_seconds: float = 0.0


class RefreshOrchestrator:
    """
    Runs the refresh cycle.

    Only one cycle runs at a time: a request while one is in flight returns a
    skipped result instead of queueing. Regions that fail to fetch keep their
    previous snapshot and take no part in change detection. If every region
    fails nothing is written and AllFetchesFailedError is raised.
    """

    def __init__(self, settings_store: SettingsStore, client: BaseNotamClient,
                 snapshot_store: SnapshotStore, change_log: ChangeLog,
                 notified_store: NotifiedNotamStore, notifier: NtfyNotifier,
                 detector: Optional[NotamChangeDetector] = None,
                 scheduler: Optional[BackgroundRefreshScheduler] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.settings_store = settings_store
        self.client = client
        self.snapshot_store = snapshot_store
        self.change_log = change_log
        self.notified_store = notified_store
        self.notifier = notifier
        self.detector = detector or NotamChangeDetector()
        self.scheduler = scheduler
        self.clock = clock

        self.state = RefreshState.IDLE
        self.last_error: Optional[Exception] = None
        self.last_result: Optional[RefreshResult] = None

        self._guard = threading.Lock()
        self._cancelled = threading.Event()

    @property
    def is_refreshing(self) -> bool:
        return self._guard.locked()

    def cancel(self):
        """Ask the running cycle to stop before its next step. Completed writes stay."""
        if self.is_refreshing:
            logger.warning("Refresh cancellation requested")
            self._cancelled.set()

    def _check_cancelled(self, step: str):
        if self._cancelled.is_set():
            raise RefreshCancelledError(step)

    def perform_refresh(self) -> RefreshResult:
        """Run one refresh cycle. Raises AllFetchesFailedError or RefreshCancelledError."""
        if not self._guard.acquire(blocking=False):
            logger.info("Refresh already in progress, ignoring request")
            return RefreshResult(skipped=True)

        self._cancelled.clear()
        start_time = time.time()
        try:
            result = self._run_cycle()
            result.elapsed_seconds = time.time() - start_time
            self.last_error = None
            self.last_result = result
            return result
        except Exception as e:
            self.last_error = e
            raise
        finally:
            self.state = RefreshState.IDLE
            self._guard.release()

    def _run_cycle(self) -> RefreshResult:
        settings = self.settings_store.settings
        regions = settings.enabled_regions
        result = RefreshResult(regions=list(regions))

        if not regions:
            logger.info("No regions enabled, nothing to refresh")
            return result

        logger.info("=" * 80)
        logger.info(f"Starting refresh for {len(regions)} region(s): {', '.join(regions)}")

        # Previous snapshots, best effort
        self.state = RefreshState.FETCHING
        stored = self.snapshot_store.load_all()
        previous = {region: stored[region].notams for region in regions if region in stored}

        self._check_cancelled("fetch")
        current, errors = aggregate_results(self.client.fetch_all_results(regions))
        result.failed = errors
        result.fetched = {region: len(notams) for region, notams in current.items()}

        self._check_cancelled("change detection")
        self.state = RefreshState.DIFFING
        previous_for_current = {region: previous.get(region, []) for region in current}
        changes = self.detector.detect_changes(previous_for_current, current, now=self.clock())
        result.changes = changes

        # Snapshots and critical alerts per successful region, then the change log
        self.state = RefreshState.PERSISTING
        for region, notams in current.items():
            self._check_cancelled(f"persisting {region}")
            self.snapshot_store.save(region, notams)
            if settings.notifications_enabled:
                result.critical_alerts.extend(self._notify_critical(notams))

        self._check_cancelled("change log update")
        self.change_log.add_changes(changes)

        self._check_cancelled("notification")
        if changes and settings.notifications_enabled:
            self.state = RefreshState.NOTIFYING
            result.summaries_sent = self.notifier.notify_of_changes(
                changes, play_sound=settings.notification_sound
            )

        self.settings_store.update_last_refresh_date(self.clock())
        if self.scheduler:
            self.scheduler.schedule_refresh(settings.refresh_interval.seconds)

        logger.info(
            f"Refresh complete: {len(current)} region(s) updated, {len(errors)} failed, "
            f"{len(changes)} change(s), {len(result.critical_alerts)} critical alert(s)"
        )
        logger.info("=" * 80)
        return result

    def _notify_critical(self, notams: List[Notam]) -> List[str]:
        """Alert once per recent NOTAM at or above the configured severity threshold."""
        settings = self.settings_store.settings
        threshold = settings.notification_severity_threshold
        recent_cutoff = self.clock() - timedelta(days=Config.CRITICAL_RECENT_DAYS)
        alerted = []

        for notam in notams:
            if not notam.severity.meets_threshold(threshold):
                continue
            if notam.issued <= recent_cutoff:
                continue
            if self.notified_store.has_been_notified(notam.id):
                continue

            self.notifier.send_critical_alert(notam, play_sound=settings.notification_sound)
            self.notified_store.mark_notified(notam.id)
            alerted.append(notam.id)

        return alerted

    def handle_background_refresh(self) -> bool:
        """
        Entry point for the background wake-up.

        Schedules the next wake first, then refreshes. Failures are logged and
        swallowed since nobody is watching; returns True on success.
        """
        if self.scheduler:
            self.scheduler.schedule_refresh(self.settings_store.settings.refresh_interval.seconds)

        self.notified_store.cleanup()
        try:
            result = self.perform_refresh()
        except AllFetchesFailedError as e:
            logger.error(f"Background refresh failed: {e}")
            return False
        except RefreshCancelledError as e:
            logger.warning(f"Background refresh cancelled: {e}")
            return False
        except Exception as e:
            logger.error(f"Background refresh failed: {e}", exc_info=True)
            return False
        return not result.skipped
