"""Main application module."""
import logging
import sys
from notamwatch.alerts import NtfyNotifier
from notamwatch.change_log import ChangeLog
from notamwatch.config import Config
from notamwatch.database import NotamDatabase
from notamwatch.errors import NotamError
from notamwatch.notam_client import get_notam_client
from notamwatch.notified_store import NotifiedNotamStore
from notamwatch.refresh import RefreshOrchestrator, RefreshResult
from notamwatch.scheduler import BackgroundRefreshScheduler
from notamwatch.settings_store import SettingsStore
from notamwatch.snapshot_store import SnapshotStore

# Configure logging from environment
log_level = Config.LOG_LEVEL
logging.basicConfig(
    level=getattr(logging, log_level.upper(), logging.INFO),
    format="%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-20s | %(filename)-15s | %(funcName)-15s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


class NotamWatcher:
    """Main application class: wires the stores, client and notifier into the orchestrator."""

    def __init__(self, db_path: str = None):
        """Initialize the NOTAM watcher."""
        self.config = Config()
        self.config.validate()

        self.db = NotamDatabase(db_path or self.config.DATABASE_PATH)
        self.settings_store = SettingsStore(self.db)
        self.snapshot_store = SnapshotStore(self.db)
        self.change_log = ChangeLog(self.db)
        self.notified_store = NotifiedNotamStore(self.db)
        self.notifier = NtfyNotifier()
        self.scheduler = BackgroundRefreshScheduler()
        self.orchestrator = RefreshOrchestrator(
            settings_store=self.settings_store,
            client=get_notam_client(),
            snapshot_store=self.snapshot_store,
            change_log=self.change_log,
            notified_store=self.notified_store,
            notifier=self.notifier,
            scheduler=self.scheduler,
        )

        settings = self.settings_store.settings
        logger.info("=" * 80)
        logger.info("NOTAM Watcher initialized")
        logger.info(f"Software Version: {self.config.VERSION}")
        logger.info(f"API Endpoint: {self.config.NOTAM_API_URL}")
        logger.info(f"Monitoring {len(settings.enabled_regions)} region(s): {', '.join(settings.enabled_regions)}")
        logger.info(f"Refresh interval: {settings.refresh_interval.display_name}")
        logger.info(f"Database: {self.db.db_path}")
        logger.info(f"Notifications: {'on' if settings.notifications_enabled else 'off'}"
                    f" (ntfy {'configured' if self.notifier.is_configured else 'not configured'})")
        logger.info("=" * 80)

    def run_once(self) -> RefreshResult:
        """Run a single, user-triggered refresh. Errors propagate to the caller."""
        result = self.orchestrator.perform_refresh()

        evicted = self.snapshot_store.evict_older_than(self.config.SNAPSHOT_RETENTION_DAYS)
        logger.info(f"Snapshots evicted: {evicted}")
        logger.info(f"Unread changes: {self.change_log.unread_count()}")
        logger.info(f"Cycle time: {result.elapsed_seconds:.2f}s")
        return result

    def run_continuous(self):
        """Refresh now, then on every scheduled wake until interrupted."""
        logger.info("Starting continuous monitoring mode")

        self.scheduler.schedule_refresh(0)
        try:
            self.scheduler.run_forever(self.orchestrator.handle_background_refresh)
        except KeyboardInterrupt:
            self.orchestrator.cancel()
            self.scheduler.stop()
            logger.info("Monitoring stopped by user")


def main():
    """Main entry point."""
    # Check if we should run once or continuously
    run_once = '--once' in sys.argv

    try:
        watcher = NotamWatcher()
    except Exception as e:
        logger.error(f"Failed to start NOTAM watcher: {e}", exc_info=True)
        sys.exit(1)

    if run_once:
        try:
            watcher.run_once()
        except NotamError as e:
            logger.error(f"Refresh failed: {e}")
            sys.exit(1)
    else:
        watcher.run_continuous()


if __name__ == '__main__':
    main()
