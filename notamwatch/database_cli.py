#!/usr/bin/env python3
"""Maintenance CLI: regions, settings and stored data."""
import argparse
import logging
from notamwatch.change_log import ChangeLog
from notamwatch.config import Config
from notamwatch.database import NotamDatabase
from notamwatch.models.notam import Severity
from notamwatch.models.settings import RefreshInterval
from notamwatch.notified_store import NotifiedNotamStore
from notamwatch.settings_store import SettingsStore
from notamwatch.snapshot_store import SnapshotStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-20s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='NOTAM watcher maintenance')
    parser.add_argument('--add-region', metavar='ICAO', help='Start monitoring a region')
    parser.add_argument('--remove-region', metavar='ICAO', help='Stop monitoring a region')
    parser.add_argument('--toggle-region', metavar='ICAO', help='Enable/disable a region')
    parser.add_argument('--interval', choices=[i.value for i in RefreshInterval],
                        help='Set the refresh interval')
    parser.add_argument('--notifications', choices=['on', 'off'],
                        help='Enable or disable notifications')
    parser.add_argument('--threshold', choices=[s.value for s in Severity],
                        help='Minimum severity for immediate alerts')
    parser.add_argument('--evict-snapshots', type=int, metavar='DAYS',
                        help='Remove snapshots captured more than DAYS ago')
    parser.add_argument('--cleanup-notified', action='store_true',
                        help='Drop notified entries past the retention window')
    parser.add_argument('--clear-snapshots', action='store_true', help='Remove every snapshot')
    parser.add_argument('--clear-changes', action='store_true', help='Empty the change log')
    parser.add_argument('--mark-all-read', action='store_true', help='Mark every change as read')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    config = Config()
    db = NotamDatabase(config.DATABASE_PATH)
    settings_store = SettingsStore(db)

    if args.add_region:
        if settings_store.add_region(args.add_region):
            logger.info(f"Now monitoring {args.add_region.upper()}")
        else:
            logger.info(f"{args.add_region.upper()} is already configured")

    if args.remove_region:
        if settings_store.remove_region(args.remove_region):
            SnapshotStore(db).clear(args.remove_region)
        else:
            logger.warning(f"{args.remove_region.upper()} is not configured")

    if args.toggle_region:
        enabled = settings_store.toggle_region(args.toggle_region)
        if enabled is None:
            logger.warning(f"{args.toggle_region.upper()} is not configured")
        else:
            logger.info(f"{args.toggle_region.upper()} {'enabled' if enabled else 'disabled'}")

    if args.interval:
        settings_store.set_refresh_interval(RefreshInterval(args.interval))
        logger.info(f"Refresh interval set to {args.interval}")

    if args.notifications:
        settings_store.set_notifications_enabled(args.notifications == 'on')
        logger.info(f"Notifications {args.notifications}")

    if args.threshold:
        settings_store.set_notification_severity_threshold(Severity(args.threshold))
        logger.info(f"Alert threshold set to {args.threshold}")

    if args.evict_snapshots is not None:
        count = SnapshotStore(db).evict_older_than(args.evict_snapshots)
        logger.info(f"Evicted {count} snapshot(s)")

    if args.cleanup_notified:
        count = NotifiedNotamStore(db).cleanup(config.NOTIFIED_RETENTION_DAYS)
        logger.info(f"Removed {count} notified entr(ies)")

    if args.clear_snapshots:
        SnapshotStore(db).clear_all()

    if args.clear_changes:
        ChangeLog(db).clear_all()

    if args.mark_all_read:
        count = ChangeLog(db).mark_all_as_read()
        logger.info(f"Marked {count} change(s) as read")


if __name__ == '__main__':
    main()
