"""Tracks which NOTAMs already triggered a critical alert."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from notamwatch.config import Config
from notamwatch.database import NotamDatabase
from notamwatch.models.notam import utc_now

logger = logging.getLogger(__name__)


class NotifiedNotamStore:
    """
    Deduplicates immediate critical alerts.

    Entries are (notam_id, notified_at) and live for the retention window;
    cleanup() runs on construction and may be called again at any time.
    """

    def __init__(self, db: NotamDatabase, clock: Callable[[], datetime] = utc_now,
                 retention_days: int = Config.NOTIFIED_RETENTION_DAYS):
        self.db = db
        self.clock = clock
        self.retention_days = retention_days
        self._ensure_table()
        self.cleanup()

    def _ensure_table(self):
        self.db.ensure_table('''
            CREATE TABLE IF NOT EXISTS notified_notams (
                notam_id     TEXT PRIMARY KEY,
                notified_at  DATETIME NOT NULL
            )
        ''')

    def has_been_notified(self, notam_id: str) -> bool:
        with self.db.get_connection() as conn:
            row = conn.execute(
                'SELECT 1 FROM notified_notams WHERE notam_id = ?', (notam_id,)
            ).fetchone()
        return row is not None

    def mark_notified(self, notam_id: str):
        """Record an alert for notam_id; the first timestamp is kept."""
        with self.db.get_connection() as conn:
            conn.execute(
                'INSERT OR IGNORE INTO notified_notams (notam_id, notified_at) VALUES (?, ?)',
                (notam_id, self.clock().isoformat())
            )

    def cleanup(self, retention_days: Optional[int] = None) -> int:
        """Remove entries older than the retention window. Returns rows removed."""
        days = self.retention_days if retention_days is None else retention_days
        cutoff = self.clock() - timedelta(days=days)

        with self.db.get_connection() as conn:
            rows = conn.execute('SELECT notam_id, notified_at FROM notified_notams').fetchall()
            expired = []
            for row in rows:
                notified_at = datetime.fromisoformat(row['notified_at'])
                if notified_at.tzinfo is None:
                    notified_at = notified_at.replace(tzinfo=timezone.utc)
                if notified_at < cutoff:
                    expired.append((row['notam_id'],))
            conn.executemany('DELETE FROM notified_notams WHERE notam_id = ?', expired)

        if expired:
            logger.info(f"Removed {len(expired)} notified entr(ies) older than {days} day(s)")
        return len(expired)

    def count(self) -> int:
        with self.db.get_connection() as conn:
            return conn.execute('SELECT COUNT(*) AS total FROM notified_notams').fetchone()['total']
