"""Bounded, newest-first log of detected NOTAM changes."""
import json
import logging
from typing import List, Optional, Sequence

from notamwatch.config import Config
from notamwatch.database import NotamDatabase
from notamwatch.models.change import NotamChange

logger = logging.getLogger(__name__)


class ChangeLog:
    """
    Persists detected changes, newest first, keeping at most `capacity` entries.

    Ordering uses an autoincrement sequence; a batch is inserted in reverse so
    its first change ends up on top.
    """

    def __init__(self, db: NotamDatabase, capacity: int = Config.CHANGE_LOG_CAPACITY):
        self.db = db
        self.capacity = capacity
        self._ensure_table()

    def _ensure_table(self):
        self.db.ensure_table('''
            CREATE TABLE IF NOT EXISTS notam_changes (
                seq          INTEGER PRIMARY KEY AUTOINCREMENT,
                id           TEXT NOT NULL UNIQUE,
                region       TEXT NOT NULL,
                change_type  TEXT NOT NULL,
                notam_id     TEXT NOT NULL,
                detected_at  DATETIME NOT NULL,
                is_read      BOOLEAN DEFAULT 0,
                payload      TEXT NOT NULL
            )
        ''', '''
            CREATE INDEX IF NOT EXISTS idx_changes_region
            ON notam_changes(region)
        ''')

    def add_changes(self, changes: Sequence[NotamChange]) -> int:
        """Prepend changes and evict the oldest beyond capacity. Returns evicted count."""
        if not changes:
            return 0

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            for change in reversed(changes):
                cursor.execute('''
                    INSERT OR REPLACE INTO notam_changes
                    (id, region, change_type, notam_id, detected_at, is_read, payload)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', (
                    change.id,
                    change.region,
                    change.change_type.value,
                    change.notam.id,
                    change.detected_at.isoformat(),
                    change.is_read,
                    json.dumps(change.to_dict()),
                ))

            cursor.execute('''
                DELETE FROM notam_changes
                WHERE seq NOT IN (
                    SELECT seq FROM notam_changes ORDER BY seq DESC LIMIT ?
                )
            ''', (self.capacity,))
            evicted = cursor.rowcount

        logger.info(f"Change log: added {len(changes)} change(s), evicted {evicted}")
        return evicted

    def list_changes(self, region: Optional[str] = None) -> List[NotamChange]:
        """All changes, newest first. Unreadable rows are skipped."""
        query = 'SELECT * FROM notam_changes'
        params: tuple = ()
        if region:
            query += ' WHERE region = ?'
            params = (region.upper(),)
        query += ' ORDER BY seq DESC'

        with self.db.get_connection() as conn:
            rows = conn.execute(query, params).fetchall()

        changes = []
        for row in rows:
            try:
                change = NotamChange.from_dict(json.loads(row['payload']))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable change {row['id']}: {e}")
                continue
            change.is_read = bool(row['is_read'])
            changes.append(change)
        return changes

    def unread_count(self) -> int:
        with self.db.get_connection() as conn:
            row = conn.execute(
                'SELECT COUNT(*) AS unread FROM notam_changes WHERE is_read = 0'
            ).fetchone()
        return row['unread']

    def count(self) -> int:
        with self.db.get_connection() as conn:
            return conn.execute('SELECT COUNT(*) AS total FROM notam_changes').fetchone()['total']

    def mark_as_read(self, change_id: str) -> bool:
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                'UPDATE notam_changes SET is_read = 1 WHERE id = ?', (change_id,)
            )
            return cursor.rowcount > 0

    def mark_all_as_read(self) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute('UPDATE notam_changes SET is_read = 1 WHERE is_read = 0')
            return cursor.rowcount

    def remove_change(self, change_id: str) -> bool:
        with self.db.get_connection() as conn:
            cursor = conn.execute('DELETE FROM notam_changes WHERE id = ?', (change_id,))
            return cursor.rowcount > 0

    def clear_all(self):
        with self.db.get_connection() as conn:
            conn.execute('DELETE FROM notam_changes')
        logger.info("Cleared change log")
