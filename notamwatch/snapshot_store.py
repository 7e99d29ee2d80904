"""Local snapshot store: last fetched NOTAM list per region."""
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from notamwatch.config import Config
from notamwatch.database import NotamDatabase
from notamwatch.models.notam import Notam, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionSnapshot:
    """The NOTAMs observed for one region at captured_at."""
    region: str
    notams: List[Notam]
    captured_at: datetime

    def age(self, now: Optional[datetime] = None) -> timedelta:
        return (now or utc_now()) - self.captured_at

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        """Older than SNAPSHOT_STALE_HOURS. Informational only."""
        return self.age(now) > timedelta(hours=Config.SNAPSHOT_STALE_HOURS)


class SnapshotStore:
    """
    Persists one snapshot row per region.

    save() replaces the row inside a single transaction, so readers see either
    the old snapshot or the new one. Unreadable rows are skipped by load_all()
    and reported as missing by load().
    """

    def __init__(self, db: NotamDatabase, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self._ensure_table()

    def _ensure_table(self):
        self.db.ensure_table('''
            CREATE TABLE IF NOT EXISTS region_snapshots (
                region       TEXT PRIMARY KEY,
                captured_at  DATETIME NOT NULL,
                notam_count  INTEGER NOT NULL DEFAULT 0,
                payload      TEXT NOT NULL
            )
        ''', '''
            CREATE INDEX IF NOT EXISTS idx_snapshots_captured_at
            ON region_snapshots(captured_at)
        ''')

    def save(self, region: str, notams: List[Notam]) -> RegionSnapshot:
        """Replace the snapshot for region. Write errors propagate."""
        region = region.upper()
        captured_at = self.clock()
        payload = json.dumps([n.to_dict() for n in notams])

        with self.db.get_connection() as conn:
            conn.execute('''
                INSERT OR REPLACE INTO region_snapshots (region, captured_at, notam_count, payload)
                VALUES (?, ?, ?, ?)
            ''', (region, captured_at.isoformat(), len(notams), payload))

        logger.debug(f"Saved snapshot for {region}: {len(notams)} NOTAM(s)")
        return RegionSnapshot(region=region, notams=list(notams), captured_at=captured_at)

    @staticmethod
    def _decode(row) -> RegionSnapshot:
        captured_at = datetime.fromisoformat(row['captured_at'])
        if captured_at.tzinfo is None:
            captured_at = captured_at.replace(tzinfo=timezone.utc)
        notams = [Notam.from_dict(item) for item in json.loads(row['payload'])]
        return RegionSnapshot(region=row['region'], notams=notams, captured_at=captured_at)

    def load(self, region: str) -> Optional[RegionSnapshot]:
        """Snapshot for region, or None if absent or unreadable."""
        region = region.upper()
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    'SELECT * FROM region_snapshots WHERE region = ?', (region,)
                ).fetchone()
        except Exception as e:
            logger.warning(f"Could not read snapshot for {region}: {e}")
            return None

        if row is None:
            return None

        try:
            return self._decode(row)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Corrupt snapshot for {region}, ignoring: {e}")
            return None

    def load_all(self) -> Dict[str, RegionSnapshot]:
        """Every readable snapshot keyed by region; corrupt rows are skipped."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute('SELECT * FROM region_snapshots ORDER BY region').fetchall()
        except Exception as e:
            logger.warning(f"Could not read snapshots: {e}")
            return {}

        snapshots = {}
        for row in rows:
            try:
                snapshots[row['region']] = self._decode(row)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Corrupt snapshot for {row['region']}, skipping: {e}")
        return snapshots

    def clear(self, region: str):
        with self.db.get_connection() as conn:
            conn.execute('DELETE FROM region_snapshots WHERE region = ?', (region.upper(),))
        logger.info(f"Cleared snapshot for {region.upper()}")

    def clear_all(self):
        with self.db.get_connection() as conn:
            conn.execute('DELETE FROM region_snapshots')
        logger.info("Cleared all snapshots")

    def evict_older_than(self, days: int = Config.SNAPSHOT_RETENTION_DAYS) -> int:
        """Delete snapshots captured more than days ago. Returns rows removed."""
        threshold = self.clock() - timedelta(days=days)

        # captured_at is compared after decoding, since stored offsets may differ
        with self.db.get_connection() as conn:
            rows = conn.execute('SELECT region, captured_at FROM region_snapshots').fetchall()
            expired = []
            for row in rows:
                try:
                    captured_at = datetime.fromisoformat(row['captured_at'])
                except ValueError:
                    expired.append(row['region'])
                    continue
                if captured_at.tzinfo is None:
                    captured_at = captured_at.replace(tzinfo=timezone.utc)
                if captured_at < threshold:
                    expired.append(row['region'])

            conn.executemany(
                'DELETE FROM region_snapshots WHERE region = ?', [(r,) for r in expired]
            )

        if expired:
            logger.info(f"Evicted {len(expired)} snapshot(s) older than {days} day(s)")
        return len(expired)
