"""Persisted user settings: the configuration the refresh cycle reads."""
import json
import logging
from datetime import datetime
from typing import Callable, Optional

from notamwatch.config import Config
from notamwatch.database import NotamDatabase
from notamwatch.models.notam import Severity, utc_now
from notamwatch.models.settings import (
    AppSettings,
    RefreshInterval,
    Region,
    default_region,
    is_valid_icao_code,
)

logger = logging.getLogger(__name__)

SETTINGS_KEY = 'app_settings'


class SettingsStore:
    """
    Loads AppSettings once and writes them back after every mutation.

    On first start the region list is seeded from Config.REGIONS.
    """

    def __init__(self, db: NotamDatabase,
                 clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self._ensure_table()
        self._settings = self._load() or self._initial_settings()

    def _ensure_table(self):
        self.db.ensure_table('''
            CREATE TABLE IF NOT EXISTS settings (
                key         TEXT PRIMARY KEY,
                value       TEXT NOT NULL,
                updated_at  DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        ''')

    @staticmethod
    def _initial_settings() -> AppSettings:
        regions = [Region(icao_code=code) for code in Config.REGIONS if is_valid_icao_code(code)]
        return AppSettings(regions=regions or [default_region()])

    def _load(self) -> Optional[AppSettings]:
        with self.db.get_connection() as conn:
            row = conn.execute('SELECT value FROM settings WHERE key = ?', (SETTINGS_KEY,)).fetchone()
        if row is None:
            return None
        try:
            return AppSettings.from_dict(json.loads(row['value']))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Stored settings unreadable, using defaults: {e}")
            return None

    def save(self):
        with self.db.get_connection() as conn:
            conn.execute('''
                INSERT OR REPLACE INTO settings (key, value, updated_at)
                VALUES (?, ?, ?)
            ''', (SETTINGS_KEY, json.dumps(self._settings.to_dict()), self.clock().isoformat()))

    @property
    def settings(self) -> AppSettings:
        return self._settings

    # Regions

    def add_region(self, icao_code: str, display_name: Optional[str] = None) -> bool:
        """Add a region; returns False if it is already configured."""
        if not is_valid_icao_code(icao_code):
            raise ValueError(f"Invalid ICAO code: {icao_code!r}")

        code = icao_code.strip().upper()
        if any(r.icao_code == code for r in self._settings.regions):
            return False

        self._settings.regions.append(Region(icao_code=code, display_name=display_name))
        self.save()
        logger.info(f"Added region {code}")
        return True

    def remove_region(self, icao_code: str) -> bool:
        code = icao_code.strip().upper()
        remaining = [r for r in self._settings.regions if r.icao_code != code]
        if len(remaining) == len(self._settings.regions):
            return False

        # The watcher always keeps at least one region.
        self._settings.regions = remaining or [default_region()]
        self.save()
        logger.info(f"Removed region {code}")
        return True

    def toggle_region(self, icao_code: str) -> Optional[bool]:
        """Flip is_enabled; returns the new state or None if unknown."""
        code = icao_code.strip().upper()
        for region in self._settings.regions:
            if region.icao_code == code:
                region.is_enabled = not region.is_enabled
                self.save()
                return region.is_enabled
        return None

    # Refresh

    def set_refresh_interval(self, interval: RefreshInterval):
        self._settings.refresh_interval = interval
        self.save()

    def update_last_refresh_date(self, when: Optional[datetime] = None):
        self._settings.last_refresh_date = when or self.clock()
        self.save()

    # Notifications

    def set_notifications_enabled(self, enabled: bool):
        self._settings.notifications_enabled = enabled
        self.save()

    def set_notification_sound(self, enabled: bool):
        self._settings.notification_sound = enabled
        self.save()

    def set_notification_severity_threshold(self, threshold: Severity):
        self._settings.notification_severity_threshold = threshold
        self.save()

    def reset(self):
        self._settings = self._initial_settings()
        self.save()
