"""User settings model: monitored regions, refresh interval, notification preferences."""
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Dict, Any

from notamwatch.config import Config
from notamwatch.models.notam import Severity

ICAO_CODE_PATTERN = re.compile(r'^[A-Z]{4}$')


def is_valid_icao_code(code: str) -> bool:
    """Region codes are four ICAO letters."""
    return bool(code) and ICAO_CODE_PATTERN.match(code.strip().upper()) is not None


class RefreshInterval(Enum):
    ONE_HOUR = "1h"
    SIX_HOURS = "6h"
    TWELVE_HOURS = "12h"

    @property
    def seconds(self) -> int:
        return {
            RefreshInterval.ONE_HOUR: 3600,
            RefreshInterval.SIX_HOURS: 3600 * 6,
            RefreshInterval.TWELVE_HOURS: 3600 * 12,
        }[self]

    @property
    def display_name(self) -> str:
        return {
            RefreshInterval.ONE_HOUR: "Every hour",
            RefreshInterval.SIX_HOURS: "Every 6 hours",
            RefreshInterval.TWELVE_HOURS: "Every 12 hours",
        }[self]


@dataclass
class Region:
    """A monitored FIR or aerodrome."""
    icao_code: str
    display_name: Optional[str] = None
    is_enabled: bool = True

    def __post_init__(self):
        self.icao_code = self.icao_code.strip().upper()
        if not self.display_name:
            self.display_name = self.icao_code


def default_region() -> Region:
    return Region(icao_code=Config.DEFAULT_REGION)


@dataclass
class AppSettings:
    regions: List[Region] = field(default_factory=lambda: [default_region()])
    refresh_interval: RefreshInterval = RefreshInterval.SIX_HOURS
    notifications_enabled: bool = True
    notification_sound: bool = True
    notification_severity_threshold: Severity = Severity.CRITICAL
    last_refresh_date: Optional[datetime] = None

    @property
    def enabled_regions(self) -> List[str]:
        """Enabled region codes, in configured order."""
        return [r.icao_code for r in self.regions if r.is_enabled]

    @property
    def next_refresh_date(self) -> Optional[datetime]:
        if not self.last_refresh_date:
            return None
        return self.last_refresh_date + timedelta(seconds=self.refresh_interval.seconds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'regions': [
                {'icao_code': r.icao_code, 'display_name': r.display_name, 'is_enabled': r.is_enabled}
                for r in self.regions
            ],
            'refresh_interval': self.refresh_interval.value,
            'notifications_enabled': self.notifications_enabled,
            'notification_sound': self.notification_sound,
            'notification_severity_threshold': self.notification_severity_threshold.value,
            'last_refresh_date': self.last_refresh_date.isoformat() if self.last_refresh_date else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppSettings':
        last_refresh = data.get('last_refresh_date')
        last_refresh_date = datetime.fromisoformat(last_refresh) if last_refresh else None
        if last_refresh_date and last_refresh_date.tzinfo is None:
            last_refresh_date = last_refresh_date.replace(tzinfo=timezone.utc)

        regions = [Region(**r) for r in data.get('regions') or []]
        return cls(
            regions=regions or [default_region()],
            refresh_interval=RefreshInterval(data.get('refresh_interval', RefreshInterval.SIX_HOURS.value)),
            notifications_enabled=bool(data.get('notifications_enabled', True)),
            notification_sound=bool(data.get('notification_sound', True)),
            notification_severity_threshold=Severity(
                data.get('notification_severity_threshold', Severity.CRITICAL.value)
            ),
            last_refresh_date=last_refresh_date,
        )
