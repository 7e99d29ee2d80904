"""Alerting module for ntfy integration."""
import requests
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from notamwatch.models.change import ChangeType, NotamChange
from notamwatch.models.notam import Notam, Severity
from notamwatch.config import Config

logger = logging.getLogger(__name__)


def count_changes(changes: Sequence[NotamChange]) -> Dict[str, int]:
    """Counts used in summaries: new, modified, expired (expired + cancelled)."""
    return {
        'new': sum(1 for c in changes if c.change_type == ChangeType.NEW),
        'modified': sum(1 for c in changes if c.change_type == ChangeType.MODIFIED),
        'expired': sum(1 for c in changes if c.change_type in (ChangeType.EXPIRED, ChangeType.CANCELLED)),
    }


def group_by_region(changes: Sequence[NotamChange]) -> Dict[str, List[NotamChange]]:
    grouped: Dict[str, List[NotamChange]] = OrderedDict()
    for change in changes:
        grouped.setdefault(change.region, []).append(change)
    return grouped


class NtfyNotifier:
    """
    Sends push notifications via ntfy.sh.

    Two kinds of message: an immediate alert for one critical NOTAM, and a
    per-region summary of the changes found by a refresh. Only fires when
    NTFY_URL is configured; delivery failures are logged, never raised.
    """

    def __init__(self, url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.config = Config()
        self.url = self.config.NTFY_URL if url is None else url
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    def _get_priority(self, severity: Severity) -> str:
        """Map severity to ntfy priority."""
        return {
            Severity.CRITICAL: "urgent",
            Severity.WARNING: "high",
            Severity.CAUTION: "default",
            Severity.INFO: "low",
        }[severity]

    def _post(self, title: str, body: str, priority: str, tags: List[str]) -> bool:
        if not self.url:
            logger.warning("NTFY_URL not configured, skipping alert")
            return False

        # Sanitize title for HTTP headers (must be Latin-1)
        title_sanitized = title.encode('latin-1', errors='ignore').decode('latin-1')

        headers = {
            "Title": title_sanitized,
            "Priority": priority,
            "Tags": ",".join(tags),
        }

        try:
            response = self.session.post(
                self.url,
                data=body.encode('utf-8'),  # Body can be UTF-8
                headers=headers,
                timeout=self.config.NTFY_TIMEOUT_SECONDS
            )
            response.raise_for_status()
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send ntfy alert: {e}")
            return False

    def send_critical_alert(self, notam: Notam, play_sound: bool = True) -> bool:
        """Immediate alert for one high-severity NOTAM."""
        severity = notam.severity
        title = f"Critical: {notam.display_id} - {notam.location}"
        tags = ["rotating_light", "airplane"]
        if not play_sound:
            tags.append("silent")

        sent = self._post(title, notam.summary(), self._get_priority(severity), tags)
        if sent:
            logger.info(f"Critical alert sent for {notam.id} ({severity.value})")
        return sent

    def send_change_summary(self, region: str, changes: Sequence[NotamChange],
                            play_sound: bool = True) -> bool:
        """One message per region: "N new, M modified, K expired"."""
        counts = count_changes(changes)
        body_parts = []
        if counts['new']:
            body_parts.append(f"{counts['new']} new")
        if counts['modified']:
            body_parts.append(f"{counts['modified']} modified")
        if counts['expired']:
            body_parts.append(f"{counts['expired']} expired")

        body = ", ".join(body_parts)
        details = [f"• {c.summary}" for c in changes[:10]]
        if len(changes) > 10:
            details.append(f"... and {len(changes) - 10} more")
        if details:
            body += "\n\n" + "\n".join(details)

        priority = "default" if play_sound else "low"
        sent = self._post(f"NOTAM Update: {region}", body, priority, ["bell"])
        if sent:
            logger.info(f"Summary sent for {region}: {len(changes)} change(s)")
        return sent

    def notify_of_changes(self, changes: Sequence[NotamChange], play_sound: bool = True) -> int:
        """Send one summary per region. Returns the number of summaries delivered."""
        delivered = 0
        for region, region_changes in group_by_region(changes).items():
            if self.send_change_summary(region, region_changes, play_sound=play_sound):
                delivered += 1
        return delivered
