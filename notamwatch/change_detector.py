"""Detects changes between a previous and a current NOTAM snapshot."""
import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from notamwatch.models.change import ChangeType, NotamChange
from notamwatch.models.notam import Notam, NotamType, utc_now

logger = logging.getLogger(__name__)

# Fields whose difference turns a NOTAM present on both sides into MODIFIED.
COMPARED_FIELDS = (
    'text',
    'effective_start',
    'effective_end',
    'notam_type',
    'minimum_fl',
    'maximum_fl',
)


def has_significant_changes(previous: Notam, current: Notam) -> bool:
    return any(getattr(previous, f) != getattr(current, f) for f in COMPARED_FIELDS)


def _index_by_id(notams: Sequence[Notam]) -> Dict[str, Notam]:
    """Map id -> NOTAM; on duplicate ids the first one seen wins."""
    indexed: Dict[str, Notam] = {}
    for notam in notams:
        indexed.setdefault(notam.id, notam)
    return indexed


class NotamChangeDetector:
    """
    Pure comparison of two region -> NOTAM list maps.

    A region present on only one side is compared against an empty list.
    A NOTAM that disappeared is CANCELLED when its last known type was a
    cancellation and EXPIRED otherwise. This cannot tell a real cancellation
    from a NOTAM that simply dropped out of the feed.
    """

    def detect_changes(self, previous: Mapping[str, Sequence[Notam]],
                       current: Mapping[str, Sequence[Notam]],
                       now: Optional[datetime] = None) -> List[NotamChange]:
        detected_at = now or utc_now()

        # current order first, then regions that only exist in previous
        regions = list(current.keys()) + [r for r in previous.keys() if r not in current]

        changes: List[NotamChange] = []
        for region in regions:
            changes.extend(self._detect_for_region(
                previous.get(region) or [], current.get(region) or [], detected_at
            ))

        if changes:
            logger.info(f"Detected {len(changes)} change(s) across {len(regions)} region(s)")

        # Stable: equal timestamps keep generation order.
        return sorted(changes, key=lambda c: c.detected_at, reverse=True)

    def _detect_for_region(self, previous: Sequence[Notam], current: Sequence[Notam],
                           detected_at: datetime) -> List[NotamChange]:
        prev_by_id = _index_by_id(previous)
        curr_by_id = _index_by_id(current)
        changes: List[NotamChange] = []

        for notam_id, notam in curr_by_id.items():
            if notam_id not in prev_by_id:
                changes.append(NotamChange(
                    change_type=ChangeType.NEW, notam=notam, detected_at=detected_at
                ))

        for notam_id, notam in prev_by_id.items():
            if notam_id not in curr_by_id:
                change_type = (
                    ChangeType.CANCELLED if notam.notam_type == NotamType.CANCEL
                    else ChangeType.EXPIRED
                )
                changes.append(NotamChange(
                    change_type=change_type, notam=notam, detected_at=detected_at
                ))

        for notam_id, current_notam in curr_by_id.items():
            previous_notam = prev_by_id.get(notam_id)
            if previous_notam is not None and has_significant_changes(previous_notam, current_notam):
                changes.append(NotamChange(
                    change_type=ChangeType.MODIFIED,
                    notam=current_notam,
                    previous_notam=previous_notam,
                    detected_at=detected_at,
                ))

        return changes


def detect_changes(previous: Mapping[str, Sequence[Notam]],
                   current: Mapping[str, Sequence[Notam]],
                   now: Optional[datetime] = None) -> List[NotamChange]:
    return NotamChangeDetector().detect_changes(previous, current, now=now)
