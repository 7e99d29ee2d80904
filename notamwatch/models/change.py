"""Detected NOTAM change model."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from notamwatch.models.notam import Notam, utc_now


class ChangeType(Enum):
    """Kind of difference between two snapshots of the same region."""
    NEW = "new"
    EXPIRED = "expired"
    MODIFIED = "modified"
    CANCELLED = "cancelled"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass
class NotamChange:
    """
    One detected difference for one NOTAM id.

    For NEW and MODIFIED changes `notam` is the current record; for EXPIRED and
    CANCELLED it is the record that disappeared. `previous_notam` is set only
    for MODIFIED. `is_read` is the only field mutated after creation.
    """
    change_type: ChangeType
    notam: Notam
    previous_notam: Optional[Notam] = None
    detected_at: datetime = field(default_factory=utc_now)
    is_read: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def region(self) -> str:
        return self.notam.region

    @property
    def summary(self) -> str:
        labels = {
            ChangeType.NEW: "New NOTAM",
            ChangeType.EXPIRED: "Expired",
            ChangeType.MODIFIED: "Modified",
            ChangeType.CANCELLED: "Cancelled",
        }
        return f"{labels[self.change_type]}: {self.notam.display_id} for {self.notam.location}"

    @property
    def detailed_description(self) -> str:
        notam = self.notam
        if self.change_type == ChangeType.NEW:
            return (
                f"A new NOTAM has been issued for {notam.location}. "
                f"Effective {notam.effective_period_description()}."
            )
        if self.change_type == ChangeType.EXPIRED:
            return f"NOTAM {notam.display_id} has expired and is no longer active."
        if self.change_type == ChangeType.MODIFIED:
            return f"NOTAM {notam.display_id} has been updated. Please review the changes."
        return f"NOTAM {notam.display_id} has been cancelled."

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'change_type': self.change_type.value,
            'notam': self.notam.to_dict(),
            'previous_notam': self.previous_notam.to_dict() if self.previous_notam else None,
            'detected_at': self.detected_at.isoformat(),
            'is_read': self.is_read,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotamChange':
        detected_at = datetime.fromisoformat(data['detected_at'])
        if detected_at.tzinfo is None:
            detected_at = detected_at.replace(tzinfo=timezone.utc)
        previous = data.get('previous_notam')
        return cls(
            id=data['id'],
            change_type=ChangeType(data['change_type']),
            notam=Notam.from_dict(data['notam']),
            previous_notam=Notam.from_dict(previous) if previous else None,
            detected_at=detected_at,
            is_read=bool(data.get('is_read', False)),
        )
