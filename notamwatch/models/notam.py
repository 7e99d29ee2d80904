"""NOTAM domain model."""
import re
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable, List, Tuple
from dataclasses import dataclass, asdict
from enum import Enum


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class NotamType(Enum):
    """NOTAM type based on suffix."""
    NEW = "N"          # NOTAMN
    REPLACE = "R"      # NOTAMR
    CANCEL = "C"       # NOTAMC

    @property
    def display_name(self) -> str:
        return {
            NotamType.NEW: "New",
            NotamType.REPLACE: "Replacement",
            NotamType.CANCEL: "Cancellation",
        }[self]


class Severity(Enum):
    """Keyword-derived priority of a NOTAM, highest first."""
    CRITICAL = "critical"
    WARNING = "warning"
    CAUTION = "caution"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def meets_threshold(self, threshold: 'Severity') -> bool:
        """True when this severity is at least as high as threshold."""
        return self.rank >= threshold.rank


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.CAUTION: 1,
    Severity.WARNING: 2,
    Severity.CRITICAL: 3,
}


def _has(pattern: str, text: str) -> bool:
    return re.search(pattern, text) is not None


_CLOSED = r'\b(?:CLOSED|CLSD)\b'

# ATS / ATC service withdrawn for the airspace
_ATS_NOT_PROVIDED = (
    r'\bATS\s+(?:IS\s+|WILL\s+)?(?:NOT\s+(?:BE\s+)?(?:PROVIDED|AVBL|AVAILABLE)|SUSPENDED)\b'
    r'|\bNO\s+(?:ATS|ATC)(?:\s+SERVICES?)?\b'
    r'|\bATC\s+(?:SERVICES?\s+)?(?:IS\s+|WILL\s+)?(?:NOT\s+(?:BE\s+)?(?:PROVIDED|AVBL|AVAILABLE)|SUSPENDED)\b'
    r'|\bAIR\s+TRAFFIC\s+SERVICES?\s+(?:WILL\s+)?NOT\s+(?:BE\s+)?PROVIDED\b'
)
_AIRSPACE_TERMS = r'\b(?:FIR|UIR|AIRSPACE)\b'
_ALL_FLIGHTS = r'\bALL\s+(?:FLIGHTS?|FLT|FLTS)\b'
_AERODROME_CLOSED = (
    r'\b(?:AD|AERODROME|AIRPORT|ARPT|HELIPORT)\s+(?:IS\s+)?(?:CLOSED|CLSD)\b'
    r'|\b(?:CLOSED|CLSD)\s+(?:AD|AERODROME|AIRPORT)\b'
)
_RUNWAY = r'\b(?:RWY|RUNWAY)S?\b'
_RESTRICTED_AREA = r'\b(?:RESTRICTED|PROHIBITED|DANGER)\s+AREAS?\b'
_ACTIVE = r'\b(?:ACT|ACTIVE|ACTIVATED|ACTIVATION)\b'
_TEMPORARY_RESTRICTION = (
    r'\bTFR\b|\bTEMPORARY\s+FLIGHT\s+RESTRICTIONS?\b|\bTEMPO(?:RARY)?\s+RESTRICTED\b|\bTRA\b'
)
_GENERIC_RESTRICTION = r'\b(?:CLOSED|CLSD|RESTRICTED|PROHIBITED)\b'

# Evaluated in order, first match wins.
SEVERITY_RULES: List[Tuple[Severity, Callable[[str], bool]]] = [
    (Severity.CRITICAL, lambda t: _has(_ATS_NOT_PROVIDED, t)),
    (Severity.CRITICAL, lambda t: _has(r'\bPROHIBITED\b', t) and _has(_AIRSPACE_TERMS, t)),
    (Severity.CRITICAL, lambda t: _has(_CLOSED, t) and _has(_ALL_FLIGHTS, t)),
    (Severity.WARNING, lambda t: _has(_AERODROME_CLOSED, t)),
    (Severity.WARNING, lambda t: _has(_RUNWAY, t) and _has(_CLOSED, t)),
    (Severity.WARNING, lambda t: _has(_RESTRICTED_AREA, t) and _has(_ACTIVE, t)),
    (Severity.CAUTION, lambda t: _has(_TEMPORARY_RESTRICTION, t)),
    (Severity.CAUTION, lambda t: _has(_GENERIC_RESTRICTION, t)),
]


def classify_severity(text: Optional[str]) -> Severity:
    """
    Classify NOTAM text into a severity.

    The text is upper-cased and matched against SEVERITY_RULES in priority
    order; the first matching rule decides. Text matching no rule is INFO.
    """
    if not text:
        return Severity.INFO

    upper = text.upper()
    for severity, matches in SEVERITY_RULES:
        if matches(upper):
            return severity
    return Severity.INFO


@dataclass(frozen=True)
class Coordinates:
    """Geographic point with an optional radius in nautical miles."""
    latitude: float
    longitude: float
    radius_nm: Optional[float] = None


def _parse_stored_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class Notam:
    """One NOTAM as observed for one region."""

    # Identity
    id: str
    series: str
    number: str
    notam_type: NotamType
    issued: datetime

    # Where
    region: str
    location: str

    # Validity
    effective_start: datetime
    effective_end: Optional[datetime] = None
    is_estimated_end: bool = False
    is_permanent: bool = False

    # Content
    text: str = ""

    # Q-Line / structured fields
    selection_code: Optional[str] = None
    traffic: Optional[str] = None
    purpose: Optional[str] = None
    scope: Optional[str] = None
    minimum_fl: Optional[str] = None
    maximum_fl: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    @property
    def display_id(self) -> str:
        return f"{self.series}{self.number}"

    @property
    def severity(self) -> Severity:
        return classify_severity(self.text)

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """Check whether the NOTAM is in force at now (defaults to current UTC time)."""
        now = now or utc_now()
        if self.effective_start > now:
            return False
        if self.is_permanent or self.effective_end is None:
            return True
        return self.effective_end > now

    def effective_period_description(self) -> str:
        start = self.effective_start.strftime('%Y-%m-%d %H:%M UTC')
        if self.is_permanent:
            return f"{start} - PERMANENT"
        if self.effective_end:
            end = self.effective_end.strftime('%Y-%m-%d %H:%M UTC')
            suffix = " (EST)" if self.is_estimated_end else ""
            return f"{start} - {end}{suffix}"
        return f"{start} - Unknown"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for database storage or JSON export."""
        result = {}

        for key, value in asdict(self).items():
            if isinstance(value, datetime):
                result[key] = value.isoformat()
            elif isinstance(value, NotamType):
                result[key] = value.value
            else:
                result[key] = value

        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Notam':
        """Rebuild a Notam from to_dict() output. Raises KeyError/ValueError on bad input."""
        coords = data.get('coordinates')
        return cls(
            id=data['id'],
            series=data.get('series') or '',
            number=data.get('number') or '',
            notam_type=NotamType(data.get('notam_type') or NotamType.NEW.value),
            issued=_parse_stored_datetime(data['issued']),
            region=data['region'],
            location=data.get('location') or data['region'],
            effective_start=_parse_stored_datetime(data['effective_start']),
            effective_end=_parse_stored_datetime(data.get('effective_end')),
            is_estimated_end=bool(data.get('is_estimated_end', False)),
            is_permanent=bool(data.get('is_permanent', False)),
            text=data.get('text') or '',
            selection_code=data.get('selection_code'),
            traffic=data.get('traffic'),
            purpose=data.get('purpose'),
            scope=data.get('scope'),
            minimum_fl=data.get('minimum_fl'),
            maximum_fl=data.get('maximum_fl'),
            coordinates=Coordinates(**coords) if coords else None,
        )

    def summary(self) -> str:
        """Generate human-readable summary suitable for an alert body."""
        lines = [f"{self.display_id} | {self.location}"]
        lines.append(f"Type: {self.notam_type.display_name}")
        lines.append(f"Valid: {self.effective_period_description()}")

        if self.minimum_fl or self.maximum_fl:
            lines.append(f"Levels: FL{self.minimum_fl or '000'} - FL{self.maximum_fl or '999'}")

        if self.text:
            body_preview = self.text.replace('\n', ' ').strip()
            if len(body_preview) > 200:
                body_preview = body_preview[:200] + "..."
            lines.append(f"\n{body_preview}")

        lines.append(f"\nSeverity: {self.severity.value.upper()}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        """Compact single-line representation."""
        flags = []
        if self.is_permanent:
            flags.append("PERM")
        if self.is_estimated_end:
            flags.append("EST")

        flag_str = f" [{','.join(flags)}]" if flags else ""

        return (
            f"<Notam {self.id} {self.display_id} {self.region} "
            f"{self.notam_type.value} {self.severity.value}{flag_str}>"
        )
