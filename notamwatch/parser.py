"""Parser module for NOTAM search responses."""
import re
import html
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging

from notamwatch.errors import ApiError, ParsingFailedError
from notamwatch.models.notam import Coordinates, Notam, NotamType

logger = logging.getLogger(__name__)

POINT_PATTERN = re.compile(
    r'POINT\s*\(\s*(-?\d+(?:\.\d+)?)\s+(-?\d+(?:\.\d+)?)\s*\)', re.IGNORECASE
)
ICAO_COORDINATES_PATTERN = re.compile(r'(\d{2})(\d{2})([NS])(\d{3})(\d{2})([EW])(\d{3})?')


class NotamParser:
    """
    Turns a search response into Notam records.

    Two upstream shapes are understood:

    * structured: ``{"notamList": [...], "error": null}`` with ISO 8601 dates and
      the Q-line already split into fields;
    * search: a bare list (or ``{"items": [...]}`` / ``{"data": [...]}``) of
      FAA search records carrying the raw ICAO message and ``MM/DD/YYYY HHMM``
      dates.

    A missing issue date falls back to the start date and vice versa. Records
    with neither date, like any record that cannot be parsed, are dropped. A
    payload matching neither shape raises ParsingFailedError.
    """

    def parse_response(self, payload: Any, region: str) -> List[Notam]:
        items, structured = self._extract_items(payload)

        parse_item = self.parse_structured_item if structured else self.parse_search_item
        notams = []
        for item in items:
            if not isinstance(item, dict):
                logger.debug(f"Dropping non-object item for {region}: {type(item).__name__}")
                continue
            try:
                notam = parse_item(item, region)
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.debug(f"Dropping unparseable NOTAM for {region}: {e}")
                continue
            if notam is not None:
                notams.append(notam)

        dropped = len(items) - len(notams)
        if dropped:
            logger.info(f"{region}: dropped {dropped} of {len(items)} unparseable NOTAM item(s)")
        return notams

    def _extract_items(self, payload: Any) -> Tuple[List[Any], bool]:
        """Return (items, is_structured_schema)."""
        if isinstance(payload, list):
            return payload, False

        if isinstance(payload, dict):
            if 'notamList' in payload or 'error' in payload:
                if payload.get('error'):
                    raise ApiError(message=str(payload['error']))
                items = payload.get('notamList')
                if items is None:
                    return [], True
                if not isinstance(items, list):
                    raise ParsingFailedError(TypeError(f"notamList is {type(items).__name__}"))
                return items, True

            for key in ('items', 'data'):
                if isinstance(payload.get(key), list):
                    return payload[key], False

        raise ParsingFailedError(TypeError(f"Unexpected response format: {type(payload).__name__}"))

    def parse_structured_item(self, item: Dict[str, Any], region: str) -> Optional[Notam]:
        """Parse one item of the structured ``notamList`` schema."""
        notam_id = item.get('id')
        series = item.get('series')
        number = item.get('number')
        location = item.get('location')
        text = item.get('icaoMessage') or item.get('traditionalMessage')
        if not (notam_id and series and number and location and text):
            return None

        issued, effective_start = self._resolve_dates(
            self.parse_iso_date(item.get('issued')), self.parse_iso_date(item.get('effectiveStart'))
        )
        if effective_start is None:
            return None

        effective_end, is_estimated, is_permanent = self._parse_end(item.get('effectiveEnd'), self.parse_iso_date)

        return Notam(
            id=str(notam_id),
            series=str(series),
            number=str(number),
            notam_type=self._parse_type(item.get('type')),
            issued=issued,
            region=region,
            location=location,
            effective_start=effective_start,
            effective_end=effective_end,
            is_estimated_end=is_estimated,
            is_permanent=is_permanent,
            text=html.unescape(text),
            selection_code=item.get('selectionCode'),
            traffic=item.get('traffic'),
            purpose=item.get('purpose'),
            scope=item.get('scope'),
            minimum_fl=item.get('minimumFL'),
            maximum_fl=item.get('maximumFL'),
            coordinates=self.parse_coordinates(item.get('coordinates')),
        )

    def parse_search_item(self, item: Dict[str, Any], region: str) -> Optional[Notam]:
        """Parse one FAA search record (raw ICAO message plus FAA dates)."""
        notam_id = item.get('id') or item.get('notamId') or item.get('notamNumber')
        text = item.get('icaoMessage') or item.get('traditionalMessage') or item.get('text')
        if not notam_id or not text:
            return None

        text = html.unescape(text)
        notam_number = item.get('notamNumber') or str(notam_id)
        series = item.get('series') or ''
        number = item.get('number') or ''
        if not series and not number:
            series, number = self._split_notam_number(notam_number)

        location = (
            item.get('location') or item.get('facilityDesignator') or item.get('icaoId')
            or item.get('affectedFIR') or region
        )

        q_line = self._parse_q_line(text)

        issued, effective_start = self._resolve_dates(
            self.parse_faa_date(item.get('issueDate')) or self.parse_iso_date(item.get('issued')),
            self.parse_faa_date(item.get('startDate')) or self._parse_item_date(text, 'B'),
        )
        if effective_start is None:
            return None

        if item.get('endDate'):
            effective_end, is_estimated, is_permanent = self._parse_end(item['endDate'], self.parse_faa_date)
        else:
            effective_end, is_estimated, is_permanent = self._parse_end(
                self._item_field(text, 'C'), self._parse_icao_date
            )

        coordinates = self.parse_coordinates(item.get('coordinates')) or q_line.get('coordinates')

        return Notam(
            id=str(notam_id),
            series=str(series),
            number=str(number),
            notam_type=self._parse_type(item.get('type'), text),
            issued=issued,
            region=region,
            location=location,
            effective_start=effective_start,
            effective_end=effective_end,
            is_estimated_end=is_estimated,
            is_permanent=is_permanent,
            text=text,
            selection_code=q_line.get('selection_code'),
            traffic=q_line.get('traffic'),
            purpose=q_line.get('purpose'),
            scope=q_line.get('scope'),
            minimum_fl=item.get('minimumFL') or q_line.get('minimum_fl'),
            maximum_fl=item.get('maximumFL') or q_line.get('maximum_fl'),
            coordinates=coordinates,
        )

    @staticmethod
    def _resolve_dates(
        issued: Optional[datetime], effective_start: Optional[datetime]
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Issue and start dates stand in for each other; a record with neither is unusable."""
        return issued or effective_start, effective_start or issued

    @staticmethod
    def _split_notam_number(notam_number: str) -> Tuple[str, str]:
        """Split "A3097/25" into ("A", "3097/25")."""
        match = re.match(r'^([A-Z])(\d{1,4}/\d{2})$', notam_number.strip())
        if match:
            return match.group(1), match.group(2)
        return '', notam_number

    @staticmethod
    def _parse_type(type_code: Optional[str], icao_message: str = '') -> NotamType:
        if type_code:
            try:
                return NotamType(type_code.strip().upper()[:1])
            except ValueError:
                pass

        first_line = icao_message.split('\n')[0] if icao_message else ''
        if 'NOTAMR' in first_line:
            return NotamType.REPLACE
        if 'NOTAMC' in first_line:
            return NotamType.CANCEL
        return NotamType.NEW

    @staticmethod
    def _parse_end(value: Optional[str], parse_date) -> Tuple[Optional[datetime], bool, bool]:
        """Return (end, is_estimated, is_permanent) from an end-of-validity field."""
        if not value:
            return None, False, False

        upper = str(value).strip().upper()
        if 'PERM' in upper:
            return None, False, True
        if upper.endswith('EST'):
            return parse_date(upper[:-3].strip()), True, False
        return parse_date(upper), False, False

    @staticmethod
    def parse_iso_date(value: Optional[str]) -> Optional[datetime]:
        """Parse ISO 8601 with or without fractional seconds; naive values are UTC."""
        if not value:
            return None
        try:
            dt = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
        except ValueError:
            logger.debug(f"Could not parse ISO date '{value}'")
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def parse_faa_date(date_str: Optional[str]) -> Optional[datetime]:
        """
        Parse date from FAA search format.

        FAA format: "MM/DD/YYYY HHmm" or "PERM"
        Examples: "04/29/2025 0913", "PERM"
        """
        if not date_str:
            return None

        if str(date_str).strip().upper() == 'PERM':
            return None

        try:
            # Trailing zone indicators are informational; NOTAM times are UTC.
            date_str = re.sub(r'\s*(EST|UTC|GMT)$', '', str(date_str).strip())

            parts = date_str.split()
            if len(parts) >= 2:
                date_components = parts[0].split('/')
                time_part = parts[1]
                if len(date_components) == 3:
                    month = int(date_components[0])
                    day = int(date_components[1])
                    year = int(date_components[2])

                    if len(time_part) >= 4:
                        hour = int(time_part[0:2])
                        minute = int(time_part[2:4])
                    else:
                        hour = 0
                        minute = 0

                    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
        except (ValueError, IndexError, AttributeError) as e:
            logger.warning(f"Could not parse date '{date_str}': {e}")

        return None

    @staticmethod
    def _parse_icao_date(date_str: Optional[str]) -> Optional[datetime]:
        """Parse an item B)/C) datetime: YYMMDDHHMM (UTC)."""
        if not date_str or not re.fullmatch(r'\d{10}', date_str):
            return None
        try:
            yy = int(date_str[0:2])
            year = 2000 + yy if yy < 50 else 1900 + yy
            return datetime(
                year, int(date_str[2:4]), int(date_str[4:6]),
                int(date_str[6:8]), int(date_str[8:10]), tzinfo=timezone.utc
            )
        except ValueError:
            return None

    @staticmethod
    def _item_field(icao_message: str, letter: str) -> Optional[str]:
        match = re.search(rf'{letter}\)\s*(\d{{10}}(?:\s*EST)?|PERM)', icao_message)
        return match.group(1) if match else None

    def _parse_item_date(self, icao_message: str, letter: str) -> Optional[datetime]:
        return self._parse_icao_date(self._item_field(icao_message, letter))

    def _parse_q_line(self, icao_message: str) -> Dict[str, Any]:
        """
        Split the Q-line: FIR/QCODE/TRAFFIC/PURPOSE/SCOPE/LOWER/UPPER/COORDINATES.

        Example: "Q) LFEE/QRTTT/IV/BO /AW/000/014/4904N00607E003"
        """
        result: Dict[str, Any] = {}
        q_match = re.search(r'Q\)\s*([^)]+?)(?=\s+[A-Z]\)|\s*$)', icao_message)
        if not q_match:
            return result

        q_parts = [p.strip() for p in q_match.group(1).strip().split('/')]
        if len(q_parts) < 8:
            return result

        result['selection_code'] = q_parts[1] or None
        result['traffic'] = q_parts[2] or None
        result['purpose'] = q_parts[3] or None
        result['scope'] = q_parts[4] or None
        result['minimum_fl'] = q_parts[5] if q_parts[5].isdigit() else None
        result['maximum_fl'] = q_parts[6] if q_parts[6].isdigit() else None
        result['coordinates'] = self.parse_coordinates(q_parts[7])
        return result

    @staticmethod
    def parse_coordinates(value: Any) -> Optional[Coordinates]:
        """
        Parse a geographic point.

        Accepts "POINT(lon lat)" strings and ICAO "4426N02615E" / "4426N02615E005"
        (degrees+minutes, optional radius NM).
        """
        if not value or not isinstance(value, str):
            return None

        point = POINT_PATTERN.search(value)
        if point:
            return Coordinates(latitude=float(point.group(2)), longitude=float(point.group(1)))

        match = ICAO_COORDINATES_PATTERN.search(value)
        if not match:
            return None

        latitude = int(match.group(1)) + int(match.group(2)) / 60.0
        if match.group(3) == 'S':
            latitude = -latitude
        longitude = int(match.group(4)) + int(match.group(5)) / 60.0
        if match.group(6) == 'W':
            longitude = -longitude
        radius = float(match.group(7)) if match.group(7) else None

        return Coordinates(latitude=latitude, longitude=longitude, radius_nm=radius)
