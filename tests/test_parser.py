"""Unit tests for NOTAM parser."""
import pytest
from datetime import datetime, timezone

from notamwatch.change_detector import detect_changes
from notamwatch.errors import ApiError, ParsingFailedError
from notamwatch.models.notam import NotamType
from notamwatch.parser import NotamParser


class TestStructuredSchema:
    """Responses shaped {"notamList": [...], "error": null}."""

    @pytest.fixture
    def parser(self):
        """Create parser instance."""
        return NotamParser()

    @pytest.fixture
    def structured_item(self):
        return {
            'id': 'NOTAM_1_74215612',
            'series': 'A',
            'number': '0412/25',
            'type': 'N',
            'issued': '2025-02-27T08:15:00.000Z',
            'location': 'LROP',
            'effectiveStart': '2025-03-01T06:00:00.000Z',
            'effectiveEnd': '2025-03-15T18:00:00.000Z',
            'icaoMessage': 'RWY 08R/26L CLSD DUE TO MAINT',
            'selectionCode': 'QMRLC',
            'traffic': 'IV',
            'purpose': 'NBO',
            'scope': 'A',
            'minimumFL': '000',
            'maximumFL': '999',
            'coordinates': '4434N02605E005',
        }

    def test_parse_structured_item(self, parser, structured_item):
        notams = parser.parse_response({'notamList': [structured_item], 'error': None}, 'LROP')

        assert len(notams) == 1
        notam = notams[0]
        assert notam.id == 'NOTAM_1_74215612'
        assert notam.display_id == 'A0412/25'
        assert notam.region == 'LROP'
        assert notam.notam_type == NotamType.NEW
        assert notam.issued == datetime(2025, 2, 27, 8, 15, tzinfo=timezone.utc)
        assert notam.effective_start == datetime(2025, 3, 1, 6, 0, tzinfo=timezone.utc)
        assert notam.effective_end == datetime(2025, 3, 15, 18, 0, tzinfo=timezone.utc)
        assert notam.is_permanent is False
        assert notam.is_estimated_end is False
        assert notam.selection_code == 'QMRLC'
        assert notam.minimum_fl == '000'
        assert notam.maximum_fl == '999'
        assert notam.coordinates.latitude == pytest.approx(44 + 34 / 60)
        assert notam.coordinates.longitude == pytest.approx(26 + 5 / 60)
        assert notam.coordinates.radius_nm == 5.0

    def test_permanent_end(self, parser, structured_item):
        structured_item['effectiveEnd'] = 'PERM'
        notam = parser.parse_response({'notamList': [structured_item]}, 'LROP')[0]

        assert notam.is_permanent is True
        assert notam.effective_end is None

    def test_estimated_end(self, parser, structured_item):
        structured_item['effectiveEnd'] = '2025-03-15T18:00:00.000Z EST'
        notam = parser.parse_response({'notamList': [structured_item]}, 'LROP')[0]

        assert notam.is_estimated_end is True
        assert notam.effective_end == datetime(2025, 3, 15, 18, 0, tzinfo=timezone.utc)

    def test_missing_end_is_open_ended(self, parser, structured_item):
        del structured_item['effectiveEnd']
        notam = parser.parse_response({'notamList': [structured_item]}, 'LROP')[0]

        assert notam.effective_end is None
        assert notam.is_permanent is False

    def test_traditional_message_fallback(self, parser, structured_item):
        del structured_item['icaoMessage']
        structured_item['traditionalMessage'] = '!LROP 03/041 LROP AD AP CLSD'
        notam = parser.parse_response({'notamList': [structured_item]}, 'LROP')[0]

        assert notam.text == '!LROP 03/041 LROP AD AP CLSD'

    def test_cancel_type(self, parser, structured_item):
        structured_item['type'] = 'C'
        notam = parser.parse_response({'notamList': [structured_item]}, 'LROP')[0]
        assert notam.notam_type == NotamType.CANCEL

    def test_point_coordinates(self, parser, structured_item):
        structured_item['coordinates'] = 'POINT(26.085 44.571)'
        coords = parser.parse_response({'notamList': [structured_item]}, 'LROP')[0].coordinates

        assert coords.latitude == pytest.approx(44.571)
        assert coords.longitude == pytest.approx(26.085)
        assert coords.radius_nm is None

    def test_missing_start_falls_back_to_issued(self, parser, structured_item):
        del structured_item['effectiveStart']
        notam = parser.parse_response({'notamList': [structured_item]}, 'LROP')[0]

        assert notam.effective_start == datetime(2025, 2, 27, 8, 15, tzinfo=timezone.utc)
        assert notam.issued == notam.effective_start

    def test_missing_issued_falls_back_to_start(self, parser, structured_item):
        del structured_item['issued']
        notam = parser.parse_response({'notamList': [structured_item]}, 'LROP')[0]

        assert notam.issued == datetime(2025, 3, 1, 6, 0, tzinfo=timezone.utc)

    def test_items_without_any_date_are_dropped(self, parser, structured_item):
        del structured_item['issued']
        del structured_item['effectiveStart']

        assert parser.parse_response({'notamList': [structured_item]}, 'LROP') == []

    def test_reparsing_partially_dated_payload_detects_no_changes(self, parser, structured_item):
        del structured_item['effectiveStart']
        payload = {'notamList': [structured_item], 'error': None}

        first = parser.parse_response(payload, 'LROP')
        second = parser.parse_response(payload, 'LROP')

        assert first == second
        assert detect_changes({'LROP': first}, {'LROP': second}) == []

    def test_items_missing_required_fields_are_dropped(self, parser, structured_item):
        incomplete = dict(structured_item, id='NOTAM_2')
        del incomplete['location']
        no_text = dict(structured_item, id='NOTAM_3')
        del no_text['icaoMessage']

        notams = parser.parse_response(
            {'notamList': [structured_item, incomplete, no_text, 'garbage']}, 'LROP'
        )

        assert [n.id for n in notams] == ['NOTAM_1_74215612']

    def test_null_list_is_empty(self, parser):
        assert parser.parse_response({'notamList': None, 'error': None}, 'LROP') == []

    def test_error_field_raises_api_error(self, parser):
        with pytest.raises(ApiError) as exc_info:
            parser.parse_response({'notamList': None, 'error': 'Invalid location'}, 'LROP')
        assert 'Invalid location' in str(exc_info.value)

    def test_non_list_notam_list_raises(self, parser):
        with pytest.raises(ParsingFailedError):
            parser.parse_response({'notamList': {'id': 'x'}}, 'LROP')


class TestSearchSchema:
    """Bare lists of FAA search records."""

    @pytest.fixture
    def parser(self):
        """Create parser instance."""
        return NotamParser()

    @pytest.fixture
    def search_item(self):
        """Sample NOTAM in FAA API format."""
        return {
            'facilityDesignator': 'LFJL',
            'notamNumber': 'R3281/24',
            'issueDate': '11/27/2024 1432',
            'startDate': '11/28/2024 0000',
            'endDate': '04/15/2026 2359',
            'icaoMessage': (
                'R3281/24 NOTAMN\n'
                'Q) LFEE/QRTTT/IV/BO /AW/000/014/4904N00607E003\n'
                'A) LFJL B) 2411280000 C) 2604152359\n'
                'E) TEMPORARY RESTRICTED AREA ZRT METZ ACTIVATED'
            ),
        }

    def test_parse_search_item(self, parser, search_item):
        notams = parser.parse_response([search_item], 'LFEE')

        assert len(notams) == 1
        notam = notams[0]
        assert notam.id == 'R3281/24'
        assert notam.series == 'R'
        assert notam.number == '3281/24'
        assert notam.region == 'LFEE'
        assert notam.location == 'LFJL'
        assert notam.notam_type == NotamType.NEW
        assert notam.issued == datetime(2024, 11, 27, 14, 32, tzinfo=timezone.utc)
        assert notam.effective_start == datetime(2024, 11, 28, 0, 0, tzinfo=timezone.utc)
        assert notam.effective_end == datetime(2026, 4, 15, 23, 59, tzinfo=timezone.utc)

    def test_q_line_fields(self, parser, search_item):
        notam = parser.parse_response([search_item], 'LFEE')[0]

        assert notam.selection_code == 'QRTTT'
        assert notam.traffic == 'IV'
        assert notam.purpose == 'BO'
        assert notam.scope == 'AW'
        assert notam.minimum_fl == '000'
        assert notam.maximum_fl == '014'
        assert notam.coordinates.latitude == pytest.approx(49 + 4 / 60)
        assert notam.coordinates.longitude == pytest.approx(6 + 7 / 60)
        assert notam.coordinates.radius_nm == 3.0

    def test_replacement_and_cancellation_types(self, parser, search_item):
        replaced = dict(search_item, icaoMessage='A0002/25 NOTAMR A0001/25\nE) RWY 09 CLSD')
        cancelled = dict(search_item, notamNumber='A0003/25',
                         icaoMessage='A0003/25 NOTAMC A0002/25\nE) REF NOTAM CANCELLED')

        notams = parser.parse_response([replaced, cancelled], 'LFEE')

        assert notams[0].notam_type == NotamType.REPLACE
        assert notams[1].notam_type == NotamType.CANCEL

    def test_permanent_end_date(self, parser, search_item):
        search_item['endDate'] = 'PERM'
        notam = parser.parse_response([search_item], 'LFEE')[0]

        assert notam.is_permanent is True
        assert notam.effective_end is None

    def test_estimated_end_date(self, parser, search_item):
        search_item['endDate'] = '04/15/2026 2359EST'
        notam = parser.parse_response([search_item], 'LFEE')[0]

        assert notam.is_estimated_end is True
        assert notam.effective_end == datetime(2026, 4, 15, 23, 59, tzinfo=timezone.utc)

    def test_dates_fall_back_to_icao_items(self, parser, search_item):
        del search_item['startDate']
        del search_item['endDate']
        notam = parser.parse_response([search_item], 'LFEE')[0]

        assert notam.effective_start == datetime(2024, 11, 28, 0, 0, tzinfo=timezone.utc)
        assert notam.effective_end == datetime(2026, 4, 15, 23, 59, tzinfo=timezone.utc)

    def test_missing_start_falls_back_to_issue_date(self, parser, search_item):
        del search_item['startDate']
        search_item['icaoMessage'] = 'E) BIRD ACTIVITY'
        notam = parser.parse_response([search_item], 'LFEE')[0]

        assert notam.effective_start == datetime(2024, 11, 27, 14, 32, tzinfo=timezone.utc)
        assert notam.issued == notam.effective_start

    def test_records_without_any_date_are_dropped(self, parser):
        assert parser.parse_response([{'id': 'X1', 'text': 'BIRD ACTIVITY'}], 'LROP') == []

    def test_html_entities_unescaped(self, parser, search_item):
        search_item['icaoMessage'] = 'E) OBST CRANE &amp; MOBILE CRANE'
        notam = parser.parse_response([search_item], 'LFEE')[0]
        assert notam.text == 'E) OBST CRANE & MOBILE CRANE'

    def test_wrapped_items(self, parser, search_item):
        assert len(parser.parse_response({'items': [search_item]}, 'LFEE')) == 1
        assert len(parser.parse_response({'data': [search_item]}, 'LFEE')) == 1

    def test_records_without_id_or_text_are_dropped(self, parser, search_item):
        notams = parser.parse_response([search_item, {'icaoMessage': 'NO ID'}, {'id': 'NO TEXT'}], 'LFEE')
        assert [n.id for n in notams] == ['R3281/24']

    def test_empty_list(self, parser):
        assert parser.parse_response([], 'LROP') == []


class TestUnrecognizedPayloads:

    @pytest.fixture
    def parser(self):
        return NotamParser()

    @pytest.mark.parametrize("payload", [
        "not json at all",
        42,
        None,
        {'unexpected': 'shape'},
    ])
    def test_unrecognized_payload_raises(self, parser, payload):
        with pytest.raises(ParsingFailedError):
            parser.parse_response(payload, 'LROP')


class TestDateAndCoordinateHelpers:

    def test_parse_faa_date(self):
        assert NotamParser.parse_faa_date('04/29/2025 0913') == datetime(2025, 4, 29, 9, 13, tzinfo=timezone.utc)
        assert NotamParser.parse_faa_date('PERM') is None
        assert NotamParser.parse_faa_date('') is None
        assert NotamParser.parse_faa_date('garbage') is None

    def test_parse_iso_date(self):
        expected = datetime(2025, 3, 1, 6, 0, tzinfo=timezone.utc)
        assert NotamParser.parse_iso_date('2025-03-01T06:00:00Z') == expected
        assert NotamParser.parse_iso_date('2025-03-01T06:00:00.000Z') == expected
        assert NotamParser.parse_iso_date('2025-03-01T06:00:00') == expected
        assert NotamParser.parse_iso_date('yesterday') is None

    def test_southern_western_coordinates(self):
        coords = NotamParser.parse_coordinates('3352S07047W')
        assert coords.latitude == pytest.approx(-(33 + 52 / 60))
        assert coords.longitude == pytest.approx(-(70 + 47 / 60))
        assert coords.radius_nm is None

    def test_unparseable_coordinates(self):
        assert NotamParser.parse_coordinates('somewhere') is None
        assert NotamParser.parse_coordinates(None) is None
