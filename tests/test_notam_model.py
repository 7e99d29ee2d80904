"""Unit tests for the Notam domain model and severity rules."""
import pytest
from dataclasses import FrozenInstanceError, replace
from datetime import datetime, timedelta, timezone

from notamwatch.models.notam import (
    Coordinates,
    Notam,
    NotamType,
    Severity,
    classify_severity,
    utc_now,
)
from notamwatch.notified_store import NotifiedNotamStore
from notamwatch.scheduler import BackgroundRefreshScheduler
from notamwatch.settings_store import SettingsStore
from notamwatch.snapshot_store import SnapshotStore


class TestNotamModel:
    """Test cases for Notam class."""

    @pytest.fixture
    def now(self):
        return datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_display_id(self, make_notam):
        notam = make_notam("A1234/25")
        assert notam.display_id == "A1234/25"
        assert notam.series == "A"

    def test_is_active_within_window(self, make_notam, now):
        notam = make_notam(effective_start=now - timedelta(hours=1), effective_end=now + timedelta(hours=1))
        assert notam.is_active(now) is True

    def test_not_active_before_start(self, make_notam, now):
        notam = make_notam(effective_start=now + timedelta(minutes=1))
        assert notam.is_active(now) is False

    def test_not_active_after_end(self, make_notam, now):
        notam = make_notam(effective_start=now - timedelta(days=2), effective_end=now - timedelta(days=1))
        assert notam.is_active(now) is False

    def test_end_equal_to_now_is_not_active(self, make_notam, now):
        notam = make_notam(effective_start=now - timedelta(days=1), effective_end=now)
        assert notam.is_active(now) is False

    def test_open_ended_is_active(self, make_notam, now):
        notam = make_notam(effective_start=now - timedelta(days=1), effective_end=None)
        assert notam.is_active(now) is True

    def test_permanent_ignores_end(self, make_notam, now):
        notam = make_notam(
            effective_start=now - timedelta(days=10),
            effective_end=now - timedelta(days=1),
            is_permanent=True,
        )
        assert notam.is_active(now) is True

    def test_effective_period_description(self, make_notam, now):
        perm = make_notam(effective_start=now, effective_end=None, is_permanent=True)
        assert perm.effective_period_description().endswith("PERMANENT")

        est = make_notam(effective_start=now, effective_end=now + timedelta(days=1), is_estimated_end=True)
        assert est.effective_period_description().endswith("(EST)")

        open_ended = make_notam(effective_start=now, effective_end=None)
        assert open_ended.effective_period_description().endswith("Unknown")

    def test_is_immutable(self, make_notam):
        notam = make_notam()
        with pytest.raises(FrozenInstanceError):
            notam.text = "changed"

    def test_dict_round_trip(self, make_notam, now):
        notam = make_notam(
            notam_type=NotamType.CANCEL,
            effective_start=now,
            effective_end=None,
            is_permanent=True,
            coordinates=Coordinates(latitude=44.43, longitude=26.25, radius_nm=5.0),
            scope="AE",
        )
        data = notam.to_dict()

        assert data['notam_type'] == "C"
        assert data['effective_start'] == now.isoformat()
        assert Notam.from_dict(data) == notam

    def test_equality_is_by_value(self, make_notam, now):
        a = make_notam(issued=now, effective_start=now, effective_end=None)
        b = replace(a)
        assert a == b
        assert a != replace(a, text="OTHER")

    def test_summary_contains_key_fields(self, make_notam):
        notam = make_notam("A1234/25", region="LROP", text="RWY 08R/26L CLSD")
        summary = notam.summary()

        assert "A1234/25" in summary
        assert "LROP" in summary
        assert "RWY 08R/26L CLSD" in summary
        assert "Severity: WARNING" in summary


class TestSeverity:
    """Keyword rules, first match wins."""

    @pytest.mark.parametrize("text, expected", [
        ("ATS NOT PROVIDED WITHIN BUCURESTI FIR", Severity.CRITICAL),
        ("NO ATC SERVICE AVBL IN SECTOR", Severity.CRITICAL),
        ("AIRSPACE PROHIBITED FOR CIVIL FLIGHTS", Severity.CRITICAL),
        ("UIR CLOSED FOR ALL FLIGHTS", Severity.CRITICAL),
        ("AD CLSD DUE TO WIP", Severity.WARNING),
        ("AERODROME CLOSED", Severity.WARNING),
        ("RWY 08R/26L CLSD FOR TKOF AND LDG", Severity.WARNING),
        ("RESTRICTED AREA LRR12 ACTIVE", Severity.WARNING),
        ("PROHIBITED AREA LRP5 ACT", Severity.WARNING),
        ("TFR IN EFFECT OVER STADIUM", Severity.CAUTION),
        ("TEMPORARY FLIGHT RESTRICTION FOR VIP MOVEMENT", Severity.CAUTION),
        ("TWY A CLSD", Severity.CAUTION),
        ("PARKING STANDS 1-5 RESTRICTED TO ACFT WINGSPAN 36M", Severity.CAUTION),
        ("TWY B CENTRE LINE LIGHTING U/S", Severity.INFO),
        ("", Severity.INFO),
    ])
    def test_classification(self, text, expected):
        assert classify_severity(text) == expected

    def test_classification_is_case_insensitive(self):
        assert classify_severity("rwy 09 clsd") == Severity.WARNING

    def test_first_matching_rule_wins(self):
        # Runway closure text that also closes the airspace to all flights
        text = "RWY 09/27 CLSD. AIRSPACE CLOSED TO ALL FLIGHTS"
        assert classify_severity(text) == Severity.CRITICAL

    def test_notam_severity_uses_text(self, make_notam):
        assert make_notam(text="AD CLSD").severity == Severity.WARNING

    def test_meets_threshold(self):
        assert Severity.CRITICAL.meets_threshold(Severity.CRITICAL)
        assert Severity.CRITICAL.meets_threshold(Severity.CAUTION)
        assert Severity.WARNING.meets_threshold(Severity.CAUTION)
        assert not Severity.WARNING.meets_threshold(Severity.CRITICAL)
        assert not Severity.INFO.meets_threshold(Severity.CAUTION)


class TestUtcNow:

    def test_is_timezone_aware_utc(self):
        assert utc_now().utcoffset() == timedelta(0)

    def test_is_the_default_clock_everywhere(self, db):
        assert SnapshotStore(db).clock is utc_now
        assert NotifiedNotamStore(db).clock is utc_now
        assert SettingsStore(db).clock is utc_now
        assert BackgroundRefreshScheduler().clock is utc_now
