"""
Module 04 - Week Key Unit Tests
Tests for core/epochs/weeks.py
"""
from datetime import datetime, timedelta, timezone

import pytest

from core.epochs.weeks import parse_week_key, previous_week_key, week_end, week_key, week_start


class TestWeekKey:

    def test_monday(self):
        assert week_key(datetime(2026, 1, 12, tzinfo=timezone.utc)) == "2026-W03"

    def test_sunday_belongs_to_same_week(self):
        assert week_key(datetime(2026, 1, 18, 23, 59, tzinfo=timezone.utc)) == "2026-W03"

    def test_iso_year_differs_from_calendar_year(self):
        assert week_key(datetime(2025, 12, 29, tzinfo=timezone.utc)) == "2026-W01"

    def test_offset_converted_to_utc(self):
        # 01:00 on Monday at UTC+2 is still Sunday in UTC
        when = datetime(2026, 1, 19, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        assert week_key(when) == "2026-W03"


class TestParse:

    def test_valid(self):
        assert parse_week_key("2026-W03") == (2026, 3)

    def test_week_53_exists_in_long_years(self):
        assert parse_week_key("2026-W53") == (2026, 53)

    @pytest.mark.parametrize("bad", ["", "2026-3", "2026-W3", "2026W03", "2025-W53", "2026-W00", None])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            parse_week_key(bad)


class TestBoundaries:

    def test_start_is_monday_midnight_utc(self):
        start = week_start("2026-W03")
        assert start == datetime(2026, 1, 12, tzinfo=timezone.utc)
        assert start.weekday() == 0

    def test_end_is_exclusive_next_monday(self):
        assert week_end("2026-W03") == datetime(2026, 1, 19, tzinfo=timezone.utc)

    def test_previous(self):
        assert previous_week_key("2026-W03") == "2026-W02"
        assert previous_week_key("2026-W01") == "2025-W52"
