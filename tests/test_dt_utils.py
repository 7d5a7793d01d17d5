"""Unit tests for dt_utils - pure date/time helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime, time

import pytest

from custom_components.questboard.utils import dt_utils


class TestParsing:
    """Tests for date and datetime parsing."""

    def test_parse_date_iso(self) -> None:
        """ISO dates parse directly."""
        assert dt_utils.dt_parse_date("2026-04-07") == date(2026, 4, 7)

    def test_parse_date_fallback(self) -> None:
        """Other date spellings fall back to dateutil."""
        assert dt_utils.dt_parse_date("April 7, 2026") == date(2026, 4, 7)

    @pytest.mark.parametrize("value", [None, "", "not a date"])
    def test_parse_date_invalid(self, value: str | None) -> None:
        """Empty or invalid input returns None."""
        assert dt_utils.dt_parse_date(value) is None

    def test_parse_naive_is_local(self, utc_timezone) -> None:
        """Naive datetimes are interpreted in the local timezone."""
        parsed = dt_utils.dt_parse("2026-04-07T10:00:00")
        assert parsed == datetime(2026, 4, 7, 10, 0, tzinfo=utc_timezone)

    def test_parse_plain_date_is_local_midnight(self, utc_timezone) -> None:
        """A date becomes local midnight."""
        assert dt_utils.dt_parse(date(2026, 4, 7)) == datetime(
            2026, 4, 7, tzinfo=utc_timezone
        )

    def test_parse_invalid(self) -> None:
        """Garbage returns None."""
        assert dt_utils.dt_parse("yesterday-ish") is None
        assert dt_utils.dt_parse(None) is None


class TestLocalDates:
    """Tests for local calendar date helpers."""

    def test_local_date_crosses_midnight(self, tokyo_timezone) -> None:
        """A UTC evening is the next local day in Tokyo."""
        instant = datetime(2026, 4, 7, 20, 0, tzinfo=UTC)
        assert dt_utils.to_local_date(instant) == date(2026, 4, 8)
        assert dt_utils.to_local_date(instant.isoformat()) == date(2026, 4, 8)

    def test_same_local_day_different_offsets(self, tokyo_timezone) -> None:
        """Two instants with different offsets on one local date compare equal."""
        a = "2026-04-08T01:00:00+09:00"
        b = "2026-04-08T10:00:00+00:00"
        assert dt_utils.to_local_date(a) == dt_utils.to_local_date(b)

    def test_date_in_range_inclusive(self) -> None:
        """Both bounds are inclusive; missing bounds make the range empty."""
        day = date(2026, 4, 7)
        assert dt_utils.date_in_range(day, "2026-04-07", "2026-04-07")
        assert dt_utils.date_in_range(day, "2026-04-01", "2026-04-30")
        assert not dt_utils.date_in_range(day, "2026-04-08", "2026-04-30")
        assert not dt_utils.date_in_range(day, None, "2026-04-30")


class TestTimeOfDay:
    """Tests for time-of-day parsing and deadlines."""

    def test_parse_time_of_day(self) -> None:
        """HH:MM and HH:MM:SS parse; junk does not."""
        assert dt_utils.parse_time_of_day("18:00") == time(18, 0)
        assert dt_utils.parse_time_of_day(" 07:30:15 ") == time(7, 30, 15)
        assert dt_utils.parse_time_of_day("6pm") is None
        assert dt_utils.parse_time_of_day(None) is None

    def test_local_deadline(self, tokyo_timezone) -> None:
        """Deadlines are built in the local timezone."""
        deadline = dt_utils.local_deadline(date(2026, 4, 7), time(18, 0))
        assert deadline.tzinfo == tokyo_timezone
        assert dt_utils.as_utc(deadline) == datetime(2026, 4, 7, 9, 0, tzinfo=UTC)
