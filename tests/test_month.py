"""Tests for the Month value object."""

import pytest
from datetime import date, datetime

from budget_engine.models.month import InvalidPeriodError, Month, normalize_month


class TestMonthParsing:
    """Tests for turning labels into months."""

    @pytest.mark.parametrize("label", [
        "October 2026",
        "october 2026",
        "Oct 2026",
        "2026-10",
        "2026-10-19",
        "  October 2026  ",
    ])
    def test_accepted_labels(self, label):
        """Test every accepted label format."""
        assert Month.parse(label) == Month(year=2026, month=10)

    @pytest.mark.parametrize("label", [
        "",
        "Octember 2026",
        "2026-13",
        "2026-02-30",
        "next month",
        "10/2026",
    ])
    def test_rejected_labels(self, label):
        """Test that unparseable labels raise InvalidPeriodError."""
        with pytest.raises(InvalidPeriodError):
            Month.parse(label)

    def test_invalid_period_is_value_error(self):
        with pytest.raises(ValueError):
            Month.parse("garbage")

    def test_label_round_trip(self):
        month = Month(year=2026, month=3)
        assert month.label == "March 2026"
        assert Month.parse(month.label) == month


class TestMonthArithmetic:
    """Tests for navigation and normalization."""

    def test_next_crosses_year(self):
        assert Month(year=2026, month=12).next() == Month(year=2027, month=1)

    def test_previous_crosses_year(self):
        assert Month(year=2026, month=1).previous() == Month(year=2025, month=12)

    @pytest.mark.parametrize("year,month", [(2026, 1), (2026, 6), (2026, 12), (2024, 2)])
    def test_next_previous_round_trip(self, year, month):
        m = Month(year=year, month=month)
        assert m.next().previous() == m
        assert m.previous().next() == m

    def test_shift(self):
        assert Month(year=2026, month=10).shift(-22) == Month(year=2024, month=12)

    def test_shift_past_calendar_bounds(self):
        with pytest.raises(InvalidPeriodError):
            Month(year=9999, month=12).next()
        with pytest.raises(InvalidPeriodError):
            Month(year=1, month=1).previous()

    def test_normalize_is_idempotent(self):
        """Test normalize(normalize(d)) == normalize(d)."""
        for value in (date(2026, 10, 19), datetime(2026, 10, 31, 23, 59), date(2026, 10, 1)):
            once = normalize_month(value)
            assert once == date(2026, 10, 1)
            assert normalize_month(once) == once

    def test_from_date_accepts_strings(self):
        assert Month.from_date("2026-10-19") == Month(year=2026, month=10)
        assert Month.from_date("2026-10-19T08:00:00") == Month(year=2026, month=10)
        assert Month.from_date("October 2026") == Month(year=2026, month=10)

    def test_ordering_and_hashing(self):
        sep, oct_ = Month(year=2026, month=9), Month(year=2026, month=10)
        assert sep < oct_
        assert oct_ > sep
        assert len({sep, oct_, Month(year=2026, month=9)}) == 2

    def test_immutable(self):
        month = Month(year=2026, month=10)
        with pytest.raises(Exception):
            month.month = 11


class TestMonthViews:
    """Tests for month views."""

    def test_days_in_leap_february(self):
        assert Month(year=2024, month=2).days_in_month == 29
        assert Month(year=2026, month=2).days_in_month == 28

    def test_first_and_last_day(self):
        month = Month(year=2026, month=10)
        assert month.first_day == date(2026, 10, 1)
        assert month.last_day == date(2026, 10, 31)
        assert month.iso == "2026-10-01"
        assert len(month.days()) == 31

    def test_contains(self):
        month = Month(year=2026, month=10)
        assert month.contains(date(2026, 10, 19))
        assert not month.contains(date(2026, 11, 1))

    def test_str_is_label(self):
        assert str(Month(year=2026, month=10)) == "October 2026"
