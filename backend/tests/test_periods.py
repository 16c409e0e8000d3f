from datetime import date, datetime

import pytest

from fuelstation.errors import ValidationError
from fuelstation.periods import END_OF_DAY, resolve_period


# Friday
NOW = datetime(2024, 3, 15, 10, 30)


class TestCalendarPeriods:
    def test_day(self):
        r = resolve_period("day", now=NOW)
        assert r.start == datetime(2024, 3, 15, 0, 0)
        assert r.end == datetime.combine(date(2024, 3, 15), END_OF_DAY)
        assert r.label == "2024-03-15"

    def test_week_starts_on_sunday(self):
        r = resolve_period("week", now=NOW)
        assert r.start_date == date(2024, 3, 10)
        assert r.end_date == date(2024, 3, 16)
        assert r.label == "Week of 2024-03-10"

    def test_week_on_a_sunday_starts_that_day(self):
        r = resolve_period("week", now=datetime(2024, 3, 17, 8, 0))
        assert r.start_date == date(2024, 3, 17)
        assert r.end_date == date(2024, 3, 23)

    def test_month(self):
        r = resolve_period("month", now=NOW)
        assert r.start_date == date(2024, 3, 1)
        assert r.end_date == date(2024, 3, 31)
        assert r.end.time() == END_OF_DAY
        assert r.label == "March 2024"

    def test_month_handles_leap_february(self):
        r = resolve_period("month", now=datetime(2024, 2, 10))
        assert r.end_date == date(2024, 2, 29)

    def test_quarter(self):
        r = resolve_period("quarter", now=datetime(2024, 8, 2))
        assert r.start_date == date(2024, 7, 1)
        assert r.end_date == date(2024, 9, 30)
        assert r.label == "Q3 2024"

    def test_year(self):
        r = resolve_period("year", now=NOW)
        assert r.start_date == date(2024, 1, 1)
        assert r.end_date == date(2024, 12, 31)
        assert r.label == "2024"

    def test_same_inputs_resolve_identically(self):
        assert resolve_period("month", now=NOW) == resolve_period("month", now=NOW)


class TestCustomPeriod:
    def test_end_covers_the_whole_end_day(self):
        r = resolve_period("custom", "2024-01-05", "2024-01-20T08:00:00")
        assert r.start == datetime(2024, 1, 5, 0, 0)
        assert r.end == datetime(2024, 1, 20, 23, 59, 59, 999000)
        assert r.label == "2024-01-05 to 2024-01-20"

    def test_accepts_date_objects(self):
        r = resolve_period("custom", date(2024, 1, 1), date(2024, 1, 1))
        assert r.start_date == r.end_date == date(2024, 1, 1)

    def test_missing_start_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            resolve_period("custom", None, "2024-01-31")
        assert "required for custom period" in exc.value.message

    def test_missing_end_is_rejected(self):
        with pytest.raises(ValidationError):
            resolve_period("custom", "2024-01-01")

    def test_start_after_end_is_rejected(self):
        with pytest.raises(ValidationError):
            resolve_period("custom", "2024-02-01", "2024-01-01")

    def test_malformed_date_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            resolve_period("custom", "not-a-date", "2024-01-01")
        assert exc.value.kind == "validation"

    @pytest.mark.parametrize("start, end", [
        (20240101, "2024-01-31"),
        ("2024-01-01", 20240131),
        (["2024-01-01"], "2024-01-31"),
    ])
    def test_non_string_bound_is_rejected(self, start, end):
        with pytest.raises(ValidationError) as exc:
            resolve_period("custom", start, end)
        assert "ISO date" in exc.value.message


def test_unknown_period_type_is_rejected():
    with pytest.raises(ValidationError):
        resolve_period("fortnight", now=NOW)


def test_contains_uses_inclusive_bounds():
    r = resolve_period("custom", "2024-01-01", "2024-01-31")
    assert r.contains(date(2024, 1, 31))
    assert r.contains(datetime(2024, 1, 31, 23, 59, 59))
    assert not r.contains(date(2024, 2, 1))


def test_to_dict_is_iso_dates():
    r = resolve_period("month", now=NOW)
    assert r.to_dict() == {"start": "2024-03-01", "end": "2024-03-31"}
