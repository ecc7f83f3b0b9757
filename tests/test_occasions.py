from datetime import date, datetime, timedelta, timezone

import pytest

from src.errors import InvalidDateError
from src.selection.occasions import (
    days_together,
    days_until_occasion,
    normalize_date,
    upcoming_occasions,
)


def test_future_date_same_year():
    assert days_until_occasion("2026-02-14", date(2026, 1, 15)) == 30


def test_today_is_zero():
    assert days_until_occasion("2026-02-14", date(2026, 2, 14)) == 0
    assert days_until_occasion("2019-02-14", "2026-02-14") == 0


def test_passed_date_wraps_to_next_year():
    days = days_until_occasion("2026-02-14", date(2026, 3, 1))
    assert 340 < days < 365


def test_year_is_ignored():
    assert days_until_occasion("2000-07-15", date(2026, 6, 1)) == 44


@pytest.mark.parametrize(
    "occasion, reference, expected",
    [
        ("2025-06-01", date(2025, 6, 2), 364),  # 下一次在 2026 (平年)
        ("2023-03-01", date(2027, 3, 2), 365),  # 跨过 2028-02-29
        ("2020-12-31", date(2026, 1, 1), 364),
    ],
)
def test_one_day_after_wraps(occasion, reference, expected):
    assert days_until_occasion(occasion, reference) == expected


def test_feb_29_observed_on_feb_28_in_common_years():
    assert days_until_occasion("2024-02-29", date(2025, 2, 28)) == 0
    assert days_until_occasion("2024-02-29", date(2025, 2, 27)) == 1
    assert days_until_occasion("2024-02-29", date(2025, 3, 1)) == 364
    assert days_until_occasion("2024-02-29", date(2028, 2, 28)) == 1


def test_normalize_date_inputs():
    assert normalize_date(date(2026, 1, 2)) == date(2026, 1, 2)
    assert normalize_date(datetime(2026, 1, 2, 23, 59)) == date(2026, 1, 2)
    assert normalize_date("2026-01-02T10:00:00Z") == date(2026, 1, 2)
    assert normalize_date(" 2026-01-02 ") == date(2026, 1, 2)


@pytest.mark.parametrize(
    "value",
    [
        "",
        "2026-13-01",
        "tomorrow",
        "2026-02-14 this is not a date",
        "2026-02-14T25:00:00",
        20260101,
        None,
        [2026],
    ],
)
def test_normalize_date_rejects_garbage(value):
    with pytest.raises(InvalidDateError):
        normalize_date(value)


def test_days_together():
    assert days_together("2026-01-01", date(2026, 1, 31)) == 30
    assert days_together("2026-01-01", date(2026, 1, 1)) == 0
    assert days_together("2027-01-01", date(2026, 1, 1)) is None


def test_upcoming_occasions_sorted():
    occasions = upcoming_occasions(
        date(2026, 6, 1), anniversary="2020-12-24", birthday="1995-06-10"
    )
    assert [o.kind for o in occasions] == ["birthday", "anniversary"]
    assert occasions[0].days_until == 9
    assert occasions[0].date == "1995-06-10"


def test_upcoming_occasions_empty():
    assert upcoming_occasions(date(2026, 6, 1)) == []


def test_aware_string_and_datetime_agree():
    tz = timezone(timedelta(hours=8))
    as_datetime = normalize_date(datetime(2026, 2, 14, 2, 0, tzinfo=tz))
    as_string = normalize_date("2026-02-14T02:00:00+08:00")
    assert as_string == as_datetime == date(2026, 2, 13)


def test_utc_suffix_and_naive_strings():
    assert normalize_date("2026-02-13T18:00:00Z") == date(2026, 2, 13)
    assert normalize_date("2026-02-14T02:00:00") == date(2026, 2, 14)
