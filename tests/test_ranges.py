from datetime import date

import pytest

from Profit_analytics.ranges import activity_range, quick_range

TODAY = date(2024, 3, 15)


@pytest.mark.parametrize(
    "key, expected",
    [
        ("today", ("2024-03-15", "2024-03-15")),
        ("7", ("2024-03-09", "2024-03-15")),
        ("month", ("2024-03-01", "2024-03-15")),
        ("lastmonth", ("2024-02-01", "2024-02-29")),
        ("ytd", ("2024-01-01", "2024-03-15")),
    ],
)
def test_quick_range(key, expected) -> None:
    assert quick_range(key, TODAY) == expected


def test_last_month_wraps_the_year() -> None:
    assert quick_range("lastmonth", date(2024, 1, 10)) == ("2023-12-01", "2023-12-31")


@pytest.mark.parametrize(
    "key, expected",
    [
        ("today", ("2024-03-15", "2024-03-15")),
        ("yesterday", ("2024-03-14", "2024-03-14")),
        ("day_before", ("2024-03-13", "2024-03-13")),
        ("last7", ("2024-03-09", "2024-03-15")),
        ("last30", ("2024-02-15", "2024-03-15")),
    ],
)
def test_activity_range(key, expected) -> None:
    assert activity_range(key, TODAY) == expected


def test_unknown_ranges_raise() -> None:
    with pytest.raises(ValueError):
        quick_range("fortnight", TODAY)
    with pytest.raises(ValueError):
        activity_range("7", TODAY)
