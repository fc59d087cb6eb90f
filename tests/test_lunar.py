from __future__ import annotations

from datetime import date, timedelta

import pytest

from paipan.errors import DateOutOfRange, InvalidCalendarDate, InvalidInput
from paipan.lunar import MAX_YEAR, MIN_YEAR, leap_month, month_length, to_lunar, to_solar


def test_mid_autumn_1994() -> None:
    """1994-09-23 is the 18th day of the 8th lunar month (Mid-Autumn was 09-20)."""

    lunar = to_lunar(1994, 9, 23)

    assert (lunar.year, lunar.month, lunar.day) == (1994, 8, 18)
    assert lunar.is_leap_month is False


def test_new_year_2000_is_still_lunar_1999() -> None:
    lunar = to_lunar(2000, 1, 1)

    assert (lunar.year, lunar.month, lunar.day) == (1999, 11, 25)


def test_lunar_new_year_2024() -> None:
    assert to_solar(2024, 1, 1) == date(2024, 2, 10)


def test_leap_months() -> None:
    assert leap_month(2020) == 4
    assert leap_month(2023) == 2
    assert leap_month(2022) == 0


def test_leap_month_round_trip() -> None:
    """2020 had a leap 4th month starting 2020-05-23."""

    assert to_solar(2020, 4, 1, is_leap_month=True) == date(2020, 5, 23)

    lunar = to_lunar(2020, 5, 23)
    assert (lunar.year, lunar.month, lunar.day) == (2020, 4, 1)
    assert lunar.is_leap_month is True
    assert lunar.month_chinese.startswith("闰")


def test_leap_month_length_and_overflow() -> None:
    assert month_length(2020, 4, is_leap_month=True) == 29

    with pytest.raises(InvalidCalendarDate):
        to_solar(2020, 4, 30, is_leap_month=True)


def test_missing_leap_month() -> None:
    with pytest.raises(InvalidCalendarDate):
        to_solar(2022, 5, 1, is_leap_month=True)


def test_impossible_gregorian_date() -> None:
    with pytest.raises(InvalidCalendarDate):
        to_lunar(2023, 2, 30)


def test_day_zero_is_rejected() -> None:
    with pytest.raises(InvalidCalendarDate):
        to_solar(2024, 1, 0)


def test_month_out_of_range() -> None:
    with pytest.raises(InvalidInput):
        month_length(2024, 13)


@pytest.mark.parametrize("year", [MIN_YEAR - 1, MAX_YEAR + 1])
def test_years_outside_span(year: int) -> None:
    with pytest.raises(DateOutOfRange):
        to_lunar(year, 6, 1)
    with pytest.raises(DateOutOfRange):
        to_solar(year, 6, 1)


def test_lunar_year_span() -> None:
    """Lunar 1899 is addressable because its last month runs into 1900."""

    assert isinstance(leap_month(MIN_YEAR - 1), int)
    with pytest.raises(DateOutOfRange):
        leap_month(MIN_YEAR - 2)
    with pytest.raises(DateOutOfRange):
        leap_month(MAX_YEAR + 1)


def test_last_lunar_month_of_1899() -> None:
    assert to_solar(1899, 12, 1) == date(1900, 1, 1)
    assert to_solar(1899, 12, 15) == date(1900, 1, 15)

    with pytest.raises(DateOutOfRange):
        to_solar(1899, 11, 1)


def test_january_1900_round_trips() -> None:
    """Gregorian 1900-01-01..30 fall in lunar 1899 and still convert back."""

    for offset in range(31):
        day = date(1900, 1, 1) + timedelta(days=offset)
        lunar = to_lunar(day.year, day.month, day.day)
        assert to_solar(lunar.year, lunar.month, lunar.day, lunar.is_leap_month) == day

    assert to_lunar(1900, 1, 15).year == 1899


def test_round_trip_across_supported_span() -> None:
    """Gregorian -> lunar -> Gregorian is the identity (sampled every 37 days)."""

    day = date(1900, 1, 1)
    end = date(2100, 12, 1)
    while day <= end:
        lunar = to_lunar(day.year, day.month, day.day)
        assert to_solar(lunar.year, lunar.month, lunar.day, lunar.is_leap_month) == day
        day += timedelta(days=37)


def test_round_trip_every_day_of_a_leap_year() -> None:
    """Lunar -> Gregorian -> lunar over every day of lunar 2023 (leap 2nd month)."""

    for month in range(1, 13):
        for is_leap in (False, True):
            if is_leap and leap_month(2023) != month:
                continue
            for day in range(1, month_length(2023, month, is_leap) + 1):
                solar = to_solar(2023, month, day, is_leap)
                lunar = to_lunar(solar.year, solar.month, solar.day)
                assert (lunar.year, lunar.month, lunar.day, lunar.is_leap_month) == (
                    2023, month, day, is_leap
                )
