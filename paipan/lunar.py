"""
Gregorian <-> Chinese lunisolar calendar conversion.

Backed by the lunar_python tables. Leap months are addressed by a
(month, is_leap_month) pair here; lunar_python itself encodes them as a
negative month number, so that translation lives only in this module.

Supported span: Gregorian years MIN_YEAR..MAX_YEAR inclusive. Lunar input
is accepted from lunar year MIN_YEAR - 1 (whose last month ends in January
MIN_YEAR) and is range-checked on the Gregorian day it converts to.
"""

from dataclasses import dataclass
from datetime import date

from lunar_python import Lunar, LunarYear, Solar

from paipan.errors import DateOutOfRange, InvalidCalendarDate, InvalidInput

MIN_YEAR = 1900
MAX_YEAR = 2100


@dataclass(frozen=True)
class LunarDate:
    year: int
    month: int  # 1-12, always positive
    day: int
    is_leap_month: bool = False
    month_chinese: str = ""
    day_chinese: str = ""

    def __str__(self):
        leap = "leap " if self.is_leap_month else ""
        return f"{self.year} {leap}month {self.month} day {self.day}"

    def chinese(self) -> str:
        return f"{self.year}年{self.month_chinese}月{self.day_chinese}"


def check_year(year: int) -> None:
    """Raise DateOutOfRange unless `year` is inside the supported span."""
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise DateOutOfRange(
            f"Year {year} is outside the supported range {MIN_YEAR}-{MAX_YEAR}"
        )


def check_lunar_year(year: int) -> None:
    """Raise DateOutOfRange unless lunar `year` has days inside the span."""
    if not MIN_YEAR - 1 <= year <= MAX_YEAR:
        raise DateOutOfRange(
            f"Lunar year {year} is outside the supported range {MIN_YEAR - 1}-{MAX_YEAR}"
        )


def leap_month(year: int) -> int:
    """Number of the leap month in lunar `year`, or 0 when there is none."""
    check_lunar_year(year)
    return LunarYear.fromYear(year).getLeapMonth()


def month_length(year: int, month: int, is_leap_month: bool = False) -> int:
    """
    Number of days (29 or 30) in a lunar month.

    Raises:
        InvalidInput: month outside 1-12
        InvalidCalendarDate: a leap month the year does not have
    """
    check_lunar_year(year)
    if not 1 <= month <= 12:
        raise InvalidInput(f"Lunar month must be 1-12, got {month}")
    lunar_month = LunarYear.fromYear(year).getMonth(-month if is_leap_month else month)
    if lunar_month is None:
        raise InvalidCalendarDate(f"Lunar year {year} has no leap month {month}")
    return lunar_month.getDayCount()


def _from_lunar_python(lunar: Lunar) -> LunarDate:
    month = lunar.getMonth()
    return LunarDate(
        year=lunar.getYear(),
        month=abs(month),
        day=lunar.getDay(),
        is_leap_month=month < 0,
        month_chinese=lunar.getMonthInChinese(),
        day_chinese=lunar.getDayInChinese(),
    )


def to_lunar(year: int, month: int, day: int) -> LunarDate:
    """
    Convert a Gregorian date to its lunisolar equivalent.

    Raises:
        DateOutOfRange: Gregorian year outside MIN_YEAR..MAX_YEAR
        InvalidCalendarDate: the Gregorian date does not exist (e.g. Feb 30)
    """
    check_year(year)
    try:
        date(year, month, day)
    except ValueError as exc:
        raise InvalidCalendarDate(f"{year}-{month:02d}-{day:02d}: {exc}") from exc
    return _from_lunar_python(Solar.fromYmd(year, month, day).getLunar())


def to_solar(year: int, month: int, day: int, is_leap_month: bool = False) -> date:
    """
    Convert a lunisolar date to the Gregorian calendar.

    Args:
        year: lunar year
        month: lunar month 1-12
        day: lunar day 1-30
        is_leap_month: True for the intercalary month that follows `month`

    Raises:
        DateOutOfRange: the Gregorian day falls outside MIN_YEAR..MAX_YEAR
        InvalidCalendarDate: leap month missing that year, or day past the
            end of the month
    """
    days = month_length(year, month, is_leap_month)
    if not 1 <= day <= days:
        label = f"leap month {month}" if is_leap_month else f"month {month}"
        raise InvalidCalendarDate(
            f"Lunar {year} {label} has {days} days, got day {day}"
        )
    solar = Lunar.fromYmd(year, -month if is_leap_month else month, day).getSolar()
    check_year(solar.getYear())
    return date(solar.getYear(), solar.getMonth(), solar.getDay())
