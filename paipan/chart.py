"""
Chart creation library.
Computes a BaZi natal chart and its Fortune Period timeline from birth data.

The whole pipeline is a pure function of its inputs: no I/O, no logging,
no state kept between calls. Failures are raised as the typed errors in
paipan.errors.

Usage from Python:
    from paipan.chart import CivilDateTime, GeoLocation, compute_bazi_chart
    from paipan.bazi import Gender
    report = compute_bazi_chart(
        CivilDateTime(year=1994, month=9, day=23, hour=8),
        Gender.MALE,
        GeoLocation(longitude=121.5, latitude=31.2),
    )
    report.chart.chinese  # '甲戌 癸酉 壬子 甲辰'
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from paipan.astro_calendar import (
    SolarTerm,
    SolarTimeCorrection,
    TermBracket,
    li_chun,
    locate_terms,
    month_branch_index,
    nearest_jie,
    true_solar_time,
)
from paipan.bazi import (
    DEFAULT_FORTUNE_PERIODS,
    BaziChart,
    Direction,
    FortuneTimeline,
    Gender,
    element_distribution,
    fortune_direction,
    fortune_timeline,
    map_ten_gods,
    pillars_for,
)
from paipan.errors import InvalidCalendarDate, InvalidInput
from paipan.lunar import LunarDate, check_lunar_year, check_year, to_lunar, to_solar

# Shanghai
DEFAULT_LONGITUDE = 121.5
DEFAULT_LATITUDE = 31.2


class CalendarKind(Enum):
    SOLAR = "solar"
    LUNAR = "lunar"


def _check_field(name: str, value, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an integer, got {value!r}")
    if not low <= value <= high:
        raise InvalidInput(f"{name} must be {low}-{high}, got {value}")


@dataclass(frozen=True)
class CivilDateTime:
    """Birth date and clock time as the user gave them."""
    year: int
    month: int
    day: int
    hour: int
    minute: int = 0
    calendar: CalendarKind = CalendarKind.SOLAR
    is_leap_month: bool = False  # lunar only

    def validate(self) -> None:
        """
        Raises:
            InvalidInput: a field outside its structural range
            DateOutOfRange: year outside the supported span
        """
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise InvalidInput(f"year must be an integer, got {self.year!r}")
        _check_field("month", self.month, 1, 12)
        _check_field("day", self.day, 1, 31)
        _check_field("hour", self.hour, 0, 23)
        _check_field("minute", self.minute, 0, 59)
        if not isinstance(self.calendar, CalendarKind):
            raise InvalidInput(f"Unknown calendar {self.calendar!r}")
        if self.is_leap_month and self.calendar is CalendarKind.SOLAR:
            raise InvalidInput("Leap month applies to lunar dates only")
        if self.calendar is CalendarKind.LUNAR:
            check_lunar_year(self.year)
        else:
            check_year(self.year)


@dataclass(frozen=True)
class GeoLocation:
    longitude: float = DEFAULT_LONGITUDE  # east positive
    latitude: float = DEFAULT_LATITUDE  # north positive

    def validate(self) -> None:
        if not -180.0 <= self.longitude <= 180.0:
            raise InvalidInput(f"longitude must be -180..180, got {self.longitude}")
        if not -90.0 <= self.latitude <= 90.0:
            raise InvalidInput(f"latitude must be -90..90, got {self.latitude}")


@dataclass(frozen=True)
class BaziReport:
    civil: CivilDateTime
    gender: Gender
    location: GeoLocation
    solar_date: date
    lunar_date: LunarDate
    solar_time: SolarTimeCorrection
    terms: TermBracket
    month_jie: SolarTerm
    chart: BaziChart
    fortune_jie: SolarTerm
    fortune: FortuneTimeline
    split_zi_hour: bool = False
    ten_gods: tuple = field(default=(), compare=False)
    elements: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({}), compare=False
    )

    @property
    def zodiac_animal(self) -> str:
        year = self.chart.year
        return f"{year.stem.pinyin} {year.branch.animal}"


def _freeze_ten_gods(gods: list[dict]) -> tuple:
    return tuple(
        MappingProxyType({
            **god,
            "hidden_stem_gods": tuple(MappingProxyType(h) for h in god["hidden_stem_gods"]),
        })
        for god in gods
    )


def resolve_solar_date(civil: CivilDateTime) -> date:
    """
    Gregorian date of the birth.

    Raises:
        InvalidCalendarDate: the date does not exist in its calendar
        DateOutOfRange: a lunar date whose Gregorian day leaves the span
    """
    if civil.calendar is CalendarKind.LUNAR:
        return to_solar(civil.year, civil.month, civil.day, civil.is_leap_month)
    try:
        return date(civil.year, civil.month, civil.day)
    except ValueError as exc:
        raise InvalidCalendarDate(
            f"{civil.year}-{civil.month:02d}-{civil.day:02d}: {exc}"
        ) from exc


def compute_bazi_chart(civil: CivilDateTime, gender: Gender,
                       location: GeoLocation = GeoLocation(), *,
                       timezone: Optional[str] = None,
                       split_zi_hour: bool = False,
                       num_periods: int = DEFAULT_FORTUNE_PERIODS) -> BaziReport:
    """
    Compute the Four Pillars chart and Fortune timeline for a birth.

    Args:
        civil: birth date and clock time (solar or lunar calendar)
        gender: determines the Fortune Period direction
        location: birth place; longitude drives the solar time correction
        timezone: IANA zone of the clock time; looked up from the location
            when None
        split_zi_hour: keep 23:00-23:59 solar time on the current day's Day
            pillar instead of the next day's
        num_periods: number of decade pillars in the timeline

    Returns:
        BaziReport

    Raises:
        InvalidInput, InvalidCalendarDate, DateOutOfRange
    """
    civil.validate()
    location.validate()
    if not isinstance(gender, Gender):
        raise InvalidInput(f"Unknown gender {gender!r}")

    solar_date = resolve_solar_date(civil)
    lunar_date = to_lunar(solar_date.year, solar_date.month, solar_date.day)

    clock_time = datetime.combine(solar_date, time(civil.hour, civil.minute))
    solar_time = true_solar_time(clock_time, location.longitude, location.latitude, timezone)
    jd_ut = solar_time.jd_ut
    offset = solar_time.standard_offset
    year = solar_time.standard_time.year

    # Year and month switch on solar term instants, not on solar-time dates
    effective_year = year if jd_ut >= li_chun(year, offset).jd_ut else year - 1
    month_jie = nearest_jie(jd_ut, year, forward=False, utc_offset=offset)

    chart = pillars_for(
        solar_time.apparent_time,
        effective_year,
        month_branch_index(month_jie),
        split_zi_hour=split_zi_hour,
    )

    direction = fortune_direction(chart.year.stem, gender)
    if direction is Direction.FORWARD:
        fortune_jie = nearest_jie(jd_ut, year, forward=True, utc_offset=offset)
    else:
        fortune_jie = month_jie
    timeline = fortune_timeline(
        chart.month,
        direction,
        abs(fortune_jie.jd_ut - jd_ut),
        solar_time.standard_time,
        num_periods=num_periods,
    )

    return BaziReport(
        civil=civil,
        gender=gender,
        location=location,
        solar_date=solar_date,
        lunar_date=lunar_date,
        solar_time=solar_time,
        terms=locate_terms(jd_ut, year, offset),
        month_jie=month_jie,
        chart=chart,
        fortune_jie=fortune_jie,
        fortune=timeline,
        split_zi_hour=split_zi_hour,
        ten_gods=_freeze_ten_gods(map_ten_gods(chart)),
        elements=MappingProxyType(element_distribution(chart)),
    )
