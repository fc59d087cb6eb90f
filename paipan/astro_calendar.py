"""
Calendar astronomy for chart computation.
Handles solar term lookups, Local Mean Time and equation-of-time
correction, and timezone/DST resolution for a birth place.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import swisseph as swe
from timezonefinder import TimezoneFinder

from paipan.errors import DateOutOfRange, InvalidInput
from paipan.lunar import check_year

# Point Swiss Ephemeris to data files; without them the built-in
# Moshier ephemeris is used, which is well inside minute precision for the Sun.
_ephe_dir = Path(__file__).parent.parent / "ephe"
swe.set_ephe_path(str(_ephe_dir))
EPHE_FLAGS = swe.FLG_SWIEPH if _ephe_dir.is_dir() else swe.FLG_MOSEPH

DEFAULT_TIMEZONE = "Asia/Shanghai"
DEFAULT_STANDARD_MERIDIAN = 120.0
DEFAULT_UTC_OFFSET = 8.0

_tf = TimezoneFinder()


# ============================================================
# SOLAR TERM COMPUTATION
# ============================================================
#
# The 24 solar terms are the Sun reaching ecliptic longitudes in 15° steps.
# The 12 Jie (节) open the BaZi months; the 12 Qi (气) fall mid-month.
# Swiss Ephemeris swe.solcross_ut() finds the exact crossing moment.
#
# Xiao Han (285°) → Ox month (Chou)
# Li Chun (315°) → Tiger month (Yin), also the BaZi year boundary
# Jing Zhe (345°) → Rabbit month (Mao)
# ... every 30° thereafter ...
# Da Xue (255°) → Rat month (Zi)

# (longitude, pinyin, chinese) in Gregorian-year order
SOLAR_TERM_DEFINITIONS = (
    (285, "Xiao Han", "小寒"),
    (300, "Da Han", "大寒"),
    (315, "Li Chun", "立春"),
    (330, "Yu Shui", "雨水"),
    (345, "Jing Zhe", "惊蛰"),
    (0, "Chun Fen", "春分"),
    (15, "Qing Ming", "清明"),
    (30, "Gu Yu", "谷雨"),
    (45, "Li Xia", "立夏"),
    (60, "Xiao Man", "小满"),
    (75, "Mang Zhong", "芒种"),
    (90, "Xia Zhi", "夏至"),
    (105, "Xiao Shu", "小暑"),
    (120, "Da Shu", "大暑"),
    (135, "Li Qiu", "立秋"),
    (150, "Chu Shu", "处暑"),
    (165, "Bai Lu", "白露"),
    (180, "Qiu Fen", "秋分"),
    (195, "Han Lu", "寒露"),
    (210, "Shuang Jiang", "霜降"),
    (225, "Li Dong", "立冬"),
    (240, "Xiao Xue", "小雪"),
    (255, "Da Xue", "大雪"),
    (270, "Dong Zhi", "冬至"),
)

LI_CHUN = "Li Chun"


@dataclass(frozen=True)
class SolarTerm:
    name: str
    chinese: str
    longitude: int
    position: int  # 0-23, 0 = Xiao Han
    jd_ut: float  # Julian Day (UT) of the crossing
    instant: datetime  # civil time at the given UTC offset

    @property
    def is_jie(self) -> bool:
        """Month-opening term (Xiao Han, Li Chun, Jing Zhe, ...)."""
        return self.position % 2 == 0

    def __str__(self):
        return f"{self.name} ({self.chinese}) {self.instant:%Y-%m-%d %H:%M}"


@dataclass(frozen=True)
class TermBracket:
    previous: SolarTerm
    next: SolarTerm


def jd_to_datetime(jd_ut: float, utc_offset: float = 0.0) -> datetime:
    """Julian Day (UT) to a naive datetime shifted by `utc_offset` hours."""
    y, m, d, h = swe.revjul(jd_ut, swe.GREG_CAL)
    return datetime(y, m, d) + timedelta(hours=h + utc_offset)


def datetime_to_jd(utc_dt: datetime) -> float:
    """Naive UTC datetime to Julian Day (UT)."""
    hours = utc_dt.hour + utc_dt.minute / 60 + utc_dt.second / 3600
    return swe.julday(utc_dt.year, utc_dt.month, utc_dt.day, hours, swe.GREG_CAL)


@lru_cache(maxsize=256)
def _term_crossings(year: int) -> tuple:
    jd_year_start = swe.julday(year, 1, 1, 0, swe.GREG_CAL)
    crossings = []
    for lon, _, _ in SOLAR_TERM_DEFINITIONS:
        crossings.append(swe.solcross_ut(float(lon), jd_year_start, EPHE_FLAGS))
    return tuple(crossings)


def solar_terms(year: int, utc_offset: float = DEFAULT_UTC_OFFSET) -> tuple[SolarTerm, ...]:
    """
    Compute all 24 solar terms for a Gregorian year.

    Every term falls inside its Gregorian year (Xiao Han early January
    through Dong Zhi late December), so the result is strictly time
    ordered with no gaps between consecutive years.

    Args:
        year: Gregorian year
        utc_offset: hours added to UT for the civil `instant` of each term

    Returns:
        Tuple of 24 SolarTerm in chronological order

    Raises:
        DateOutOfRange: year outside the supported span
    """
    check_year(year)
    return _build_terms(year, utc_offset)


def _build_terms(year: int, utc_offset: float) -> tuple[SolarTerm, ...]:
    terms = []
    for position, ((lon, name, chinese), jd) in enumerate(
        zip(SOLAR_TERM_DEFINITIONS, _term_crossings(year))
    ):
        terms.append(SolarTerm(
            name=name,
            chinese=chinese,
            longitude=lon,
            position=position,
            jd_ut=jd,
            instant=jd_to_datetime(jd, utc_offset),
        ))
    return tuple(terms)


def _terms_around(year: int, utc_offset: float) -> list[SolarTerm]:
    check_year(year)
    all_terms = []
    for y in (year - 1, year, year + 1):
        all_terms.extend(_build_terms(y, utc_offset))
    return all_terms


def locate_terms(jd_ut: float, year: int,
                 utc_offset: float = DEFAULT_UTC_OFFSET) -> TermBracket:
    """
    Find the pair of solar terms enclosing an instant.

    Args:
        jd_ut: Julian Day (UT) of the instant
        year: Gregorian year of the instant (civil)
        utc_offset: civil offset for the returned term instants

    Returns:
        TermBracket with the term at or before the instant and the first
        term strictly after it

    Raises:
        DateOutOfRange: year outside the span, or the instant lies outside
            the three years of terms around it
    """
    all_terms = _terms_around(year, utc_offset)
    for previous, following in zip(all_terms, all_terms[1:]):
        if previous.jd_ut <= jd_ut < following.jd_ut:
            return TermBracket(previous=previous, next=following)
    raise DateOutOfRange(f"JD {jd_ut} is not within the solar terms around {year}")


def nearest_jie(jd_ut: float, year: int, forward: bool,
                utc_offset: float = DEFAULT_UTC_OFFSET) -> SolarTerm:
    """
    Find the nearest Jie solar term in the given direction from birth.

    Args:
        jd_ut: Julian Day (UT) of birth
        year: birth year (Gregorian)
        forward: True = first Jie strictly after birth,
                 False = last Jie at or before birth

    Returns:
        The nearest Jie SolarTerm

    Raises:
        DateOutOfRange: no Jie in that direction within year-1..year+1
    """
    jie = [t for t in _terms_around(year, utc_offset) if t.is_jie]

    if forward:
        for term in jie:
            if term.jd_ut > jd_ut:
                return term
    else:
        for term in reversed(jie):
            if term.jd_ut <= jd_ut:
                return term

    raise DateOutOfRange(f"Could not find {'next' if forward else 'previous'} Jie from JD {jd_ut}")


def li_chun(year: int, utc_offset: float = DEFAULT_UTC_OFFSET) -> SolarTerm:
    """Li Chun (Start of Spring) of a Gregorian year, the BaZi new year."""
    return next(t for t in solar_terms(year, utc_offset) if t.name == LI_CHUN)


def month_branch_index(jie: SolarTerm) -> int:
    """
    Earthly branch index of the month a Jie opens.

    Xiao Han (position 0) opens Chou (1), Li Chun (2) opens Yin (2),
    ... Da Xue (22) opens Zi (0).
    """
    if not jie.is_jie:
        raise InvalidInput(f"{jie.name} does not open a month")
    return (jie.position // 2 + 1) % 12


# ============================================================
# TRUE SOLAR TIME
# ============================================================

def lmt_correction(longitude: float, standard_meridian: float = DEFAULT_STANDARD_MERIDIAN) -> float:
    """
    Calculate Local Mean Time correction in minutes.

    China uses a single timezone based on 120°E. For locations
    significantly west of this (like Nanning at 108.37°E), the clock
    time differs from solar time.

    Args:
        longitude: birth location longitude in degrees (east positive)
        standard_meridian: timezone standard meridian (120.0 for China/CST)

    Returns:
        Correction in minutes (negative = subtract from clock time)

    Example:
        Nanning (108.37°E): correction = (108.37 - 120.0) * 4 = -46.52 min
        So 2:05 PM clock time → ~1:18 PM LMT
    """
    return (longitude - standard_meridian) * 4.0


def equation_of_time(jd_ut: float) -> float:
    """
    Equation of time in minutes (apparent minus mean solar time).

    Positive in early November (about +16 min), negative in mid
    February (about -14 min).
    """
    return swe.time_equ(jd_ut) * 1440.0


def utc_offset_for(latitude: float, longitude: float, local_dt: datetime,
                   timezone: Optional[str] = None):
    """
    Determine UTC offset from coordinates and date.
    Detects historical DST (e.g., China 1986-1991).

    Args:
        latitude, longitude: birth place
        local_dt: naive clock time at birth
        timezone: IANA zone name; looked up from the coordinates when None,
            falling back to DEFAULT_TIMEZONE over open sea

    Returns:
        (clock_offset, standard_offset, timezone_name, dst_detected)

        clock_offset:    what the clock was actually set to (includes DST if active)
        standard_offset: the zone's standard (non-DST) offset
        dst_detected:    True if DST was active at birth time

    Solar time is measured from standard_offset; DST is stripped first.
    """
    tz_name = timezone or _tf.timezone_at(lat=latitude, lng=longitude) or DEFAULT_TIMEZONE
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidInput(f"Unknown timezone {tz_name!r}") from exc

    aware = local_dt.replace(tzinfo=zone)
    clock_offset = aware.utcoffset().total_seconds() / 3600

    dst = aware.dst()
    dst_detected = dst is not None and dst.total_seconds() > 0
    if dst_detected:
        standard_offset = clock_offset - dst.total_seconds() / 3600
    else:
        standard_offset = clock_offset

    return clock_offset, standard_offset, tz_name, dst_detected


@dataclass(frozen=True)
class SolarTimeCorrection:
    clock_time: datetime
    standard_time: datetime  # clock time with DST removed
    apparent_time: datetime  # local apparent (true) solar time
    jd_ut: float
    timezone: str
    clock_offset: float
    standard_offset: float
    dst_detected: bool
    longitude_minutes: float
    equation_of_time_minutes: float

    @property
    def total_minutes(self) -> float:
        return self.longitude_minutes + self.equation_of_time_minutes

    @property
    def crosses_midnight(self) -> bool:
        return self.apparent_time.date() != self.standard_time.date()


def true_solar_time(clock_time: datetime, longitude: float, latitude: float,
                    timezone: Optional[str] = None) -> SolarTimeCorrection:
    """
    Convert civil clock time to local apparent solar time.

    apparent = standard time + (longitude - standard meridian) * 4 min
               + equation of time

    The apparent date can differ from the civil date near midnight; the
    Day pillar must be read from the apparent date.
    """
    clock_offset, standard_offset, tz_name, dst_detected = utc_offset_for(
        latitude, longitude, clock_time, timezone
    )
    standard_time = clock_time - timedelta(hours=clock_offset - standard_offset)
    jd_ut = datetime_to_jd(standard_time - timedelta(hours=standard_offset))

    longitude_minutes = lmt_correction(longitude, standard_offset * 15)
    eot_minutes = equation_of_time(jd_ut)
    apparent = standard_time + timedelta(minutes=longitude_minutes + eot_minutes)

    return SolarTimeCorrection(
        clock_time=clock_time,
        standard_time=standard_time,
        apparent_time=apparent,
        jd_ut=jd_ut,
        timezone=tz_name,
        clock_offset=clock_offset,
        standard_offset=standard_offset,
        dst_detected=dst_detected,
        longitude_minutes=longitude_minutes,
        equation_of_time_minutes=eot_minutes,
    )
