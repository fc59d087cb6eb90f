from __future__ import annotations

import random
from datetime import date

import pytest

from paipan.bazi import Direction, Gender, day_pillar
from paipan.chart import CalendarKind, CivilDateTime, GeoLocation, compute_bazi_chart
from paipan.errors import DateOutOfRange, InvalidCalendarDate, InvalidInput

SHANGHAI = GeoLocation(longitude=121.5, latitude=31.2)


@pytest.fixture(scope="module")
def mid_autumn_1994():
    return compute_bazi_chart(CivilDateTime(year=1994, month=9, day=23, hour=8), Gender.MALE, SHANGHAI)


def test_pillars_1994(mid_autumn_1994) -> None:
    report = mid_autumn_1994

    assert report.chart.chinese == "甲戌 癸酉 壬子 甲辰"
    assert report.chart.day_master.pinyin == "Ren"
    assert report.zodiac_animal == "Jia Dog"
    assert (report.lunar_date.month, report.lunar_date.day) == (8, 18)
    assert report.month_jie.name == "Bai Lu"
    assert report.solar_time.timezone == "Asia/Shanghai"


def test_fortune_1994_runs_forward_from_han_lu(mid_autumn_1994) -> None:
    fortune = mid_autumn_1994.fortune

    assert fortune.direction is Direction.FORWARD
    assert mid_autumn_1994.fortune_jie.name == "Han Lu"
    assert mid_autumn_1994.fortune_jie.instant.date() == date(1994, 10, 8)
    assert 4.95 <= fortune.start_age <= 5.4
    assert [p.pillar.chinese for p in fortune.periods] == [
        "甲戌", "乙亥", "丙子", "丁丑", "戊寅", "己卯", "庚辰", "辛巳", "壬午", "癸未",
    ]


def test_new_year_2000_counts_backward() -> None:
    report = compute_bazi_chart(
        CivilDateTime(year=2000, month=1, day=1, hour=15, minute=30),
        Gender.MALE,
        GeoLocation(longitude=121.48, latitude=31.24),
    )

    assert report.chart.chinese == "己卯 丙子 戊午 庚申"
    assert (report.lunar_date.year, report.lunar_date.month, report.lunar_date.day) == (1999, 11, 25)
    assert report.fortune.direction is Direction.BACKWARD
    assert report.fortune_jie.name == "Da Xue"
    assert report.fortune_jie.instant.date() == date(1999, 12, 7)
    assert 8.0 <= report.fortune.start_age <= 8.5
    assert [p.pillar.chinese for p in report.fortune.periods[:2]] == ["乙亥", "甲戌"]


def test_female_reverses_direction() -> None:
    report = compute_bazi_chart(CivilDateTime(year=1994, month=9, day=23, hour=8), Gender.FEMALE, SHANGHAI)

    assert report.fortune.direction is Direction.BACKWARD
    assert report.fortune_jie.name == "Bai Lu"
    assert report.fortune.periods[0].pillar.chinese == "壬申"


def test_li_chun_switches_year_and_month() -> None:
    """Li Chun 2024 fell at 16:27 Beijing time on Feb 4."""

    place = GeoLocation(longitude=120.0, latitude=30.0)
    before = compute_bazi_chart(CivilDateTime(year=2024, month=2, day=4, hour=15), Gender.MALE, place,
                                timezone="Asia/Shanghai")
    after = compute_bazi_chart(CivilDateTime(year=2024, month=2, day=4, hour=18), Gender.MALE, place,
                               timezone="Asia/Shanghai")

    assert before.chart.year.stem_branch.chinese == "癸卯"
    assert before.chart.month.stem_branch.chinese == "乙丑"
    assert after.chart.year.stem_branch.chinese == "甲辰"
    assert after.chart.month.stem_branch.chinese == "丙寅"
    assert before.chart.day.stem_branch == after.chart.day.stem_branch


def test_true_solar_time_moves_day_past_midnight() -> None:
    civil = CivilDateTime(year=2021, month=11, day=3, hour=23, minute=30)
    east = GeoLocation(longitude=128.0, latitude=45.0)

    report = compute_bazi_chart(civil, Gender.MALE, east, timezone="Asia/Shanghai", split_zi_hour=True)

    assert report.solar_time.crosses_midnight is True
    assert report.solar_time.apparent_time.date() == date(2021, 11, 4)
    assert report.chart.day.stem_branch == day_pillar(date(2021, 11, 4)).stem_branch
    assert report.chart.hour.branch.pinyin == "Zi"


def test_late_zi_hour_keeps_day_when_split() -> None:
    """At 120°E the same clock time stays at 23:46 solar time."""

    civil = CivilDateTime(year=2021, month=11, day=3, hour=23, minute=30)
    place = GeoLocation(longitude=120.0, latitude=45.0)

    split = compute_bazi_chart(civil, Gender.MALE, place, timezone="Asia/Shanghai", split_zi_hour=True)
    merged = compute_bazi_chart(civil, Gender.MALE, place, timezone="Asia/Shanghai")

    assert split.solar_time.apparent_time.hour == 23
    assert split.chart.day.stem_branch == day_pillar(date(2021, 11, 3)).stem_branch
    assert merged.chart.day.stem_branch == day_pillar(date(2021, 11, 4)).stem_branch
    assert split.chart.hour == merged.chart.hour


def test_lunar_input_matches_solar_input(mid_autumn_1994) -> None:
    lunar = compute_bazi_chart(
        CivilDateTime(year=1994, month=8, day=18, hour=8, calendar=CalendarKind.LUNAR),
        Gender.MALE,
        SHANGHAI,
    )

    assert lunar.solar_date == date(1994, 9, 23)
    assert lunar.chart == mid_autumn_1994.chart
    assert lunar.fortune.start_age == pytest.approx(mid_autumn_1994.fortune.start_age)


def test_lunar_1899_input_inside_the_span() -> None:
    """Lunar 1899-12-15 is Gregorian 1900-01-15."""

    lunar = compute_bazi_chart(
        CivilDateTime(year=1899, month=12, day=15, hour=8, calendar=CalendarKind.LUNAR),
        Gender.MALE,
        SHANGHAI,
    )
    solar = compute_bazi_chart(CivilDateTime(year=1900, month=1, day=15, hour=8), Gender.MALE, SHANGHAI)

    assert lunar.solar_date == date(1900, 1, 15)
    assert lunar.chart == solar.chart
    assert lunar.chart.year.stem_branch.chinese == "己亥"
    assert lunar.month_jie.name == "Xiao Han"


def test_lunar_input_before_the_span() -> None:
    with pytest.raises(DateOutOfRange):
        compute_bazi_chart(
            CivilDateTime(year=1899, month=11, day=1, hour=8, calendar=CalendarKind.LUNAR),
            Gender.MALE,
            SHANGHAI,
        )
    with pytest.raises(DateOutOfRange):
        compute_bazi_chart(
            CivilDateTime(year=1898, month=12, day=1, hour=8, calendar=CalendarKind.LUNAR),
            Gender.MALE,
            SHANGHAI,
        )


def test_report_cannot_be_mutated(mid_autumn_1994) -> None:
    report = mid_autumn_1994

    assert isinstance(report.ten_gods, tuple)
    with pytest.raises(TypeError):
        report.elements["wood"] = 9.0
    with pytest.raises(TypeError):
        report.ten_gods[0]["ten_god"] = "none"
    with pytest.raises(TypeError):
        report.ten_gods[0]["hidden_stem_gods"][0]["stem"] = "none"
    assert report.elements["wood"] == 2.5


def test_lunar_leap_month_input() -> None:
    report = compute_bazi_chart(
        CivilDateTime(year=2020, month=4, day=1, hour=12, calendar=CalendarKind.LUNAR, is_leap_month=True),
        Gender.FEMALE,
        SHANGHAI,
    )

    assert report.solar_date == date(2020, 5, 23)
    assert report.lunar_date.is_leap_month is True


@pytest.mark.parametrize(
    "civil, location, error",
    [
        (CivilDateTime(year=2024, month=13, day=1, hour=0), SHANGHAI, InvalidInput),
        (CivilDateTime(year=2024, month=1, day=32, hour=0), SHANGHAI, InvalidInput),
        (CivilDateTime(year=2024, month=1, day=1, hour=24), SHANGHAI, InvalidInput),
        (CivilDateTime(year=2024, month=1, day=1, hour=0, minute=60), SHANGHAI, InvalidInput),
        (CivilDateTime(year=2024, month=1, day=1, hour=0, is_leap_month=True), SHANGHAI, InvalidInput),
        (CivilDateTime(year=2023, month=2, day=30, hour=0), SHANGHAI, InvalidCalendarDate),
        (CivilDateTime(year=2022, month=5, day=1, hour=0, calendar=CalendarKind.LUNAR, is_leap_month=True),
         SHANGHAI, InvalidCalendarDate),
        (CivilDateTime(year=1850, month=1, day=1, hour=0), SHANGHAI, DateOutOfRange),
        (CivilDateTime(year=2101, month=1, day=1, hour=0), SHANGHAI, DateOutOfRange),
        (CivilDateTime(year=2024, month=1, day=1, hour=0), GeoLocation(longitude=200.0), InvalidInput),
        (CivilDateTime(year=2024, month=1, day=1, hour=0), GeoLocation(latitude=-91.0), InvalidInput),
    ],
)
def test_rejected_input(civil, location, error) -> None:
    with pytest.raises(error):
        compute_bazi_chart(civil, Gender.MALE, location)


def test_unknown_gender() -> None:
    with pytest.raises(InvalidInput):
        compute_bazi_chart(CivilDateTime(year=2000, month=1, day=1, hour=0), "male", SHANGHAI)


@pytest.mark.parametrize("gender", list(Gender))
def test_timelines_are_consistent_across_the_span(gender: Gender) -> None:
    rng = random.Random(2024)
    for _ in range(60):
        civil = CivilDateTime(
            year=rng.randint(1901, 2099),
            month=rng.randint(1, 12),
            day=rng.randint(1, 28),
            hour=rng.randint(0, 23),
            minute=rng.randint(0, 59),
        )
        report = compute_bazi_chart(civil, gender, SHANGHAI, timezone="Asia/Shanghai")
        fortune = report.fortune

        assert report.terms.previous.jd_ut <= report.solar_time.jd_ut < report.terms.next.jd_ut
        assert report.month_jie.is_jie and report.fortune_jie.is_jie
        # Jie terms are at most about 31 days apart
        assert 0 <= fortune.days_to_jie < 32
        assert fortune.start_age == pytest.approx(fortune.days_to_jie / 3)

        ages = [p.start_age for p in fortune.periods]
        assert len(ages) == 10
        assert all(b - a == pytest.approx(10) for a, b in zip(ages, ages[1:]))
        assert ages[-1] + 10 >= 90

        first = fortune.periods[0].pillar.index
        assert (first - report.chart.month.stem_branch.index) % 60 == fortune.direction.value % 60
