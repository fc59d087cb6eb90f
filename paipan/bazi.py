"""
BaZi (Four Pillars of Destiny) computation engine.

Handles:
- Stem/branch tables with element, polarity and hidden stems
- The 60-term sexagenary cycle
- Year, month, day and hour pillar derivation
- Ten Gods relationship mapping
- Element distribution analysis
- Fortune Period (Da Yun) timelines

Design principle: This module COMPUTES. It does not interpret, and it does
no calendar astronomy; solar terms and solar time come in as arguments.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from paipan.errors import InvalidInput


# ============================================================
# FUNDAMENTAL DATA STRUCTURES
# ============================================================

class Polarity(Enum):
    YANG = "yang"
    YIN = "yin"


class Element(Enum):
    WOOD = "wood"
    FIRE = "fire"
    EARTH = "earth"
    METAL = "metal"
    WATER = "water"


class Gender(Enum):
    MALE = "male"
    FEMALE = "female"


class Direction(Enum):
    """Traversal of the 60-cycle when stepping Fortune Periods."""
    FORWARD = 1
    BACKWARD = -1


@dataclass(frozen=True)
class HeavenlyStem:
    chinese: str
    pinyin: str
    element: Element
    polarity: Polarity
    index: int  # 0-9 in the cycle

    def __str__(self):
        return f"{self.pinyin} ({self.polarity.value} {self.element.value})"


@dataclass(frozen=True)
class EarthlyBranch:
    chinese: str
    pinyin: str
    animal: str
    element: Element  # primary/season element
    polarity: Polarity
    index: int  # 0-11 in the cycle
    hidden_stems: tuple[str, ...]  # pinyin names [main_qi, middle_qi, residual_qi]

    def __str__(self):
        return f"{self.pinyin} ({self.animal})"


# ============================================================
# STEM AND BRANCH DEFINITIONS
# ============================================================

HEAVENLY_STEMS = (
    HeavenlyStem("甲", "Jia", Element.WOOD, Polarity.YANG, 0),
    HeavenlyStem("乙", "Yi", Element.WOOD, Polarity.YIN, 1),
    HeavenlyStem("丙", "Bing", Element.FIRE, Polarity.YANG, 2),
    HeavenlyStem("丁", "Ding", Element.FIRE, Polarity.YIN, 3),
    HeavenlyStem("戊", "Wu", Element.EARTH, Polarity.YANG, 4),
    HeavenlyStem("己", "Ji", Element.EARTH, Polarity.YIN, 5),
    HeavenlyStem("庚", "Geng", Element.METAL, Polarity.YANG, 6),
    HeavenlyStem("辛", "Xin", Element.METAL, Polarity.YIN, 7),
    HeavenlyStem("壬", "Ren", Element.WATER, Polarity.YANG, 8),
    HeavenlyStem("癸", "Gui", Element.WATER, Polarity.YIN, 9),
)

EARTHLY_BRANCHES = (
    EarthlyBranch("子", "Zi", "Rat", Element.WATER, Polarity.YANG, 0,
                  ("Gui",)),
    EarthlyBranch("丑", "Chou", "Ox", Element.EARTH, Polarity.YIN, 1,
                  ("Ji", "Gui", "Xin")),
    EarthlyBranch("寅", "Yin", "Tiger", Element.WOOD, Polarity.YANG, 2,
                  ("Jia", "Bing", "Wu")),
    EarthlyBranch("卯", "Mao", "Rabbit", Element.WOOD, Polarity.YIN, 3,
                  ("Yi",)),
    EarthlyBranch("辰", "Chen", "Dragon", Element.EARTH, Polarity.YANG, 4,
                  ("Wu", "Yi", "Gui")),
    EarthlyBranch("巳", "Si", "Snake", Element.FIRE, Polarity.YIN, 5,
                  ("Bing", "Wu", "Geng")),
    EarthlyBranch("午", "Wu", "Horse", Element.FIRE, Polarity.YANG, 6,
                  ("Ding", "Ji")),
    EarthlyBranch("未", "Wei", "Goat", Element.EARTH, Polarity.YIN, 7,
                  ("Ji", "Ding", "Yi")),
    EarthlyBranch("申", "Shen", "Monkey", Element.METAL, Polarity.YANG, 8,
                  ("Geng", "Ren", "Wu")),
    EarthlyBranch("酉", "You", "Rooster", Element.METAL, Polarity.YIN, 9,
                  ("Xin",)),
    EarthlyBranch("戌", "Xu", "Dog", Element.EARTH, Polarity.YANG, 10,
                  ("Wu", "Xin", "Ding")),
    EarthlyBranch("亥", "Hai", "Pig", Element.WATER, Polarity.YIN, 11,
                  ("Ren", "Jia")),
)

# Lookup helpers
STEM_BY_PINYIN = {s.pinyin: s for s in HEAVENLY_STEMS}
STEM_BY_CHINESE = {s.chinese: s for s in HEAVENLY_STEMS}
BRANCH_BY_PINYIN = {b.pinyin: b for b in EARTHLY_BRANCHES}
BRANCH_BY_CHINESE = {b.chinese: b for b in EARTHLY_BRANCHES}


def hidden_stems(branch: EarthlyBranch) -> tuple[HeavenlyStem, ...]:
    """Hidden stems of a branch as stem objects, main qi first."""
    return tuple(STEM_BY_PINYIN[p] for p in branch.hidden_stems)


# ============================================================
# SEXAGENARY CYCLE
# ============================================================

@dataclass(frozen=True)
class StemBranch:
    """One of the 60 stem-branch pairs. Stem and branch share parity."""
    stem: HeavenlyStem
    branch: EarthlyBranch

    def __post_init__(self):
        if self.stem.index % 2 != self.branch.index % 2:
            raise InvalidInput(
                f"{self.stem.pinyin} {self.branch.pinyin} is not a sexagenary pair"
            )

    @classmethod
    def of(cls, stem_index: int, branch_index: int) -> "StemBranch":
        if not (0 <= stem_index < 10 and 0 <= branch_index < 12):
            raise InvalidInput(f"Invalid stem/branch ordinals {stem_index}/{branch_index}")
        return cls(HEAVENLY_STEMS[stem_index], EARTHLY_BRANCHES[branch_index])

    @classmethod
    def from_index(cls, index: int) -> "StemBranch":
        if not 0 <= index < 60:
            raise InvalidInput(f"Sexagenary index must be 0-59, got {index}")
        return cls(HEAVENLY_STEMS[index % 10], EARTHLY_BRANCHES[index % 12])

    @classmethod
    def from_chinese(cls, text: str) -> "StemBranch":
        return cls(STEM_BY_CHINESE[text[0]], BRANCH_BY_CHINESE[text[1]])

    @property
    def index(self) -> int:
        # unique i in 0..59 with i % 10 == stem and i % 12 == branch
        return (6 * self.stem.index - 5 * self.branch.index) % 60

    def step(self, n: int) -> "StemBranch":
        """Move n positions along the cycle (negative = backward)."""
        return StemBranch.from_index((self.index + n) % 60)

    @property
    def chinese(self) -> str:
        return self.stem.chinese + self.branch.chinese

    @property
    def pinyin(self) -> str:
        return f"{self.stem.pinyin} {self.branch.pinyin}"

    def __str__(self):
        return f"{self.stem.pinyin} {self.branch.pinyin} ({self.stem.polarity.value} {self.stem.element.value} {self.branch.animal})"


POSITIONS = ("year", "month", "day", "hour")


@dataclass(frozen=True)
class Pillar:
    stem_branch: StemBranch
    position: str  # "year", "month", "day", "hour"

    def __post_init__(self):
        if self.position not in POSITIONS:
            raise InvalidInput(f"Unknown pillar position {self.position!r}")

    @property
    def stem(self) -> HeavenlyStem:
        return self.stem_branch.stem

    @property
    def branch(self) -> EarthlyBranch:
        return self.stem_branch.branch

    def __str__(self):
        return str(self.stem_branch)

    def to_dict(self):
        return {
            "position": self.position,
            "stem": {
                "chinese": self.stem.chinese,
                "pinyin": self.stem.pinyin,
                "element": self.stem.element.value,
                "polarity": self.stem.polarity.value,
            },
            "branch": {
                "chinese": self.branch.chinese,
                "pinyin": self.branch.pinyin,
                "animal": self.branch.animal,
                "element": self.branch.element.value,
                "polarity": self.branch.polarity.value,
                "hidden_stems": [
                    {
                        "chinese": s.chinese,
                        "pinyin": s.pinyin,
                        "element": s.element.value,
                        "polarity": s.polarity.value,
                    }
                    for s in hidden_stems(self.branch)
                ],
            },
            "chinese": self.stem_branch.chinese,
            "combined": self.stem_branch.pinyin,
            "cycle_index": self.stem_branch.index,
            "description": str(self),
        }


@dataclass(frozen=True)
class BaziChart:
    """Exactly four pillars, ordered year, month, day, hour."""
    pillars: tuple[Pillar, ...]

    def __post_init__(self):
        if tuple(p.position for p in self.pillars) != POSITIONS:
            raise InvalidInput("A chart needs year, month, day and hour pillars in order")

    @classmethod
    def of(cls, year: Pillar, month: Pillar, day: Pillar, hour: Pillar) -> "BaziChart":
        return cls((year, month, day, hour))

    @property
    def year(self) -> Pillar:
        return self.pillars[0]

    @property
    def month(self) -> Pillar:
        return self.pillars[1]

    @property
    def day(self) -> Pillar:
        return self.pillars[2]

    @property
    def hour(self) -> Pillar:
        return self.pillars[3]

    @property
    def day_master(self) -> HeavenlyStem:
        return self.day.stem

    @property
    def chinese(self) -> str:
        return " ".join(p.stem_branch.chinese for p in self.pillars)


# ============================================================
# PILLAR COMPUTATION
# ============================================================

# 1949-10-01 was a Jia Zi day
_DAY_CYCLE_EPOCH = date(1949, 10, 1)


def year_pillar(effective_year: int) -> Pillar:
    """
    Compute the Year Pillar.

    The BaZi year starts at Li Chun (Start of Spring), usually Feb 3-5.
    Callers pass the year already moved back when birth precedes Li Chun.
    """
    # Year 4 CE was Jia Zi, the start of the cycle
    stem_index = (effective_year - 4) % 10
    branch_index = (effective_year - 4) % 12
    return Pillar(StemBranch.of(stem_index, branch_index), "year")


def month_pillar(year_stem_index: int, month_branch_index: int) -> Pillar:
    """
    Compute the Month Pillar using the Five Tigers Escape (Wu Hu Dun) formula.

    The month branch is determined by solar terms.
    The month stem is derived from the year stem.

    Five Tigers Escape rule:
    - Year stem Jia/Ji → month 1 stem starts at Bing
    - Year stem Yi/Geng → month 1 stem starts at Wu
    - Year stem Bing/Xin → month 1 stem starts at Geng
    - Year stem Ding/Ren → month 1 stem starts at Ren
    - Year stem Wu/Gui → month 1 stem starts at Jia

    Args:
        year_stem_index: index of the year's heavenly stem (0-9)
        month_branch_index: index of the month's earthly branch (0-11)
            Note: month 1 (Tiger/Yin) has branch_index 2
    """
    if not (0 <= year_stem_index < 10 and 0 <= month_branch_index < 12):
        raise InvalidInput(f"Invalid month ordinals {year_stem_index}/{month_branch_index}")

    # Tiger-month stem is (2 * year_stem + 2) mod 10: Jia/Ji → Bing, Yi/Geng → Wu, ...
    start_stem = (2 * (year_stem_index % 5) + 2) % 10
    months_from_tiger = (month_branch_index - 2) % 12
    stem_index = (start_stem + months_from_tiger) % 10

    return Pillar(StemBranch.of(stem_index, month_branch_index), "month")


def day_stem_branch(day: date) -> StemBranch:
    """Sexagenary value of a civil day, counted from a known Jia Zi day."""
    return StemBranch.from_index((day.toordinal() - _DAY_CYCLE_EPOCH.toordinal()) % 60)


def day_pillar(day: date) -> Pillar:
    """
    Compute the Day Pillar.

    The 60-day cycle has run unbroken for millennia, so the pillar is the
    day count from any anchor of known value, modulo 60.
    """
    return Pillar(day_stem_branch(day), "day")


def hour_branch_index(hour: int) -> int:
    """
    Map a (solar time) clock hour to its two-hour branch.

    23:00-00:59 = Zi (Rat)      = branch 0
    01:00-02:59 = Chou (Ox)     = branch 1
    03:00-04:59 = Yin (Tiger)   = branch 2
    ...
    21:00-22:59 = Hai (Pig)     = branch 11
    """
    if not 0 <= hour <= 23:
        raise InvalidInput(f"Hour must be 0-23, got {hour}")
    return ((hour + 1) // 2) % 12


def hour_pillar(day_stem_index: int, branch_index: int) -> Pillar:
    """
    Compute the Hour Pillar using Five Rats Escape (Wu Shu Dun) formula.

    IMPORTANT: day_stem_index is the stem of the day the Zi hour opens.
    A 23:xx birth takes the next day's stem even when the Day pillar is
    kept on the current date.

    Args:
        day_stem_index: index of the day's heavenly stem (0-9)
        branch_index: hour branch from hour_branch_index()
    """
    if not (0 <= day_stem_index < 10 and 0 <= branch_index < 12):
        raise InvalidInput(f"Invalid hour ordinals {day_stem_index}/{branch_index}")

    # Jia/Ji day → Jia Zi hour, Yi/Geng → Bing Zi, Bing/Xin → Wu Zi, ...
    start_stem = (2 * (day_stem_index % 5)) % 10
    stem_index = (start_stem + branch_index) % 10

    return Pillar(StemBranch.of(stem_index, branch_index), "hour")


def pillars_for(solar_time: datetime, effective_year: int, month_branch: int,
                split_zi_hour: bool = False) -> BaziChart:
    """
    Assemble the four pillars.

    Args:
        solar_time: local apparent solar time of birth
        effective_year: Gregorian year, minus one before Li Chun
        month_branch: branch index of the month opened by the last Jie
        split_zi_hour: keep 23:00-23:59 on the current day's Day pillar
            (late Zi hour). By default the day already turns at 23:00.
    """
    yp = year_pillar(effective_year)
    mp = month_pillar(yp.stem.index, month_branch)

    zi_day = solar_time.date()
    if solar_time.hour == 23:
        zi_day += timedelta(days=1)

    dp = day_pillar(solar_time.date() if split_zi_hour else zi_day)
    branch = hour_branch_index(solar_time.hour)
    hp = hour_pillar(day_stem_branch(zi_day).stem.index, branch)

    return BaziChart.of(yp, mp, dp, hp)


# ============================================================
# TEN GODS (十神) RELATIONSHIP MAPPING
# ============================================================

# The Ten Gods describe the relationship between any element and the Day Master.
# They are determined by element relationship + polarity match.

TEN_GODS = {
    # (relationship, same_polarity): god_name
    ("same", True): "Companion (比肩 Bi Jian)",
    ("same", False): "Rob Wealth (劫财 Jie Cai)",
    ("produces_me", True): "Indirect Resource (偏印 Pian Yin)",
    ("produces_me", False): "Direct Resource (正印 Zheng Yin)",
    ("i_produce", True): "Eating God (食神 Shi Shen)",
    ("i_produce", False): "Hurting Officer (伤官 Shang Guan)",
    ("i_control", True): "Indirect Wealth (偏财 Pian Cai)",
    ("i_control", False): "Direct Wealth (正财 Zheng Cai)",
    ("controls_me", True): "7 Killings (七杀 Qi Sha)",
    ("controls_me", False): "Direct Officer (正官 Zheng Guan)",
}

SELF = "Self (Day Master)"

# Production cycle: Wood → Fire → Earth → Metal → Water → Wood
PRODUCTION_CYCLE = {
    Element.WOOD: Element.FIRE,
    Element.FIRE: Element.EARTH,
    Element.EARTH: Element.METAL,
    Element.METAL: Element.WATER,
    Element.WATER: Element.WOOD,
}

# Control cycle: Wood → Earth → Water → Fire → Metal → Wood
CONTROL_CYCLE = {
    Element.WOOD: Element.EARTH,
    Element.EARTH: Element.WATER,
    Element.WATER: Element.FIRE,
    Element.FIRE: Element.METAL,
    Element.METAL: Element.WOOD,
}


def element_relationship(day_master_element: Element, other_element: Element) -> str:
    """Determine the elemental relationship from DM's perspective."""
    if day_master_element == other_element:
        return "same"
    elif PRODUCTION_CYCLE[other_element] == day_master_element:
        return "produces_me"
    elif PRODUCTION_CYCLE[day_master_element] == other_element:
        return "i_produce"
    elif CONTROL_CYCLE[day_master_element] == other_element:
        return "i_control"
    else:
        return "controls_me"


def ten_god(day_master: HeavenlyStem, other: HeavenlyStem) -> str:
    """Ten God relationship between the Day Master and another stem."""
    relationship = element_relationship(day_master.element, other.element)
    same_polarity = (day_master.polarity == other.polarity)
    return TEN_GODS[(relationship, same_polarity)]


def map_ten_gods(chart: BaziChart) -> list[dict]:
    """
    Map Ten Gods for all visible stems in the chart.
    Also maps hidden stems within each branch.

    Returns list of dicts with position, stem, ten_god, and hidden_stem_gods.
    """
    day_master = chart.day_master
    results = []
    for pillar in chart.pillars:
        if pillar.position == "day":
            god = SELF
        else:
            god = ten_god(day_master, pillar.stem)

        hidden_gods = []
        for hidden_stem in hidden_stems(pillar.branch):
            hidden_gods.append({
                "stem": hidden_stem.pinyin,
                "chinese": hidden_stem.chinese,
                "element": hidden_stem.element.value,
                "polarity": hidden_stem.polarity.value,
                "ten_god": ten_god(day_master, hidden_stem),
            })

        results.append({
            "position": pillar.position,
            "stem": pillar.stem.pinyin,
            "ten_god": god,
            "branch": pillar.branch.pinyin,
            "branch_animal": pillar.branch.animal,
            "hidden_stem_gods": hidden_gods,
        })

    return results


# ============================================================
# ELEMENT DISTRIBUTION ANALYSIS
# ============================================================

HIDDEN_WEIGHTS = (0.7, 0.5, 0.3)


def element_distribution(chart: BaziChart, include_hidden: bool = True) -> dict:
    """
    Count element presence across all pillars.

    Returns element counts weighted by position:
    - Visible stems: weight 1.0
    - Main qi (hidden stem 1): weight 0.7
    - Middle qi (hidden stem 2): weight 0.5
    - Residual qi (hidden stem 3): weight 0.3

    These weights are approximate and debated among practitioners.
    """
    distribution = {e.value: 0.0 for e in Element}

    for pillar in chart.pillars:
        distribution[pillar.stem.element.value] += 1.0

        if include_hidden:
            for weight, hidden_stem in zip(HIDDEN_WEIGHTS, hidden_stems(pillar.branch)):
                distribution[hidden_stem.element.value] += weight

    return {k: round(v, 2) for k, v in distribution.items()}


# ============================================================
# FORTUNE PERIOD (DA YUN 大运) COMPUTATION
# ============================================================

DAYS_PER_FORTUNE_YEAR = 3.0
DEFAULT_FORTUNE_PERIODS = 10
TROPICAL_YEAR_DAYS = 365.2422


def fortune_direction(year_stem: HeavenlyStem, gender: Gender) -> Direction:
    """
    Direction of count depends on gender + year stem polarity:
    - Yang stem year + Male OR Yin stem year + Female → count FORWARD
    - Yang stem year + Female OR Yin stem year + Male → count BACKWARD
    """
    year_yang = year_stem.polarity is Polarity.YANG
    if year_yang == (gender is Gender.MALE):
        return Direction.FORWARD
    return Direction.BACKWARD


@dataclass(frozen=True)
class FortunePeriod:
    sequence_index: int  # 0 = first Da Yun
    start_age: float  # years, fractional
    pillar: StemBranch
    start_year: int  # Gregorian year the period begins

    @property
    def end_age(self) -> float:
        return self.start_age + 10

    def to_dict(self):
        return {
            "number": self.sequence_index + 1,
            "sequence_index": self.sequence_index,
            "chinese": self.pillar.chinese,
            "stem": self.pillar.stem.pinyin,
            "stem_element": self.pillar.stem.element.value,
            "stem_polarity": self.pillar.stem.polarity.value,
            "branch": self.pillar.branch.pinyin,
            "branch_animal": self.pillar.branch.animal,
            "branch_element": self.pillar.branch.element.value,
            "start_age": round(self.start_age, 2),
            "end_age": round(self.end_age, 2),
            "start_year": self.start_year,
            "description": (
                f"LP{self.sequence_index + 1}: {self.pillar.chinese} {self.pillar.pinyin} "
                f"({self.pillar.branch.animal}) ages {self.start_age:.1f}-{self.end_age:.1f}"
            ),
        }


@dataclass(frozen=True)
class FortuneTimeline:
    direction: Direction
    days_to_jie: float
    start_age: float
    start_date: date
    periods: tuple[FortunePeriod, ...]

    def start_age_breakdown(self) -> tuple[int, int, int]:
        """
        Starting age as (years, months, days).

        3 days of birth offset = 1 year, so 1 day = 4 months and
        1 hour = 5 days (30-day months, 360-day years).
        """
        total_days = round(self.days_to_jie * 120)
        years, rest = divmod(total_days, 360)
        months, days = divmod(rest, 30)
        return years, months, days

    def current(self, age: float) -> Optional[FortunePeriod]:
        for period in self.periods:
            if period.start_age <= age < period.end_age:
                return period
        return None


def fortune_timeline(month: Pillar, direction: Direction, days_to_jie: float,
                     birth_time: datetime,
                     num_periods: int = DEFAULT_FORTUNE_PERIODS) -> FortuneTimeline:
    """
    Compute Fortune Periods (大运 Da Yun).

    Starting age is the distance from birth to the nearest Jie solar term
    in the traversal direction, divided by 3 (3 days ≈ 1 year). It is kept
    fractional; a birth exactly on the Jie starts the first period at 0.0.

    Args:
        month: the natal Month pillar
        direction: FORWARD or BACKWARD from fortune_direction()
        days_to_jie: non-negative day count between birth and that Jie
        birth_time: civil birth time, for the calendar start years
        num_periods: how many decade pillars to emit

    Returns:
        FortuneTimeline with periods stepping the month pillar one
        position per decade
    """
    if days_to_jie < 0:
        raise InvalidInput(f"Day offset to Jie must be non-negative, got {days_to_jie}")
    if num_periods < 1:
        raise InvalidInput(f"Need at least one fortune period, got {num_periods}")

    start_age = days_to_jie / DAYS_PER_FORTUNE_YEAR
    start_date = (birth_time + timedelta(days=start_age * TROPICAL_YEAR_DAYS)).date()

    periods = []
    for i in range(num_periods):
        periods.append(FortunePeriod(
            sequence_index=i,
            start_age=start_age + i * 10,
            pillar=month.stem_branch.step(direction.value * (i + 1)),
            start_year=start_date.year + i * 10,
        ))

    return FortuneTimeline(
        direction=direction,
        days_to_jie=days_to_jie,
        start_age=start_age,
        start_date=start_date,
        periods=tuple(periods),
    )
