"""
Report formatting for a computed chart.

Produces the payload handed to the chat/LLM interpretation layer, either
as a keyed JSON-serialisable dict or as the text block inserted verbatim
into its system prompt. Nothing is computed here.
"""

from paipan.chart import BaziReport, CalendarKind

POSITION_LABELS = {
    "year": "Year  年柱",
    "month": "Month 月柱",
    "day": "Day   日柱",
    "hour": "Hour  时柱",
}


def _minutes(value: float) -> str:
    return f"{value:+.1f} min"


def _offset(hours: float) -> str:
    sign = "+" if hours >= 0 else "-"
    hours = abs(hours)
    whole = int(hours)
    minutes = round((hours - whole) * 60)
    return f"UTC{sign}{whole}" + (f":{minutes:02d}" if minutes else "")


def report_payload(report: BaziReport) -> dict:
    """Keyed chart payload, safe for json.dumps."""
    civil = report.civil
    st = report.solar_time
    fortune = report.fortune
    years, months, days = fortune.start_age_breakdown()

    return {
        "birth": {
            "input_calendar": civil.calendar.value,
            "input": {
                "year": civil.year,
                "month": civil.month,
                "day": civil.day,
                "hour": civil.hour,
                "minute": civil.minute,
                "is_leap_month": civil.is_leap_month,
            },
            "solar_date": report.solar_date.isoformat(),
            "lunar_date": {
                "year": report.lunar_date.year,
                "month": report.lunar_date.month,
                "day": report.lunar_date.day,
                "is_leap_month": report.lunar_date.is_leap_month,
                "chinese": report.lunar_date.chinese(),
            },
            "gender": report.gender.value,
            "location": {
                "longitude": report.location.longitude,
                "latitude": report.location.latitude,
            },
        },
        "solar_time": {
            "timezone": st.timezone,
            "clock_offset": st.clock_offset,
            "standard_offset": st.standard_offset,
            "dst_detected": st.dst_detected,
            "clock_time": st.clock_time.isoformat(timespec="minutes"),
            "standard_time": st.standard_time.isoformat(timespec="minutes"),
            "apparent_time": st.apparent_time.isoformat(timespec="minutes"),
            "longitude_correction_minutes": round(st.longitude_minutes, 2),
            "equation_of_time_minutes": round(st.equation_of_time_minutes, 2),
            "crosses_midnight": st.crosses_midnight,
            "split_zi_hour": report.split_zi_hour,
        },
        "solar_terms": {
            "previous": {"name": report.terms.previous.name,
                         "chinese": report.terms.previous.chinese,
                         "instant": report.terms.previous.instant.isoformat(timespec="minutes")},
            "next": {"name": report.terms.next.name,
                     "chinese": report.terms.next.chinese,
                     "instant": report.terms.next.instant.isoformat(timespec="minutes")},
            "month_jie": report.month_jie.name,
        },
        "day_master": {
            "stem": report.chart.day_master.pinyin,
            "chinese": report.chart.day_master.chinese,
            "element": report.chart.day_master.element.value,
            "polarity": report.chart.day_master.polarity.value,
            "description": str(report.chart.day_master),
        },
        "pillars": {p.position: p.to_dict() for p in report.chart.pillars},
        "bazi": report.chart.chinese,
        "zodiac_animal": report.zodiac_animal,
        "ten_gods": [
            {**god, "hidden_stem_gods": [dict(h) for h in god["hidden_stem_gods"]]}
            for god in report.ten_gods
        ],
        "element_distribution": dict(report.elements),
        "fortune": {
            "direction": fortune.direction.name.lower(),
            "jie": report.fortune_jie.name,
            "days_to_jie": round(fortune.days_to_jie, 4),
            "start_age": round(fortune.start_age, 4),
            "start_age_breakdown": {"years": years, "months": months, "days": days},
            "start_date": fortune.start_date.isoformat(),
            "periods": [p.to_dict() for p in fortune.periods],
        },
    }


def format_report(report: BaziReport) -> str:
    """
    Text chart for the chat layer's system prompt.

    Example first lines:
        八字 Four Pillars: 甲戌 癸酉 壬子 甲辰
        Gender: male
    """
    civil = report.civil
    st = report.solar_time
    fortune = report.fortune
    chart = report.chart

    if civil.calendar is CalendarKind.LUNAR:
        leap = "闰" if civil.is_leap_month else ""
        given = f"lunar {civil.year}-{leap}{civil.month:02d}-{civil.day:02d}"
    else:
        given = f"solar {civil.year}-{civil.month:02d}-{civil.day:02d}"

    lines = [
        f"八字 Four Pillars: {chart.chinese}",
        f"Gender: {report.gender.value}",
        f"Birth input: {given} {civil.hour:02d}:{civil.minute:02d}",
        f"Gregorian date: {report.solar_date.isoformat()}",
        f"Lunar date 农历: {report.lunar_date.chinese()}",
        f"Location: longitude {report.location.longitude}, latitude {report.location.latitude}",
        f"Clock time: {st.clock_time:%Y-%m-%d %H:%M} {st.timezone} ({_offset(st.clock_offset)})"
        + (" DST removed" if st.dst_detected else ""),
        f"True solar time 真太阳时: {st.apparent_time:%Y-%m-%d %H:%M} "
        f"(longitude {_minutes(st.longitude_minutes)}, "
        f"equation of time {_minutes(st.equation_of_time_minutes)})",
        f"Solar term 节气: after {report.terms.previous}, before {report.terms.next}",
        f"Zodiac animal: {report.zodiac_animal}",
        f"Day Master 日主: {chart.day_master.chinese} {chart.day_master}",
        "",
        "Pillars:",
    ]

    gods = {g["position"]: g for g in report.ten_gods}
    for pillar in chart.pillars:
        hidden = ", ".join(
            f"{h['chinese']} {h['stem']} ({h['ten_god']})"
            for h in gods[pillar.position]["hidden_stem_gods"]
        )
        lines.append(
            f"  {POSITION_LABELS[pillar.position]}: {pillar.stem_branch.chinese} {pillar.stem_branch.pinyin}"
            f" | stem {pillar.stem.polarity.value} {pillar.stem.element.value}"
            f" [{gods[pillar.position]['ten_god']}]"
            f" | branch {pillar.branch.polarity.value} {pillar.branch.element.value} {pillar.branch.animal}"
            f" | hidden: {hidden}"
        )

    lines.append("")
    lines.append("Element distribution 五行: " + ", ".join(
        f"{element} {weight:.1f}" for element, weight in report.elements.items()
    ))

    years, months, days = fortune.start_age_breakdown()
    lines.extend([
        "",
        f"Fortune periods 大运 ({fortune.direction.name.lower()}, "
        f"starts at age {fortune.start_age:.2f} = {years}y {months}m {days}d, "
        f"{fortune.start_date.isoformat()}):",
    ])
    for period in fortune.periods:
        lines.append(
            f"  {period.sequence_index + 1:2d}. {period.pillar.chinese} {period.pillar.pinyin:10s}"
            f" ages {period.start_age:5.1f}-{period.end_age:5.1f}"
            f" from {period.start_year}"
        )

    return "\n".join(lines)
