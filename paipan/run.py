"""
CLI wrapper for compute_bazi_chart().

Usage:
    python3 -m paipan.run --year 1994 --month 9 --day 23 --hour 8 \
        [--minute MM] [--lunar] [--leap-month] [--gender male|female] \
        [--longitude LON] [--latitude LAT] [--timezone ZONE] \
        [--split-zi-hour] [--periods N] [--json]
"""

import argparse
import json

import structlog

from paipan.bazi import DEFAULT_FORTUNE_PERIODS, Gender
from paipan.chart import (
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    CalendarKind,
    CivilDateTime,
    GeoLocation,
    compute_bazi_chart,
)
from paipan.errors import BaziError
from paipan.log import setup_logging
from paipan.report import format_report, report_payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute a Four Pillars (BaZi) chart.")
    parser.add_argument("--year", required=True, type=int)
    parser.add_argument("--month", required=True, type=int)
    parser.add_argument("--day", required=True, type=int)
    parser.add_argument("--hour", required=True, type=int)
    parser.add_argument("--minute", type=int, default=0)
    parser.add_argument("--lunar", action="store_true",
                        help="date is in the Chinese lunar calendar")
    parser.add_argument("--leap-month", dest="leap_month", action="store_true",
                        help="lunar month is the leap (intercalary) month")
    parser.add_argument("--gender", default="male", choices=["male", "female"])
    parser.add_argument("--longitude", type=float, default=DEFAULT_LONGITUDE)
    parser.add_argument("--latitude", type=float, default=DEFAULT_LATITUDE)
    parser.add_argument("--timezone", default=None,
                        help="IANA zone of the clock time (default: from coordinates)")
    parser.add_argument("--split-zi-hour", dest="split_zi_hour", action="store_true",
                        help="keep 23:00-23:59 on the current day's Day pillar")
    parser.add_argument("--periods", type=int, default=DEFAULT_FORTUNE_PERIODS)
    parser.add_argument("--json", action="store_true", help="print the keyed payload")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()
    log = structlog.get_logger(__name__)

    civil = CivilDateTime(
        year=args.year,
        month=args.month,
        day=args.day,
        hour=args.hour,
        minute=args.minute,
        calendar=CalendarKind.LUNAR if args.lunar else CalendarKind.SOLAR,
        is_leap_month=args.leap_month,
    )
    try:
        report = compute_bazi_chart(
            civil,
            Gender(args.gender),
            GeoLocation(longitude=args.longitude, latitude=args.latitude),
            timezone=args.timezone,
            split_zi_hour=args.split_zi_hour,
            num_periods=args.periods,
        )
    except BaziError as exc:
        log.error("bazi_chart_failed", code=exc.code, reason=str(exc))
        parser.exit(2, f"error: {exc}\n")

    if args.json:
        print(json.dumps(report_payload(report), indent=2, ensure_ascii=False))
    else:
        print(format_report(report))


if __name__ == "__main__":
    main()
