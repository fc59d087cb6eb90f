"""
Request boundary for the chart engine.

Turns a decoded JSON body into a chart and a (status, body) pair the HTTP
layer returns as-is:

- 400 {"error": ...}                     missing or mistyped fields
- 422 {"error": ..., "code": ...}        input the calendar rejects
- 200 {"baziResult": text, "chart": payload}
"""

from typing import Any

import structlog
from pydantic import ValidationError

from paipan.chart import compute_bazi_chart
from paipan.errors import BaziError
from paipan.report import format_report, report_payload
from paipan.schemas import BaziRequest

log = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("year", "month", "day", "hour")


def _field_errors(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]


def handle_bazi_request(payload: Any) -> tuple[int, dict]:
    """
    Compute a chart for one request.

    Args:
        payload: decoded JSON body with year, month, day, hour and the
            optional isSolar, isFemale, isLeapMonth, minute, longitude,
            latitude, timezone fields

    Returns:
        (http_status, response_body)
    """
    try:
        request = BaziRequest.model_validate(payload)
    except ValidationError as exc:
        missing = [str(e["loc"][0]) for e in exc.errors() if e["type"] == "missing"]
        if missing:
            message = f"Missing required fields: {', '.join(REQUIRED_FIELDS)}"
        else:
            message = "Invalid request fields"
        log.warning("bazi_request_rejected", missing=missing, errors=exc.error_count())
        return 400, {"error": message, "details": _field_errors(exc)}

    try:
        report = compute_bazi_chart(
            request.civil(),
            request.gender(),
            request.location(),
            timezone=request.timezone,
        )
    except BaziError as exc:
        log.warning("bazi_chart_failed", code=exc.code, reason=str(exc))
        return 422, {"error": str(exc), "code": exc.code}

    text = format_report(report)
    log.info(
        "bazi_chart_computed",
        bazi=report.chart.chinese,
        apparent_time=report.solar_time.apparent_time.isoformat(timespec="minutes"),
        fortune_start_age=round(report.fortune.start_age, 2),
    )
    return 200, {"baziResult": text, "chart": report_payload(report)}
