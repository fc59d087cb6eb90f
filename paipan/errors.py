"""
Error taxonomy for chart computation.

Every failure the engine reports is a deterministic input problem, so all
three are ValueError subclasses and carry a stable `code` the request
boundary can hand back to callers.
"""


class BaziError(ValueError):
    """Base class for all chart computation failures."""

    code = "bazi_error"


class InvalidInput(BaziError):
    """A field is out of its structural range (month 13, hour 24, ...)."""

    code = "invalid_input"


class InvalidCalendarDate(BaziError):
    """A well-formed date that does not exist (lunar day 30 in a 29-day month,
    a leap month the year does not have, February 30)."""

    code = "invalid_calendar_date"


class DateOutOfRange(BaziError):
    """The year lies outside the span the calendar tables support."""

    code = "date_out_of_range"
