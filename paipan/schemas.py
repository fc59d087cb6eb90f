# Pydantic schema for the chart request received from the web form.

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from paipan.bazi import Gender
from paipan.chart import (
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    CalendarKind,
    CivilDateTime,
    GeoLocation,
)


class BaziRequest(BaseModel):
    """Birth data as posted by the form.

    Fields:
    - year, month, day, hour: required; range checks happen in the chart
      pipeline so that month 13 is reported as invalid input, not a schema error
    - minute: defaults to 0
    - isSolar: Gregorian (True) or lunar (False) date, default True
    - isFemale: default False
    - isLeapMonth: lunar leap month, default False
    - longitude, latitude: default Shanghai (121.5, 31.2)
    - timezone: IANA zone of the clock time, looked up from the place if omitted
    """

    model_config = ConfigDict(populate_by_name=True)

    year: int
    month: int
    day: int
    hour: int
    minute: int = 0
    is_solar: bool = Field(True, alias="isSolar")
    is_female: bool = Field(False, alias="isFemale")
    is_leap_month: bool = Field(False, alias="isLeapMonth")
    longitude: float = DEFAULT_LONGITUDE
    latitude: float = DEFAULT_LATITUDE
    timezone: Optional[str] = None

    def civil(self) -> CivilDateTime:
        return CivilDateTime(
            year=self.year,
            month=self.month,
            day=self.day,
            hour=self.hour,
            minute=self.minute,
            calendar=CalendarKind.SOLAR if self.is_solar else CalendarKind.LUNAR,
            is_leap_month=self.is_leap_month,
        )

    def gender(self) -> Gender:
        return Gender.FEMALE if self.is_female else Gender.MALE

    def location(self) -> GeoLocation:
        return GeoLocation(longitude=self.longitude, latitude=self.latitude)
