# ABOUTME: Pydantic BaseModels for the Weather.com composite feed and the files this logger writes.
# ABOUTME: Feed models are all-optional; written records always carry every key, null when absent.

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Location(BaseModel):
    """Location block of the v3-location-point sub-feed."""

    city: str | None = None
    displayContext: str | None = None
    ianaTimeZone: str | None = None
    pwsId: str | None = None
    countryCode: str | None = None


class LocationPoint(BaseModel):
    """The v3-location-point sub-feed."""

    location: Location | None = None


class ObservationsCurrent(BaseModel):
    """The v3-wx-observations-current sub-feed, in metric units."""

    temperature: float | None = None
    validTimeUtc: int | None = None
    validTimeLocal: str | None = None
    temperatureMax24Hour: float | None = None
    temperatureMin24Hour: float | None = None
    relativeHumidity: float | None = None
    windSpeed: float | None = None
    windDirectionCardinal: str | None = None
    pressureMeanSeaLevel: float | None = None
    wxPhraseLong: str | None = None


class CompositeEntry(BaseModel):
    """One geocode's bundle of sub-feeds from the aggcommon endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    location_point: LocationPoint | None = Field(default=None, alias="v3-location-point")
    observation: ObservationsCurrent | None = Field(default=None, alias="v3-wx-observations-current")

    @property
    def location(self) -> Location | None:
        if self.location_point is None:
            return None
        return self.location_point.location


class NormalizedSample(BaseModel):
    """One line of the per-day JSONL log."""

    ts_utc: str
    id: str
    city: str | None = None
    displayContext: str | None = None
    ianaTimeZone: str | None = None
    pwsId: str | None = None
    validTimeUtc: int | None = None
    validTimeLocal: str | None = None
    temperatureC: float | None = None
    temperatureMax24Hour: float | None = None
    temperatureMin24Hour: float | None = None
    relativeHumidity: float | None = None
    windSpeed: float | None = None
    windDirectionCardinal: str | None = None
    pressureMeanSeaLevel: float | None = None
    wxPhraseLong: str | None = None


class DailyAggregate(BaseModel):
    """Running summary for one local calendar day."""

    date_local: str
    timezone: str
    samples: int = 0
    high_temperatureC: float | None = None
    high_at_validTimeLocal: str | None = None
    last_seen_temperatureC: float | None = None
    last_seen_validTimeLocal: str | None = None

    @field_validator("high_temperatureC", "last_seen_temperatureC", mode="before")
    @classmethod
    def _non_numeric_to_none(cls, value):
        """A hand-edited or foreign file may hold non-numeric temperatures; treat them as unset."""
        if isinstance(value, bool) or not isinstance(value, int | float):
            return None
        return value


class AggregateLoad(BaseModel):
    """Outcome of reading a daily aggregate file.

    ``absent`` and ``corrupt`` both carry a fresh zero-valued aggregate, so callers
    that only want the data can ignore the status.
    """

    status: Literal["loaded", "absent", "corrupt"]
    aggregate: DailyAggregate
