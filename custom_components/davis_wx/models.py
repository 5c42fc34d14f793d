"""Value types shared by the calculation engines.

Everything here is immutable. Engines take these as explicit inputs and
hand fresh instances back; nothing is cached between calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class SiteConfig:
    """Station location.

    latitude: degrees, north positive.
    longitude: degrees, east positive (west negative).
    elevation_ft: station elevation in feet.
    tz_offset_hours: standard-time offset from UTC (no daylight saving).
    """

    latitude: float
    longitude: float
    elevation_ft: float = 0.0
    tz_offset_hours: int = 0


@dataclass(frozen=True)
class WeatherSample:
    temperature_f: float
    humidity_pct: float
    wind_speed_mph: float
    solar_rad_wm2: float | None = None
    pressure_inhg: float | None = None


@dataclass(frozen=True)
class SolarPosition:
    declination_deg: float
    right_ascension_hr: float
    equation_of_time_min: float
    hour_angle_deg: float
    solar_zenith_deg: float
    solar_elevation_deg: float
    solar_noon_fraction: float
    sunrise_fraction: float | None
    sunset_fraction: float | None
    clear_sky_rad_wm2: float


@dataclass(frozen=True)
class SolarPositionResult:
    """Outcome of one solar position calculation: a position or an error."""

    position: SolarPosition | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.position is not None and self.error is None


class EventStatus(Enum):
    NORMAL = "normal"
    ALWAYS_UP = "always_up"
    ALWAYS_DOWN = "always_down"
    NO_EVENT = "no_event"


# Report placeholders used by the console's sunrise/sunset tables.
STATUS_DISPLAY = {
    EventStatus.ALWAYS_UP: " ****",
    EventStatus.ALWAYS_DOWN: " ....",
    EventStatus.NO_EVENT: " ----",
}


@dataclass(frozen=True)
class RiseSetEvent:
    """A rise, set or twilight event.

    ``hours`` is a local fractional hour in [0, 24) and is only set when
    ``status`` is NORMAL.
    """

    hours: float | None
    status: EventStatus

    @property
    def display(self) -> str:
        if self.status is EventStatus.NORMAL and self.hours is not None:
            # Imported here: riseset imports this module.
            from .riseset import format_hours

            return format_hours(self.hours)
        return STATUS_DISPLAY[self.status]


@dataclass(frozen=True)
class RiseSetResult:
    sunrise: RiseSetEvent
    sunset: RiseSetEvent
    civil_dawn: RiseSetEvent
    civil_dusk: RiseSetEvent
    nautical_dawn: RiseSetEvent
    nautical_dusk: RiseSetEvent
    astro_dawn: RiseSetEvent
    astro_dusk: RiseSetEvent
    moonrise: RiseSetEvent
    moonset: RiseSetEvent

    @property
    def daylight_hours(self) -> float | None:
        """Hours between sunrise and sunset; 24/0 for polar day/night.

        A sunset after local midnight (clock hour below sunrise) wraps
        around the day.
        """
        if self.sunrise.status is EventStatus.ALWAYS_UP:
            return 24.0
        if self.sunrise.status is EventStatus.ALWAYS_DOWN:
            return 0.0
        if self.sunrise.hours is None or self.sunset.hours is None:
            return None
        return (self.sunset.hours - self.sunrise.hours) % 24.0


class MoonPhaseName(Enum):
    NEW_MOON = "New Moon"
    WAXING_CRESCENT = "Waxing Crescent"
    FIRST_QUARTER = "First Quarter"
    WAXING_GIBBOUS = "Waxing Gibbous"
    FULL_MOON = "Full Moon"
    WANING_GIBBOUS = "Waning Gibbous"
    LAST_QUARTER = "Last Quarter"
    WANING_CRESCENT = "Waning Crescent"

    @property
    def key(self) -> str:
        return self.name.lower()
