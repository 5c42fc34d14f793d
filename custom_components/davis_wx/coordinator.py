"""Coordinator for Davis Weather Derived.

The _compute() method is broken into focused sub-methods:
  _compute_raw_readings()   Unit conversion of the source sensors
  _compute_derived()        Wind chill, heat index, dew point, THW, ...
  _compute_solar()          Solar position, clear-sky radiation, THSW
  _compute_et()             Hourly and daily reference ET from rolling windows
  _compute_rise_set()       Sun/twilight/moon events, cached per site date
  _compute_moon()           Synodic day and phase name
  _compute_health()         Staleness and data quality
  _compute()                Orchestrator
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
import logging
import math
from typing import Any

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.event import async_track_state_change_event, async_track_time_interval
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator
from homeassistant.util import dt as dt_util

from .algorithms import (
    MOON_ICONS,
    calculate_daily_et,
    dew_point,
    heat_index,
    moon_phase,
    phase_name,
    reference_et,
    standard_pressure_inhg,
    thsw,
    thw,
    wet_bulb_temperature,
    wind_chill,
)
from .const import (
    CONF_DAYLIGHT_SAVING,
    CONF_ELEVATION_FT,
    CONF_LATITUDE,
    CONF_LONGITUDE,
    CONF_SOURCES,
    CONF_STALENESS_S,
    CONF_TZ_OFFSET_H,
    DEFAULT_DAYLIGHT_SAVING,
    DEFAULT_STALENESS_S,
    ET_DAILY_WINDOW_S,
    ET_HOURLY_WINDOW_S,
    KEY_CLEAR_SKY_RAD,
    KEY_DATA_QUALITY,
    KEY_DAYLIGHT_HOURS,
    KEY_DEW_POINT_F,
    KEY_EQUATION_OF_TIME,
    KEY_ET_DAILY_MM,
    KEY_ET_DAILY_SAMPLES,
    KEY_ET_IN,
    KEY_ET_SAMPLES,
    KEY_HEAT_INDEX_F,
    KEY_MOON_DAY,
    KEY_MOON_ICON,
    KEY_MOON_PHASE,
    KEY_MOON_PHASE_NAME,
    KEY_NORM_HUMIDITY,
    KEY_NORM_PRESSURE_INHG,
    KEY_NORM_SOLAR_WM2,
    KEY_NORM_TEMP_F,
    KEY_NORM_WIND_MPH,
    KEY_SENSOR_QUALITY_FLAGS,
    KEY_SOLAR_DECLINATION,
    KEY_SOLAR_ELEVATION,
    KEY_SOLAR_ERROR,
    KEY_SOLAR_HOUR_ANGLE,
    KEY_SOLAR_NOON,
    KEY_SOLAR_RIGHT_ASCENSION,
    KEY_SOLAR_SUNRISE,
    KEY_SOLAR_SUNSET,
    KEY_SOLAR_ZENITH,
    KEY_STALE_SOURCES,
    KEY_THSW_F,
    KEY_THW_F,
    KEY_WET_BULB_F,
    KEY_WIND_CHILL_F,
    REQUIRED_SOURCES,
    RISE_SET_KEYS,
    SRC_HUM,
    SRC_PRESS,
    SRC_SOLAR,
    SRC_TEMP,
    SRC_WIND,
    UPDATE_INTERVAL_S,
    VALID_HUMIDITY_MAX,
    VALID_HUMIDITY_MIN,
    VALID_PRESSURE_MAX_INHG,
    VALID_PRESSURE_MIN_INHG,
    VALID_SOLAR_MAX_WM2,
    VALID_TEMP_MAX_F,
    VALID_TEMP_MIN_F,
    VALID_WIND_MAX_MPH,
)
from .models import RiseSetResult, SiteConfig, SolarPosition, WeatherSample
from .riseset import calculate_rise_set
from .solar import compute_solar_position, fraction_to_time

_LOGGER = logging.getLogger(__name__)

M_TO_FT = 3.28084


# ---------------------------------------------------------------------------
# Runtime state
# ---------------------------------------------------------------------------

@dataclass
class DavisRuntime:
    """Mutable runtime state that persists across compute cycles."""

    # Rise/set events only change with the site date
    rise_set_date: date | None = None
    rise_set: RiseSetResult | None = None
    rise_set_dst: bool | None = None

    # Last solar engine failure, kept for diagnostics
    last_solar_error: str | None = None

    # Accepted samples with solar radiation, as deque[(datetime, WeatherSample)]
    # pruned to the daily ET window. The hourly window is its tail.
    et_history_24h: deque = field(default_factory=deque)

    # True while samples are being rejected; the warning is logged on entry only
    rejecting_samples: bool = False


def standard_offset_hours(tz_name: str | None) -> int:
    """Whole-hour standard-time UTC offset of an IANA zone (daylight saving removed)."""
    tz = dt_util.get_time_zone(tz_name) if tz_name else None
    now = dt_util.now(tz) if tz is not None else dt_util.utcnow()
    offset = now.utcoffset() or timedelta(0)
    dst = now.dst() or timedelta(0)
    return int((offset - dst).total_seconds() // 3600)


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

class DavisWeatherCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Keeps all derived values up to date."""

    def __init__(
        self,
        hass: HomeAssistant,
        entry_data: dict[str, Any],
        entry_options: dict[str, Any] | None = None,
    ):
        self.hass = hass
        self.entry_data = entry_data
        self.entry_options = entry_options or {}
        self.runtime = DavisRuntime()

        self.sources: dict[str, str] = dict(entry_data.get(CONF_SOURCES, {}))

        def _get(key: str, default: Any) -> Any:
            return self.entry_options.get(key, entry_data.get(key, default))

        self.site = SiteConfig(
            latitude=float(_get(CONF_LATITUDE, hass.config.latitude)),
            longitude=float(_get(CONF_LONGITUDE, hass.config.longitude)),
            elevation_ft=float(_get(CONF_ELEVATION_FT, (hass.config.elevation or 0) * M_TO_FT)),
            tz_offset_hours=int(_get(CONF_TZ_OFFSET_H, standard_offset_hours(hass.config.time_zone))),
        )
        self.daylight_saving = str(_get(CONF_DAYLIGHT_SAVING, DEFAULT_DAYLIGHT_SAVING))
        self.staleness_s = int(_get(CONF_STALENESS_S, DEFAULT_STALENESS_S))

        super().__init__(
            hass,
            logger=_LOGGER,
            name="Davis Weather",
            update_interval=timedelta(seconds=UPDATE_INTERVAL_S),
        )
        self._unsubs: list = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_start(self) -> None:
        entity_ids = [eid for eid in self.sources.values() if eid]
        if entity_ids:
            self._unsubs.append(
                async_track_state_change_event(self.hass, entity_ids, self._handle_source_change)
            )
        self._unsubs.append(
            async_track_time_interval(self.hass, self._handle_tick, timedelta(seconds=UPDATE_INTERVAL_S))
        )
        await self.async_refresh()

    async def async_stop(self) -> None:
        for unsub in self._unsubs:
            unsub()
        self._unsubs.clear()

    @callback
    def _handle_source_change(self, event) -> None:
        self.async_set_updated_data(self._compute())

    @callback
    def _handle_tick(self, _now) -> None:
        self.async_set_updated_data(self._compute())

    async def _async_update_data(self) -> dict[str, Any]:
        return self._compute()

    # ------------------------------------------------------------------
    # State readers and unit conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _uom(hass: HomeAssistant, eid: str | None) -> str:
        if not eid:
            return ""
        st = hass.states.get(eid)
        return str(st.attributes.get("unit_of_measurement") or "") if st else ""

    @staticmethod
    def _num(hass: HomeAssistant, eid: str | None) -> float | None:
        if not eid:
            return None
        st = hass.states.get(eid)
        if st is None:
            return None
        try:
            v = float(st.state)
        except (ValueError, TypeError):
            return None
        if math.isnan(v) or math.isinf(v):
            return None
        return v

    @staticmethod
    def _to_fahrenheit(v: float, unit: str) -> float:
        u = unit.lower().replace(" ", "")
        if u in ("c", "°c") or ("c" in u and "°" in u):
            return v * 1.8 + 32.0
        if u in ("k", "kelvin"):
            return (v - 273.15) * 1.8 + 32.0
        return v

    @staticmethod
    def _to_mph(v: float, unit: str) -> float:
        u = unit.lower().replace(" ", "")
        if u in ("km/h", "kmh", "kph"):
            return v / 1.609344
        if u == "m/s":
            return v / 0.44704
        if u in ("kn", "knot", "knots"):
            return v * 1.150779
        return v

    @staticmethod
    def _to_inhg(v: float, unit: str) -> float:
        u = unit.lower().replace(" ", "")
        if u in ("hpa", "mbar", "mb"):
            return v / 33.8638866667
        if u == "kpa":
            return v / 3.38638866667
        if u == "pa":
            return v / 3386.38866667
        if u in ("mmhg", "torr"):
            return v / 25.4
        return v

    # ------------------------------------------------------------------
    # Sensor quality / physics validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_readings(
        temp_f: float | None,
        rh: float | None,
        wind_mph: float | None,
        solar_wm2: float | None,
        pressure_inhg: float | None,
    ) -> list[str]:
        """Return list of quality warning strings for suspect readings."""
        flags: list[str] = []
        if temp_f is not None and not (VALID_TEMP_MIN_F <= temp_f <= VALID_TEMP_MAX_F):
            flags.append(f"temperature {temp_f:.1f}°F outside physical range")
        if rh is not None and not (VALID_HUMIDITY_MIN < rh <= VALID_HUMIDITY_MAX):
            flags.append(f"humidity {rh:.0f}% outside valid range")
        if wind_mph is not None and not (0.0 <= wind_mph <= VALID_WIND_MAX_MPH):
            flags.append(f"wind speed {wind_mph:.1f} mph outside valid range")
        if solar_wm2 is not None and not (0.0 <= solar_wm2 <= VALID_SOLAR_MAX_WM2):
            flags.append(f"solar radiation {solar_wm2:.0f} W/m² outside valid range")
        if pressure_inhg is not None and not (VALID_PRESSURE_MIN_INHG <= pressure_inhg <= VALID_PRESSURE_MAX_INHG):
            flags.append(f"pressure {pressure_inhg:.2f} inHg outside physical range")
        return flags

    # ------------------------------------------------------------------
    # Rolling window helpers (timestamp-based)
    # ------------------------------------------------------------------

    @staticmethod
    def _append_and_prune(history: deque, now: datetime, value: Any, window_s: int) -> None:
        """Append (now,value) and prune entries older than window_s seconds."""
        history.append((now, value))
        cutoff = now - timedelta(seconds=window_s)
        while history and history[0][0] < cutoff:
            history.popleft()

    @staticmethod
    def _rolling_values(history: deque, since: datetime | None = None) -> list:
        return [v for ts, v in history if since is None or ts >= since]

    @staticmethod
    def _mean(values: list[float]) -> float | None:
        return sum(values) / len(values) if values else None

    # ------------------------------------------------------------------
    # Sub-methods
    # ------------------------------------------------------------------

    def _compute_raw_readings(self, data: dict) -> WeatherSample | None:
        """Read and unit-convert the source sensors.

        Returns None when a required reading is missing or outside the
        calculators' domain; the reasons are left in the quality flags.
        """
        hass = self.hass

        def num(key: str) -> float | None:
            return self._num(hass, self.sources.get(key))

        def uom(key: str) -> str:
            return self._uom(hass, self.sources.get(key))

        t_raw = num(SRC_TEMP)
        temp_f = self._to_fahrenheit(t_raw, uom(SRC_TEMP)) if t_raw is not None else None
        rh = num(SRC_HUM)
        w_raw = num(SRC_WIND)
        wind_mph = self._to_mph(w_raw, uom(SRC_WIND)) if w_raw is not None else None
        solar_wm2 = num(SRC_SOLAR)
        p_raw = num(SRC_PRESS)
        pressure_inhg = self._to_inhg(p_raw, uom(SRC_PRESS)) if p_raw is not None else None

        for key, value in (
            (KEY_NORM_TEMP_F, temp_f),
            (KEY_NORM_HUMIDITY, rh),
            (KEY_NORM_WIND_MPH, wind_mph),
            (KEY_NORM_SOLAR_WM2, solar_wm2),
            (KEY_NORM_PRESSURE_INHG, pressure_inhg),
        ):
            if value is not None:
                data[key] = round(value, 2)

        flags = self._validate_readings(temp_f, rh, wind_mph, solar_wm2, pressure_inhg)
        data[KEY_SENSOR_QUALITY_FLAGS] = flags
        rt = self.runtime
        if flags:
            if rt.rejecting_samples:
                _LOGGER.debug("Rejected weather sample: %s", "; ".join(flags))
            else:
                _LOGGER.warning("Rejecting weather samples: %s", "; ".join(flags))
            rt.rejecting_samples = True
            return None
        if rt.rejecting_samples:
            _LOGGER.info("Weather samples back within valid ranges")
            rt.rejecting_samples = False
        if temp_f is None or rh is None or wind_mph is None:
            return None

        return WeatherSample(
            temperature_f=temp_f,
            humidity_pct=rh,
            wind_speed_mph=wind_mph,
            solar_rad_wm2=solar_wm2,
            pressure_inhg=pressure_inhg,
        )

    @staticmethod
    def _compute_derived(data: dict, sample: WeatherSample) -> None:
        """Indices that need only temperature, humidity and wind."""
        t = sample.temperature_f
        rh = sample.humidity_pct
        v = sample.wind_speed_mph
        data[KEY_WIND_CHILL_F] = round(wind_chill(t, v), 1)
        data[KEY_HEAT_INDEX_F] = round(heat_index(t, rh), 1)
        data[KEY_DEW_POINT_F] = round(dew_point(t, rh), 1)
        data[KEY_WET_BULB_F] = round(wet_bulb_temperature(t, rh), 1)
        data[KEY_THW_F] = round(thw(t, v, rh), 1)

    def _compute_solar(self, data: dict, now: datetime, sample: WeatherSample | None) -> SolarPosition | None:
        """Solar position plus the indices that need it (THSW, ET)."""
        result = compute_solar_position(now, self.site)
        if not result.ok or result.position is None:
            self.runtime.last_solar_error = result.error
            data[KEY_SOLAR_ERROR] = result.error
            return None

        pos = result.position
        data[KEY_SOLAR_ELEVATION] = round(pos.solar_elevation_deg, 2)
        data[KEY_SOLAR_ZENITH] = round(pos.solar_zenith_deg, 2)
        data[KEY_SOLAR_DECLINATION] = round(pos.declination_deg, 3)
        data[KEY_SOLAR_RIGHT_ASCENSION] = round(pos.right_ascension_hr, 4)
        data[KEY_SOLAR_HOUR_ANGLE] = round(pos.hour_angle_deg, 2)
        data[KEY_CLEAR_SKY_RAD] = round(pos.clear_sky_rad_wm2, 1)
        data[KEY_EQUATION_OF_TIME] = round(pos.equation_of_time_min, 2)
        data[KEY_SOLAR_NOON] = fraction_to_time(pos.solar_noon_fraction).isoformat()
        # None during polar day/night
        for key, fraction in ((KEY_SOLAR_SUNRISE, pos.sunrise_fraction), (KEY_SOLAR_SUNSET, pos.sunset_fraction)):
            data[key] = fraction_to_time(fraction).isoformat() if fraction is not None else None

        if sample is None or sample.solar_rad_wm2 is None:
            return pos

        t = sample.temperature_f
        rh = sample.humidity_pct
        v = sample.wind_speed_mph
        rs = sample.solar_rad_wm2
        data[KEY_THSW_F] = round(thsw(t, v, rh, rs, pos, self.site), 1)

        self._compute_et(data, now, sample, pos)
        return pos

    def _compute_et(self, data: dict, now: datetime, sample: WeatherSample, pos: SolarPosition) -> None:
        """Reference ET from rolling windows of accepted samples.

        Hourly ET (in/h) uses the means of the last hour. Daily ET (mm/day)
        uses the temperature and humidity extremes and the mean wind and
        solar radiation of the last 24 hours. Both are sample-weighted.
        """
        rt = self.runtime
        self._append_and_prune(rt.et_history_24h, now, sample, ET_DAILY_WINDOW_S)

        hour = self._rolling_values(rt.et_history_24h, now - timedelta(seconds=ET_HOURLY_WINDOW_S))
        pressure = self._mean([s.pressure_inhg for s in hour if s.pressure_inhg is not None])
        if pressure is None:
            pressure = standard_pressure_inhg(self.site.elevation_ft)
        et_hour = reference_et(
            self._mean([s.temperature_f for s in hour]),
            self._mean([s.wind_speed_mph for s in hour]),
            self._mean([s.solar_rad_wm2 for s in hour]),
            self._mean([s.humidity_pct for s in hour]),
            pressure,
            pos,
        )
        data[KEY_ET_IN] = round(et_hour, 4)
        data[KEY_ET_SAMPLES] = len(hour)

        day = self._rolling_values(rt.et_history_24h)
        temps = [s.temperature_f for s in day]
        hums = [s.humidity_pct for s in day]
        et_day = calculate_daily_et(
            min(temps),
            max(temps),
            self._mean([s.wind_speed_mph for s in day]),
            self._mean([s.solar_rad_wm2 for s in day]),
            min(hums),
            max(hums),
            self.site.elevation_ft,
            self.site.latitude,
            self._site_now(now).timetuple().tm_yday,
        )
        data[KEY_ET_DAILY_MM] = round(et_day, 2)
        data[KEY_ET_DAILY_SAMPLES] = len(day)

    def _in_daylight_saving(self, now_utc: datetime) -> bool:
        if self.daylight_saving == "on":
            return True
        if self.daylight_saving == "off":
            return False
        return bool(dt_util.as_local(now_utc).dst())

    def _site_now(self, now_utc: datetime, dst: bool = False) -> datetime:
        """now_utc on the site's clock (configured UTC offset, plus one hour in summer time)."""
        offset = self.site.tz_offset_hours + (1 if dst else 0)
        return now_utc.astimezone(timezone(timedelta(hours=offset)))

    def _compute_rise_set(self, data: dict, now_utc: datetime) -> None:
        """Rise/set/twilight events, recomputed only when the site date changes."""
        rt = self.runtime
        dst = self._in_daylight_saving(now_utc)
        today = self._site_now(now_utc, dst).date()
        if rt.rise_set is None or rt.rise_set_date != today or rt.rise_set_dst != dst:
            rt.rise_set = calculate_rise_set(today.year, today.month, today.day, self.site, dst)
            rt.rise_set_date = today
            rt.rise_set_dst = dst
            _LOGGER.debug("Recomputed rise/set events for %s (dst=%s)", today, dst)

        for key, field_name in RISE_SET_KEYS.items():
            event = getattr(rt.rise_set, field_name)
            data[key] = event
        daylight = rt.rise_set.daylight_hours
        data[KEY_DAYLIGHT_HOURS] = round(daylight, 2) if daylight is not None else None

    @staticmethod
    def _compute_moon(data: dict, now_utc: datetime) -> None:
        day = moon_phase(now_utc)
        name = phase_name(day)
        data[KEY_MOON_DAY] = day
        data[KEY_MOON_PHASE_NAME] = name.value if name else None
        data[KEY_MOON_PHASE] = name.key if name else None
        data[KEY_MOON_ICON] = MOON_ICONS.get(name, "mdi:moon-waning-crescent") if name else None

    def _compute_health(self, data: dict, now: datetime, missing: list, missing_entities: list) -> None:
        """Staleness and data quality.

        A required source whose entity exists but has no numeric state
        (unavailable, unknown, ...) is reported by name.
        """
        unavailable = [
            k for k in REQUIRED_SOURCES
            if self.sources.get(k)
            and self.hass.states.get(self.sources[k]) is not None
            and self._num(self.hass, self.sources[k]) is None
        ]
        stale = []
        for k, eid in self.sources.items():
            if not eid:
                continue
            st = self.hass.states.get(eid)
            if st is None:
                continue
            if (now - st.last_updated).total_seconds() > self.staleness_s:
                stale.append(k)
        data[KEY_STALE_SOURCES] = stale

        if missing or missing_entities:
            dq = "ERROR: Weather station not configured (missing sources)"
        elif unavailable:
            dq = f"WARN: Source unavailable ({', '.join(unavailable)})"
        elif data.get(KEY_SENSOR_QUALITY_FLAGS):
            dq = "WARN: Sample rejected (" + "; ".join(data[KEY_SENSOR_QUALITY_FLAGS]) + ")"
        elif stale:
            dq = f"WARN: Stale data from {', '.join(stale)}"
        else:
            dq = "OK"
        data[KEY_DATA_QUALITY] = dq

    # ------------------------------------------------------------------
    # Main orchestrator
    # ------------------------------------------------------------------

    def _compute(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        now = dt_util.utcnow()

        missing = [k for k in REQUIRED_SOURCES if not self.sources.get(k)]
        missing_entities = [
            k for k in REQUIRED_SOURCES
            if self.sources.get(k) and self.hass.states.get(self.sources[k]) is None
        ]

        # 1. Raw readings
        sample = self._compute_raw_readings(data)

        # 2. Indices from temperature, humidity, wind
        if sample is not None:
            self._compute_derived(data, sample)

        # 3. Solar position, THSW, hourly and daily ET
        self._compute_solar(data, now, sample)

        # 4. Rise/set events
        self._compute_rise_set(data, now)

        # 5. Moon
        self._compute_moon(data, now)

        # 6. Health
        self._compute_health(data, now, missing, missing_entities)

        return data
