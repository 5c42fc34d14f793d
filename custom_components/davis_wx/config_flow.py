"""Config flow for Davis Weather Derived.

Setup wizard walks the user through:
  Step 1 (user)     – Station name & entity prefix
  Step 2 (sources)  – Map temperature, humidity, wind speed (required)
                      and solar radiation, pressure (optional)
  Step 3 (site)     – Latitude, longitude, elevation, standard time offset

The Options flow (Configure button) edits the site and staleness settings.
"""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import HomeAssistant
from homeassistant.helpers import selector

from .const import (
    CONF_DAYLIGHT_SAVING,
    CONF_ELEVATION_FT,
    CONF_LATITUDE,
    CONF_LONGITUDE,
    CONF_NAME,
    CONF_PREFIX,
    CONF_SOURCES,
    CONF_STALENESS_S,
    CONF_TZ_OFFSET_H,
    CONFIG_VERSION,
    DAYLIGHT_SAVING_MODES,
    DEFAULT_DAYLIGHT_SAVING,
    DEFAULT_NAME,
    DEFAULT_PREFIX,
    DEFAULT_STALENESS_S,
    DOMAIN,
    OPTIONAL_SOURCES,
    REQUIRED_SOURCES,
    SRC_HUM,
    SRC_PRESS,
    SRC_SOLAR,
    SRC_TEMP,
    SRC_WIND,
    VALID_ELEVATION_MAX_FT,
    VALID_ELEVATION_MIN_FT,
    VALID_LATITUDE_MAX,
    VALID_LATITUDE_MIN,
    VALID_LONGITUDE_MAX,
    VALID_LONGITUDE_MIN,
    VALID_TZ_OFFSET_MAX_H,
    VALID_TZ_OFFSET_MIN_H,
)
from .coordinator import M_TO_FT, standard_offset_hours

_LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------


def _sanitize_prefix(prefix: str) -> str:
    p = (prefix or "").strip().lower()
    p = "".join(ch if (ch.isalnum() or ch == "_") else "_" for ch in p)
    p = p.strip("_")
    return p or DEFAULT_PREFIX


def _guess_defaults(hass: HomeAssistant) -> dict[str, str]:
    """Best-effort auto-detection of sensor entity IDs by name pattern."""
    guess: dict[str, str] = {}
    candidates = [s.entity_id for s in hass.states.async_all()]

    def pick(subs: list[str]) -> str | None:
        for sub in subs:
            for eid in candidates:
                if eid.endswith(sub):
                    return eid
        for sub in subs:
            for eid in candidates:
                if sub in eid:
                    return eid
        return None

    mapping = {
        SRC_TEMP: ["outside_temperature", "outdoor_temperature", "temperature"],
        SRC_HUM: ["outside_humidity", "outdoor_humidity", "humidity"],
        SRC_WIND: ["wind_speed", "windspeed"],
        SRC_SOLAR: ["solar_radiation", "solar_rad", "irradiance"],
        SRC_PRESS: ["barometer", "pressure"],
    }

    for k, subs in mapping.items():
        eid = pick(subs)
        if eid:
            guess[k] = eid
    return guess


def _site_defaults(hass: HomeAssistant) -> dict[str, Any]:
    """Site defaults from the Home Assistant core configuration."""
    try:
        elevation_ft = round(float(hass.config.elevation) * M_TO_FT)
    except (TypeError, ValueError):
        elevation_ft = 0
    tz_offset = standard_offset_hours(hass.config.time_zone)
    _LOGGER.debug("Site defaults from HA config: elevation %s ft, UTC%+d", elevation_ft, tz_offset)
    return {
        CONF_LATITUDE: float(hass.config.latitude or 0.0),
        CONF_LONGITUDE: float(hass.config.longitude or 0.0),
        CONF_ELEVATION_FT: elevation_ft,
        CONF_TZ_OFFSET_H: tz_offset,
    }


def _validate_site(user_input: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    checks = (
        (CONF_LATITUDE, VALID_LATITUDE_MIN, VALID_LATITUDE_MAX, "latitude_out_of_range"),
        (CONF_LONGITUDE, VALID_LONGITUDE_MIN, VALID_LONGITUDE_MAX, "longitude_out_of_range"),
        (CONF_ELEVATION_FT, VALID_ELEVATION_MIN_FT, VALID_ELEVATION_MAX_FT, "elevation_out_of_range"),
        (CONF_TZ_OFFSET_H, VALID_TZ_OFFSET_MIN_H, VALID_TZ_OFFSET_MAX_H, "tz_offset_out_of_range"),
    )
    for key, lo, hi, err in checks:
        if key not in user_input:
            continue
        try:
            value = float(user_input[key])
        except (TypeError, ValueError):
            errors[key] = err
            continue
        if not (lo <= value <= hi):
            errors[key] = err
    return errors


def _site_schema(defaults: dict[str, Any]) -> dict:
    def number(lo: float, hi: float, step: float, unit: str | None = None) -> selector.NumberSelector:
        return selector.NumberSelector(
            selector.NumberSelectorConfig(min=lo, max=hi, step=step, mode="box", unit_of_measurement=unit)
        )

    return {
        vol.Required(CONF_LATITUDE, default=defaults[CONF_LATITUDE]): number(
            VALID_LATITUDE_MIN, VALID_LATITUDE_MAX, 0.0001, "°"
        ),
        vol.Required(CONF_LONGITUDE, default=defaults[CONF_LONGITUDE]): number(
            VALID_LONGITUDE_MIN, VALID_LONGITUDE_MAX, 0.0001, "°"
        ),
        vol.Required(CONF_ELEVATION_FT, default=defaults[CONF_ELEVATION_FT]): number(
            VALID_ELEVATION_MIN_FT, VALID_ELEVATION_MAX_FT, 1, "ft"
        ),
        vol.Required(CONF_TZ_OFFSET_H, default=defaults[CONF_TZ_OFFSET_H]): number(
            VALID_TZ_OFFSET_MIN_H, VALID_TZ_OFFSET_MAX_H, 1, "h"
        ),
        vol.Required(CONF_DAYLIGHT_SAVING, default=defaults.get(CONF_DAYLIGHT_SAVING, DEFAULT_DAYLIGHT_SAVING)): (
            selector.SelectSelector(
                selector.SelectSelectorConfig(
                    options=DAYLIGHT_SAVING_MODES,
                    mode="list",
                    translation_key="daylight_saving",
                )
            )
        ),
    }


def _normalize_site(user_input: dict[str, Any]) -> dict[str, Any]:
    out = dict(user_input)
    for key in (CONF_LATITUDE, CONF_LONGITUDE, CONF_ELEVATION_FT):
        if key in out:
            out[key] = float(out[key])
    if CONF_TZ_OFFSET_H in out:
        out[CONF_TZ_OFFSET_H] = int(out[CONF_TZ_OFFSET_H])
    return out


# ---------------------------------------------------------------------------


class DavisWeatherConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = CONFIG_VERSION

    @staticmethod
    def async_get_options_flow(config_entry: config_entries.ConfigEntry):
        return DavisWeatherOptionsFlowHandler()

    def __init__(self):
        self._data: dict[str, Any] = {}

    def _validate_numeric_sensor(self, eid: str) -> bool:
        st = self.hass.states.get(eid)
        if st is None or st.state in ("unknown", "unavailable"):
            return False
        try:
            float(st.state)
            return True
        except (ValueError, TypeError):
            return False

    # ------------------------------------------------------------------
    # Step 1: Name & prefix
    # ------------------------------------------------------------------
    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        if user_input is not None:
            self._data[CONF_NAME] = str(user_input.get(CONF_NAME) or DEFAULT_NAME)
            self._data[CONF_PREFIX] = _sanitize_prefix(str(user_input.get(CONF_PREFIX) or DEFAULT_PREFIX))
            return await self.async_step_sources()

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_NAME, default=DEFAULT_NAME): str,
                    vol.Required(CONF_PREFIX, default=DEFAULT_PREFIX): str,
                }
            ),
        )

    # ------------------------------------------------------------------
    # Step 2: Sensor mapping
    # ------------------------------------------------------------------
    async def async_step_sources(self, user_input: dict[str, Any] | None = None):
        defaults = _guess_defaults(self.hass)
        errors: dict[str, str] = {}

        if user_input is not None:
            sources: dict[str, str] = {}
            for k in REQUIRED_SOURCES + OPTIONAL_SOURCES:
                eid = user_input.get(k)
                if not eid:
                    if k in REQUIRED_SOURCES:
                        errors[k] = "required"
                    continue
                if self.hass.states.get(eid) is None:
                    errors[k] = "entity_not_found"
                elif not self._validate_numeric_sensor(eid):
                    errors[k] = "not_numeric"
                else:
                    sources[k] = eid
            if not errors:
                self._data[CONF_SOURCES] = sources
                return await self.async_step_site()

        fields = {
            vol.Required(k, default=defaults.get(k)): selector.EntitySelector(
                selector.EntitySelectorConfig(domain="sensor")
            )
            for k in REQUIRED_SOURCES
        }
        for k in OPTIONAL_SOURCES:
            key = vol.Optional(k, default=defaults[k]) if k in defaults else vol.Optional(k)
            fields[key] = selector.EntitySelector(selector.EntitySelectorConfig(domain="sensor"))
        return self.async_show_form(step_id="sources", data_schema=vol.Schema(fields), errors=errors)

    # ------------------------------------------------------------------
    # Step 3: Site
    # ------------------------------------------------------------------
    async def async_step_site(self, user_input: dict[str, Any] | None = None):
        errors: dict[str, str] = {}
        defaults = _site_defaults(self.hass)

        if user_input is not None:
            errors = _validate_site(user_input)
            if not errors:
                self._data.update(_normalize_site(user_input))
                await self.async_set_unique_id(
                    f"{self._data[CONF_SOURCES].get(SRC_TEMP)}_{self._data[CONF_PREFIX]}"
                )
                self._abort_if_unique_id_configured()
                _LOGGER.info("Creating Davis Weather entry '%s'", self._data[CONF_NAME])
                return self.async_create_entry(title=self._data[CONF_NAME], data=self._data)
            defaults.update(user_input)

        return self.async_show_form(step_id="site", data_schema=vol.Schema(_site_schema(defaults)), errors=errors)


class DavisWeatherOptionsFlowHandler(config_entries.OptionsFlow):
    """Options flow handler. self.config_entry is provided by parent class."""

    def _get(self, key: str, default: Any) -> Any:
        return self.config_entry.options.get(key, self.config_entry.data.get(key, default))

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        errors: dict[str, str] = {}
        if user_input is not None:
            errors = _validate_site(user_input)
            if not errors:
                out = _normalize_site(user_input)
                if CONF_PREFIX in out:
                    out[CONF_PREFIX] = _sanitize_prefix(str(out[CONF_PREFIX]))
                out[CONF_STALENESS_S] = int(out.get(CONF_STALENESS_S, DEFAULT_STALENESS_S))
                return self.async_create_entry(title="", data=out)

        return self.async_show_form(step_id="init", data_schema=self._build_options_schema(), errors=errors)

    def _build_options_schema(self) -> vol.Schema:
        g = self._get
        fallback = _site_defaults(self.hass)
        current = {
            key: g(key, fallback[key])
            for key in (CONF_LATITUDE, CONF_LONGITUDE, CONF_ELEVATION_FT, CONF_TZ_OFFSET_H)
        }
        current[CONF_DAYLIGHT_SAVING] = g(CONF_DAYLIGHT_SAVING, DEFAULT_DAYLIGHT_SAVING)

        fields = {vol.Optional(CONF_PREFIX, default=g(CONF_PREFIX, DEFAULT_PREFIX)): str}
        fields.update(_site_schema(current))
        fields[vol.Optional(CONF_STALENESS_S, default=g(CONF_STALENESS_S, DEFAULT_STALENESS_S))] = (
            selector.NumberSelector(
                selector.NumberSelectorConfig(min=60, max=86400, step=60, mode="box", unit_of_measurement="s")
            )
        )
        return vol.Schema(fields)
