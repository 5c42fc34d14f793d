"""Sensors for Davis Weather Derived."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity, SensorStateClass
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import DEGREE, UnitOfIrradiance, UnitOfTemperature, UnitOfTime, UnitOfVolumetricFlux
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import EntityCategory
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import (
    CONF_PREFIX,
    DEFAULT_PREFIX,
    DOMAIN,
    KEY_ASTRO_DAWN,
    KEY_ASTRO_DUSK,
    KEY_CIVIL_DAWN,
    KEY_CIVIL_DUSK,
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
    KEY_MOONRISE,
    KEY_MOONSET,
    KEY_NAUTICAL_DAWN,
    KEY_NAUTICAL_DUSK,
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
    KEY_SUNRISE,
    KEY_SUNSET,
    KEY_THSW_F,
    KEY_THW_F,
    KEY_WET_BULB_F,
    KEY_WIND_CHILL_F,
)
from .models import RiseSetEvent


@dataclass(frozen=True, kw_only=True)
class DavisSensorDescription:
    """Describes Davis Weather sensor entities."""

    key: str
    device_class: SensorDeviceClass | None = None
    entity_category: EntityCategory | None = None
    entity_registry_enabled_default: bool = True
    icon: str | None = None
    name: str | None = None
    native_unit: str | None = None
    state_class: SensorStateClass | None = None
    value_fn: Callable[[dict[str, Any]], Any] | None = None
    attrs_fn: Callable[[dict[str, Any]], dict[str, Any]] | None = None


def _event_value(key: str) -> Callable[[dict[str, Any]], Any]:
    def _value(d: dict[str, Any]) -> str | None:
        event: RiseSetEvent | None = d.get(key)
        return event.display.strip() if event is not None else None

    return _value


def _event_attrs(key: str) -> Callable[[dict[str, Any]], dict[str, Any]]:
    def _attrs(d: dict[str, Any]) -> dict[str, Any]:
        event: RiseSetEvent | None = d.get(key)
        if event is None:
            return {}
        return {
            "status": event.status.value,
            "hours": round(event.hours, 4) if event.hours is not None else None,
        }

    return _attrs


def _temperature(key: str, name: str, icon: str) -> DavisSensorDescription:
    return DavisSensorDescription(
        key=key,
        name=name,
        icon=icon,
        device_class=SensorDeviceClass.TEMPERATURE,
        native_unit=UnitOfTemperature.FAHRENHEIT,
        state_class=SensorStateClass.MEASUREMENT,
    )


def _rise_set(key: str, name: str, icon: str) -> DavisSensorDescription:
    return DavisSensorDescription(
        key=key,
        name=name,
        icon=icon,
        value_fn=_event_value(key),
        attrs_fn=_event_attrs(key),
    )


SENSORS: list[DavisSensorDescription] = [
    # =========================================================================
    # DERIVED INDICES
    # =========================================================================
    _temperature(KEY_WIND_CHILL_F, "Wind Chill", "mdi:snowflake-thermometer"),
    _temperature(KEY_HEAT_INDEX_F, "Heat Index", "mdi:sun-thermometer"),
    _temperature(KEY_DEW_POINT_F, "Dew Point", "mdi:weather-fog"),
    _temperature(KEY_WET_BULB_F, "Wet Bulb", "mdi:water-thermometer"),
    _temperature(KEY_THW_F, "THW Index", "mdi:thermometer-lines"),
    _temperature(KEY_THSW_F, "THSW Index", "mdi:weather-sunny-alert"),
    DavisSensorDescription(
        key=KEY_ET_IN,
        name="Reference ET",
        icon="mdi:water-minus",
        native_unit=UnitOfVolumetricFlux.INCHES_PER_HOUR,
        state_class=SensorStateClass.MEASUREMENT,
        attrs_fn=lambda d: {"samples": d.get(KEY_ET_SAMPLES)},
    ),
    DavisSensorDescription(
        key=KEY_ET_DAILY_MM,
        name="Reference ET (24h)",
        icon="mdi:water-minus-outline",
        native_unit=UnitOfVolumetricFlux.MILLIMETERS_PER_DAY,
        state_class=SensorStateClass.MEASUREMENT,
        attrs_fn=lambda d: {"samples": d.get(KEY_ET_DAILY_SAMPLES)},
    ),
    # =========================================================================
    # SOLAR POSITION
    # =========================================================================
    DavisSensorDescription(
        key=KEY_SOLAR_ELEVATION,
        name="Solar Elevation",
        icon="mdi:weather-sunset-up",
        native_unit=DEGREE,
        state_class=SensorStateClass.MEASUREMENT,
        attrs_fn=lambda d: {
            "declination": d.get(KEY_SOLAR_DECLINATION),
            "right_ascension_h": d.get(KEY_SOLAR_RIGHT_ASCENSION),
            "hour_angle": d.get(KEY_SOLAR_HOUR_ANGLE),
            "solar_noon": d.get(KEY_SOLAR_NOON),
            "sunrise": d.get(KEY_SOLAR_SUNRISE),
            "sunset": d.get(KEY_SOLAR_SUNSET),
            "error": d.get(KEY_SOLAR_ERROR),
        },
    ),
    DavisSensorDescription(
        key=KEY_SOLAR_ZENITH,
        name="Solar Zenith",
        icon="mdi:angle-acute",
        native_unit=DEGREE,
        state_class=SensorStateClass.MEASUREMENT,
    ),
    DavisSensorDescription(
        key=KEY_CLEAR_SKY_RAD,
        name="Clear-Sky Radiation",
        icon="mdi:white-balance-sunny",
        device_class=SensorDeviceClass.IRRADIANCE,
        native_unit=UnitOfIrradiance.WATTS_PER_SQUARE_METER,
        state_class=SensorStateClass.MEASUREMENT,
    ),
    DavisSensorDescription(
        key=KEY_EQUATION_OF_TIME,
        name="Equation of Time",
        icon="mdi:clock-time-twelve-outline",
        native_unit=UnitOfTime.MINUTES,
        state_class=SensorStateClass.MEASUREMENT,
        entity_category=EntityCategory.DIAGNOSTIC,
    ),
    # =========================================================================
    # RISE / SET
    # =========================================================================
    _rise_set(KEY_SUNRISE, "Sunrise", "mdi:weather-sunset-up"),
    _rise_set(KEY_SUNSET, "Sunset", "mdi:weather-sunset-down"),
    _rise_set(KEY_CIVIL_DAWN, "Civil Dawn", "mdi:sun-clock"),
    _rise_set(KEY_CIVIL_DUSK, "Civil Dusk", "mdi:sun-clock-outline"),
    _rise_set(KEY_NAUTICAL_DAWN, "Nautical Dawn", "mdi:sun-clock"),
    _rise_set(KEY_NAUTICAL_DUSK, "Nautical Dusk", "mdi:sun-clock-outline"),
    _rise_set(KEY_ASTRO_DAWN, "Astronomical Dawn", "mdi:sun-clock"),
    _rise_set(KEY_ASTRO_DUSK, "Astronomical Dusk", "mdi:sun-clock-outline"),
    _rise_set(KEY_MOONRISE, "Moonrise", "mdi:weather-night"),
    _rise_set(KEY_MOONSET, "Moonset", "mdi:weather-night"),
    DavisSensorDescription(
        key=KEY_DAYLIGHT_HOURS,
        name="Daylight Hours",
        icon="mdi:white-balance-sunny",
        native_unit=UnitOfTime.HOURS,
        state_class=SensorStateClass.MEASUREMENT,
    ),
    # =========================================================================
    # MOON
    # =========================================================================
    DavisSensorDescription(
        key=KEY_MOON_PHASE,
        name="Moon Phase",
        device_class=SensorDeviceClass.ENUM,
        value_fn=lambda d: d.get(KEY_MOON_PHASE),
        attrs_fn=lambda d: {
            "phase_name": d.get(KEY_MOON_PHASE_NAME),
            "moon_day": d.get(KEY_MOON_DAY),
        },
    ),
    DavisSensorDescription(
        key=KEY_MOON_DAY,
        name="Moon Day",
        icon="mdi:calendar-month",
        state_class=SensorStateClass.MEASUREMENT,
    ),
    # =========================================================================
    # HEALTH
    # =========================================================================
    DavisSensorDescription(
        key=KEY_DATA_QUALITY,
        name="Data Quality",
        icon="mdi:check-decagram",
        entity_category=EntityCategory.DIAGNOSTIC,
        attrs_fn=lambda d: {"stale_sources": d.get(KEY_STALE_SOURCES) or None},
    ),
    DavisSensorDescription(
        key=KEY_SENSOR_QUALITY_FLAGS,
        name="Sensor Quality Flags",
        icon="mdi:alert-circle-check",
        entity_category=EntityCategory.DIAGNOSTIC,
        entity_registry_enabled_default=False,
        value_fn=lambda d: len(d.get(KEY_SENSOR_QUALITY_FLAGS) or []),
        attrs_fn=lambda d: {"flags": d.get(KEY_SENSOR_QUALITY_FLAGS) or None},
    ),
]

MOON_PHASE_OPTIONS = [
    "new_moon",
    "waxing_crescent",
    "first_quarter",
    "waxing_gibbous",
    "full_moon",
    "waning_gibbous",
    "last_quarter",
    "waning_crescent",
]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities) -> None:
    coordinator = hass.data[DOMAIN][entry.entry_id]
    prefix = (entry.options.get(CONF_PREFIX) or entry.data.get(CONF_PREFIX) or DEFAULT_PREFIX).strip().lower()
    async_add_entities([DavisSensor(coordinator, entry, desc, prefix) for desc in SENSORS])


class DavisSensor(CoordinatorEntity, SensorEntity):
    """A single derived sensor for Davis Weather Derived."""

    def __init__(self, coordinator, entry: ConfigEntry, desc: DavisSensorDescription, prefix: str):
        super().__init__(coordinator)
        self._desc = desc
        self._entry = entry
        self._prefix = prefix

        self._attr_unique_id = f"{entry.entry_id}_{desc.key}"
        self._attr_suggested_object_id = f"{prefix}_{self._slug_for_key(desc.key)}"
        self._attr_name = desc.name
        self._attr_icon = desc.icon
        self._attr_device_class = desc.device_class
        self._attr_native_unit_of_measurement = desc.native_unit
        self._attr_state_class = desc.state_class
        self._attr_entity_registry_enabled_default = desc.entity_registry_enabled_default
        if desc.entity_category is not None:
            self._attr_entity_category = desc.entity_category
        if desc.device_class == SensorDeviceClass.ENUM:
            self._attr_options = MOON_PHASE_OPTIONS

    @property
    def device_info(self):
        return {"identifiers": {(DOMAIN, self._entry.entry_id)}}

    @property
    def icon(self) -> str | None:
        if self._desc.key == KEY_MOON_PHASE:
            return (self.coordinator.data or {}).get(KEY_MOON_ICON) or "mdi:moon-waxing-crescent"
        return self._desc.icon

    @staticmethod
    def _slug_for_key(key: str) -> str:
        overrides = {
            KEY_ET_IN: "reference_et",
            KEY_ET_DAILY_MM: "reference_et_24h",
            KEY_CLEAR_SKY_RAD: "clear_sky_radiation",
            KEY_ASTRO_DAWN: "astronomical_dawn",
            KEY_ASTRO_DUSK: "astronomical_dusk",
        }
        if key in overrides:
            return overrides[key]
        return key[:-2] if key.endswith("_f") else key

    @property
    def native_value(self):
        d = self.coordinator.data or {}
        if self._desc.value_fn is not None:
            try:
                return self._desc.value_fn(d)
            except (AttributeError, KeyError, TypeError, ValueError):
                return None
        return d.get(self._desc.key)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        d = self.coordinator.data or {}
        if self._desc.attrs_fn is not None:
            try:
                return {k: v for k, v in (self._desc.attrs_fn(d) or {}).items() if v is not None}
            except (AttributeError, KeyError, TypeError, ValueError):
                return {}
        return {}
