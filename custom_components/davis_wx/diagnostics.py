"""Diagnostics support for Davis Weather Derived."""

from __future__ import annotations

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import (
    CONF_LATITUDE,
    CONF_LONGITUDE,
    CONF_SOURCES,
    DOMAIN,
    KEY_DATA_QUALITY,
    KEY_SENSOR_QUALITY_FLAGS,
)


def _redact_coords(d: dict[str, Any]) -> dict[str, Any]:
    """Redact location data for privacy."""
    out = dict(d)
    for key in (CONF_LATITUDE, CONF_LONGITUDE):
        if key in out:
            out[key] = "**REDACTED**"
    return out


async def async_get_config_entry_diagnostics(hass: HomeAssistant, entry: ConfigEntry) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    coord = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    data = coord.data if coord else None

    sources = dict(entry.data.get(CONF_SOURCES, {}))
    sensor_stats = {"total": len(sources), "available": 0, "stale": 0, "missing": 0}
    for _key, eid in sources.items():
        if not eid:
            sensor_stats["missing"] += 1
            continue
        st = hass.states.get(eid)
        if st is None:
            sensor_stats["missing"] += 1
        elif st.state in ("unknown", "unavailable"):
            sensor_stats["stale"] += 1
        else:
            sensor_stats["available"] += 1

    runtime_info = {}
    if coord:
        rt = coord.runtime
        runtime_info = {
            "rise_set_date": rt.rise_set_date.isoformat() if rt.rise_set_date else None,
            "rise_set_dst": rt.rise_set_dst,
            "last_solar_error": rt.last_solar_error,
            "et_history_samples": len(rt.et_history_24h),
            "rejecting_samples": rt.rejecting_samples,
            "elevation_ft": coord.site.elevation_ft,
            "tz_offset_hours": coord.site.tz_offset_hours,
            "daylight_saving": coord.daylight_saving,
        }

    return {
        "title": entry.title,
        "entry_data": _redact_coords(dict(entry.data)),
        "entry_options": _redact_coords(dict(entry.options)),
        "sources": sources,
        "sensor_stats": sensor_stats,
        "runtime": runtime_info,
        "data_quality": (data or {}).get(KEY_DATA_QUALITY),
        "quality_flags": (data or {}).get(KEY_SENSOR_QUALITY_FLAGS, []),
    }
