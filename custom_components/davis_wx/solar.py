"""Solar position for a site and civil instant.

Low-precision ephemeris from the NOAA solar calculator spreadsheet
(after Meeus, Astronomical Algorithms). Accuracy is about 1 minute for
sunrise/sunset and 0.01 deg for position between 1800 and 2100.

Clear-sky radiation: EPA (1971) quartic in solar elevation.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta, timezone

from .models import SiteConfig, SolarPosition, SolarPositionResult

_LOGGER = logging.getLogger(__name__)

_JD_EPOCH = date(1899, 12, 30)
_JD_EPOCH_VALUE = 2415018.5
J2000 = 2451545.0
# Sunrise/sunset zenith: refraction plus the solar semi-diameter.
SUNRISE_ZENITH_DEG = 90.833


def _local_standard(when: datetime, tz_offset_hours: int) -> datetime:
    """Return ``when`` as naive local standard time for the site."""
    if when.tzinfo is None:
        return when
    site_tz = timezone(timedelta(hours=tz_offset_hours))
    return when.astimezone(site_tz).replace(tzinfo=None)


def _day_fraction(when: datetime) -> float:
    return (when.hour + (when.minute + (when.second + when.microsecond / 1e6) / 60.0) / 60.0) / 24.0


def julian_day(when: datetime, tz_offset_hours: int = 0) -> float:
    """Julian Day of a local civil instant.

    Naive datetimes are local standard time at ``tz_offset_hours``; aware
    ones are converted to it first. 2000-01-01 12:00 UTC is 2451545.0.
    """
    local = _local_standard(when, tz_offset_hours)
    days = (local.date() - _JD_EPOCH).days
    return days + _JD_EPOCH_VALUE + _day_fraction(local) - tz_offset_hours / 24.0


def fraction_to_time(fraction: float) -> time:
    """Convert a fraction of a day (0.5 = noon) to a clock time.

    Seconds are rounded up. Fractions outside [0, 1) wrap to the same
    clock time on the neighbouring day.
    """
    total_seconds = math.ceil(round((fraction % 1.0) * 86400.0, 6))
    total_seconds %= 86400
    hours, rem = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    return time(int(hours), int(minutes), int(seconds))


def clear_sky_radiation(elevation_deg: float) -> float:
    """Clear-sky solar radiation in W/m2 (EPA 1971); 0 with the sun down."""
    if elevation_deg <= 0:
        return 0.0
    e2 = elevation_deg * elevation_deg
    e3 = e2 * elevation_deg
    e4 = e3 * elevation_deg
    return 24.0 * (2.044 * elevation_deg + 0.1296 * e2 - 0.001941 * e3 + 0.000007591 * e4) * 0.1314


def _sunrise_hour_angle(latitude: float, declination: float) -> float | None:
    """Hour angle of sunrise in degrees, or None when the sun never crosses the horizon."""
    lat = math.radians(latitude)
    dec = math.radians(declination)
    cos_ha = math.cos(math.radians(SUNRISE_ZENITH_DEG)) / (math.cos(lat) * math.cos(dec)) - math.tan(
        lat
    ) * math.tan(dec)
    if not -1.0 <= cos_ha <= 1.0:
        return None
    return math.degrees(math.acos(cos_ha))


def _solar_position(when: datetime, site: SiteConfig) -> SolarPosition:
    local = _local_standard(when, site.tz_offset_hours)
    tz = site.tz_offset_hours
    jc = (julian_day(local, tz) - J2000) / 36525.0

    geo_mean_long = (280.46646 + jc * (36000.76983 + jc * 0.0003032)) % 360.0
    geo_mean_anom = 357.52911 + jc * (35999.05029 - 0.0001537 * jc)
    eccent = 0.016708634 - jc * (0.000042037 + 0.0000001267 * jc)

    m_rad = math.radians(geo_mean_anom)
    eq_center = (
        math.sin(m_rad) * (1.914602 - jc * (0.004817 + 0.000014 * jc))
        + math.sin(2 * m_rad) * (0.019993 - 0.000101 * jc)
        + math.sin(3 * m_rad) * 0.000289
    )
    true_long = geo_mean_long + eq_center
    omega = math.radians(125.04 - 1934.136 * jc)
    app_long = true_long - 0.00569 - 0.00478 * math.sin(omega)

    mean_obliq = 23.0 + (26.0 + (21.448 - jc * (46.815 + jc * (0.00059 - jc * 0.001813))) / 60.0) / 60.0
    obliq_corr = mean_obliq + 0.00256 * math.cos(omega)

    obliq_rad = math.radians(obliq_corr)
    app_rad = math.radians(app_long)
    right_ascension = math.degrees(math.atan2(math.cos(obliq_rad) * math.sin(app_rad), math.cos(app_rad)))
    declination = math.degrees(math.asin(math.sin(obliq_rad) * math.sin(app_rad)))

    var_y = math.tan(obliq_rad / 2.0) ** 2
    l_rad = math.radians(geo_mean_long)
    eq_time = 4.0 * math.degrees(
        var_y * math.sin(2 * l_rad)
        - 2.0 * eccent * math.sin(m_rad)
        + 4.0 * eccent * var_y * math.sin(m_rad) * math.cos(2 * l_rad)
        - 0.5 * var_y * var_y * math.sin(4 * l_rad)
        - 1.25 * eccent * eccent * math.sin(2 * m_rad)
    )

    solar_noon = (720.0 - 4.0 * site.longitude - eq_time + tz * 60.0) / 1440.0
    ha_sunrise = _sunrise_hour_angle(site.latitude, declination)
    if ha_sunrise is None:
        sunrise = sunset = None
    else:
        sunrise = (solar_noon * 1440.0 - ha_sunrise * 4.0) / 1440.0
        sunset = (solar_noon * 1440.0 + ha_sunrise * 4.0) / 1440.0

    true_solar_time = math.fmod(_day_fraction(local) * 1440.0 + eq_time + 4.0 * site.longitude - 60.0 * tz, 1440.0)
    if true_solar_time / 4.0 < 0:
        hour_angle = true_solar_time / 4.0 + 180.0
    else:
        hour_angle = true_solar_time / 4.0 - 180.0

    lat_rad = math.radians(site.latitude)
    dec_rad = math.radians(declination)
    cos_zenith = math.sin(lat_rad) * math.sin(dec_rad) + math.cos(lat_rad) * math.cos(dec_rad) * math.cos(
        math.radians(hour_angle)
    )
    zenith = math.degrees(math.acos(max(-1.0, min(1.0, cos_zenith))))
    if not math.isfinite(zenith):
        raise ArithmeticError(f"non-finite solar zenith for {when.isoformat()}")
    elevation = 90.0 - zenith

    return SolarPosition(
        declination_deg=declination,
        right_ascension_hr=(right_ascension / 15.0) % 24.0,
        equation_of_time_min=eq_time,
        hour_angle_deg=hour_angle,
        solar_zenith_deg=zenith,
        solar_elevation_deg=elevation,
        solar_noon_fraction=solar_noon,
        sunrise_fraction=sunrise,
        sunset_fraction=sunset,
        clear_sky_rad_wm2=clear_sky_radiation(elevation),
    )


def compute_solar_position(when: datetime, site: SiteConfig) -> SolarPositionResult:
    """Solar position and clear-sky radiation at ``when`` for ``site``.

    Never returns stale values: a failed calculation gives a result with
    ``error`` set and no position.
    """
    try:
        position = _solar_position(when, site)
    except (ValueError, OverflowError, ArithmeticError) as err:
        _LOGGER.warning("Solar position failed for %s at (%s, %s): %s", when, site.latitude, site.longitude, err)
        return SolarPositionResult(error=str(err))
    return SolarPositionResult(position=position)
