"""Derived weather quantities for Davis Weather Derived.

All inputs are in the console's native units (deg F, mph, % RH, W/m2,
inHg). Formulas follow the references below; none of them round.

Out-of-domain inputs (humidity <= 0, negative radiation, ...) are not
rejected: they propagate as NaN/Inf the way IEEE-754 arithmetic does.
Callers validate ranges first when it matters.

References:
  - NWS 2001: Wind chill
  - Rothfusz 1990 / NWS SR 90-23: Heat index regression and adjustments
  - Magnus / Sonntag 1990 constants (17.62, 243.12): Dew point
  - Stull 2011: Wet-bulb temperature approximation
  - Allen et al. 1998 (FAO-56), ASCE-EWRI 2005: Reference ET
  - Steadman 1979 / Davis Instruments: THW and THSW indices
"""

from __future__ import annotations

import bisect
import math
from datetime import datetime, timezone

from .models import MoonPhaseName, SiteConfig, SolarPosition

# ---------------------------------------------------------------------------
# IEEE-style helpers
# ---------------------------------------------------------------------------


def _log10(x: float) -> float:
    """log10 that yields -inf/NaN instead of raising on x <= 0."""
    if x > 0:
        return math.log10(x)
    if x == 0:
        return -math.inf
    return math.nan


def _log(x: float) -> float:
    """Natural log with the same -inf/NaN behaviour as _log10."""
    if x > 0:
        return math.log(x)
    if x == 0:
        return -math.inf
    return math.nan


def _sqrt(x: float) -> float:
    return math.sqrt(x) if x >= 0 else math.nan


def _pow(x: float, y: float) -> float:
    """Real power; NaN for a negative base instead of a complex result."""
    return math.pow(x, y) if x >= 0 else math.nan


def fahrenheit_to_celsius(temp_f: float) -> float:
    return (temp_f - 32.0) / 1.8


def celsius_to_fahrenheit(temp_c: float) -> float:
    return temp_c * 1.8 + 32.0


# ---------------------------------------------------------------------------
# Wind chill / heat index
# ---------------------------------------------------------------------------


def wind_chill(temp_f: float, wind_mph: float) -> float:
    """NWS (2001) wind chill in deg F.

    Above 50 F or below 3 mph wind chill is defined as the air temperature.
    """
    if temp_f > 50 or wind_mph < 3.0:
        return temp_f
    speed = _pow(wind_mph, 0.16)
    return 35.74 + 0.6215 * temp_f - 35.75 * speed + 0.4275 * temp_f * speed


def heat_index(temp_f: float, humidity: float) -> float:
    """Heat index in deg F (Rothfusz regression).

    Below 80 F the simple Steadman approximation is averaged with the air
    temperature. At or above 80 F the full regression is used with the NWS
    low-humidity (H < 13, 80 < T < 112) and high-humidity (H > 85,
    80 < T < 87) adjustments. The low-humidity branch is checked first.
    """
    if temp_f < 80:
        simple = 0.5 * (temp_f + 61.0 + (temp_f - 68.0) * 1.2 + humidity * 0.094)
        return (temp_f + simple) / 2.0

    t2 = temp_f * temp_f
    h2 = humidity * humidity
    hi = (
        -42.379
        + 2.04901523 * temp_f
        + 10.14333127 * humidity
        - 0.22475541 * temp_f * humidity
        - 0.00683783 * t2
        - 0.05481717 * h2
        + 0.00122874 * humidity * t2
        + 0.00085282 * temp_f * h2
        - 0.00000199 * t2 * h2
    )

    if humidity < 13 and 80 < temp_f < 112:
        return hi - ((13.0 - humidity) / 4.0) * _sqrt((17.0 - abs(temp_f - 95.0)) / 17.0)

    if humidity > 85 and 80 < temp_f < 87:
        return hi + ((humidity - 85.0) / 10.0) * ((87.0 - temp_f) / 5.0)

    return hi


# ---------------------------------------------------------------------------
# Dew point, wet bulb
# ---------------------------------------------------------------------------


def dew_point(temp_f: float, humidity: float) -> float:
    """Magnus-formula dew point in deg F.

    Constants a=17.62, b=243.12 (Sonntag 1990, over water).
    humidity must be > 0; 0 gives NaN.
    """
    temp_c = fahrenheit_to_celsius(temp_f)
    gamma = (_log10(humidity) - 2.0) / 0.4343 + (17.62 * temp_c) / (243.12 + temp_c)
    dew_c = 243.12 * gamma / (17.62 - gamma)
    return celsius_to_fahrenheit(dew_c)


def wet_bulb_temperature(temp_f: float, humidity: float) -> float:
    """Wet-bulb temperature in deg F (Stull 2011).

    Tw = T * atan(0.151977 * (RH + 8.313659)^0.5)
         + atan(T + RH) - atan(RH - 1.676331)
         + 0.00391838 * RH^1.5 * atan(0.023101 * RH)
         - 4.686035

    Valid range: RH 5%-99%, T -20 C to +50 C. Max error +/- 0.3 C.
    """
    temp_c = fahrenheit_to_celsius(temp_f)
    wet_c = (
        temp_c * math.atan(0.151977 * _pow(humidity + 8.313659, 0.5))
        + math.atan(temp_c + humidity)
        - math.atan(humidity - 1.676331)
        + 0.00391838 * _pow(humidity, 1.5) * math.atan(0.023101 * humidity)
        - 4.686035
    )
    return celsius_to_fahrenheit(wet_c)


# ---------------------------------------------------------------------------
# Evapotranspiration
# ---------------------------------------------------------------------------

MM_PER_INCH = 25.4
KPA_PER_INHG = 3.38639
# Stefan-Boltzmann constant per hour, MJ K^-4 m^-2 h^-1
_SIGMA_HOURLY = 2.042e-10
# Cloudiness factor used when the sun is down and Rs/Rso is undefined.
_ET_NIGHT_FCD = 0.7


def standard_pressure_inhg(elevation_ft: float) -> float:
    """Standard-atmosphere station pressure (FAO-56 eq. 7) in inHg."""
    elevation_m = elevation_ft * 0.3048
    kpa = 101.3 * _pow((293.0 - 0.0065 * elevation_m) / 293.0, 5.26)
    return kpa / KPA_PER_INHG


def reference_et(
    temp_f: float,
    wind_mph: float,
    solar_rad_wm2: float,
    humidity: float,
    pressure_inhg: float,
    solar_position: SolarPosition,
) -> float:
    """Hourly reference evapotranspiration in in/h (ASCE/FAO-56 Penman-Monteith).

    Inputs are one-hour averages. solar_position must be computed for the
    same instant; its clear-sky radiation is the Rso used for the
    cloudiness factor of the longwave term.

    Daytime (solar_rad_wm2 > 0): Cd = 0.24, G = 0.1 Rn.
    Night: Cd = 0.96, G = 0.5 Rn.
    """
    temp_c = fahrenheit_to_celsius(temp_f)
    temp_k = temp_c + 273.16
    wind_ms = wind_mph * 0.44704
    pressure_kpa = pressure_inhg * KPA_PER_INHG

    # Vapour pressures (kPa) and slope of the saturation curve (kPa/C)
    sat_vp = 0.6108 * math.exp(17.27 * temp_c / (temp_c + 237.3))
    actual_vp = sat_vp * humidity / 100.0
    slope = 4098.0 * sat_vp / ((temp_c + 237.3) ** 2)
    psychrometric = 0.000665 * pressure_kpa

    daytime = solar_rad_wm2 > 0
    cd = 0.24 if daytime else 0.96
    g_ratio = 0.1 if daytime else 0.5

    # Radiation (MJ m^-2 h^-1)
    rs = max(0.0, solar_rad_wm2) * 0.0036
    rso = solar_position.clear_sky_rad_wm2 * 0.0036
    if rso > 0:
        ratio = max(0.3, min(1.0, rs / rso))
        fcd = 1.35 * ratio - 0.35
    else:
        fcd = _ET_NIGHT_FCD
    net_emissivity = 0.34 - 0.14 * _sqrt(actual_vp)
    rnl = _SIGMA_HOURLY * temp_k**4 * net_emissivity * fcd
    rns = (1.0 - 0.23) * rs
    rn = rns - rnl
    soil_flux = g_ratio * rn

    latent_heat = 2.501 - 0.002361 * temp_c  # MJ/kg
    radiation_term = slope * (rn - soil_flux) / latent_heat
    wind_term = psychrometric * (37.0 / temp_k) * wind_ms * (sat_vp - actual_vp)
    et_mm = (radiation_term + wind_term) / (slope + psychrometric * (1.0 + cd * wind_ms))
    return et_mm / MM_PER_INCH


def calculate_daily_et(
    temp_min_f: float,
    temp_max_f: float,
    avg_wind_mph: float,
    avg_solar_rad_wm2: float,
    min_humidity: float,
    max_humidity: float,
    elevation_ft: float,
    latitude: float,
    day_of_year: int,
) -> float:
    """Daily FAO-56 Penman-Monteith reference ET in mm/day.

    Uses the day's temperature and humidity extremes, the average wind and
    solar radiation, and the extraterrestrial radiation for day_of_year
    (FAO-56 eq. 21-24).
    """
    t_mean_c = fahrenheit_to_celsius((temp_max_f + temp_min_f) / 2.0)
    t_min_c = fahrenheit_to_celsius(temp_min_f)
    t_max_c = fahrenheit_to_celsius(temp_max_f)
    t_mean_k = t_mean_c + 273.15
    t_min_k = t_min_c + 273.15
    t_max_k = t_max_c + 273.15
    solar_mj = avg_solar_rad_wm2 * 0.0864
    wind_ms = avg_wind_mph * 0.447
    slope = (4098.0 * (0.6108 * math.exp(17.27 * t_mean_c / (t_mean_c + 237.3)))) / (
        (t_mean_c + 237.3) ** 2
    )
    elevation_m = elevation_ft * 0.3048
    pressure_kpa = 101.3 * _pow((293.0 - 0.0065 * elevation_m) / 293.0, 5.26)
    psychrometric = 0.000665 * pressure_kpa
    denominator = slope + psychrometric * (1.0 + 0.34 * wind_ms)
    delta_term = slope / denominator
    psi_term = psychrometric / denominator
    temp_term = (900.0 / t_mean_k) * wind_ms

    min_sat_vp = 0.6108 * math.exp(17.27 * t_min_c / (t_min_c + 237.3))
    max_sat_vp = 0.6108 * math.exp(17.27 * t_max_c / (t_max_c + 237.3))
    mean_sat_vp = (min_sat_vp + max_sat_vp) / 2.0
    actual_vp = (min_sat_vp * (max_humidity / 100.0) + max_sat_vp * (min_humidity / 100.0)) / 2.0

    sun_term = (2.0 * math.pi / 365.0) * day_of_year
    inverse_distance = 1.0 + 0.033 * math.cos(sun_term)
    declination = 0.409 * math.sin(sun_term - 1.39)
    lat_rad = math.radians(latitude)
    cos_ws = -math.tan(lat_rad) * math.tan(declination)
    # Clamp for polar day/night
    sunset_angle = math.acos(max(-1.0, min(1.0, cos_ws)))
    extraterrestrial = (
        37.586032
        * inverse_distance
        * (
            sunset_angle * math.sin(lat_rad) * math.sin(declination)
            + math.cos(lat_rad) * math.cos(declination) * math.sin(sunset_angle)
        )
    )
    clear_sky = (0.75 + 0.00002 * elevation_m) * extraterrestrial
    net_solar = (1.0 - 0.23) * solar_mj
    rs_rso = min(1.0, net_solar / (0.77 * clear_sky)) if clear_sky > 0 else 0.5
    net_longwave = (
        4.903e-9
        * ((t_max_k**4 + t_min_k**4) / 2.0)
        * (0.34 - 0.14 * _sqrt(actual_vp))
        * (1.35 * rs_rso - 0.35)
    )
    net_radiation = 0.408 * (net_solar - net_longwave)
    return delta_term * net_radiation + psi_term * temp_term * (mean_sat_vp - actual_vp)


# ---------------------------------------------------------------------------
# THW / THSW (Steadman 1979, Davis Instruments)
# ---------------------------------------------------------------------------

# Wind component of THW and THSW in deg F.
# Rows: temperature bands of 5 F from 50 F (band 0 is 50-52.5).
# Columns: wind bands of 5 mph from 0 (band 0 is 0-2.5).
WIND_MATRIX: tuple[tuple[int, ...], ...] = (
    (0, -2, -4, -5, -6, -7, -8, -9, -9),
    (0, -1, -3, -5, -6, -7, -8, -9, -9),
    (0, -1, -3, -5, -6, -7, -8, -9, -9),
    (0, 0, -3, -5, -6, -7, -8, -9, -9),
    (0, 0, -2, -4, -5, -6, -7, -8, -9),
    (0, 0, -2, -3, -4, -5, -6, -7, -7),
    (0, 0, -1, -2, -3, -5, -5, -6, -6),
    (0, 0, -1, -2, -3, -3, -4, -4, -4),
    (0, 0, 0, -1, -2, -2, -2, -2, -2),
    (0, 0, 0, 0, 0, 0, 1, 1, 1),
    (0, 0, 0, 0, 1, 2, 3, 3, 3),
    (0, 0, 0, 1, 2, 3, 4, 5, 5),
    (0, 0, 0, 2, 3, 4, 5, 5, 6),
    (0, 0, 0, 1, 2, 3, 4, 6, 6),
    (0, 0, 0, 1, 1, 2, 3, 4, 4),
    (0, 0, 0, 0, 0, 1, 1, 1, 1),
    (0, 0, 0, 0, 0, 0, 0, 0, 0),
)

# Upper (inclusive) edges of every band but the last.
_TEMP_BAND_EDGES = tuple(52.5 + 5.0 * i for i in range(len(WIND_MATRIX) - 1))
_WIND_BAND_EDGES = tuple(2.5 + 5.0 * i for i in range(len(WIND_MATRIX[0]) - 1))


def wind_component(temp_f: float, wind_mph: float) -> int:
    """WIND_MATRIX lookup for THW/THSW.

    Bands are upper-inclusive: 52.5 F is still band 0, 52.6 F is band 1.
    Below 50 F the correction is not implemented and 0 is returned; the
    Davis sheet derives it from wind chill and its coefficients are not
    published.
    """
    if temp_f < 50:
        return 0
    temp_band = bisect.bisect_left(_TEMP_BAND_EDGES, temp_f)
    wind_band = bisect.bisect_left(_WIND_BAND_EDGES, wind_mph)
    return WIND_MATRIX[temp_band][wind_band]


def thw(temp_f: float, wind_mph: float, humidity: float) -> float:
    """Temperature-Humidity-Wind index: heat index plus the wind component."""
    return heat_index(temp_f, humidity) + wind_component(temp_f, wind_mph)


def sky_cover(solar_rad_wm2: float, clear_sky_rad_wm2: float) -> float:
    """Fractional sky cover estimated from measured vs clear-sky radiation.

    Clear-sky radiation is raised to the measurement when the measurement
    exceeds it. With the sun down both are zero and the ratio is taken as 0.
    A ratio below -1 has no logarithm and gives NaN.
    """
    clear = max(clear_sky_rad_wm2, solar_rad_wm2)
    ratio = solar_rad_wm2 / clear if clear > 0 else 0.0
    return math.exp(_log((ratio + 1.0) / 0.75) / 0.29412) / 100.0


def thsw(
    temp_f: float,
    wind_mph: float,
    humidity: float,
    solar_rad_wm2: float,
    solar_position: SolarPosition,
    site: SiteConfig,
) -> float:
    """Temperature-Humidity-Sun-Wind index in deg F.

    THW plus the net solar heat load on a person, Qg = Q1 + Q2 + Q3 - Q4
    (direct, diffuse, ground-reflected and sky radiation), scaled by wind.
    The sky-cover and clear-sky terms are empirical and only approximate.
    """
    base = thw(temp_f, wind_mph, humidity)

    c = sky_cover(solar_rad_wm2, solar_position.clear_sky_rad_wm2)
    elevation = solar_position.solar_elevation_deg

    if c > 0.6:
        solar_normal = solar_rad_wm2
    else:
        e2 = elevation * elevation
        e3 = e2 * elevation
        solar_normal = (0.000005 * e3 - 0.0002 * e2 + 0.0029 * elevation + 1.0) * solar_rad_wm2

    if elevation < 2:
        body_area = 0.11
    elif elevation > 70:
        body_area = 0.325
    else:
        body_area = 0.386 - 0.0032 * (90.0 - elevation)

    q1 = 0.56 * solar_normal * body_area
    q2 = 0.224 * 0.1 * solar_normal * (1.0 - c * c)
    q3 = 0.028 * solar_rad_wm2

    elevation_km = site.elevation_ft * 0.0003048
    temp_c = fahrenheit_to_celsius(temp_f)
    vapor_kpa = 0.6112 * math.exp(17.62 * temp_c / (temp_c + 243.12))
    q4 = (
        150.0
        * (1.0 - c * c * (0.5 - 0.0043 * site.latitude))
        * (1.0 - 0.62 * math.exp(-0.108 * elevation_km) - 0.16 * _sqrt(vapor_kpa))
    )

    qg = q1 + q2 + q3 - q4
    if wind_mph < 7:
        qg = 0.101 * qg
    else:
        qg = 1.10 * qg / (8.0 + 0.45 * wind_mph)
    return base + qg


# ---------------------------------------------------------------------------
# Moon phase
# ---------------------------------------------------------------------------

# A new moon instant and the mean synodic month (Ben Daglish's method).
MOON_EPOCH = datetime(1970, 1, 7, 20, 35, 0, tzinfo=timezone.utc)
SYNODIC_MONTH_S = 2551443
MOON_CYCLE_DAYS = 30

MOON_ICONS = {
    MoonPhaseName.NEW_MOON: "mdi:moon-new",
    MoonPhaseName.WAXING_CRESCENT: "mdi:moon-waxing-crescent",
    MoonPhaseName.FIRST_QUARTER: "mdi:moon-first-quarter",
    MoonPhaseName.WAXING_GIBBOUS: "mdi:moon-waxing-gibbous",
    MoonPhaseName.FULL_MOON: "mdi:moon-full",
    MoonPhaseName.WANING_GIBBOUS: "mdi:moon-waning-gibbous",
    MoonPhaseName.LAST_QUARTER: "mdi:moon-last-quarter",
    MoonPhaseName.WANING_CRESCENT: "mdi:moon-waning-crescent",
}


def moon_phase(now_utc: datetime) -> int:
    """Day of the synodic month, 0-29 (0 = new moon, 14 = full moon).

    Whole days since the reference new moon modulo the synodic month, plus
    one. Day 30 is the next new moon and folds to 0.
    """
    if now_utc.tzinfo is None:
        raise ValueError("moon_phase requires a timezone-aware datetime")
    seconds = math.floor((now_utc - MOON_EPOCH).total_seconds())
    day = (seconds % SYNODIC_MONTH_S) // 86400 + 1
    return day % MOON_CYCLE_DAYS


def phase_name(day_index: int) -> MoonPhaseName | None:
    """Map a synodic day index to its named phase, or None if out of range."""
    if day_index in (0, 30):
        return MoonPhaseName.NEW_MOON
    if 1 <= day_index <= 6:
        return MoonPhaseName.WAXING_CRESCENT
    if day_index == 7:
        return MoonPhaseName.FIRST_QUARTER
    if 8 <= day_index <= 13:
        return MoonPhaseName.WAXING_GIBBOUS
    if day_index == 14:
        return MoonPhaseName.FULL_MOON
    if 15 <= day_index <= 21:
        return MoonPhaseName.WANING_GIBBOUS
    if day_index == 22:
        return MoonPhaseName.LAST_QUARTER
    if 23 <= day_index <= 29:
        return MoonPhaseName.WANING_CRESCENT
    return None
