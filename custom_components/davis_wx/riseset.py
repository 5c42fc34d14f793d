"""Sun and moon rise/set and twilight times.

Low-precision ephemerides (minisun/minimoon) and the three-point
parabolic search of Montenbruck & Pfleger, "Astronomy on the Personal
Computer", ch. 3. The altitude of the body is sampled at local hour 0 and
then every two hours; a parabola through each consecutive triple locates
any horizon crossing in that window.

Accuracy is about a minute for the sun and a few minutes for the moon.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, NamedTuple

from .models import EventStatus, RiseSetEvent, RiseSetResult, SiteConfig

_LOGGER = logging.getLogger(__name__)

MJD_J2000 = 51544.5
_TWO_PI = 6.283185307
_COS_EPS = 0.91748
_SIN_EPS = 0.39778
_ARCSEC_PER_RAD = 206264.8062

# Altitude thresholds in degrees: rise/set (upper limb, refraction),
# civil, nautical and astronomical twilight.
SUNRISE_ALTITUDE = -0.833
CIVIL_ALTITUDE = -6.0
NAUTICAL_ALTITUDE = -12.0
ASTRONOMICAL_ALTITUDE = -18.0
# Moon centre at +8 arcmin.
MOONRISE_ALTITUDE = 8.0 / 60.0


class QuadRoots(NamedTuple):
    """Parabola fitted through samples at x = -1, 0, +1."""

    count: int
    z1: float
    z2: float
    xe: float
    ye: float


def _frac(x: float) -> float:
    return x - math.floor(x)


# ---------------------------------------------------------------------------
# Time scales
# ---------------------------------------------------------------------------


def mjd(year: int, month: int, day: int, hour: float = 0.0) -> float:
    """Modified Julian Day; Julian calendar before 1582-10-15."""
    if month <= 2:
        month += 12
        year -= 1
    if 10000.0 * year + 100.0 * month + day <= 15821004.1:
        b = -2 + math.floor((year + 4716) / 4) - 1179
    else:
        b = math.floor(year / 400) - math.floor(year / 100) + math.floor(year / 4)
    return 365.0 * year - 679004.0 + b + math.floor(30.6001 * (month + 1)) + day + hour / 24.0


def lmst(mjd_value: float, longitude: float) -> float:
    """Local mean sidereal time in hours (Meeus 11.4).

    The result is not reduced to [0, 24) once the longitude is added.
    """
    d = mjd_value - MJD_J2000
    t = d / 36525.0
    gmst = (280.46061837 + 360.98564736629 * d + 0.000387933 * t * t - t * t * t / 38710000.0) % 360.0
    return gmst / 15.0 + longitude / 15.0


# ---------------------------------------------------------------------------
# Ephemerides
# ---------------------------------------------------------------------------


def _equatorial(y: float, z: float, x: float) -> tuple[float, float]:
    rho = math.sqrt(1.0 - z * z)
    dec = (360.0 / _TWO_PI) * math.atan(z / rho)
    ra = (48.0 / _TWO_PI) * math.atan(y / (x + rho))
    if ra < 0:
        ra += 24.0
    return dec, ra


def minisun(t: float) -> tuple[float, float]:
    """Sun (declination deg, right ascension h); t in Julian centuries from J2000."""
    m = _TWO_PI * _frac(0.993133 + 99.997361 * t)
    dl = 6893.0 * math.sin(m) + 72.0 * math.sin(2 * m)
    lon = _TWO_PI * _frac(0.7859453 + m / _TWO_PI + (6191.2 * t + dl) / 1296000.0)
    sl = math.sin(lon)
    return _equatorial(_COS_EPS * sl, _SIN_EPS * sl, math.cos(lon))


def minimoon(t: float) -> tuple[float, float]:
    """Moon (declination deg, right ascension h); t in Julian centuries from J2000."""
    l0 = _frac(0.606433 + 1336.855225 * t)  # mean longitude
    mm = _TWO_PI * _frac(0.374897 + 1325.552410 * t)  # mean anomaly of the moon
    ls = _TWO_PI * _frac(0.993133 + 99.997361 * t)  # mean anomaly of the sun
    d = _TWO_PI * _frac(0.827361 + 1236.853086 * t)  # elongation
    f = _TWO_PI * _frac(0.259086 + 1342.227825 * t)  # argument of latitude

    dl = (
        22640 * math.sin(mm)
        - 4586 * math.sin(mm - 2 * d)
        + 2370 * math.sin(2 * d)
        + 769 * math.sin(2 * mm)
        - 668 * math.sin(ls)
        - 412 * math.sin(2 * f)
        - 212 * math.sin(2 * mm - 2 * d)
        - 206 * math.sin(mm + ls - 2 * d)
        + 192 * math.sin(mm + 2 * d)
        - 165 * math.sin(ls - 2 * d)
        - 125 * math.sin(d)
        - 110 * math.sin(mm + ls)
        + 148 * math.sin(mm - ls)
        - 55 * math.sin(2 * f - 2 * d)
    )
    s = f + (dl + 412 * math.sin(2 * f) + 541 * math.sin(ls)) / _ARCSEC_PER_RAD
    h = f - 2 * d
    n = (
        -526 * math.sin(h)
        + 44 * math.sin(mm + h)
        - 31 * math.sin(-mm + h)
        - 23 * math.sin(ls + h)
        + 11 * math.sin(-ls + h)
        - 25 * math.sin(-2 * mm + f)
        + 21 * math.sin(-mm + f)
    )
    moon_lon = _TWO_PI * _frac(l0 + dl / 1296000.0)
    moon_lat = (18520.0 * math.sin(s) + n) / _ARCSEC_PER_RAD

    cb = math.cos(moon_lat)
    x = cb * math.cos(moon_lon)
    v = cb * math.sin(moon_lon)
    w = math.sin(moon_lat)
    return _equatorial(_COS_EPS * v - _SIN_EPS * w, _SIN_EPS * v + _COS_EPS * w, x)


Ephemeris = Callable[[float], tuple[float, float]]


def sin_alt(ephemeris: Ephemeris, mjd0: float, hour: float, longitude: float, cglat: float, sglat: float) -> float:
    """Sine of the altitude of a body ``hour`` hours after ``mjd0`` (UT)."""
    mjd_value = mjd0 + hour / 24.0
    t = (mjd_value - MJD_J2000) / 36525.0
    dec, ra = ephemeris(t)
    tau = math.radians(15.0 * (lmst(mjd_value, longitude) - ra))
    dec_rad = math.radians(dec)
    return sglat * math.sin(dec_rad) + cglat * math.cos(dec_rad) * math.cos(tau)


# ---------------------------------------------------------------------------
# Event search
# ---------------------------------------------------------------------------


def quad(ym: float, yz: float, yp: float) -> QuadRoots:
    """Fit a parabola through (-1, ym), (0, yz), (+1, yp).

    Returns the number of roots in [-1, 1], the roots and the extremum.
    With a single root in range it is always ``z1``.
    """
    a = 0.5 * (ym + yp) - yz
    b = 0.5 * (yp - ym)
    if a == 0:
        # Straight line through the samples
        if b == 0:
            return QuadRoots(0, 0.0, 0.0, 0.0, yz)
        z = -yz / b
        return QuadRoots(1 if abs(z) <= 1.0 else 0, z, 0.0, 0.0, yz)

    xe = -b / (2 * a)
    ye = (a * xe + b) * xe + yz
    dis = b * b - 4.0 * a * yz
    count = 0
    z1 = z2 = 0.0
    if dis > 0:
        dx = 0.5 * math.sqrt(dis) / abs(a)
        z1 = xe - dx
        z2 = xe + dx
        if abs(z1) <= 1.0:
            count += 1
        if abs(z2) <= 1.0:
            count += 1
        if z1 < -1.0:
            z1 = z2
    return QuadRoots(count, z1, z2, xe, ye)


def _find_events(
    ephemeris: Ephemeris, altitude_deg: float, date: float, site: SiteConfig
) -> tuple[RiseSetEvent, RiseSetEvent]:
    """Search one local day for the rise and set of a body past ``altitude_deg``."""
    sinho = math.sin(math.radians(altitude_deg))
    sglat = math.sin(math.radians(site.latitude))
    cglat = math.cos(math.radians(site.latitude))

    def sample(hour: float) -> float:
        return sin_alt(ephemeris, date, hour, site.longitude, cglat, sglat) - sinho

    rise_at: float | None = None
    set_at: float | None = None
    hour = 1.0
    ym = sample(hour - 1.0)
    above = ym > 0.0

    while hour < 25 and (rise_at is None or set_at is None):
        yz = sample(hour)
        yp = sample(hour + 1.0)
        roots = quad(ym, yz, yp)
        if roots.count == 1:
            if ym < 0.0:
                rise_at = hour + roots.z1
            else:
                set_at = hour + roots.z1
        elif roots.count == 2:
            if roots.ye < 0.0:
                rise_at = hour + roots.z2
                set_at = hour + roots.z1
            else:
                rise_at = hour + roots.z1
                set_at = hour + roots.z2
        ym = yp
        hour += 2.0

    if rise_at is None and set_at is None:
        status = EventStatus.ALWAYS_UP if above else EventStatus.ALWAYS_DOWN
        return RiseSetEvent(None, status), RiseSetEvent(None, status)

    return _event(rise_at), _event(set_at)


def _event(hours: float | None) -> RiseSetEvent:
    if hours is None:
        return RiseSetEvent(None, EventStatus.NO_EVENT)
    return RiseSetEvent(hours % 24.0, EventStatus.NORMAL)


def _shift(event: RiseSetEvent, offset: float) -> RiseSetEvent:
    if event.status is not EventStatus.NORMAL or event.hours is None:
        return event
    return RiseSetEvent((event.hours + offset) % 24.0, event.status)


def calculate_rise_set(
    year: int, month: int, day: int, site: SiteConfig, daylight_saving: bool = False
) -> RiseSetResult:
    """Sun, twilight and moon events for a local calendar date.

    Times are local standard time for ``site.tz_offset_hours``; with
    ``daylight_saving`` one hour is added.
    """
    date = mjd(year, month, day) - site.tz_offset_hours / 24.0
    offset = 1.0 if daylight_saving else 0.0

    events = {}
    for name, ephemeris, altitude in (
        ("sun", minisun, SUNRISE_ALTITUDE),
        ("civil", minisun, CIVIL_ALTITUDE),
        ("nautical", minisun, NAUTICAL_ALTITUDE),
        ("astro", minisun, ASTRONOMICAL_ALTITUDE),
        ("moon", minimoon, MOONRISE_ALTITUDE),
    ):
        rise, sett = _find_events(ephemeris, altitude, date, site)
        events[name] = (_shift(rise, offset), _shift(sett, offset))

    _LOGGER.debug("Rise/set for %04d-%02d-%02d: %s", year, month, day, events)
    return RiseSetResult(
        sunrise=events["sun"][0],
        sunset=events["sun"][1],
        civil_dawn=events["civil"][0],
        civil_dusk=events["civil"][1],
        nautical_dawn=events["nautical"][0],
        nautical_dusk=events["nautical"][1],
        astro_dawn=events["astro"][0],
        astro_dusk=events["astro"][1],
        moonrise=events["moon"][0],
        moonset=events["moon"][1],
    )


def format_hours(hours: float) -> str:
    """Render a fractional hour as the console's report text, e.g. ' 6:05 am'.

    Rounded to the nearest minute. Hours after 12 are pm; hour 0 shows as
    12 am and hour 12 also reads am.
    """
    hrs = math.floor(hours * 60.0 + 0.5) / 60.0
    h = math.floor(hrs)
    m = math.floor(60.0 * (hrs - h) + 0.5)
    suffix = " am"
    if h > 12:
        h -= 12
        suffix = " pm"
    elif h == 0:
        h = 12
    return f"{h:2d}:{m:02d}{suffix}"
