"""Tests for davis_wx derived-quantity and moon phase calculations.

Reference values are worked by hand from the published formulas
(NWS wind chill and heat index, Magnus dew point, Stull wet bulb,
FAO-56 Penman-Monteith).
"""

import math
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from custom_components.davis_wx.algorithms import (
    MOON_EPOCH,
    MOON_ICONS,
    SYNODIC_MONTH_S,
    WIND_MATRIX,
    calculate_daily_et,
    celsius_to_fahrenheit,
    dew_point,
    fahrenheit_to_celsius,
    heat_index,
    moon_phase,
    phase_name,
    reference_et,
    sky_cover,
    standard_pressure_inhg,
    thsw,
    thw,
    wet_bulb_temperature,
    wind_chill,
    wind_component,
)
from custom_components.davis_wx.models import MoonPhaseName, SiteConfig, SolarPosition


def _position(elevation: float = 60.0, clear_sky: float = 900.0) -> SolarPosition:
    return SolarPosition(
        declination_deg=20.0,
        right_ascension_hr=6.0,
        equation_of_time_min=-2.0,
        hour_angle_deg=0.0,
        solar_zenith_deg=90.0 - elevation,
        solar_elevation_deg=elevation,
        solar_noon_fraction=0.5,
        sunrise_fraction=0.25,
        sunset_fraction=0.75,
        clear_sky_rad_wm2=clear_sky,
    )


def _rothfusz(t: float, h: float) -> float:
    return (
        -42.379
        + 2.04901523 * t
        + 10.14333127 * h
        - 0.22475541 * t * h
        - 0.00683783 * t * t
        - 0.05481717 * h * h
        + 0.00122874 * t * t * h
        + 0.00085282 * t * h * h
        - 0.00000199 * t * t * h * h
    )


# ---------------------------------------------------------------------------
# Unit helpers
# ---------------------------------------------------------------------------
class TestUnits:
    def test_freezing_and_boiling(self):
        assert fahrenheit_to_celsius(32.0) == pytest.approx(0.0)
        assert celsius_to_fahrenheit(100.0) == pytest.approx(212.0)

    def test_minus_forty_is_the_same(self):
        assert fahrenheit_to_celsius(-40.0) == pytest.approx(-40.0)


# ---------------------------------------------------------------------------
# Wind chill (NWS 2001)
# ---------------------------------------------------------------------------
class TestWindChill:
    def test_reference_value(self):
        assert wind_chill(26.6, 3.0) == pytest.approx(23.2084, abs=1e-3)

    def test_nws_table(self):
        """NWS chart: 0°F at 15 mph is -19°F."""
        assert round(wind_chill(0.0, 15.0)) == -19

    def test_warm_air_returns_temperature(self):
        assert wind_chill(50.1, 20.0) == 50.1

    def test_fifty_degrees_is_still_computed(self):
        assert wind_chill(50.0, 20.0) < 50.0

    def test_calm_returns_temperature(self):
        assert wind_chill(20.0, 2.9) == 20.0


# ---------------------------------------------------------------------------
# Heat index (Rothfusz)
# ---------------------------------------------------------------------------
class TestHeatIndex:
    def test_simple_formula_below_80(self):
        assert heat_index(26.6, 30.0) == pytest.approx(23.485, abs=1e-3)
        assert heat_index(70.0, 50.0) == pytest.approx(69.525, abs=1e-3)

    def test_regression_at_90_50(self):
        """NWS chart: 90°F at 50% RH is about 95°F."""
        assert 94.0 <= heat_index(90.0, 50.0) <= 95.2

    def test_80_uses_regression(self):
        assert heat_index(80.0, 40.0) == pytest.approx(_rothfusz(80.0, 40.0))

    def test_low_humidity_adjustment(self):
        # At 95°F the square-root term is 1: adjustment is (13 - H) / 4
        assert heat_index(95.0, 5.0) == pytest.approx(_rothfusz(95.0, 5.0) - 2.0)

    def test_low_humidity_boundaries(self):
        assert heat_index(95.0, 13.0) == pytest.approx(_rothfusz(95.0, 13.0))
        assert heat_index(112.0, 5.0) == pytest.approx(_rothfusz(112.0, 5.0))
        assert heat_index(80.0, 5.0) == pytest.approx(_rothfusz(80.0, 5.0))

    def test_high_humidity_adjustment(self):
        assert heat_index(85.0, 90.0) == pytest.approx(_rothfusz(85.0, 90.0) + 0.2)

    def test_high_humidity_boundaries(self):
        assert heat_index(87.0, 90.0) == pytest.approx(_rothfusz(87.0, 90.0))
        assert heat_index(85.0, 85.0) == pytest.approx(_rothfusz(85.0, 85.0))


# ---------------------------------------------------------------------------
# Dew point, wet bulb
# ---------------------------------------------------------------------------
class TestDewPoint:
    def test_saturated_air(self):
        for t in (-10.0, 32.0, 75.0, 100.0):
            assert dew_point(t, 100.0) == pytest.approx(t, abs=1e-6)

    def test_typical_summer(self):
        """77°F / 60% RH -> about 62°F."""
        assert 61.0 <= dew_point(77.0, 60.0) <= 63.0

    def test_below_temperature_when_unsaturated(self):
        for t in range(0, 100, 10):
            for rh in (10, 40, 80):
                assert dew_point(float(t), float(rh)) < t

    def test_zero_humidity_is_nan(self):
        assert math.isnan(dew_point(70.0, 0.0))


class TestWetBulb:
    def test_stull_reference(self):
        """Stull (2011): 20°C / 50% RH -> 13.7°C (56.7°F)."""
        assert 56.0 <= wet_bulb_temperature(68.0, 50.0) <= 57.5

    def test_between_dew_point_and_temperature(self):
        t, rh = 85.0, 45.0
        tw = wet_bulb_temperature(t, rh)
        assert dew_point(t, rh) < tw < t

    def test_negative_humidity_is_nan(self):
        assert math.isnan(wet_bulb_temperature(70.0, -20.0))


# ---------------------------------------------------------------------------
# THW / THSW
# ---------------------------------------------------------------------------
class TestWindComponent:
    def test_matrix_shape(self):
        assert len(WIND_MATRIX) == 17
        assert all(len(row) == 9 for row in WIND_MATRIX)

    def test_band_edges_are_upper_inclusive(self):
        assert wind_component(52.5, 10.0) == -4
        assert wind_component(52.6, 10.0) == -3
        assert wind_component(50.0, 2.5) == 0
        assert wind_component(50.0, 2.6) == -2

    def test_lookup(self):
        assert wind_component(110.0, 20.0) == 3

    def test_top_bands(self):
        assert wind_component(130.0, 40.0) == 0

    def test_below_fifty_is_zero(self):
        assert wind_component(49.9, 20.0) == 0


class TestTHW:
    def test_cold_equals_heat_index(self):
        assert thw(26.6, 3.0, 30.0) == pytest.approx(23.485, abs=1e-3)

    def test_adds_wind_component(self):
        assert thw(110.0, 20.0, 30.0) == pytest.approx(heat_index(110.0, 30.0) + 3)


class TestTHSW:
    SITE = SiteConfig(latitude=40.0, longitude=-105.0, elevation_ft=0.0, tz_offset_hours=-7)

    def test_sun_raises_index(self):
        pos = _position(60.0, 900.0)
        gain = thsw(80.0, 0.0, 50.0, 800.0, pos, self.SITE) - thw(80.0, 0.0, 50.0)
        assert gain > 10.0
        assert gain == pytest.approx(23.8, abs=0.5)

    def test_wind_reduces_solar_gain(self):
        pos = _position(60.0, 900.0)
        calm = thsw(80.0, 0.0, 50.0, 800.0, pos, self.SITE) - thw(80.0, 0.0, 50.0)
        windy = thsw(80.0, 20.0, 50.0, 800.0, pos, self.SITE) - thw(80.0, 20.0, 50.0)
        assert windy < calm

    def test_night_is_finite(self):
        pos = _position(-20.0, 0.0)
        assert math.isfinite(thsw(60.0, 5.0, 70.0, 0.0, pos, self.SITE))

    def test_sky_cover_clamps_clear_sky(self):
        # Measurement above clear-sky behaves like ratio 1
        assert sky_cover(950.0, 900.0) == pytest.approx(sky_cover(900.0, 900.0))
        assert sky_cover(0.0, 0.0) == pytest.approx(sky_cover(0.0, 500.0))

    def test_negative_radiation_is_nan(self):
        assert sky_cover(-500.0, 500.0) == 0.0
        assert math.isnan(sky_cover(-1000.0, 500.0))
        assert math.isnan(thsw(80.0, 5.0, 50.0, -1000.0, _position(60.0, 500.0), self.SITE))


# ---------------------------------------------------------------------------
# Evapotranspiration
# ---------------------------------------------------------------------------
class TestReferenceET:
    def test_sunny_afternoon(self):
        et = reference_et(86.0, 4.5, 800.0, 40.0, 29.92, _position(60.0, 900.0))
        assert et == pytest.approx(0.0254, abs=0.002)

    def test_night_less_than_day(self):
        day = reference_et(86.0, 4.5, 800.0, 40.0, 29.92, _position(60.0, 900.0))
        night = reference_et(70.0, 4.5, 0.0, 60.0, 29.92, _position(-30.0, 0.0))
        assert math.isfinite(night)
        assert night < day

    def test_humid_air_evaporates_less(self):
        pos = _position(60.0, 900.0)
        assert reference_et(86.0, 4.5, 800.0, 90.0, 29.92, pos) < reference_et(86.0, 4.5, 800.0, 30.0, 29.92, pos)

    def test_standard_pressure(self):
        assert standard_pressure_inhg(0.0) == pytest.approx(29.91, abs=0.02)
        assert standard_pressure_inhg(5280.0) < 25.0


class TestDailyET:
    def test_summer_day(self):
        et = calculate_daily_et(60.0, 90.0, 5.0, 300.0, 30.0, 80.0, 500.0, 40.0, 180)
        assert 4.0 <= et <= 9.0

    def test_winter_day_is_lower(self):
        summer = calculate_daily_et(60.0, 90.0, 5.0, 300.0, 30.0, 80.0, 500.0, 40.0, 180)
        winter = calculate_daily_et(25.0, 45.0, 5.0, 100.0, 30.0, 80.0, 500.0, 40.0, 355)
        assert winter < summer

    def test_polar_night_is_finite(self):
        assert math.isfinite(calculate_daily_et(-10.0, 5.0, 5.0, 0.0, 60.0, 90.0, 0.0, 80.0, 355))


# ---------------------------------------------------------------------------
# One console sample through every calculator
# ---------------------------------------------------------------------------
class TestColdSunnySample:
    """26.6°F, 3 mph, 30% RH, 564.453 W/m², 29.999 inHg at 45° elevation."""

    T, WIND, RH, SOLAR, PRESSURE = 26.6, 3.0, 30.0, 564.453, 29.999
    SITE = SiteConfig(latitude=40.0, longitude=-105.0, elevation_ft=0.0, tz_offset_hours=-7)

    def test_dew_point(self):
        assert dew_point(self.T, self.RH) == pytest.approx(-0.7245, abs=0.01)

    def test_wet_bulb(self):
        assert wet_bulb_temperature(self.T, self.RH) == pytest.approx(20.188, abs=0.01)

    def test_reference_et(self):
        et = reference_et(self.T, self.WIND, self.SOLAR, self.RH, self.PRESSURE, _position(45.0, 700.0))
        assert et == pytest.approx(0.006806, abs=1e-5)

    def test_thsw(self):
        # Below 50°F the wind component is 0, so THW is the heat index
        pos = _position(45.0, 700.0)
        assert sky_cover(self.SOLAR, 700.0) == pytest.approx(0.1986, abs=1e-3)
        assert thsw(self.T, self.WIND, self.RH, self.SOLAR, pos, self.SITE) == pytest.approx(31.648, abs=0.01)


# ---------------------------------------------------------------------------
# Moon phase
# ---------------------------------------------------------------------------
class TestMoonPhase:
    def test_epoch_is_day_one(self):
        assert moon_phase(MOON_EPOCH) == 1

    def test_full_moon_two_weeks_later(self):
        assert moon_phase(MOON_EPOCH + timedelta(days=13, hours=1)) == 14
        assert phase_name(moon_phase(MOON_EPOCH + timedelta(days=13, hours=1))) is MoonPhaseName.FULL_MOON

    def test_last_second_of_cycle_folds_to_zero(self):
        assert moon_phase(MOON_EPOCH - timedelta(seconds=1)) == 0

    def test_range(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        days = {moon_phase(start + timedelta(hours=6 * i)) for i in range(4 * 60)}
        assert min(days) >= 0
        assert max(days) <= 29

    def test_repeats_every_synodic_month(self):
        start = datetime(2024, 3, 1, 5, 30, tzinfo=timezone.utc)
        month = timedelta(seconds=SYNODIC_MONTH_S)
        for i in range(60):
            t = start + timedelta(hours=12 * i)
            assert moon_phase(t) == moon_phase(t + month) == moon_phase(t + 12 * month)

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError):
            moon_phase(datetime(2024, 1, 1))


class TestPhaseName:
    def test_every_day_has_a_name(self):
        for day in range(30):
            assert phase_name(day) is not None

    def test_boundaries(self):
        assert phase_name(0) is MoonPhaseName.NEW_MOON
        assert phase_name(30) is MoonPhaseName.NEW_MOON
        assert phase_name(1) is MoonPhaseName.WAXING_CRESCENT
        assert phase_name(6) is MoonPhaseName.WAXING_CRESCENT
        assert phase_name(7) is MoonPhaseName.FIRST_QUARTER
        assert phase_name(8) is MoonPhaseName.WAXING_GIBBOUS
        assert phase_name(13) is MoonPhaseName.WAXING_GIBBOUS
        assert phase_name(14) is MoonPhaseName.FULL_MOON
        assert phase_name(15) is MoonPhaseName.WANING_GIBBOUS
        assert phase_name(21) is MoonPhaseName.WANING_GIBBOUS
        assert phase_name(22) is MoonPhaseName.LAST_QUARTER
        assert phase_name(23) is MoonPhaseName.WANING_CRESCENT
        assert phase_name(29) is MoonPhaseName.WANING_CRESCENT

    def test_out_of_range(self):
        assert phase_name(-1) is None
        assert phase_name(31) is None

    def test_display_names_and_icons(self):
        assert MoonPhaseName.FULL_MOON.value == "Full Moon"
        assert MoonPhaseName.WANING_GIBBOUS.key == "waning_gibbous"
        assert set(MOON_ICONS) == set(MoonPhaseName)
