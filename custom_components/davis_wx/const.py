"""Constants for Davis Weather Derived."""

DOMAIN = "davis_wx"

PLATFORMS = ["sensor"]

CONFIG_VERSION = 1

# ---------------------------------------------------------------------------
# Configuration keys
# ---------------------------------------------------------------------------
CONF_NAME = "name"
CONF_PREFIX = "prefix"
CONF_SOURCES = "sources"
CONF_LATITUDE = "latitude"
CONF_LONGITUDE = "longitude"
CONF_ELEVATION_FT = "elevation_ft"
CONF_TZ_OFFSET_H = "tz_offset_h"
CONF_DAYLIGHT_SAVING = "daylight_saving"  # auto | on | off
CONF_STALENESS_S = "staleness_s"

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_NAME = "Davis Weather"
DEFAULT_PREFIX = "davis"
DEFAULT_STALENESS_S = 900
DEFAULT_DAYLIGHT_SAVING = "auto"
DAYLIGHT_SAVING_MODES = ["auto", "on", "off"]

UPDATE_INTERVAL_S = 60

# Averaging windows for hourly and daily reference ET
ET_HOURLY_WINDOW_S = 3600
ET_DAILY_WINDOW_S = 86400

# ---------------------------------------------------------------------------
# Validation ranges
# ---------------------------------------------------------------------------
VALID_LATITUDE_MIN = -90.0
VALID_LATITUDE_MAX = 90.0
VALID_LONGITUDE_MIN = -180.0
VALID_LONGITUDE_MAX = 180.0
VALID_ELEVATION_MIN_FT = -1500.0
VALID_ELEVATION_MAX_FT = 30000.0
VALID_TZ_OFFSET_MIN_H = -12
VALID_TZ_OFFSET_MAX_H = 14

# Humidity is exclusive at 0: log10(0) has no dew point.
VALID_HUMIDITY_MIN = 0.0
VALID_HUMIDITY_MAX = 100.0
VALID_TEMP_MIN_F = -80.0
VALID_TEMP_MAX_F = 140.0
VALID_WIND_MAX_MPH = 250.0
VALID_SOLAR_MAX_WM2 = 1800.0
VALID_PRESSURE_MIN_INHG = 25.0
VALID_PRESSURE_MAX_INHG = 32.5

# ---------------------------------------------------------------------------
# Source roles
# ---------------------------------------------------------------------------
SRC_TEMP = "temperature"
SRC_HUM = "humidity"
SRC_WIND = "wind_speed"
SRC_SOLAR = "solar_radiation"
SRC_PRESS = "pressure"

REQUIRED_SOURCES = [SRC_TEMP, SRC_HUM, SRC_WIND]
OPTIONAL_SOURCES = [SRC_SOLAR, SRC_PRESS]

# ---------------------------------------------------------------------------
# Coordinator data keys
# ---------------------------------------------------------------------------
KEY_NORM_TEMP_F = "norm_temperature_f"
KEY_NORM_HUMIDITY = "norm_humidity"
KEY_NORM_WIND_MPH = "norm_wind_speed_mph"
KEY_NORM_SOLAR_WM2 = "norm_solar_radiation_wm2"
KEY_NORM_PRESSURE_INHG = "norm_pressure_inhg"

KEY_WIND_CHILL_F = "wind_chill_f"
KEY_HEAT_INDEX_F = "heat_index_f"
KEY_DEW_POINT_F = "dew_point_f"
KEY_WET_BULB_F = "wet_bulb_f"
KEY_THW_F = "thw_f"
KEY_THSW_F = "thsw_f"
KEY_ET_IN = "reference_et_in"
KEY_ET_SAMPLES = "reference_et_samples"
KEY_ET_DAILY_MM = "reference_et_daily_mm"
KEY_ET_DAILY_SAMPLES = "reference_et_daily_samples"

KEY_SOLAR_ELEVATION = "solar_elevation"
KEY_SOLAR_ZENITH = "solar_zenith"
KEY_SOLAR_DECLINATION = "solar_declination"
KEY_SOLAR_RIGHT_ASCENSION = "solar_right_ascension"
KEY_SOLAR_HOUR_ANGLE = "solar_hour_angle"
KEY_CLEAR_SKY_RAD = "clear_sky_radiation"
KEY_EQUATION_OF_TIME = "equation_of_time"
KEY_SOLAR_NOON = "solar_noon"
KEY_SOLAR_SUNRISE = "solar_sunrise"
KEY_SOLAR_SUNSET = "solar_sunset"
KEY_SOLAR_ERROR = "solar_error"

KEY_SUNRISE = "sunrise"
KEY_SUNSET = "sunset"
KEY_CIVIL_DAWN = "civil_dawn"
KEY_CIVIL_DUSK = "civil_dusk"
KEY_NAUTICAL_DAWN = "nautical_dawn"
KEY_NAUTICAL_DUSK = "nautical_dusk"
KEY_ASTRO_DAWN = "astro_dawn"
KEY_ASTRO_DUSK = "astro_dusk"
KEY_MOONRISE = "moonrise"
KEY_MOONSET = "moonset"
KEY_DAYLIGHT_HOURS = "daylight_hours"

KEY_MOON_DAY = "moon_day"
KEY_MOON_PHASE = "moon_phase"
KEY_MOON_PHASE_NAME = "moon_phase_name"
KEY_MOON_ICON = "moon_icon"

KEY_DATA_QUALITY = "data_quality"
KEY_SENSOR_QUALITY_FLAGS = "sensor_quality_flags"
KEY_STALE_SOURCES = "stale_sources"

# Rise/set keys paired with the RiseSetResult field they publish.
RISE_SET_KEYS = {
    KEY_SUNRISE: "sunrise",
    KEY_SUNSET: "sunset",
    KEY_CIVIL_DAWN: "civil_dawn",
    KEY_CIVIL_DUSK: "civil_dusk",
    KEY_NAUTICAL_DAWN: "nautical_dawn",
    KEY_NAUTICAL_DUSK: "nautical_dusk",
    KEY_ASTRO_DAWN: "astro_dawn",
    KEY_ASTRO_DUSK: "astro_dusk",
    KEY_MOONRISE: "moonrise",
    KEY_MOONSET: "moonset",
}
