"""Constants for the Dyson Pure Cool integration."""

from typing import Final

from homeassistant.const import Platform

# Integration domain
DOMAIN: Final = "dyson_pure_cool"
MANUFACTURER: Final = "Dyson"

# Default values
DEFAULT_UPDATE_INTERVAL: Final = 60000  # Milliseconds between REQUEST-CURRENT-STATE polls
DEFAULT_DIRECTORY_RETRY_INTERVAL: Final = 300  # Seconds between cloud directory refreshes
DEFAULT_CONNECT_TIMEOUT: Final = 10  # Seconds to wait for the first CONNACK
DEFAULT_KEEPALIVE: Final = 60
DEFERRED_MODE_WRITE_DELAY: Final = 0.25  # Seconds a target mode write is held back

# Configuration keys (device entries)
CONF_SERIAL_NUMBER: Final = "serial_number"
CONF_PRODUCT_TYPE: Final = "product_type"
CONF_DEVICE_NAME: Final = "device_name"
CONF_FIRMWARE_VERSION: Final = "firmware_version"
CONF_IP_ADDRESS: Final = "ip_address"
CONF_CREDENTIALS: Final = "credentials"
CONF_PASSWORD_HASH: Final = "password_hash"
CONF_PARENT_ENTRY_ID: Final = "parent_entry_id"

# Configuration keys (cloud account entries)
CONF_EMAIL: Final = "email"
CONF_AUTH_TOKEN: Final = "auth_token"
CONF_COUNTRY: Final = "country"
CONF_CULTURE: Final = "culture"
CONF_DEVICES: Final = "devices"

# Option keys
CONF_TEMPERATURE_SENSOR: Final = "is_temperature_sensor_enabled"
CONF_HUMIDITY_SENSOR: Final = "is_humidity_sensor_enabled"
CONF_AIR_QUALITY_SENSOR: Final = "is_air_quality_sensor_enabled"
CONF_NIGHT_MODE: Final = "is_night_mode_enabled"
CONF_JET_FOCUS: Final = "is_jet_focus_enabled"
CONF_CONTINUOUS_MONITORING: Final = "is_continuous_monitoring_enabled"
CONF_SINGLE_ACCESSORY_MODE: Final = "is_single_accessory_mode_enabled"
CONF_AUTO_MODE_WHEN_ACTIVATING: Final = "enable_auto_mode_when_activating"
CONF_OSCILLATION_WHEN_ACTIVATING: Final = "enable_oscillation_when_activating"
CONF_NIGHT_MODE_WHEN_ACTIVATING: Final = "enable_night_mode_when_activating"
CONF_HEATING_SAFETY_IGNORED: Final = "is_heating_safety_ignored"
CONF_FULL_RANGE_HUMIDITY: Final = "is_full_range_humidity"
CONF_TEMPERATURE_OFFSET: Final = "temperature_offset"
CONF_HUMIDITY_OFFSET: Final = "humidity_offset"
CONF_USE_FAHRENHEIT: Final = "use_fahrenheit"
CONF_UPDATE_INTERVAL: Final = "update_interval"

# Defaults for every option key
DEFAULT_OPTIONS: Final = {
    CONF_TEMPERATURE_SENSOR: True,
    CONF_HUMIDITY_SENSOR: True,
    CONF_AIR_QUALITY_SENSOR: True,
    CONF_NIGHT_MODE: True,
    CONF_JET_FOCUS: True,
    CONF_CONTINUOUS_MONITORING: False,
    CONF_SINGLE_ACCESSORY_MODE: False,
    CONF_AUTO_MODE_WHEN_ACTIVATING: False,
    CONF_OSCILLATION_WHEN_ACTIVATING: False,
    CONF_NIGHT_MODE_WHEN_ACTIVATING: False,
    CONF_HEATING_SAFETY_IGNORED: False,
    CONF_FULL_RANGE_HUMIDITY: False,
    CONF_TEMPERATURE_OFFSET: 0.0,
    CONF_HUMIDITY_OFFSET: 0,
    CONF_USE_FAHRENHEIT: False,
    CONF_UPDATE_INTERVAL: DEFAULT_UPDATE_INTERVAL,
}

# MQTT topics
MQTT_TOPIC_COMMAND: Final = "command"
MQTT_TOPIC_STATUS_CURRENT: Final = "status/current"
MQTT_PORT: Final = 1883

# MQTT commands
MQTT_CMD_REQUEST_CURRENT_STATE: Final = "REQUEST-CURRENT-STATE"
MQTT_CMD_STATE_SET: Final = "STATE-SET"

# MQTT message types
MQTT_MSG_CURRENT_STATE: Final = "CURRENT-STATE"
MQTT_MSG_STATE_CHANGE: Final = "STATE-CHANGE"
MQTT_MSG_ENVIRONMENTAL_DATA: Final = "ENVIRONMENTAL-CURRENT-SENSOR-DATA"

# Device state keys
STATE_KEY_POWER: Final = "fpwr"  # Fan power (ON/OFF)
STATE_KEY_FAN_MODE: Final = "fmod"  # Fan mode on older units (OFF/FAN/AUTO)
STATE_KEY_FAN_STATE: Final = "fnst"  # Fan state (OFF/FAN)
STATE_KEY_FAN_SPEED: Final = "fnsp"  # Fan speed (0001-0010/AUTO)
STATE_KEY_AUTO_MODE: Final = "auto"  # Auto mode (ON/OFF)
STATE_KEY_OSCILLATION_ON: Final = "oson"  # Oscillation (ON/OFF)
STATE_KEY_NIGHT_MODE: Final = "nmod"  # Night mode (ON/OFF)
STATE_KEY_FAN_DIRECTION: Final = "fdir"  # Jet focus (ON/OFF)
STATE_KEY_CONTINUOUS_MONITORING: Final = "rhtm"  # Continuous monitoring (ON/OFF)
STATE_KEY_HEPA_FILTER_LIFE: Final = "hflr"  # HEPA filter life percent
STATE_KEY_CARBON_FILTER_LIFE: Final = "cflr"  # Carbon filter life percent
STATE_KEY_FILTER_HOURS: Final = "filf"  # Filter hours remaining on Link models

# Heating state keys
STATE_KEY_HEATING_MODE: Final = "hmod"  # Heating mode (HEAT/OFF)
STATE_KEY_HEATING_TARGET: Final = "hmax"  # Target temperature (kelvin tenths)

# Humidifier state keys
STATE_KEY_HUMIDITY_ENABLED: Final = "hume"  # Humidity mode (HUMD/OFF)
STATE_KEY_HUMIDITY_AUTO: Final = "haut"  # Humidity auto mode (ON/OFF)
STATE_KEY_HUMIDITY_TARGET: Final = "humt"  # Target humidity (0030-0070)

# Environmental data keys
STATE_KEY_TEMPERATURE: Final = "tact"  # Temperature (kelvin tenths)
STATE_KEY_HUMIDITY: Final = "hact"  # Relative humidity percent
STATE_KEY_PM25: Final = "pm25"
STATE_KEY_PM10: Final = "pm10"
STATE_KEY_P25R: Final = "p25r"
STATE_KEY_P10R: Final = "p10r"
STATE_KEY_VOC: Final = "va10"
STATE_KEY_NO2: Final = "noxl"
STATE_KEY_FORMALDEHYDE: Final = "hchr"
STATE_KEY_PARTICULATES: Final = "pact"  # Link models only
STATE_KEY_VOLATILE: Final = "vact"  # Link models only

# Protocol values
MQTT_ON: Final = "ON"
MQTT_OFF: Final = "OFF"
FAN_MODE_AUTO: Final = "AUTO"
FAN_MODE_FAN: Final = "FAN"
FAN_SPEED_AUTO: Final = "AUTO"
HEATING_MODE_HEAT: Final = "HEAT"
HUMIDITY_MODE_ON: Final = "HUMD"

# Sentinel values that are never numbers
SENSOR_VALUE_OFF: Final = "OFF"
SENSOR_VALUE_INIT: Final = "INIT"
FILTER_VALUE_INVALID: Final = "INV"
FILTER_VALUE_INHIBITED: Final = "INH"
SENTINEL_VALUES: Final = frozenset(
    {SENSOR_VALUE_OFF, SENSOR_VALUE_INIT, FILTER_VALUE_INVALID, FILTER_VALUE_INHIBITED}
)

# Control ranges
FAN_SPEED_STEP: Final = 10
FILTER_CHANGE_THRESHOLD: Final = 10  # Percent below which the filter needs changing
FILTER_HOURS_PER_LIFETIME: Final = 360 * 12  # 360 days of 12 hours
HEATING_TARGET_MIN: Final = 1
HEATING_TARGET_MAX: Final = 37
HUMIDITY_TARGET_MIN: Final = 30
HUMIDITY_TARGET_MAX: Final = 70
HUMIDITY_TARGET_FULL_MIN: Final = 0
HUMIDITY_TARGET_FULL_MAX: Final = 100
TEMPERATURE_SENSOR_MIN: Final = -50
TEMPERATURE_SENSOR_MAX: Final = 100

# Preset modes exposed by the fan entity
PRESET_MODE_AUTO: Final = "Auto"
PRESET_MODE_MANUAL: Final = "Manual"

# Entity groupings used when single accessory mode is disabled
ACCESSORY_PURIFIER: Final = "purifier"
ACCESSORY_TEMPERATURE: Final = "temperature"
ACCESSORY_HUMIDITY: Final = "humidity"
ACCESSORY_AIR_QUALITY: Final = "air_quality"
ACCESSORY_SETTINGS: Final = "settings"

# Home Assistant platforms supported by this integration
PLATFORMS: Final = [
    Platform.FAN,
    Platform.SENSOR,
    Platform.BINARY_SENSOR,
    Platform.SWITCH,
    Platform.CLIMATE,
    Platform.HUMIDIFIER,
]

# Key under hass.data[DOMAIN] that holds the device registry
DATA_REGISTRY: Final = "registry"
