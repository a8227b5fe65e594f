"""Translation between the Dyson local MQTT protocol and normalized values.

Inbound payloads come in three kinds:

    ENVIRONMENTAL-CURRENT-SENSOR-DATA  {"data": {"tact": "2955", ...}}
    CURRENT-STATE                      {"product-state": {"fpwr": "ON", ...}}
    STATE-CHANGE                       {"product-state": {"fpwr": ["OFF", "ON"], ...}}

Every function in this module is pure. Decoders return dictionaries keyed by
normalized names (``temperature``, ``air_quality``, ``active``...) and leave a
key out entirely when its value could not be derived. Sentinel strings such
as ``OFF`` or ``INIT`` never become numbers.
"""

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Mapping
from typing import Any, Final

from .capabilities import CapabilityProfile
from .const import (
    FAN_MODE_AUTO,
    FAN_MODE_FAN,
    FAN_SPEED_AUTO,
    FAN_SPEED_STEP,
    FILTER_CHANGE_THRESHOLD,
    FILTER_HOURS_PER_LIFETIME,
    FILTER_VALUE_INHIBITED,
    FILTER_VALUE_INVALID,
    HEATING_MODE_HEAT,
    HUMIDITY_MODE_ON,
    MQTT_MSG_CURRENT_STATE,
    MQTT_MSG_ENVIRONMENTAL_DATA,
    MQTT_MSG_STATE_CHANGE,
    MQTT_OFF,
    MQTT_ON,
    SENSOR_VALUE_INIT,
    SENSOR_VALUE_OFF,
    SENTINEL_VALUES,
    STATE_KEY_AUTO_MODE,
    STATE_KEY_CARBON_FILTER_LIFE,
    STATE_KEY_CONTINUOUS_MONITORING,
    STATE_KEY_FAN_DIRECTION,
    STATE_KEY_FAN_MODE,
    STATE_KEY_FAN_SPEED,
    STATE_KEY_FAN_STATE,
    STATE_KEY_FILTER_HOURS,
    STATE_KEY_FORMALDEHYDE,
    STATE_KEY_HEATING_MODE,
    STATE_KEY_HEATING_TARGET,
    STATE_KEY_HEPA_FILTER_LIFE,
    STATE_KEY_HUMIDITY,
    STATE_KEY_HUMIDITY_AUTO,
    STATE_KEY_HUMIDITY_ENABLED,
    STATE_KEY_HUMIDITY_TARGET,
    STATE_KEY_NIGHT_MODE,
    STATE_KEY_NO2,
    STATE_KEY_OSCILLATION_ON,
    STATE_KEY_P10R,
    STATE_KEY_P25R,
    STATE_KEY_PARTICULATES,
    STATE_KEY_PM10,
    STATE_KEY_PM25,
    STATE_KEY_POWER,
    STATE_KEY_TEMPERATURE,
    STATE_KEY_VOC,
    STATE_KEY_VOLATILE,
)

_LOGGER = logging.getLogger(__name__)

KELVIN_OFFSET: Final = 273.0
VOC_SCALE: Final = 0.125

# Inclusive upper bounds of each quality level
PM25_THRESHOLDS: Final = (35, 53, 70, 150)
PM10_THRESHOLDS: Final = (50, 75, 100, 350)
VOC_THRESHOLDS: Final = (3, 6, 8)
NO2_THRESHOLDS: Final = (30, 60, 80, 90)
HCHO_THRESHOLDS: Final = (99, 299, 499)
BASIC_PARTICULATE_THRESHOLDS: Final = (2, 4, 7, 9)
BASIC_VOC_THRESHOLDS: Final = (3, 6, 8)

# Normalized state values
CURRENT_STATE_INACTIVE: Final = "inactive"
CURRENT_STATE_IDLE: Final = "idle"
CURRENT_STATE_PURIFYING: Final = "purifying"
TARGET_MODE_AUTO: Final = "auto"
TARGET_MODE_MANUAL: Final = "manual"

_AIR_QUALITY_INACTIVE = frozenset({SENSOR_VALUE_OFF, SENSOR_VALUE_INIT})
_FILTER_FULL = frozenset({FILTER_VALUE_INVALID, FILTER_VALUE_INHIBITED})


def parse_numeric(value: Any) -> int | None:
    """Parse a numeric protocol field, returning None for sentinels and junk."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return None if math.isnan(value) else int(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or text.upper() in SENTINEL_VALUES:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""
    return int(math.floor(value + 0.5))


def on_off(enabled: bool) -> str:
    """Return the protocol ON/OFF literal for a flag."""
    return MQTT_ON if enabled else MQTT_OFF


def _scale(value: float, thresholds: tuple[int, ...]) -> int:
    for level, limit in enumerate(thresholds, start=1):
        if value <= limit:
            return level
    return len(thresholds) + 1


def pm25_quality(value: int) -> int:
    """Map a PM2.5 reading to the 1-5 quality scale."""
    return _scale(value, PM25_THRESHOLDS)


def pm10_quality(value: int) -> int:
    """Map a PM10 reading to the 1-5 quality scale."""
    return _scale(value, PM10_THRESHOLDS)


def voc_quality(value: int) -> int:
    """Map a raw VOC reading to the 1-4 quality scale."""
    return _scale(value * VOC_SCALE, VOC_THRESHOLDS)


def no2_quality(value: int | None) -> int:
    """Map an NO2 reading to the 1-5 quality scale, 0 without a sensor."""
    if value is None:
        return 0
    return _scale(value, NO2_THRESHOLDS)


def hcho_quality(value: int) -> int:
    """Map a raw formaldehyde reading to the 1-4 quality scale."""
    return _scale(value, HCHO_THRESHOLDS)


def basic_particulate_quality(value: int) -> int:
    """Map a Link model ``pact`` reading to the 1-5 quality scale."""
    return _scale(value, BASIC_PARTICULATE_THRESHOLDS)


def basic_voc_quality(value: int) -> int:
    """Map a Link model ``vact`` reading to the 1-4 quality scale."""
    return _scale(value * VOC_SCALE, BASIC_VOC_THRESHOLDS)


def _is_inactive(value: Any) -> bool:
    return isinstance(value, str) and value.strip().upper() in _AIR_QUALITY_INACTIVE


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def decode_air_quality(
    data: Mapping[str, Any], profile: CapabilityProfile
) -> dict[str, Any]:
    """Decode the air quality part of an environmental frame.

    The device reports ``OFF`` or ``INIT`` while its sensors are warming up or
    when continuous monitoring is disabled. A single such field invalidates
    the whole sensor window, so the frame then yields no air quality values.
    """
    if profile.has_advanced_air_quality_sensors:
        raw = {
            "pm25": _first_present(data, STATE_KEY_P25R, STATE_KEY_PM25),
            "pm10": _first_present(data, STATE_KEY_P10R, STATE_KEY_PM10),
            "voc": data.get(STATE_KEY_VOC),
            "no2": data.get(STATE_KEY_NO2),
            "hcho": data.get(STATE_KEY_FORMALDEHYDE),
        }
    else:
        raw = {
            "particulates": data.get(STATE_KEY_PARTICULATES),
            "volatile": data.get(STATE_KEY_VOLATILE),
        }

    if any(_is_inactive(value) for value in raw.values()):
        return {}

    values = {key: parse_numeric(value) for key, value in raw.items()}
    result: dict[str, Any] = {}
    scores: list[int] = []

    if profile.has_advanced_air_quality_sensors:
        if values["pm25"] is not None:
            result["pm25"] = values["pm25"]
            scores.append(pm25_quality(values["pm25"]))
        if values["pm10"] is not None:
            result["pm10"] = values["pm10"]
            scores.append(pm10_quality(values["pm10"]))
        if values["voc"] is not None:
            result["voc"] = values["voc"]
            scores.append(voc_quality(values["voc"]))
        if values["no2"] is not None:
            result["no2"] = values["no2"]
        scores.append(no2_quality(values["no2"]))
        if values["hcho"] is not None:
            result["hcho"] = values["hcho"] / 1000
            scores.append(hcho_quality(values["hcho"]))
    else:
        if values["particulates"] is not None:
            scores.append(basic_particulate_quality(values["particulates"]))
        if values["volatile"] is not None:
            scores.append(basic_voc_quality(values["volatile"]))

    if any(scores):
        result["air_quality"] = max(scores)
    return result


def decode_environmental(
    data: Mapping[str, Any],
    profile: CapabilityProfile,
    temperature_offset: float = 0.0,
    humidity_offset: int = 0,
) -> dict[str, Any]:
    """Decode the ``data`` object of an ENVIRONMENTAL-CURRENT-SENSOR-DATA frame."""
    result: dict[str, Any] = {}

    temperature = parse_numeric(data.get(STATE_KEY_TEMPERATURE))
    if temperature is not None:
        result["temperature"] = round(
            temperature / 10 - KELVIN_OFFSET + temperature_offset, 1
        )

    humidity = parse_numeric(data.get(STATE_KEY_HUMIDITY))
    if humidity is not None:
        result["humidity"] = max(0, min(100, humidity + humidity_offset))

    result.update(decode_air_quality(data, profile))
    return result


def extract_state(product_state: Mapping[str, Any], is_change: bool) -> dict[str, Any]:
    """Reduce a product-state object to one current value per field.

    CURRENT-STATE carries scalars; STATE-CHANGE carries ``[previous, new]``
    pairs of which only the new value counts.
    """
    values: dict[str, Any] = {}
    for key, value in product_state.items():
        if is_change:
            if isinstance(value, (list, tuple)) and len(value) >= 2:
                values[key] = value[1]
            else:
                _LOGGER.debug("Dropping malformed state change field %s: %s", key, value)
        elif not isinstance(value, (list, tuple, dict)):
            values[key] = value
    return values


def _filter_percent(value: Any) -> int | None:
    if isinstance(value, str) and value.strip().upper() in _FILTER_FULL:
        return 100
    return parse_numeric(value)


def decode_filter_life(state: Mapping[str, Any]) -> tuple[int, bool] | None:
    """Return ``(percent, change_needed)`` from either filter encoding.

    Newer units report carbon and HEPA life percentages (``cflr``/``hflr``),
    the lowest of which counts. Link models report remaining hours in
    ``filf`` against a lifetime of 360 days at 12 hours a day.
    """
    readings = [
        percent
        for key in (STATE_KEY_CARBON_FILTER_LIFE, STATE_KEY_HEPA_FILTER_LIFE)
        if key in state and (percent := _filter_percent(state[key])) is not None
    ]
    if readings:
        percent = min(readings)
    else:
        hours = parse_numeric(state.get(STATE_KEY_FILTER_HOURS))
        if hours is None:
            return None
        percent = min(100, math.ceil(hours / FILTER_HOURS_PER_LIFETIME * 100))

    return percent, percent < FILTER_CHANGE_THRESHOLD


def celsius_to_kelvin_tenths(celsius: float, offset: float = 0.0) -> str:
    """Encode a Celsius target as the zero padded kelvin tenths string."""
    return f"{round_half_up((celsius + KELVIN_OFFSET - offset) * 10):04d}"


def kelvin_tenths_to_celsius(value: Any, offset: float = 0.0) -> float | None:
    """Decode a kelvin tenths field to Celsius."""
    kelvin_tenths = parse_numeric(value)
    if kelvin_tenths is None:
        return None
    return round(kelvin_tenths / 10 - KELVIN_OFFSET + offset, 1)


def encode_fan_speed(percent: float) -> str:
    """Encode a 0-100 percentage as the zero padded ``fnsp`` value."""
    percent = max(0, min(100, percent))
    return f"{round_half_up(percent / FAN_SPEED_STEP):04d}"


def decode_fan_speed(value: Any) -> int | None:
    """Decode ``fnsp`` to a percentage; AUTO and sentinels yield None."""
    speed = parse_numeric(value)
    if speed is None:
        return None
    return speed * FAN_SPEED_STEP


def encode_humidity_target(percent: float) -> str:
    """Encode a humidity target as the zero padded ``humt`` value."""
    return f"{round_half_up(percent):04d}"


def _flag(state: Mapping[str, Any], key: str) -> bool | None:
    if key not in state:
        return None
    return state[key] != MQTT_OFF


def derive_state(
    state: Mapping[str, Any], temperature_offset: float = 0.0
) -> dict[str, Any]:
    """Derive normalized actuator values from extracted product-state fields."""
    result: dict[str, Any] = {}

    power = state.get(STATE_KEY_POWER)
    mode = state.get(STATE_KEY_FAN_MODE)
    if power is not None or mode is not None:
        active = power != MQTT_OFF and mode != MQTT_OFF
        result["active"] = active
        if not active:
            result["current_state"] = CURRENT_STATE_INACTIVE
        elif STATE_KEY_FAN_STATE in state:
            result["current_state"] = (
                CURRENT_STATE_IDLE
                if state[STATE_KEY_FAN_STATE] == MQTT_OFF
                else CURRENT_STATE_PURIFYING
            )

    if STATE_KEY_AUTO_MODE in state:
        result["target_mode"] = (
            TARGET_MODE_MANUAL if state[STATE_KEY_AUTO_MODE] == MQTT_OFF else TARGET_MODE_AUTO
        )
    elif mode is not None:
        result["target_mode"] = (
            TARGET_MODE_AUTO if mode == FAN_MODE_AUTO else TARGET_MODE_MANUAL
        )

    fan_speed = state.get(STATE_KEY_FAN_SPEED)
    if fan_speed == FAN_SPEED_AUTO:
        result["fan_speed_auto"] = True
    elif (percent := decode_fan_speed(fan_speed)) is not None:
        result["fan_speed"] = percent
        result["fan_speed_auto"] = False

    for key, name in (
        (STATE_KEY_OSCILLATION_ON, "oscillating"),
        (STATE_KEY_NIGHT_MODE, "night_mode"),
        (STATE_KEY_FAN_DIRECTION, "jet_focus"),
        (STATE_KEY_CONTINUOUS_MONITORING, "continuous_monitoring"),
    ):
        flag = _flag(state, key)
        if flag is not None:
            result[name] = flag

    filter_life = decode_filter_life(state)
    if filter_life is not None:
        result["filter_life"], result["filter_change_needed"] = filter_life

    if STATE_KEY_HEATING_MODE in state:
        result["heating_mode"] = state[STATE_KEY_HEATING_MODE] == HEATING_MODE_HEAT
    heating_target = kelvin_tenths_to_celsius(
        state.get(STATE_KEY_HEATING_TARGET), temperature_offset
    )
    if heating_target is not None:
        result["heating_target"] = heating_target

    if STATE_KEY_HUMIDITY_ENABLED in state:
        result["humidifier_active"] = state[STATE_KEY_HUMIDITY_ENABLED] == HUMIDITY_MODE_ON
    if STATE_KEY_HUMIDITY_AUTO in state:
        result["humidifier_auto"] = state[STATE_KEY_HUMIDITY_AUTO] == MQTT_ON
    humidity_target = parse_numeric(state.get(STATE_KEY_HUMIDITY_TARGET))
    if humidity_target is not None:
        result["humidity_target"] = humidity_target

    return result


def decode_product_state(
    product_state: Mapping[str, Any],
    is_change: bool = False,
    temperature_offset: float = 0.0,
) -> dict[str, Any]:
    """Decode a CURRENT-STATE or STATE-CHANGE ``product-state`` object."""
    return derive_state(extract_state(product_state, is_change), temperature_offset)


def decode_message(
    message: Mapping[str, Any],
    profile: CapabilityProfile,
    temperature_offset: float = 0.0,
    humidity_offset: int = 0,
) -> dict[str, Any]:
    """Decode any inbound frame; unknown message kinds decode to nothing."""
    kind = message.get("msg")
    if kind == MQTT_MSG_ENVIRONMENTAL_DATA:
        data = message.get("data")
        if not isinstance(data, Mapping):
            return {}
        return decode_environmental(data, profile, temperature_offset, humidity_offset)

    if kind in (MQTT_MSG_CURRENT_STATE, MQTT_MSG_STATE_CHANGE):
        product_state = message.get("product-state")
        if not isinstance(product_state, Mapping):
            return {}
        return decode_product_state(
            product_state,
            is_change=kind == MQTT_MSG_STATE_CHANGE,
            temperature_offset=temperature_offset,
        )

    _LOGGER.debug("Ignoring message of kind %s", kind)
    return {}


def raw_product_state(message: Mapping[str, Any]) -> dict[str, Any]:
    """Return the extracted protocol fields of a state frame, or nothing."""
    kind = message.get("msg")
    product_state = message.get("product-state")
    if kind not in (MQTT_MSG_CURRENT_STATE, MQTT_MSG_STATE_CHANGE) or not isinstance(
        product_state, Mapping
    ):
        return {}
    return extract_state(product_state, kind == MQTT_MSG_STATE_CHANGE)


def parse_message(payload: bytes | str) -> dict[str, Any] | None:
    """Parse a JSON payload; anything but a JSON object yields None."""
    try:
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        message = json.loads(payload)
    except (UnicodeDecodeError, ValueError) as err:
        _LOGGER.debug("Discarding undecodable payload: %s", err)
        return None
    if not isinstance(message, dict):
        return None
    return message


def get_timestamp() -> str:
    """Get timestamp in the format expected by Dyson devices."""
    return time.strftime("%Y-%m-%dT%H:%M:%S.000Z", time.gmtime())


def build_command(
    msg: str, data: Mapping[str, Any] | None = None, timestamp: str | None = None
) -> dict[str, Any]:
    """Build a command envelope."""
    command: dict[str, Any] = {"msg": msg, "time": timestamp or get_timestamp()}
    if data is not None:
        command["data"] = dict(data)
    return command


def fan_mode_for(auto: bool) -> str:
    """Return the ``fmod`` literal for an auto or manual fan."""
    return FAN_MODE_AUTO if auto else FAN_MODE_FAN
