"""Sensor platform for the Dyson Pure Cool integration."""

from __future__ import annotations

import logging

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import (
    CONCENTRATION_MICROGRAMS_PER_CUBIC_METER,
    CONCENTRATION_MILLIGRAMS_PER_CUBIC_METER,
    PERCENTAGE,
    UnitOfTemperature,
)
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    ACCESSORY_AIR_QUALITY,
    ACCESSORY_HUMIDITY,
    ACCESSORY_TEMPERATURE,
    DOMAIN,
    TEMPERATURE_SENSOR_MAX,
    TEMPERATURE_SENSOR_MIN,
)
from .coordinator import DysonDataUpdateCoordinator
from .entity import DysonEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Dyson sensors enabled in the device options."""
    coordinator: DysonDataUpdateCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    device = coordinator.device
    if device is None:
        return
    options = device.options

    entities: list[SensorEntity] = [DysonFilterLifeSensor(coordinator)]

    if options.is_temperature_sensor_enabled:
        entities.append(DysonTemperatureSensor(coordinator))
    if options.is_humidity_sensor_enabled:
        entities.append(DysonHumiditySensor(coordinator))
    if options.is_air_quality_sensor_enabled:
        entities.append(DysonAirQualitySensor(coordinator))
        if device.profile.has_advanced_air_quality_sensors:
            entities.extend(
                [
                    DysonPM25Sensor(coordinator),
                    DysonPM10Sensor(coordinator),
                    DysonVOCSensor(coordinator),
                    DysonNO2Sensor(coordinator),
                    DysonHCHOSensor(coordinator),
                ]
            )

    _LOGGER.debug(
        "Adding %d sensor(s) for %s", len(entities), coordinator.serial_number
    )
    async_add_entities(entities)


class DysonStateSensor(DysonEntity, SensorEntity):
    """Sensor that mirrors one normalized state value.

    The last known value is kept while the device suppresses a reading,
    for example while its air quality sensors warm up.
    """

    _state_key: str
    _attr_state_class = SensorStateClass.MEASUREMENT

    def __init__(self, coordinator: DysonDataUpdateCoordinator) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{coordinator.serial_number}_{self._state_key}"
        self._attr_translation_key = self._state_key
        self._attr_native_value = None
        self._update_native_value()

    def _convert(self, value: float) -> float:
        return value

    def _update_native_value(self) -> None:
        value = self._state_value(self._state_key)
        if value is not None:
            self._attr_native_value = self._convert(value)

    @callback
    def _handle_coordinator_update(self) -> None:
        """Handle updated data from the coordinator."""
        self._update_native_value()
        super()._handle_coordinator_update()


class DysonTemperatureSensor(DysonStateSensor):
    """Ambient temperature sensor."""

    _state_key = "temperature"
    _accessory_kind = ACCESSORY_TEMPERATURE
    _attr_device_class = SensorDeviceClass.TEMPERATURE
    _attr_native_unit_of_measurement = UnitOfTemperature.CELSIUS

    def __init__(self, coordinator: DysonDataUpdateCoordinator) -> None:
        """Initialize the temperature sensor."""
        super().__init__(coordinator)
        if self.device is not None and self.device.options.use_fahrenheit:
            self._attr_suggested_unit_of_measurement = UnitOfTemperature.FAHRENHEIT

    def _convert(self, value: float) -> float:
        return max(TEMPERATURE_SENSOR_MIN, min(TEMPERATURE_SENSOR_MAX, value))


class DysonHumiditySensor(DysonStateSensor):
    """Relative humidity sensor."""

    _state_key = "humidity"
    _accessory_kind = ACCESSORY_HUMIDITY
    _attr_device_class = SensorDeviceClass.HUMIDITY
    _attr_native_unit_of_measurement = PERCENTAGE


class DysonAirQualitySensor(DysonStateSensor):
    """Overall air quality on Dyson's 1 (excellent) to 5 (poor) scale."""

    _state_key = "air_quality"
    _accessory_kind = ACCESSORY_AIR_QUALITY
    _attr_icon = "mdi:air-filter"


class DysonPM25Sensor(DysonStateSensor):
    """PM2.5 concentration."""

    _state_key = "pm25"
    _accessory_kind = ACCESSORY_AIR_QUALITY
    _attr_device_class = SensorDeviceClass.PM25
    _attr_native_unit_of_measurement = CONCENTRATION_MICROGRAMS_PER_CUBIC_METER


class DysonPM10Sensor(DysonStateSensor):
    """PM10 concentration."""

    _state_key = "pm10"
    _accessory_kind = ACCESSORY_AIR_QUALITY
    _attr_device_class = SensorDeviceClass.PM10
    _attr_native_unit_of_measurement = CONCENTRATION_MICROGRAMS_PER_CUBIC_METER


class DysonVOCSensor(DysonStateSensor):
    """Volatile organic compound index."""

    _state_key = "voc"
    _accessory_kind = ACCESSORY_AIR_QUALITY
    _attr_icon = "mdi:molecule"


class DysonNO2Sensor(DysonStateSensor):
    """Nitrogen dioxide index."""

    _state_key = "no2"
    _accessory_kind = ACCESSORY_AIR_QUALITY
    _attr_icon = "mdi:molecule"


class DysonHCHOSensor(DysonStateSensor):
    """Formaldehyde concentration."""

    _state_key = "hcho"
    _accessory_kind = ACCESSORY_AIR_QUALITY
    _attr_native_unit_of_measurement = CONCENTRATION_MILLIGRAMS_PER_CUBIC_METER
    _attr_icon = "mdi:chemical-weapon"


class DysonFilterLifeSensor(DysonStateSensor):
    """Remaining filter life, the lowest of all installed filters."""

    _state_key = "filter_life"
    _attr_native_unit_of_measurement = PERCENTAGE
    _attr_icon = "mdi:air-filter"
