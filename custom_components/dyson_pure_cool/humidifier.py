"""Humidifier platform for the Dyson Pure Cool integration."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.humidifier import (
    HumidifierDeviceClass,
    HumidifierEntity,
    HumidifierEntityFeature,
)
from homeassistant.components.humidifier.const import MODE_AUTO, MODE_NORMAL
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import ACCESSORY_HUMIDITY, DOMAIN
from .coordinator import DysonDataUpdateCoordinator
from .device import DysonControl
from .entity import DysonEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the humidifier entity on humidifying models."""
    coordinator: DysonDataUpdateCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    device = coordinator.device
    if device is not None and device.profile.has_humidifier:
        async_add_entities([DysonHumidifierEntity(coordinator)])


class DysonHumidifierEntity(DysonEntity, HumidifierEntity):
    """Humidifier of a Dyson Pure Humidify+Cool."""

    _accessory_kind = ACCESSORY_HUMIDITY
    _attr_translation_key = "humidifier"
    _attr_icon = "mdi:air-humidifier"
    _attr_device_class = HumidifierDeviceClass.HUMIDIFIER
    _attr_supported_features = HumidifierEntityFeature.MODES
    _attr_available_modes = [MODE_NORMAL, MODE_AUTO]

    def __init__(self, coordinator: DysonDataUpdateCoordinator) -> None:
        """Initialize the humidifier entity."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{coordinator.serial_number}_humidifier"
        if self.device is not None:
            self._attr_min_humidity, self._attr_max_humidity = (
                self.device.humidity_target_range
            )

    @property
    def is_on(self) -> bool | None:
        """Return if humidification is on."""
        return self._state_value("humidifier_active")

    @property
    def mode(self) -> str | None:
        """Return the humidifier mode."""
        humidifier_auto = self._state_value("humidifier_auto")
        if humidifier_auto is None:
            return None
        return MODE_AUTO if humidifier_auto else MODE_NORMAL

    @property
    def current_humidity(self) -> float | None:
        """Return the measured humidity."""
        return self._state_value("humidity")

    @property
    def target_humidity(self) -> float | None:
        """Return the humidity target."""
        return self._state_value("humidity_target")

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn humidification on."""
        await self._async_apply(DysonControl.HUMIDIFIER_ACTIVE, True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn humidification off."""
        await self._async_apply(DysonControl.HUMIDIFIER_ACTIVE, False)

    async def async_set_humidity(self, humidity: int) -> None:
        """Set the humidity target."""
        await self._async_apply(DysonControl.HUMIDITY_TARGET, humidity)

    async def async_set_mode(self, mode: str) -> None:
        """Switch between normal and automatic humidification."""
        if mode not in self._attr_available_modes:
            _LOGGER.warning(
                "Unsupported humidifier mode for %s: %s", self.coordinator.serial_number, mode
            )
            return
        await self._async_apply(DysonControl.HUMIDIFIER_AUTO, mode == MODE_AUTO)
