"""Fan platform for the Dyson Pure Cool integration.

The fan entity is the primary control of every purifier:

    - power on and off
    - preset modes ``Auto`` and ``Manual``
    - ten speed levels exposed as percentages in steps of 10
    - oscillation on models that oscillate

Mode changes are held back briefly by the device session so that a power
change arriving right behind a mode change wins; see ``DysonDevice``.
"""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.fan import FanEntity, FanEntityFeature
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .codec import TARGET_MODE_AUTO
from .const import DOMAIN, FAN_SPEED_STEP, PRESET_MODE_AUTO, PRESET_MODE_MANUAL
from .coordinator import DysonDataUpdateCoordinator
from .device import DysonControl
from .entity import DysonEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the Dyson fan entity."""
    coordinator: DysonDataUpdateCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    async_add_entities([DysonFan(coordinator)])


class DysonFan(DysonEntity, FanEntity):
    """Fan entity of a Dyson purifier.

    Attributes:
        _attr_speed_count: Ten native speed levels.
        _attr_preset_modes: ``Auto`` and ``Manual``.
    """

    _attr_name = None
    _attr_translation_key = "purifier"
    _attr_speed_count = 100 // FAN_SPEED_STEP
    _attr_preset_modes = [PRESET_MODE_AUTO, PRESET_MODE_MANUAL]

    def __init__(self, coordinator: DysonDataUpdateCoordinator) -> None:
        """Initialize the fan entity with the device's capabilities."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{coordinator.serial_number}_fan"

        features = (
            FanEntityFeature.SET_SPEED
            | FanEntityFeature.PRESET_MODE
            | FanEntityFeature.TURN_ON
            | FanEntityFeature.TURN_OFF
        )
        if self.device is not None and self.device.profile.has_oscillation:
            features |= FanEntityFeature.OSCILLATE
        self._attr_supported_features = features

    @property
    def is_on(self) -> bool | None:
        """Return true if the purifier is on."""
        return self._state_value("active")

    @property
    def percentage(self) -> int | None:
        """Return the current speed percentage."""
        if self._state_value("active") is False:
            return 0
        return self._state_value("fan_speed")

    @property
    def preset_mode(self) -> str | None:
        """Return the current preset mode."""
        target_mode = self._state_value("target_mode")
        if target_mode is None:
            return None
        return PRESET_MODE_AUTO if target_mode == TARGET_MODE_AUTO else PRESET_MODE_MANUAL

    @property
    def oscillating(self) -> bool | None:
        """Return whether the fan oscillates."""
        return self._state_value("oscillating")

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return the purifying state and whether the speed is automatic."""
        return {
            "current_state": self._state_value("current_state"),
            "fan_speed_auto": self._state_value("fan_speed_auto"),
        }

    async def async_turn_on(
        self,
        percentage: int | None = None,
        preset_mode: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Turn on the purifier."""
        await self._async_apply(DysonControl.ACTIVE, True)
        if preset_mode is not None:
            await self.async_set_preset_mode(preset_mode)
        if percentage is not None:
            await self.async_set_percentage(percentage)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn off the purifier."""
        await self._async_apply(DysonControl.ACTIVE, False)

    async def async_set_percentage(self, percentage: int) -> None:
        """Set the fan speed; zero turns the purifier off."""
        await self._async_apply(DysonControl.FAN_SPEED, percentage)

    async def async_set_preset_mode(self, preset_mode: str) -> None:
        """Switch between automatic and manual mode."""
        if preset_mode not in self._attr_preset_modes:
            _LOGGER.warning("Unknown preset mode for %s: %s", self.coordinator.serial_number, preset_mode)
            return
        await self._async_apply(DysonControl.TARGET_MODE, preset_mode == PRESET_MODE_AUTO)

    async def async_oscillate(self, oscillating: bool) -> None:
        """Turn oscillation on or off."""
        await self._async_apply(DysonControl.SWING, oscillating)
