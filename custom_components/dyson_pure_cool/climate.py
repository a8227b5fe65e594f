"""Climate platform for Dyson heaters."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.climate import (
    ClimateEntity,
    ClimateEntityFeature,
    HVACAction,
    HVACMode,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import ATTR_TEMPERATURE, UnitOfTemperature
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN, HEATING_TARGET_MAX, HEATING_TARGET_MIN
from .coordinator import DysonDataUpdateCoordinator
from .device import DysonControl
from .entity import DysonEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the climate entity on heating models."""
    coordinator: DysonDataUpdateCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    device = coordinator.device
    if device is not None and device.profile.has_heating:
        async_add_entities([DysonClimateEntity(coordinator)])


class DysonClimateEntity(DysonEntity, ClimateEntity):
    """Heater control: heat, fan only or off."""

    _attr_name = None
    _attr_translation_key = "heater"
    _attr_icon = "mdi:thermostat"
    _attr_temperature_unit = UnitOfTemperature.CELSIUS
    _attr_min_temp = HEATING_TARGET_MIN
    _attr_max_temp = HEATING_TARGET_MAX
    _attr_target_temperature_step = 1
    _attr_hvac_modes = [HVACMode.OFF, HVACMode.HEAT, HVACMode.FAN_ONLY]
    _attr_supported_features = (
        ClimateEntityFeature.TARGET_TEMPERATURE
        | ClimateEntityFeature.TURN_ON
        | ClimateEntityFeature.TURN_OFF
    )

    def __init__(self, coordinator: DysonDataUpdateCoordinator) -> None:
        """Initialize the climate entity."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{coordinator.serial_number}_climate"

    @property
    def current_temperature(self) -> float | None:
        """Return the ambient temperature."""
        return self._state_value("temperature")

    @property
    def target_temperature(self) -> float | None:
        """Return the heating target."""
        return self._state_value("heating_target")

    @property
    def hvac_mode(self) -> HVACMode | None:
        """Return the current operating mode."""
        active = self._state_value("active")
        if active is None:
            return None
        if not active:
            return HVACMode.OFF
        if self._state_value("heating_mode"):
            return HVACMode.HEAT
        return HVACMode.FAN_ONLY

    @property
    def hvac_action(self) -> HVACAction | None:
        """Return what the heater is doing right now."""
        hvac_mode = self.hvac_mode
        if hvac_mode is None:
            return None
        if hvac_mode == HVACMode.OFF:
            return HVACAction.OFF
        if hvac_mode == HVACMode.FAN_ONLY:
            return HVACAction.FAN
        current, target = self.current_temperature, self.target_temperature
        if current is not None and target is not None and current >= target:
            return HVACAction.IDLE
        return HVACAction.HEATING

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        """Set the operating mode."""
        if hvac_mode == HVACMode.OFF:
            await self._async_apply(DysonControl.ACTIVE, False)
            return
        if hvac_mode not in (HVACMode.HEAT, HVACMode.FAN_ONLY):
            _LOGGER.warning(
                "Unsupported HVAC mode for %s: %s", self.coordinator.serial_number, hvac_mode
            )
            return
        await self._async_apply(DysonControl.ACTIVE, True)
        await self._async_apply(DysonControl.HEATING_MODE, hvac_mode == HVACMode.HEAT)

    async def async_set_temperature(self, **kwargs: Any) -> None:
        """Set the heating target."""
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return
        await self._async_apply(DysonControl.HEATING_TARGET, float(temperature))

    async def async_turn_on(self) -> None:
        """Turn the heater on."""
        await self.async_set_hvac_mode(HVACMode.HEAT)

    async def async_turn_off(self) -> None:
        """Turn the purifier off."""
        await self.async_set_hvac_mode(HVACMode.OFF)
