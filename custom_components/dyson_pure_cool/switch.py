"""Switch platform for the Dyson Pure Cool integration."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import ACCESSORY_SETTINGS, DOMAIN
from .coordinator import DysonDataUpdateCoordinator
from .device import DysonControl
from .entity import DysonEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Dyson switch platform."""
    coordinator: DysonDataUpdateCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    device = coordinator.device
    if device is None:
        return

    entities: list[SwitchEntity] = []
    if device.options.is_night_mode_enabled:
        entities.append(DysonNightModeSwitch(coordinator))
    if device.options.is_jet_focus_enabled and DysonControl.JET_FOCUS in device.controls:
        entities.append(DysonJetFocusSwitch(coordinator))
    if device.options.is_continuous_monitoring_enabled:
        entities.append(DysonContinuousMonitoringSwitch(coordinator))

    async_add_entities(entities)


class DysonSettingSwitch(DysonEntity, SwitchEntity):
    """Switch bound to one on/off device setting."""

    _accessory_kind = ACCESSORY_SETTINGS
    _control: DysonControl
    _state_key: str

    def __init__(self, coordinator: DysonDataUpdateCoordinator) -> None:
        """Initialize the switch."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{coordinator.serial_number}_{self._state_key}"
        self._attr_translation_key = self._state_key

    @property
    def is_on(self) -> bool | None:
        """Return if the setting is on."""
        return self._state_value(self._state_key)

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn the setting on."""
        await self._async_apply(self._control, True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn the setting off."""
        await self._async_apply(self._control, False)


class DysonNightModeSwitch(DysonSettingSwitch):
    """Night mode; turning it on also powers the purifier on."""

    _control = DysonControl.NIGHT_MODE
    _state_key = "night_mode"
    _attr_icon = "mdi:weather-night"


class DysonJetFocusSwitch(DysonSettingSwitch):
    """Focused or diffused airflow."""

    _control = DysonControl.JET_FOCUS
    _state_key = "jet_focus"
    _attr_icon = "mdi:target"


class DysonContinuousMonitoringSwitch(DysonSettingSwitch):
    """Keep the sensors running while the purifier is off."""

    _control = DysonControl.CONTINUOUS_MONITORING
    _state_key = "continuous_monitoring"
    _attr_icon = "mdi:monitor-eye"
