"""Binary sensor platform for the Dyson Pure Cool integration."""

from __future__ import annotations

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import DysonDataUpdateCoordinator
from .entity import DysonEntity


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Dyson binary sensor platform."""
    coordinator: DysonDataUpdateCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    async_add_entities([DysonFilterChangeSensor(coordinator)])


class DysonFilterChangeSensor(DysonEntity, BinarySensorEntity):
    """On when the lowest filter life dropped below 10 percent."""

    _attr_device_class = BinarySensorDeviceClass.PROBLEM
    _attr_translation_key = "filter_change"
    _attr_icon = "mdi:air-filter"

    def __init__(self, coordinator: DysonDataUpdateCoordinator) -> None:
        """Initialize the filter change sensor."""
        super().__init__(coordinator)
        self._attr_unique_id = f"{coordinator.serial_number}_filter_change"
        self._attr_is_on = self._state_value("filter_change_needed")

    @callback
    def _handle_coordinator_update(self) -> None:
        """Handle updated data from the coordinator."""
        change_needed = self._state_value("filter_change_needed")
        if change_needed is not None:
            self._attr_is_on = change_needed
        super()._handle_coordinator_update()
