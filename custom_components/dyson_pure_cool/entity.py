"""Base entity class for the Dyson Pure Cool integration.

All platform entities (fan, sensor, switch, climate, humidifier and binary
sensor) derive from ``DysonEntity``. It links each entity to the right
device in the Home Assistant device registry, reports availability from the
MQTT connection and funnels control changes into the device session.

Device Grouping:
    Unless single accessory mode is enabled, entities are grouped by kind:
    the purifier device holds fan and climate entities while temperature,
    humidity, air quality and settings entities each get a child device
    linked to the purifier through ``via_device``.

Inheritance Chain:
    DysonEntity -> CoordinatorEntity -> Entity (Home Assistant base)
"""

from __future__ import annotations

from typing import Any

from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import ACCESSORY_PURIFIER
from .coordinator import DysonDataUpdateCoordinator
from .device import DysonControl, DysonDevice


class DysonEntity(CoordinatorEntity[DysonDataUpdateCoordinator]):
    """Base class for all Dyson entities.

    Availability Logic:
        An entity is available when the coordinator's last update succeeded,
        the coordinator holds a device session and that session is connected.

    Attributes:
        _accessory_kind: Grouping used to pick the owning device.
    """

    _attr_has_entity_name = True
    _accessory_kind = ACCESSORY_PURIFIER

    def __init__(self, coordinator: DysonDataUpdateCoordinator) -> None:
        """Initialize the Dyson entity."""
        super().__init__(coordinator)

    @property
    def device(self) -> DysonDevice | None:
        """Return the device session behind this entity."""
        return self.coordinator.device

    @property
    def device_info(self) -> DeviceInfo | None:
        """Return device information for the Home Assistant device registry."""
        if self.device is None:
            return None
        return self.device.accessory_info(self._accessory_kind)

    @property
    def available(self) -> bool:
        """Return if entity is available."""
        return (
            self.coordinator.last_update_success
            and self.device is not None
            and self.device.is_connected
        )

    def _state_value(self, key: str, default: Any = None) -> Any:
        """Return one normalized state value, or ``default`` when unknown."""
        return (self.coordinator.data or {}).get(key, default)

    async def _async_apply(self, control: DysonControl, value: Any) -> None:
        """Send a control change to the device."""
        if self.device is None or not self.device.is_connected:
            raise HomeAssistantError(
                f"Device {self.coordinator.serial_number} is not connected"
            )
        await self.device.async_apply_intent(control, value)
