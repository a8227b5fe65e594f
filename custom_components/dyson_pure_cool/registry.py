"""Registry of live device sessions keyed by serial number."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator

from .device import DysonDevice

_LOGGER = logging.getLogger(__name__)


class DeviceRegistry:
    """Holds at most one session per serial number."""

    def __init__(self) -> None:
        self._devices: dict[str, DysonDevice] = {}

    def __contains__(self, serial_number: object) -> bool:
        return serial_number in self._devices

    def __iter__(self) -> Iterator[DysonDevice]:
        return iter(list(self._devices.values()))

    def __len__(self) -> int:
        return len(self._devices)

    def add(self, device: DysonDevice) -> None:
        """Register a session; a second session for one serial is refused."""
        if device.serial_number in self._devices:
            raise ValueError(f"Device {device.serial_number} is already registered")
        self._devices[device.serial_number] = device

    def get(self, serial_number: str) -> DysonDevice | None:
        """Return the session of a serial number, if any."""
        return self._devices.get(serial_number)

    def remove(self, serial_number: str) -> DysonDevice | None:
        """Unregister and return a session without shutting it down."""
        return self._devices.pop(serial_number, None)

    def serial_numbers(self) -> set[str]:
        """Return the serial numbers of all registered sessions."""
        return set(self._devices)

    async def async_shutdown_all(self) -> None:
        """Shut every session down and empty the registry."""
        devices = list(self._devices.values())
        self._devices.clear()
        if not devices:
            return
        _LOGGER.debug("Shutting down %d device session(s)", len(devices))
        results = await asyncio.gather(
            *(device.async_shutdown() for device in devices), return_exceptions=True
        )
        for device, result in zip(devices, results):
            if isinstance(result, Exception):
                _LOGGER.error(
                    "Error shutting down %s: %s", device.serial_number, result
                )
