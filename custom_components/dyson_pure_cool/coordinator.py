"""Data update coordinators for Dyson devices and cloud accounts."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import timedelta
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .const import (
    CONF_AUTH_TOKEN,
    CONF_CREDENTIALS,
    CONF_DEVICE_NAME,
    CONF_DEVICES,
    CONF_EMAIL,
    CONF_FIRMWARE_VERSION,
    CONF_IP_ADDRESS,
    CONF_PARENT_ENTRY_ID,
    CONF_PASSWORD_HASH,
    CONF_PRODUCT_TYPE,
    CONF_SERIAL_NUMBER,
    DEFAULT_DIRECTORY_RETRY_INTERVAL,
    DOMAIN,
)
from .device import DeviceOptions, DysonDevice
from .directory import DirectoryEntry, async_fetch_directory, decode_credentials_blob
from .exceptions import DeviceConnectionError, DirectoryError, InvalidCredentialsError
from .registry import DeviceRegistry

_LOGGER = logging.getLogger(__name__)


def device_options(config_entry: ConfigEntry) -> DeviceOptions:
    """Merge entry data and options; options win."""
    return DeviceOptions.from_mapping({**config_entry.data, **config_entry.options})


class DysonDataUpdateCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Coordinator that mirrors the pushed state of one device session."""

    def __init__(
        self, hass: HomeAssistant, config_entry: ConfigEntry, registry: DeviceRegistry
    ) -> None:
        """Initialize the coordinator."""
        self.config_entry = config_entry
        self.registry = registry
        self.device: DysonDevice | None = None
        self._remove_listener = None

        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_{config_entry.data[CONF_SERIAL_NUMBER]}",
            update_interval=None,
        )

    @property
    def serial_number(self) -> str:
        """Return device serial number."""
        return self.config_entry.data[CONF_SERIAL_NUMBER]

    async def async_config_entry_first_refresh(self) -> None:
        """Connect the device session, then run the first refresh."""
        await self._async_setup_device()
        await super().async_config_entry_first_refresh()

    def _resolve_credentials(self) -> tuple[str, str, str | None, str | None]:
        """Return product type, password, name and firmware of the entry."""
        data = self.config_entry.data
        product_type = data.get(CONF_PRODUCT_TYPE)
        password = data.get(CONF_PASSWORD_HASH)
        name = data.get(CONF_DEVICE_NAME)
        firmware = data.get(CONF_FIRMWARE_VERSION)

        if not password and data.get(CONF_CREDENTIALS):
            blob = decode_credentials_blob(data[CONF_CREDENTIALS])
            if blob.serial_number != self.serial_number:
                raise InvalidCredentialsError(
                    f"Credentials belong to {blob.serial_number}, not {self.serial_number}"
                )
            product_type = product_type or blob.product_type
            password = blob.password
            name = name or blob.name
            firmware = firmware or blob.version

        if not password or not product_type:
            raise InvalidCredentialsError("No local password or product type configured")
        return product_type, password, name, firmware

    async def _async_setup_device(self) -> None:
        """Create the device session and wait for its first connection."""
        try:
            product_type, password, name, firmware = self._resolve_credentials()
        except InvalidCredentialsError as err:
            _LOGGER.warning("Invalid credentials for %s: %s", self.serial_number, err)
            raise ConfigEntryNotReady(f"Invalid credentials: {err}") from err

        host = self.config_entry.data.get(CONF_IP_ADDRESS)
        if not host:
            raise ConfigEntryNotReady(f"No IP address configured for {self.serial_number}")

        stale = self.registry.remove(self.serial_number)
        if stale is not None:
            await stale.async_shutdown()

        device = DysonDevice(
            self.hass,
            self.serial_number,
            product_type,
            password,
            host,
            options=device_options(self.config_entry),
            name=name or self.config_entry.title,
            firmware_version=firmware,
        )
        self.registry.add(device)
        self.device = device
        self._remove_listener = device.add_listener(self._handle_device_update)

        try:
            await device.async_connect()
        except DeviceConnectionError as err:
            self.registry.remove(self.serial_number)
            await device.async_shutdown()
            self.device = None
            raise ConfigEntryNotReady(str(err)) from err

        _LOGGER.info(
            "Connected to %s (%s) at %s", self.serial_number, device.profile.model, host
        )

    @callback
    def _handle_device_update(self) -> None:
        if self.device is not None:
            self.async_set_updated_data(self.device.state)

    async def _async_update_data(self) -> dict[str, Any]:
        """Return the session state; the device pushes all later changes."""
        if self.device is None:
            raise UpdateFailed(f"Device {self.serial_number} is not set up")
        if self.device.is_connected:
            await self.device.async_request_current_state()
        return self.device.state

    async def async_shutdown(self) -> None:
        """Tear the device session down."""
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        if self.device is not None:
            self.registry.remove(self.serial_number)
            await self.device.async_shutdown()
            self.device = None
        await super().async_shutdown()


class DysonCloudAccountCoordinator(DataUpdateCoordinator[dict[str, Any]]):
    """Coordinator that reconciles device entries with the cloud directory."""

    def __init__(self, hass: HomeAssistant, config_entry: ConfigEntry) -> None:
        """Initialize the cloud account coordinator."""
        self.config_entry = config_entry
        self._email = config_entry.data.get(CONF_EMAIL)
        self._auth_token = config_entry.data.get(CONF_AUTH_TOKEN)

        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_cloud_account_{self._email}",
            update_interval=timedelta(seconds=DEFAULT_DIRECTORY_RETRY_INTERVAL),
        )

    async def _async_update_data(self) -> dict[str, Any]:
        """Read the directory and bring device entries in line with it."""
        try:
            entries = await async_fetch_directory(self._auth_token)
        except DirectoryError as err:
            _LOGGER.error("Error reading directory of %s: %s", self._email, err)
            raise UpdateFailed(f"Failed to read device directory: {err}") from err

        await self._async_reconcile(entries)
        return {CONF_DEVICES: [asdict(entry) for entry in entries]}

    def _device_entries(self) -> dict[str, ConfigEntry]:
        return {
            entry.data[CONF_SERIAL_NUMBER]: entry
            for entry in self.hass.config_entries.async_entries(DOMAIN)
            if CONF_SERIAL_NUMBER in entry.data
        }

    async def _async_reconcile(self, entries: list[DirectoryEntry]) -> None:
        existing = self._device_entries()
        listed = {entry.serial_number for entry in entries}

        for entry in entries:
            config_entry = existing.get(entry.serial_number)
            if entry.password is None:
                _LOGGER.warning(
                    "Skipping %s: no usable local credentials", entry.serial_number
                )
            elif config_entry is not None:
                self._update_device_entry(config_entry, entry)
            else:
                await self._create_discovery_flow(entry)

        for serial_number, config_entry in existing.items():
            if (
                serial_number not in listed
                and config_entry.data.get(CONF_PARENT_ENTRY_ID)
                == self.config_entry.entry_id
            ):
                _LOGGER.info(
                    "Removing %s, it is no longer in the directory", serial_number
                )
                await self.hass.config_entries.async_remove(config_entry.entry_id)

        device_list = [
            {
                CONF_SERIAL_NUMBER: entry.serial_number,
                CONF_DEVICE_NAME: entry.name,
                CONF_PRODUCT_TYPE: entry.product_type,
            }
            for entry in entries
        ]
        if device_list != self.config_entry.data.get(CONF_DEVICES):
            self.hass.config_entries.async_update_entry(
                self.config_entry,
                data={**self.config_entry.data, CONF_DEVICES: device_list},
            )

    @callback
    def _update_device_entry(self, config_entry: ConfigEntry, entry: DirectoryEntry) -> None:
        """Refresh the stored password and metadata of a known device."""
        updates = {
            CONF_PASSWORD_HASH: entry.password,
            CONF_PRODUCT_TYPE: entry.product_type,
            CONF_DEVICE_NAME: entry.name,
            CONF_FIRMWARE_VERSION: entry.version,
        }
        changed = {
            key: value
            for key, value in updates.items()
            if value and config_entry.data.get(key) != value
        }
        if not changed:
            return
        _LOGGER.debug(
            "Updating %s from directory: %s", entry.serial_number, sorted(changed)
        )
        self.hass.config_entries.async_update_entry(
            config_entry, data={**config_entry.data, **changed}
        )

    async def _create_discovery_flow(self, entry: DirectoryEntry) -> None:
        """Offer a directory device that has no entry yet; the user supplies its IP."""
        existing_flows = [
            flow
            for flow in self.hass.config_entries.flow.async_progress()
            if flow["handler"] == DOMAIN
            and flow.get("context", {}).get("unique_id") == entry.serial_number
        ]
        if existing_flows:
            _LOGGER.debug("Discovery flow already exists for %s", entry.serial_number)
            return

        _LOGGER.info("Creating discovery for %s (%s)", entry.name, entry.serial_number)
        await self.hass.config_entries.flow.async_init(
            DOMAIN,
            context={"source": "discovery", "unique_id": entry.serial_number},
            data={
                CONF_SERIAL_NUMBER: entry.serial_number,
                CONF_PRODUCT_TYPE: entry.product_type,
                CONF_DEVICE_NAME: entry.name,
                CONF_FIRMWARE_VERSION: entry.version,
                CONF_PASSWORD_HASH: entry.password,
                CONF_PARENT_ENTRY_ID: self.config_entry.entry_id,
            },
        )
