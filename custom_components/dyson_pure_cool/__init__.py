"""The Dyson Pure Cool integration for Home Assistant.

Bridges Dyson purifiers, heaters and humidifiers to Home Assistant over
their local MQTT broker.

Config Entries:
    - Device entries: one per appliance, holding its IP address and local
      MQTT password. Each owns a ``DysonDataUpdateCoordinator`` whose device
      session is registered in the shared ``DeviceRegistry``.
    - Account entries: one per Dyson cloud account. Their
      ``DysonCloudAccountCoordinator`` reads the device directory, keeps
      stored passwords current, offers new devices through discovery and
      removes devices that left the account.

YAML configuration (optional):

    >>> dyson_pure_cool:
    >>>   devices:
    >>>     - serial_number: "NN2-EU-KFA0000A"
    >>>       ip_address: "192.168.1.42"
    >>>       credentials: "eyJTZXJpYWwiOi..."
    >>>       is_single_accessory_mode_enabled: true

Every session is shut down when Home Assistant stops.
"""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import SOURCE_IMPORT, ConfigEntry
from homeassistant.const import EVENT_HOMEASSISTANT_STOP
from homeassistant.core import Event, HomeAssistant
from homeassistant.helpers import config_validation as cv

from .const import (
    CONF_CREDENTIALS,
    CONF_IP_ADDRESS,
    CONF_PARENT_ENTRY_ID,
    CONF_SERIAL_NUMBER,
    DATA_REGISTRY,
    DEFAULT_OPTIONS,
    DOMAIN,
    PLATFORMS,
)
from .coordinator import DysonCloudAccountCoordinator, DysonDataUpdateCoordinator
from .registry import DeviceRegistry

_LOGGER = logging.getLogger(__name__)


def _option_validator(default: Any) -> Any:
    if isinstance(default, bool):
        return cv.boolean
    if isinstance(default, float):
        return vol.Coerce(float)
    return vol.Coerce(int)


# YAML Configuration Schema
DEVICE_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_SERIAL_NUMBER): cv.string,
        vol.Required(CONF_IP_ADDRESS): cv.string,
        vol.Required(CONF_CREDENTIALS): cv.string,
        **{
            vol.Optional(key): _option_validator(default)
            for key, default in DEFAULT_OPTIONS.items()
        },
    }
)

CONFIG_SCHEMA = vol.Schema(
    {
        DOMAIN: vol.Schema(
            {
                vol.Optional("devices", default=[]): vol.All(
                    cv.ensure_list, [DEVICE_SCHEMA]
                ),
            }
        )
    },
    extra=vol.ALLOW_EXTRA,
)


def _get_registry(hass: HomeAssistant) -> DeviceRegistry:
    """Return the shared registry, creating it on first use."""
    domain_data = hass.data.setdefault(DOMAIN, {})
    if DATA_REGISTRY not in domain_data:
        registry = DeviceRegistry()
        domain_data[DATA_REGISTRY] = registry

        async def _async_shutdown(event: Event) -> None:
            await registry.async_shutdown_all()

        hass.bus.async_listen_once(EVENT_HOMEASSISTANT_STOP, _async_shutdown)
    return domain_data[DATA_REGISTRY]


def _is_account_entry(entry: ConfigEntry) -> bool:
    return CONF_SERIAL_NUMBER not in entry.data


async def async_setup(hass: HomeAssistant, config: dict[str, Any]) -> bool:
    """Set up the integration and import YAML devices."""
    _get_registry(hass)

    devices = config.get(DOMAIN, {}).get("devices", [])
    if not devices:
        _LOGGER.debug("No devices configured in YAML, skipping YAML setup")
        return True

    _LOGGER.info("Importing %d device(s) from YAML configuration", len(devices))
    for device_config in devices:
        hass.async_create_task(
            hass.config_entries.flow.async_init(
                DOMAIN,
                context={"source": SOURCE_IMPORT},
                data=dict(device_config),
            )
        )
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up a device or cloud account entry."""
    registry = _get_registry(hass)

    if _is_account_entry(entry):
        coordinator = DysonCloudAccountCoordinator(hass, entry)
        hass.data[DOMAIN][entry.entry_id] = coordinator
        # Account entries have no entities; this listener keeps refreshes scheduled
        entry.async_on_unload(coordinator.async_add_listener(lambda: None))
        # A failed directory read is retried on the coordinator's interval
        await coordinator.async_refresh()
        return True

    coordinator = DysonDataUpdateCoordinator(hass, entry, registry)
    await coordinator.async_config_entry_first_refresh()
    hass.data[DOMAIN][entry.entry_id] = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    _LOGGER.info("Successfully set up Dyson device '%s'", coordinator.serial_number)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload a device entry after its data or options changed."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    if _is_account_entry(entry):
        coordinator = hass.data[DOMAIN].pop(entry.entry_id, None)
        if coordinator is not None:
            await coordinator.async_shutdown()
        return True

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        coordinator = hass.data[DOMAIN].pop(entry.entry_id, None)
        if coordinator is not None:
            await coordinator.async_shutdown()
        _LOGGER.info("Successfully unloaded Dyson device '%s'", entry.title)
    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Remove the device entries of a deleted cloud account."""
    if not _is_account_entry(entry):
        return
    for device_entry in hass.config_entries.async_entries(DOMAIN):
        if device_entry.data.get(CONF_PARENT_ENTRY_ID) == entry.entry_id:
            _LOGGER.info("Removing child device entry: %s", device_entry.title)
            await hass.config_entries.async_remove(device_entry.entry_id)
