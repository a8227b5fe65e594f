"""Test configuration for the Dyson Pure Cool integration."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from custom_components.dyson_pure_cool.const import DOMAIN
from custom_components.dyson_pure_cool.device import DeviceOptions, DysonDevice

from .common import TEST_HOST, TEST_PASSWORD, TEST_PRODUCT_TYPE, TEST_SERIAL


@pytest_asyncio.fixture
async def mock_hass():
    """Home Assistant stand-in bound to the running event loop."""
    hass = MagicMock()
    hass.data = {}
    hass.loop = asyncio.get_running_loop()

    async def run_job(func, *args):
        return func(*args)

    hass.async_add_executor_job = AsyncMock(side_effect=run_job)
    return hass


@pytest.fixture
def mock_paho_client():
    """Patch the paho client class used by the device session."""
    with patch(
        "custom_components.dyson_pure_cool.device.mqtt.Client"
    ) as mock_client_class:
        client = MagicMock()
        client.publish.return_value = MagicMock(rc=0)
        mock_client_class.return_value = client
        yield client


@pytest.fixture
def make_device(mock_hass):
    """Factory for device sessions with patched transport."""

    def _make(product_type: str = TEST_PRODUCT_TYPE, **options) -> DysonDevice:
        return DysonDevice(
            mock_hass,
            TEST_SERIAL,
            product_type,
            TEST_PASSWORD,
            TEST_HOST,
            options=DeviceOptions.from_mapping(options),
            name="Living Room",
            firmware_version="21.04.03",
        )

    return _make


@pytest.fixture
def mock_device():
    """Mock device session for entity tests."""
    device = MagicMock()
    device.serial_number = TEST_SERIAL
    device.is_connected = True
    device.options = DeviceOptions()
    device.profile = MagicMock(
        has_heating=True,
        has_humidifier=True,
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    )
    device.controls = frozenset()
    device.humidity_target_range = (30, 70)
    device.async_apply_intent = AsyncMock()
    return device


@pytest.fixture
def mock_coordinator(mock_device):
    """Mock coordinator holding a mock device session."""
    coordinator = MagicMock()
    coordinator.serial_number = TEST_SERIAL
    coordinator.device = mock_device
    coordinator.data = {}
    coordinator.last_update_success = True
    return coordinator


@pytest.fixture
def mock_config_entry():
    """Mock config entry of one device."""
    config_entry = MagicMock()
    config_entry.entry_id = "test_entry"
    config_entry.title = "Living Room"
    config_entry.data = {"serial_number": TEST_SERIAL}
    config_entry.options = {}
    return config_entry


@pytest.fixture
def platform_hass(mock_coordinator):
    """Home Assistant stand-in with the coordinator registered."""
    hass = MagicMock()
    hass.data = {DOMAIN: {"test_entry": mock_coordinator}}
    return hass
