"""Test the Dyson Pure Cool config flow."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import voluptuous as vol
from homeassistant.data_entry_flow import AbortFlow, FlowResultType
from libdyson_rest.exceptions import DysonAPIError, DysonAuthError, DysonConnectionError

from custom_components.dyson_pure_cool.config_flow import (
    DysonPureCoolConfigFlow,
    DysonPureCoolOptionsFlow,
)
from custom_components.dyson_pure_cool.const import (
    CONF_AUTH_TOKEN,
    CONF_COUNTRY,
    CONF_CREDENTIALS,
    CONF_CULTURE,
    CONF_DEVICE_NAME,
    CONF_DEVICES,
    CONF_EMAIL,
    CONF_IP_ADDRESS,
    CONF_PARENT_ENTRY_ID,
    CONF_PASSWORD_HASH,
    CONF_PRODUCT_TYPE,
    CONF_SERIAL_NUMBER,
)

from .common import (
    TEST_HOST,
    TEST_PASSWORD,
    TEST_PRODUCT_TYPE,
    TEST_SERIAL,
    make_credentials_blob,
)


@pytest.fixture
def config_flow(mock_hass):
    """Create a config flow instance."""
    mock_hass.config.country = "GB"
    mock_hass.config.language = "en"
    flow = DysonPureCoolConfigFlow()
    flow.hass = mock_hass
    flow.async_set_unique_id = AsyncMock()
    flow._abort_if_unique_id_configured = MagicMock()
    flow.context = {}
    return flow


@pytest.fixture
def mock_cloud_client():
    """Patch the libdyson-rest client used by the config flow."""
    with patch(
        "custom_components.dyson_pure_cool.config_flow.AsyncDysonClient"
    ) as mock_client_class:
        client = MagicMock()
        client.provision = AsyncMock()
        client.get_user_status = AsyncMock()
        client.begin_login = AsyncMock(return_value=MagicMock(challenge_id="challenge-1"))
        client.complete_login = AsyncMock()
        client.close = AsyncMock()
        client.auth_token = "auth-token"
        mock_client_class.return_value = client
        yield mock_client_class, client


class TestUserStep:
    """Test choosing the setup method."""

    @pytest.mark.asyncio
    async def test_form(self, config_flow):
        """Test the initial form."""
        result = await config_flow.async_step_user()

        assert result["type"] == FlowResultType.FORM
        assert result["step_id"] == "user"

    @pytest.mark.asyncio
    async def test_manual_selected(self, config_flow):
        """Test routing to manual setup."""
        result = await config_flow.async_step_user({"setup_method": "manual"})

        assert result["step_id"] == "manual"

    @pytest.mark.asyncio
    async def test_cloud_selected(self, config_flow):
        """Test routing to the cloud account form."""
        result = await config_flow.async_step_user({"setup_method": "cloud_account"})

        assert result["step_id"] == "cloud_account"


class TestManualStep:
    """Test manual device setup."""

    @pytest.mark.asyncio
    async def test_create_entry(self, config_flow):
        """Test a valid credentials blob."""
        blob = make_credentials_blob()

        result = await config_flow.async_step_manual(
            {CONF_IP_ADDRESS: TEST_HOST, CONF_CREDENTIALS: f" {blob} "}
        )

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert result["title"] == "Living Room"
        assert result["data"][CONF_SERIAL_NUMBER] == TEST_SERIAL
        assert result["data"][CONF_PRODUCT_TYPE] == TEST_PRODUCT_TYPE
        assert result["data"][CONF_PASSWORD_HASH] == TEST_PASSWORD
        assert result["data"][CONF_IP_ADDRESS] == TEST_HOST
        assert result["data"][CONF_CREDENTIALS] == blob
        config_flow.async_set_unique_id.assert_awaited_once_with(TEST_SERIAL)

    @pytest.mark.asyncio
    async def test_invalid_credentials(self, config_flow):
        """Test that an undecodable blob shows an error."""
        result = await config_flow.async_step_manual(
            {CONF_IP_ADDRESS: TEST_HOST, CONF_CREDENTIALS: "garbage"}
        )

        assert result["type"] == FlowResultType.FORM
        assert result["errors"] == {"base": "invalid_credentials"}

    @pytest.mark.asyncio
    async def test_already_configured(self, config_flow):
        """Test that a known serial number aborts."""
        config_flow._abort_if_unique_id_configured.side_effect = AbortFlow("already_configured")

        with pytest.raises(AbortFlow):
            await config_flow.async_step_manual(
                {CONF_IP_ADDRESS: TEST_HOST, CONF_CREDENTIALS: make_credentials_blob()}
            )


class TestCloudAccountStep:
    """Test the cloud login."""

    @pytest.mark.asyncio
    async def test_form_defaults(self, config_flow):
        """Test that country and culture default from the configuration."""
        result = await config_flow.async_step_cloud_account()

        defaults = {
            str(key): key.default()
            for key in result["data_schema"].schema
            if key.default is not vol.UNDEFINED
        }
        assert defaults[CONF_COUNTRY] == "GB"
        assert defaults[CONF_CULTURE] == "en-GB"

    @pytest.mark.asyncio
    async def test_login_started(self, config_flow, mock_cloud_client):
        """Test that a one-time code is requested."""
        mock_client_class, client = mock_cloud_client

        result = await config_flow.async_step_cloud_account(
            {CONF_EMAIL: " user@example.com ", CONF_COUNTRY: "US", CONF_CULTURE: "en-US"}
        )

        assert result["type"] == FlowResultType.FORM
        assert result["step_id"] == "verify"
        assert result["description_placeholders"] == {"email": "user@example.com"}
        mock_client_class.assert_called_once_with(
            email="user@example.com", country="US", culture="en-US"
        )
        client.provision.assert_awaited_once()
        client.begin_login.assert_awaited_once_with("user@example.com")
        config_flow.async_set_unique_id.assert_awaited_once_with("user@example.com")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "reason"),
        [
            (DysonAuthError("rejected"), "auth_failed"),
            (DysonConnectionError("offline"), "cannot_connect"),
            (DysonAPIError("bad response"), "cloud_api_error"),
        ],
    )
    async def test_login_errors(self, config_flow, mock_cloud_client, error, reason):
        """Test that cloud errors are shown on the form."""
        _, client = mock_cloud_client
        client.begin_login.side_effect = error

        result = await config_flow.async_step_cloud_account({CONF_EMAIL: "user@example.com"})

        assert result["step_id"] == "cloud_account"
        assert result["errors"] == {"base": reason}
        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_challenge(self, config_flow, mock_cloud_client):
        """Test a login without challenge id."""
        _, client = mock_cloud_client
        client.begin_login.return_value = None

        result = await config_flow.async_step_cloud_account({CONF_EMAIL: "user@example.com"})

        assert result["errors"] == {"base": "cloud_api_error"}


class TestVerifyStep:
    """Test completing the cloud login."""

    @pytest.mark.asyncio
    async def test_create_account_entry(self, config_flow, mock_cloud_client):
        """Test that the account entry stores the auth token."""
        _, client = mock_cloud_client
        await config_flow.async_step_cloud_account(
            {CONF_EMAIL: "user@example.com", CONF_COUNTRY: "GB", CONF_CULTURE: "en-GB"}
        )

        result = await config_flow.async_step_verify(
            {"verification_code": "123456", "password": "secret"}
        )

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert result["title"] == "Dyson Account (user@example.com)"
        assert result["data"] == {
            CONF_EMAIL: "user@example.com",
            CONF_AUTH_TOKEN: "auth-token",
            CONF_COUNTRY: "GB",
            CONF_CULTURE: "en-GB",
            CONF_DEVICES: [],
        }
        client.complete_login.assert_awaited_once_with(
            "challenge-1", "123456", "user@example.com", "secret"
        )
        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wrong_code(self, config_flow, mock_cloud_client):
        """Test that a rejected code keeps the form open."""
        _, client = mock_cloud_client
        await config_flow.async_step_cloud_account({CONF_EMAIL: "user@example.com"})
        client.complete_login.side_effect = DysonAuthError("bad code")

        result = await config_flow.async_step_verify(
            {"verification_code": "000000", "password": "secret"}
        )

        assert result["step_id"] == "verify"
        assert result["errors"] == {"base": "auth_failed"}
        client.close.assert_not_awaited()


class TestDiscoverySteps:
    """Test directory discovery."""

    @pytest.fixture
    def discovery_info(self):
        """Discovery data created by the account coordinator."""
        return {
            CONF_SERIAL_NUMBER: TEST_SERIAL,
            CONF_PRODUCT_TYPE: "527",
            CONF_DEVICE_NAME: "Office",
            CONF_PASSWORD_HASH: "pw",
            CONF_PARENT_ENTRY_ID: "account_entry",
        }

    @pytest.mark.asyncio
    async def test_discovery_asks_for_ip(self, config_flow, discovery_info):
        """Test that discovery shows the confirmation form."""
        result = await config_flow.async_step_discovery(discovery_info)

        assert result["type"] == FlowResultType.FORM
        assert result["step_id"] == "discovery_confirm"
        assert result["description_placeholders"]["device_serial"] == TEST_SERIAL
        assert config_flow.context["title_placeholders"] == {"name": "Office"}

    @pytest.mark.asyncio
    async def test_discovery_without_serial(self, config_flow):
        """Test that incomplete discovery data aborts."""
        result = await config_flow.async_step_discovery({CONF_DEVICE_NAME: "Office"})

        assert result["type"] == FlowResultType.ABORT
        assert result["reason"] == "invalid_discovery_info"

    @pytest.mark.asyncio
    async def test_confirm_creates_entry(self, config_flow, discovery_info):
        """Test that the device entry links to its account."""
        await config_flow.async_step_discovery(discovery_info)

        result = await config_flow.async_step_discovery_confirm({CONF_IP_ADDRESS: TEST_HOST})

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert result["title"] == "Office"
        assert result["data"][CONF_PASSWORD_HASH] == "pw"
        assert result["data"][CONF_IP_ADDRESS] == TEST_HOST
        assert result["data"][CONF_PARENT_ENTRY_ID] == "account_entry"


class TestImportStep:
    """Test YAML import."""

    @pytest.mark.asyncio
    async def test_import(self, config_flow):
        """Test importing a device with options."""
        result = await config_flow.async_step_import(
            {
                CONF_SERIAL_NUMBER: TEST_SERIAL,
                CONF_IP_ADDRESS: TEST_HOST,
                CONF_CREDENTIALS: make_credentials_blob(),
                "use_fahrenheit": True,
            }
        )

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert result["data"][CONF_PASSWORD_HASH] == TEST_PASSWORD
        assert result["options"] == {"use_fahrenheit": True}

    @pytest.mark.asyncio
    async def test_import_invalid_credentials(self, config_flow):
        """Test that an undecodable blob aborts."""
        result = await config_flow.async_step_import(
            {CONF_SERIAL_NUMBER: TEST_SERIAL, CONF_IP_ADDRESS: TEST_HOST, CONF_CREDENTIALS: "x"}
        )

        assert result["type"] == FlowResultType.ABORT
        assert result["reason"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_import_serial_mismatch(self, config_flow):
        """Test that credentials of another device abort."""
        result = await config_flow.async_step_import(
            {
                CONF_SERIAL_NUMBER: "OTHER",
                CONF_IP_ADDRESS: TEST_HOST,
                CONF_CREDENTIALS: make_credentials_blob(),
            }
        )

        assert result["reason"] == "invalid_credentials"


class TestOptionsFlow:
    """Test the options flow."""

    def _options_flow(self, mock_hass, data, options=None):
        config_entry = MagicMock()
        config_entry.title = "Living Room"
        config_entry.data = data
        config_entry.options = options or {}
        flow = DysonPureCoolOptionsFlow(config_entry)
        flow.hass = mock_hass
        return flow

    @pytest.mark.asyncio
    async def test_form(self, mock_hass):
        """Test that current options prefill the form."""
        flow = self._options_flow(
            mock_hass,
            {CONF_SERIAL_NUMBER: TEST_SERIAL, CONF_DEVICE_NAME: "Living Room"},
            {"use_fahrenheit": True},
        )

        result = await flow.async_step_init()

        assert result["type"] == FlowResultType.FORM
        assert result["description_placeholders"] == {"device_name": "Living Room"}
        defaults = {str(key): key.default() for key in result["data_schema"].schema}
        assert defaults["use_fahrenheit"] is True
        assert defaults["is_night_mode_enabled"] is True

    @pytest.mark.asyncio
    async def test_save(self, mock_hass):
        """Test storing new options."""
        flow = self._options_flow(mock_hass, {CONF_SERIAL_NUMBER: TEST_SERIAL})

        result = await flow.async_step_init({"humidity_offset": -3})

        assert result["type"] == FlowResultType.CREATE_ENTRY
        assert result["data"] == {"humidity_offset": -3}

    @pytest.mark.asyncio
    async def test_account_has_no_options(self, mock_hass):
        """Test that account entries abort."""
        flow = self._options_flow(mock_hass, {CONF_EMAIL: "user@example.com"})

        result = await flow.async_step_init()

        assert result["type"] == FlowResultType.ABORT
        assert result["reason"] == "account_has_no_options"
