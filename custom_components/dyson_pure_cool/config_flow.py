"""Config flow for the Dyson Pure Cool integration."""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.config_entries import ConfigFlowResult
from homeassistant.core import callback
from libdyson_rest import AsyncDysonClient
from libdyson_rest.exceptions import DysonAPIError, DysonAuthError, DysonConnectionError

from .const import (
    CONF_AUTH_TOKEN,
    CONF_COUNTRY,
    CONF_CREDENTIALS,
    CONF_CULTURE,
    CONF_DEVICE_NAME,
    CONF_DEVICES,
    CONF_EMAIL,
    CONF_FIRMWARE_VERSION,
    CONF_IP_ADDRESS,
    CONF_PARENT_ENTRY_ID,
    CONF_PASSWORD_HASH,
    CONF_PRODUCT_TYPE,
    CONF_SERIAL_NUMBER,
    DEFAULT_OPTIONS,
    DOMAIN,
)
from .directory import DirectoryEntry, decode_credentials_blob
from .exceptions import InvalidCredentialsError

_LOGGER = logging.getLogger(__name__)

SETUP_METHOD_CLOUD = "cloud_account"
SETUP_METHOD_MANUAL = "manual"


def _get_setup_method_options() -> dict[str, str]:
    """Get setup method options for the config flow."""
    return {
        SETUP_METHOD_CLOUD: "Dyson Cloud Account",
        SETUP_METHOD_MANUAL: "Manual Device Setup",
    }


def _get_default_country_culture(hass) -> tuple[str, str]:
    """Get default country and culture from Home Assistant configuration."""
    country = (getattr(hass.config, "country", None) or "US").upper()
    language = getattr(hass.config, "language", None) or "en"
    if "-" in language:
        return country, language
    return country, f"{language}-{country}"


def _options_schema(current: dict[str, Any]) -> vol.Schema:
    """Build the schema of every device option, defaulting to current values."""
    schema: dict[Any, Any] = {}
    for key, default in DEFAULT_OPTIONS.items():
        value = current.get(key, default)
        if isinstance(default, bool):
            validator: Any = bool
        elif isinstance(default, float):
            validator = vol.Coerce(float)
        else:
            validator = vol.All(vol.Coerce(int), vol.Range(min=0 if key.endswith("interval") else -100))
        schema[vol.Optional(key, default=value)] = validator
    return vol.Schema(schema)


def _device_entry_data(entry: DirectoryEntry, ip_address: str) -> dict[str, Any]:
    return {
        CONF_SERIAL_NUMBER: entry.serial_number,
        CONF_PRODUCT_TYPE: entry.product_type,
        CONF_DEVICE_NAME: entry.name,
        CONF_FIRMWARE_VERSION: entry.version,
        CONF_PASSWORD_HASH: entry.password,
        CONF_IP_ADDRESS: ip_address,
    }


class DysonPureCoolConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Dyson Pure Cool."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self._email: str | None = None
        self._country: str | None = None
        self._culture: str | None = None
        self._cloud_client: AsyncDysonClient | None = None
        self._challenge_id: str | None = None
        self._discovery_info: dict[str, Any] = {}

    async def _cleanup_cloud_client(self) -> None:
        """Close the cloud client."""
        if self._cloud_client is not None:
            try:
                await self._cloud_client.close()
            except (DysonConnectionError, OSError) as err:
                _LOGGER.debug("Error closing cloud client: %s", err)
            finally:
                self._cloud_client = None

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Let the user choose between cloud and manual setup."""
        if user_input is not None:
            if user_input["setup_method"] == SETUP_METHOD_CLOUD:
                return await self.async_step_cloud_account()
            return await self.async_step_manual()

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {vol.Required("setup_method"): vol.In(_get_setup_method_options())}
            ),
        )

    async def async_step_manual(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Set up one device from its IP address and credentials blob."""
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                entry = decode_credentials_blob(user_input[CONF_CREDENTIALS])
            except InvalidCredentialsError as err:
                _LOGGER.warning("Invalid credentials entered: %s", err)
                errors["base"] = "invalid_credentials"
            else:
                await self.async_set_unique_id(entry.serial_number)
                self._abort_if_unique_id_configured(
                    updates={CONF_IP_ADDRESS: user_input[CONF_IP_ADDRESS]}
                )
                data = _device_entry_data(entry, user_input[CONF_IP_ADDRESS])
                data[CONF_CREDENTIALS] = user_input[CONF_CREDENTIALS].strip()
                return self.async_create_entry(title=entry.name, data=data)

        return self.async_show_form(
            step_id="manual",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_IP_ADDRESS): str,
                    vol.Required(CONF_CREDENTIALS): str,
                }
            ),
            errors=errors,
        )

    async def async_step_cloud_account(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Collect the account email and request a one-time code."""
        errors: dict[str, str] = {}
        default_country, default_culture = _get_default_country_culture(self.hass)

        if user_input is not None:
            self._email = user_input[CONF_EMAIL].strip()
            self._country = user_input.get(CONF_COUNTRY) or default_country
            self._culture = user_input.get(CONF_CULTURE) or default_culture

            await self.async_set_unique_id(self._email.lower())
            self._abort_if_unique_id_configured()

            errors = await self._initiate_otp()
            if not errors:
                return await self.async_step_verify()

        return self.async_show_form(
            step_id="cloud_account",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_EMAIL): str,
                    vol.Optional(CONF_COUNTRY, default=default_country): str,
                    vol.Optional(CONF_CULTURE, default=default_culture): str,
                }
            ),
            errors=errors,
        )

    async def _initiate_otp(self) -> dict[str, str]:
        """Start the login and return form errors, empty on success."""
        try:
            self._cloud_client = await self.hass.async_add_executor_job(
                lambda: AsyncDysonClient(
                    email=self._email, country=self._country, culture=self._culture
                )
            )
            await self._cloud_client.provision()
            await self._cloud_client.get_user_status()
            challenge = await self._cloud_client.begin_login(self._email)
        except DysonAuthError as err:
            _LOGGER.warning("Dyson login rejected for %s: %s", self._email, err)
            await self._cleanup_cloud_client()
            return {"base": "auth_failed"}
        except DysonConnectionError as err:
            _LOGGER.error("Cannot reach the Dyson cloud: %s", err)
            await self._cleanup_cloud_client()
            return {"base": "cannot_connect"}
        except DysonAPIError as err:
            _LOGGER.error("Dyson cloud API error: %s", err)
            await self._cleanup_cloud_client()
            return {"base": "cloud_api_error"}

        if challenge is None or challenge.challenge_id is None:
            _LOGGER.error("No challenge received from Dyson API")
            await self._cleanup_cloud_client()
            return {"base": "cloud_api_error"}

        self._challenge_id = str(challenge.challenge_id)
        return {}

    async def async_step_verify(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Complete the login with the emailed code and the account password."""
        errors: dict[str, str] = {}

        if user_input is not None and self._cloud_client is not None:
            try:
                await self._cloud_client.complete_login(
                    self._challenge_id,
                    user_input["verification_code"],
                    self._email,
                    user_input["password"],
                )
            except DysonAuthError as err:
                _LOGGER.warning("Verification failed for %s: %s", self._email, err)
                errors["base"] = "auth_failed"
            except DysonConnectionError as err:
                _LOGGER.error("Cannot reach the Dyson cloud: %s", err)
                errors["base"] = "cannot_connect"
            except DysonAPIError as err:
                _LOGGER.error("Dyson cloud API error: %s", err)
                errors["base"] = "cloud_api_error"
            else:
                auth_token = getattr(self._cloud_client, "auth_token", None)
                await self._cleanup_cloud_client()
                return self.async_create_entry(
                    title=f"Dyson Account ({self._email})",
                    data={
                        CONF_EMAIL: self._email,
                        CONF_AUTH_TOKEN: auth_token,
                        CONF_COUNTRY: self._country,
                        CONF_CULTURE: self._culture,
                        CONF_DEVICES: [],
                    },
                )

        return self.async_show_form(
            step_id="verify",
            data_schema=vol.Schema(
                {
                    vol.Required("verification_code"): str,
                    vol.Required("password"): str,
                }
            ),
            errors=errors,
            description_placeholders={"email": self._email or ""},
        )

    async def async_step_discovery(
        self, discovery_info: dict[str, Any]
    ) -> ConfigFlowResult:
        """Handle a directory device that has no config entry yet."""
        serial_number = discovery_info.get(CONF_SERIAL_NUMBER)
        if not serial_number:
            return self.async_abort(reason="invalid_discovery_info")

        await self.async_set_unique_id(serial_number)
        self._abort_if_unique_id_configured()

        self._discovery_info = discovery_info
        self.context["title_placeholders"] = {
            "name": discovery_info.get(CONF_DEVICE_NAME) or serial_number
        }
        return await self.async_step_discovery_confirm()

    async def async_step_discovery_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Ask for the IP address of a discovered device."""
        info = self._discovery_info
        name = info.get(CONF_DEVICE_NAME) or info[CONF_SERIAL_NUMBER]

        if user_input is not None:
            _LOGGER.info("User confirmed device %s", info[CONF_SERIAL_NUMBER])
            entry = DirectoryEntry(
                serial_number=info[CONF_SERIAL_NUMBER],
                product_type=info.get(CONF_PRODUCT_TYPE, ""),
                name=name,
                version=info.get(CONF_FIRMWARE_VERSION),
                password=info.get(CONF_PASSWORD_HASH),
            )
            data = _device_entry_data(entry, user_input[CONF_IP_ADDRESS])
            data[CONF_PARENT_ENTRY_ID] = info.get(CONF_PARENT_ENTRY_ID)
            return self.async_create_entry(title=name, data=data)

        return self.async_show_form(
            step_id="discovery_confirm",
            data_schema=vol.Schema({vol.Required(CONF_IP_ADDRESS): str}),
            description_placeholders={
                "device_name": name,
                "device_serial": info[CONF_SERIAL_NUMBER],
                "product_type": info.get(CONF_PRODUCT_TYPE, ""),
            },
        )

    async def async_step_import(self, import_data: dict[str, Any]) -> ConfigFlowResult:
        """Import a device from configuration.yaml."""
        try:
            entry = decode_credentials_blob(import_data[CONF_CREDENTIALS])
        except InvalidCredentialsError as err:
            _LOGGER.warning(
                "Invalid credentials for %s in YAML: %s",
                import_data.get(CONF_SERIAL_NUMBER),
                err,
            )
            return self.async_abort(reason="invalid_credentials")

        serial_number = import_data.get(CONF_SERIAL_NUMBER) or entry.serial_number
        if serial_number != entry.serial_number:
            _LOGGER.warning(
                "Credentials in YAML belong to %s, not %s",
                entry.serial_number,
                serial_number,
            )
            return self.async_abort(reason="invalid_credentials")

        data = _device_entry_data(entry, import_data[CONF_IP_ADDRESS])
        data[CONF_CREDENTIALS] = import_data[CONF_CREDENTIALS].strip()
        options = {key: import_data[key] for key in DEFAULT_OPTIONS if key in import_data}

        await self.async_set_unique_id(serial_number)
        self._abort_if_unique_id_configured(updates=data)
        return self.async_create_entry(title=entry.name, data=data, options=options)

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Create the options flow."""
        return DysonPureCoolOptionsFlow(config_entry)


class DysonPureCoolOptionsFlow(config_entries.OptionsFlow):
    """Edit the options of one device."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        """Initialize options flow."""
        super().__init__()
        self._config_entry = config_entry

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Show and store the device options."""
        if CONF_SERIAL_NUMBER not in self._config_entry.data:
            return self.async_abort(reason="account_has_no_options")

        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        current = {**self._config_entry.data, **self._config_entry.options}
        return self.async_show_form(
            step_id="init",
            data_schema=_options_schema(current),
            description_placeholders={
                "device_name": self._config_entry.data.get(
                    CONF_DEVICE_NAME, self._config_entry.title
                )
            },
        )
