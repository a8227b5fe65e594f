"""Dyson device session using paho-mqtt directly."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from enum import StrEnum
from typing import Any

import paho.mqtt.client as mqtt
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceInfo

from .capabilities import CapabilityProfile, lookup
from .codec import (
    build_command,
    celsius_to_kelvin_tenths,
    decode_message,
    encode_fan_speed,
    encode_humidity_target,
    fan_mode_for,
    on_off,
    parse_message,
    raw_product_state,
)
from .const import (
    ACCESSORY_PURIFIER,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_KEEPALIVE,
    DEFAULT_OPTIONS,
    DEFERRED_MODE_WRITE_DELAY,
    DOMAIN,
    HEATING_MODE_HEAT,
    HEATING_TARGET_MAX,
    HEATING_TARGET_MIN,
    HUMIDITY_MODE_ON,
    HUMIDITY_TARGET_FULL_MAX,
    HUMIDITY_TARGET_FULL_MIN,
    HUMIDITY_TARGET_MAX,
    HUMIDITY_TARGET_MIN,
    MANUFACTURER,
    MQTT_CMD_REQUEST_CURRENT_STATE,
    MQTT_CMD_STATE_SET,
    MQTT_OFF,
    MQTT_ON,
    MQTT_PORT,
    MQTT_TOPIC_COMMAND,
    MQTT_TOPIC_STATUS_CURRENT,
    STATE_KEY_AUTO_MODE,
    STATE_KEY_CONTINUOUS_MONITORING,
    STATE_KEY_FAN_DIRECTION,
    STATE_KEY_FAN_MODE,
    STATE_KEY_FAN_SPEED,
    STATE_KEY_HEATING_MODE,
    STATE_KEY_HEATING_TARGET,
    STATE_KEY_HUMIDITY_AUTO,
    STATE_KEY_HUMIDITY_ENABLED,
    STATE_KEY_HUMIDITY_TARGET,
    STATE_KEY_NIGHT_MODE,
    STATE_KEY_OSCILLATION_ON,
    STATE_KEY_POWER,
)
from .exceptions import DeviceConnectionError

_LOGGER = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    """Lifecycle of the local MQTT connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    OFFLINE = "offline"
    ENDED = "ended"


class DysonControl(StrEnum):
    """Controls that can be changed from Home Assistant."""

    ACTIVE = "active"
    TARGET_MODE = "target_mode"
    SWING = "swing"
    FAN_SPEED = "fan_speed"
    NIGHT_MODE = "night_mode"
    JET_FOCUS = "jet_focus"
    CONTINUOUS_MONITORING = "continuous_monitoring"
    HEATING_MODE = "heating_mode"
    HEATING_TARGET = "heating_target"
    HUMIDIFIER_ACTIVE = "humidifier_active"
    HUMIDIFIER_AUTO = "humidifier_auto"
    HUMIDITY_TARGET = "humidity_target"


@dataclass(frozen=True)
class DeviceOptions:
    """User options of one device; field names match the option keys."""

    is_temperature_sensor_enabled: bool = True
    is_humidity_sensor_enabled: bool = True
    is_air_quality_sensor_enabled: bool = True
    is_night_mode_enabled: bool = True
    is_jet_focus_enabled: bool = True
    is_continuous_monitoring_enabled: bool = False
    is_single_accessory_mode_enabled: bool = False
    enable_auto_mode_when_activating: bool = False
    enable_oscillation_when_activating: bool = False
    enable_night_mode_when_activating: bool = False
    is_heating_safety_ignored: bool = False
    is_full_range_humidity: bool = False
    temperature_offset: float = 0.0
    humidity_offset: int = 0
    use_fahrenheit: bool = False
    update_interval: int = DEFAULT_OPTIONS["update_interval"]

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> DeviceOptions:
        """Build options from config entry data, ignoring unknown keys."""
        known = {field.name for field in fields(cls)}
        values = {key: value for key, value in (options or {}).items() if key in known}
        return cls(**{**DEFAULT_OPTIONS, **values})


def build_controls(profile: CapabilityProfile) -> frozenset[DysonControl]:
    """Return the controls a device with this profile accepts."""
    controls = {
        DysonControl.ACTIVE,
        DysonControl.TARGET_MODE,
        DysonControl.FAN_SPEED,
        DysonControl.NIGHT_MODE,
        DysonControl.CONTINUOUS_MONITORING,
    }
    if profile.has_oscillation:
        controls.add(DysonControl.SWING)
    if profile.has_jet_focus:
        controls.add(DysonControl.JET_FOCUS)
    if profile.has_heating:
        controls.update({DysonControl.HEATING_MODE, DysonControl.HEATING_TARGET})
    if profile.has_humidifier:
        controls.update(
            {
                DysonControl.HUMIDIFIER_ACTIVE,
                DysonControl.HUMIDIFIER_AUTO,
                DysonControl.HUMIDITY_TARGET,
            }
        )
    return frozenset(controls)


class DysonDevice:
    """Session with one Dyson device over its local MQTT broker.

    All state is owned by the Home Assistant event loop. paho-mqtt invokes
    its callbacks from the network thread; they only hand the event over to
    the loop with ``call_soon_threadsafe``.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        serial_number: str,
        product_type: str,
        password: str,
        host: str,
        options: DeviceOptions | None = None,
        name: str | None = None,
        firmware_version: str | None = None,
    ) -> None:
        """Initialize the device session."""
        self.hass = hass
        self.serial_number = serial_number
        self.product_type = product_type
        self.host = host
        self.name = name or f"Dyson {serial_number}"
        self.firmware_version = firmware_version
        self.options = options or DeviceOptions()
        self.profile = lookup(product_type)
        self.controls = build_controls(self.profile)

        self._password = password
        self._mqtt_client: mqtt.Client | None = None
        self._connection_state = ConnectionState.DISCONNECTED
        self._connected_event = asyncio.Event()
        self._deferred_write: asyncio.TimerHandle | None = None
        self._poll_timer: asyncio.TimerHandle | None = None
        self._actuator_state: dict[str, Any] = {}
        self._state: dict[str, Any] = {}
        self._listeners: list[Callable[[], None]] = []

    @property
    def status_topic(self) -> str:
        """Topic the device publishes its state on."""
        return f"{self.product_type}/{self.serial_number}/{MQTT_TOPIC_STATUS_CURRENT}"

    @property
    def command_topic(self) -> str:
        """Topic the device accepts commands on."""
        return f"{self.product_type}/{self.serial_number}/{MQTT_TOPIC_COMMAND}"

    @property
    def connection_state(self) -> ConnectionState:
        """Return the current connection state."""
        return self._connection_state

    @property
    def is_connected(self) -> bool:
        """Return if the device is connected."""
        return self._connection_state is ConnectionState.CONNECTED

    @property
    def state(self) -> dict[str, Any]:
        """Return a copy of the normalized device state."""
        return dict(self._state)

    @property
    def actuator_state(self) -> dict[str, Any]:
        """Return a copy of the last known raw product-state fields."""
        return dict(self._actuator_state)

    @property
    def has_pending_mode_write(self) -> bool:
        """Return True while a target mode write is held back."""
        return self._deferred_write is not None

    @property
    def device_info(self) -> DeviceInfo:
        """Return device information for Home Assistant."""
        return DeviceInfo(
            identifiers={(DOMAIN, self.serial_number)},
            name=self.name,
            manufacturer=MANUFACTURER,
            model=self.profile.model,
            hw_version=self.profile.hardware_revision or None,
            sw_version=self.firmware_version,
            serial_number=self.serial_number,
        )

    def accessory_info(self, kind: str) -> DeviceInfo:
        """Return the device an entity of the given accessory kind belongs to.

        Without single accessory mode, sensors and switches are grouped into
        their own devices linked to the purifier.
        """
        if self.options.is_single_accessory_mode_enabled or kind == ACCESSORY_PURIFIER:
            return self.device_info
        return DeviceInfo(
            identifiers={(DOMAIN, f"{self.serial_number}_{kind}")},
            name=f"{self.name} {kind.replace('_', ' ').title()}",
            manufacturer=MANUFACTURER,
            model=self.profile.model,
            via_device=(DOMAIN, self.serial_number),
        )

    @callback
    def add_listener(self, update_callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback for state and connection changes."""
        self._listeners.append(update_callback)

        @callback
        def remove_listener() -> None:
            self.remove_listener(update_callback)

        return remove_listener

    @callback
    def remove_listener(self, update_callback: Callable[[], None]) -> None:
        """Remove a previously registered callback."""
        if update_callback in self._listeners:
            self._listeners.remove(update_callback)

    @callback
    def _notify_listeners(self) -> None:
        for update_callback in list(self._listeners):
            try:
                update_callback()
            except Exception as err:  # noqa: BLE001
                _LOGGER.error("Error in listener for %s: %s", self.serial_number, err)

    async def async_connect(self, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> None:
        """Connect to the local broker and wait for the first CONNACK.

        After this returns, paho keeps reconnecting on its own; drops are
        reported through the connection state.
        """
        if self._connection_state is ConnectionState.ENDED:
            raise DeviceConnectionError(f"Session for {self.serial_number} has ended")

        client_id = f"dyson-pure-cool-{uuid.uuid4().hex[:8]}"
        mqtt_client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv31,
        )
        mqtt_client.username_pw_set(self.serial_number, self._password)
        mqtt_client.on_connect = self._on_connect
        mqtt_client.on_connect_fail = self._on_connect_fail
        mqtt_client.on_disconnect = self._on_disconnect
        mqtt_client.on_message = self._on_message
        self._mqtt_client = mqtt_client
        self._connected_event.clear()
        self._set_connection_state(ConnectionState.CONNECTING)

        _LOGGER.debug(
            "Connecting to %s at %s:%s as %s",
            self.serial_number,
            self.host,
            MQTT_PORT,
            client_id,
        )
        try:
            await self.hass.async_add_executor_job(
                mqtt_client.connect_async, self.host, MQTT_PORT, DEFAULT_KEEPALIVE
            )
            await self.hass.async_add_executor_job(mqtt_client.loop_start)
            await asyncio.wait_for(self._connected_event.wait(), timeout)
        except (OSError, ValueError, asyncio.TimeoutError) as err:
            _LOGGER.error(
                "Failed to connect to %s at %s: %s", self.serial_number, self.host, err
            )
            await self._async_stop_client()
            self._set_connection_state(ConnectionState.OFFLINE)
            raise DeviceConnectionError(
                f"Could not connect to {self.serial_number} at {self.host}"
            ) from err

    async def async_shutdown(self) -> None:
        """End the session; no timer or callback fires afterwards."""
        if self._connection_state is ConnectionState.ENDED:
            return
        self._cancel_deferred_write()
        self._cancel_poll_timer()
        self._set_connection_state(ConnectionState.ENDED)
        await self._async_stop_client()
        self._listeners.clear()
        _LOGGER.debug("MQTT connection ended for %s", self.serial_number)

    async def _async_stop_client(self) -> None:
        mqtt_client, self._mqtt_client = self._mqtt_client, None
        if mqtt_client is None:
            return
        try:
            await self.hass.async_add_executor_job(mqtt_client.disconnect)
            await self.hass.async_add_executor_job(mqtt_client.loop_stop)
        except (OSError, RuntimeError) as err:
            _LOGGER.error(
                "Failed to disconnect from device %s: %s", self.serial_number, err
            )

    @callback
    def _set_connection_state(self, new_state: ConnectionState) -> None:
        if new_state is self._connection_state:
            return
        _LOGGER.info(
            "Connection to %s: %s -> %s",
            self.serial_number,
            self._connection_state,
            new_state,
        )
        self._connection_state = new_state
        if new_state is not ConnectionState.CONNECTED:
            self._cancel_poll_timer()
        self._notify_listeners()

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        """Handle MQTT connection callback."""
        if reason_code == mqtt.CONNACK_ACCEPTED:
            self.hass.loop.call_soon_threadsafe(self._handle_connected)
        else:
            _LOGGER.error(
                "MQTT connection refused by %s with code: %s",
                self.serial_number,
                reason_code,
            )
            self.hass.loop.call_soon_threadsafe(
                self._handle_connection_lost, ConnectionState.OFFLINE
            )

    def _on_connect_fail(self, client: mqtt.Client, userdata: Any) -> None:
        """Handle a failed connection attempt."""
        _LOGGER.debug("MQTT connection attempt to %s failed", self.serial_number)
        self.hass.loop.call_soon_threadsafe(
            self._handle_connection_lost, ConnectionState.RECONNECTING
        )

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        disconnect_flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        """Handle MQTT disconnection callback."""
        _LOGGER.debug(
            "MQTT client disconnected from %s, code: %s", self.serial_number, reason_code
        )
        self.hass.loop.call_soon_threadsafe(
            self._handle_connection_lost, ConnectionState.RECONNECTING
        )

    def _on_message(
        self, client: mqtt.Client, userdata: Any, message: mqtt.MQTTMessage
    ) -> None:
        """Handle MQTT message callback."""
        if message.topic != self.status_topic:
            return
        self.hass.loop.call_soon_threadsafe(self._handle_payload, message.payload)

    @callback
    def _handle_connected(self) -> None:
        if self._connection_state is ConnectionState.ENDED or self._mqtt_client is None:
            return
        self._set_connection_state(ConnectionState.CONNECTED)
        self._connected_event.set()
        self._mqtt_client.subscribe(self.status_topic)
        self._request_current_state()
        self._arm_poll_timer()

    @callback
    def _handle_connection_lost(self, new_state: ConnectionState) -> None:
        if self._connection_state is ConnectionState.ENDED:
            return
        self._set_connection_state(new_state)

    @callback
    def _handle_payload(self, payload: bytes | str) -> None:
        if self._connection_state is ConnectionState.ENDED:
            return
        message = parse_message(payload)
        if message is None:
            _LOGGER.debug("Ignoring malformed payload from %s", self.serial_number)
            return

        _LOGGER.debug("Message from %s: %s", self.serial_number, message)
        self._actuator_state.update(raw_product_state(message))
        values = decode_message(
            message,
            self.profile,
            temperature_offset=self.options.temperature_offset,
            humidity_offset=self.options.humidity_offset,
        )
        if not values:
            return
        self._state.update(values)
        self._notify_listeners()

    @callback
    def _arm_poll_timer(self) -> None:
        self._cancel_poll_timer()
        interval = self.options.update_interval
        if interval and interval > 0:
            self._poll_timer = self.hass.loop.call_later(interval / 1000, self._poll)

    @callback
    def _cancel_poll_timer(self) -> None:
        poll_timer, self._poll_timer = self._poll_timer, None
        if poll_timer is not None:
            poll_timer.cancel()

    @callback
    def _poll(self) -> None:
        self._poll_timer = None
        if self._connection_state is not ConnectionState.CONNECTED:
            return
        self._request_current_state()
        self._arm_poll_timer()

    @callback
    def _request_current_state(self) -> bool:
        return self._publish(build_command(MQTT_CMD_REQUEST_CURRENT_STATE))

    async def async_request_current_state(self) -> bool:
        """Ask the device for a fresh CURRENT-STATE snapshot."""
        return self._request_current_state()

    @callback
    def _publish(self, command: dict[str, Any]) -> bool:
        """Publish a command once; failures are logged, never retried."""
        if not self.is_connected or self._mqtt_client is None:
            _LOGGER.warning(
                "Device %s is not connected, dropping %s", self.serial_number, command
            )
            return False

        payload = json.dumps(command)
        try:
            result = self._mqtt_client.publish(self.command_topic, payload)
        except (OSError, ValueError, RuntimeError) as err:
            _LOGGER.error("Failed to publish to %s: %s", self.serial_number, err)
            return False

        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            _LOGGER.error(
                "Failed to publish to %s with code: %s", self.serial_number, result.rc
            )
            return False

        _LOGGER.debug("Published to %s: %s", self.command_topic, payload)
        return True

    @callback
    def _send_state_set(self, data: dict[str, Any]) -> bool:
        _LOGGER.info("Setting %s on %s", data, self.serial_number)
        return self._publish(build_command(MQTT_CMD_STATE_SET, data))

    @callback
    def _cancel_deferred_write(self) -> bool:
        """Clear and cancel the pending mode write in one step."""
        deferred_write, self._deferred_write = self._deferred_write, None
        if deferred_write is None:
            return False
        deferred_write.cancel()
        return True

    @callback
    def _flush_deferred_write(self, data: dict[str, Any]) -> None:
        self._deferred_write = None
        if self._connection_state is ConnectionState.ENDED:
            return
        self._send_state_set(data)

    async def async_apply_intent(self, control: DysonControl, value: Any) -> None:
        """Translate one requested control change into device commands.

        Commands are fire and forget; the device confirms through its next
        state message.
        """
        if control not in self.controls:
            _LOGGER.warning(
                "Device %s (%s) does not support %s, ignoring",
                self.serial_number,
                self.profile.model,
                control,
            )
            return

        handlers: dict[DysonControl, Callable[[Any], None]] = {
            DysonControl.ACTIVE: self._set_active,
            DysonControl.TARGET_MODE: self._set_target_mode,
            DysonControl.SWING: self._set_swing,
            DysonControl.FAN_SPEED: self._set_fan_speed,
            DysonControl.NIGHT_MODE: self._set_night_mode,
            DysonControl.JET_FOCUS: self._set_jet_focus,
            DysonControl.CONTINUOUS_MONITORING: self._set_continuous_monitoring,
            DysonControl.HEATING_MODE: self._set_heating_mode,
            DysonControl.HEATING_TARGET: self._set_heating_target,
            DysonControl.HUMIDIFIER_ACTIVE: self._set_humidifier_active,
            DysonControl.HUMIDIFIER_AUTO: self._set_humidifier_auto,
            DysonControl.HUMIDITY_TARGET: self._set_humidity_target,
        }
        handlers[control](value)

    @callback
    def _set_active(self, active: bool) -> None:
        if self._cancel_deferred_write():
            _LOGGER.info(
                "Set active on %s: pending target mode change cancelled",
                self.serial_number,
            )

        if self._state.get("active") is active:
            _LOGGER.debug(
                "Device %s is already %s", self.serial_number, on_off(active)
            )
            return

        options = self.options
        data: dict[str, Any] = {
            STATE_KEY_POWER: on_off(active),
            STATE_KEY_FAN_MODE: (
                fan_mode_for(options.enable_auto_mode_when_activating)
                if active
                else MQTT_OFF
            ),
        }
        if active:
            if options.enable_auto_mode_when_activating:
                data[STATE_KEY_AUTO_MODE] = MQTT_ON
            if options.enable_oscillation_when_activating and self.profile.has_oscillation:
                data[STATE_KEY_OSCILLATION_ON] = MQTT_ON
            if options.enable_night_mode_when_activating:
                data[STATE_KEY_NIGHT_MODE] = MQTT_ON
            if self.profile.has_heating and not options.is_heating_safety_ignored:
                data[STATE_KEY_HEATING_MODE] = MQTT_OFF
        self._send_state_set(data)

    @callback
    def _set_target_mode(self, auto: bool) -> None:
        data = {
            STATE_KEY_AUTO_MODE: on_off(auto),
            STATE_KEY_FAN_MODE: fan_mode_for(auto),
        }
        if self.options.enable_auto_mode_when_activating:
            self._send_state_set(data)
            return

        self._cancel_deferred_write()
        _LOGGER.info(
            "Set target mode on %s to %s with delay",
            self.serial_number,
            "auto" if auto else "manual",
        )
        self._deferred_write = self.hass.loop.call_later(
            DEFERRED_MODE_WRITE_DELAY, self._flush_deferred_write, data
        )

    @callback
    def _set_swing(self, oscillating: bool) -> None:
        self._send_state_set({STATE_KEY_OSCILLATION_ON: on_off(oscillating)})

    @callback
    def _set_fan_speed(self, percentage: int) -> None:
        if percentage <= 0:
            self._set_active(False)
            return
        self._send_state_set({STATE_KEY_FAN_SPEED: encode_fan_speed(percentage)})

    @callback
    def _set_night_mode(self, enabled: bool) -> None:
        if not enabled:
            data = {STATE_KEY_NIGHT_MODE: MQTT_OFF}
        elif self._state.get("active"):
            data = {STATE_KEY_NIGHT_MODE: MQTT_ON}
        else:
            data = {
                STATE_KEY_POWER: MQTT_ON,
                STATE_KEY_FAN_MODE: fan_mode_for(
                    self.options.enable_auto_mode_when_activating
                ),
                STATE_KEY_NIGHT_MODE: MQTT_ON,
            }
        self._send_state_set(data)

    @callback
    def _set_jet_focus(self, enabled: bool) -> None:
        self._send_state_set({STATE_KEY_FAN_DIRECTION: on_off(enabled)})

    @callback
    def _set_continuous_monitoring(self, enabled: bool) -> None:
        self._send_state_set({STATE_KEY_CONTINUOUS_MONITORING: on_off(enabled)})

    @callback
    def _set_heating_mode(self, enabled: bool) -> None:
        self._send_state_set(
            {STATE_KEY_HEATING_MODE: HEATING_MODE_HEAT if enabled else MQTT_OFF}
        )

    @callback
    def _set_heating_target(self, celsius: float) -> None:
        celsius = max(HEATING_TARGET_MIN, min(HEATING_TARGET_MAX, celsius))
        self._send_state_set(
            {
                STATE_KEY_HEATING_TARGET: celsius_to_kelvin_tenths(
                    celsius, self.options.temperature_offset
                )
            }
        )

    @callback
    def _set_humidifier_active(self, enabled: bool) -> None:
        self._send_state_set(
            {STATE_KEY_HUMIDITY_ENABLED: HUMIDITY_MODE_ON if enabled else MQTT_OFF}
        )

    @callback
    def _set_humidifier_auto(self, enabled: bool) -> None:
        self._send_state_set({STATE_KEY_HUMIDITY_AUTO: on_off(enabled)})

    @callback
    def _set_humidity_target(self, percentage: int) -> None:
        low, high = self.humidity_target_range
        percentage = max(low, min(high, percentage))
        self._send_state_set({STATE_KEY_HUMIDITY_TARGET: encode_humidity_target(percentage)})

    @property
    def humidity_target_range(self) -> tuple[int, int]:
        """Return the humidity target limits for the configured range."""
        if self.options.is_full_range_humidity:
            return HUMIDITY_TARGET_FULL_MIN, HUMIDITY_TARGET_FULL_MAX
        return HUMIDITY_TARGET_MIN, HUMIDITY_TARGET_MAX
