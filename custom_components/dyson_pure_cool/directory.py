"""Device directory access and local credential decoding."""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from libdyson_rest import AsyncDysonClient
from libdyson_rest.exceptions import DysonAPIError, DysonAuthError, DysonConnectionError

from .exceptions import DirectoryError, InvalidCredentialsError

_LOGGER = logging.getLogger(__name__)

_KEY = bytes(range(1, 33))
_IV = bytes(16)


@dataclass(frozen=True)
class DirectoryEntry:
    """One device as listed by the directory or a credentials blob."""

    serial_number: str
    product_type: str
    name: str
    version: str | None = None
    password: str | None = None


def decrypt_local_credentials(local_credentials: str) -> str:
    """Return the ``apPasswordHash`` hidden in a LocalCredentials value."""
    try:
        cipher_bytes = base64.b64decode(local_credentials.strip())
        decryptor = Cipher(algorithms.AES(_KEY), modes.CBC(_IV)).decryptor()
        padded = decryptor.update(cipher_bytes) + decryptor.finalize()
        unpadder = padding.PKCS7(128).unpadder()
        plain = unpadder.update(padded) + unpadder.finalize()
        password = json.loads(plain.decode("utf-8"))["apPasswordHash"]
    except (AttributeError, KeyError, TypeError, ValueError) as err:
        raise InvalidCredentialsError(f"Cannot decrypt local credentials: {err}") from err
    if not isinstance(password, str) or not password:
        raise InvalidCredentialsError("Local credentials carry no password")
    return password


def decode_credentials_blob(blob: str) -> DirectoryEntry:
    """Decode a base64 credentials blob as produced for manual setup.

    The blob is base64 of ``{"Serial", "ProductType", "Version", "Name",
    "password"}``.
    """
    try:
        payload = json.loads(base64.b64decode(blob.strip()).decode("utf-8"))
        serial_number = str(payload["Serial"]).strip()
        product_type = str(payload["ProductType"]).strip()
        password = payload["password"]
    except (AttributeError, KeyError, TypeError, ValueError) as err:
        raise InvalidCredentialsError(f"Invalid credentials blob: {err}") from err

    if not serial_number or not product_type or not isinstance(password, str) or not password:
        raise InvalidCredentialsError("Credentials blob is missing serial, type or password")

    return DirectoryEntry(
        serial_number=serial_number,
        product_type=product_type,
        name=payload.get("Name") or f"Dyson {serial_number}",
        version=payload.get("Version"),
        password=password,
    )


def encode_credentials_blob(entry: DirectoryEntry) -> str:
    """Encode a directory entry as a credentials blob."""
    payload = {
        "Serial": entry.serial_number,
        "ProductType": entry.product_type,
        "Version": entry.version,
        "Name": entry.name,
        "password": entry.password,
    }
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def entry_from_cloud_device(device: Any) -> DirectoryEntry:
    """Convert a libdyson-rest device; undecodable credentials leave no password."""
    serial_number = device.serial_number
    connected = getattr(device, "connected_configuration", None)
    mqtt_config = getattr(connected, "mqtt", None)
    firmware = getattr(connected, "firmware", None)

    password = None
    local_credentials = getattr(mqtt_config, "local_broker_credentials", None)
    if local_credentials:
        try:
            password = decrypt_local_credentials(local_credentials)
        except InvalidCredentialsError as err:
            _LOGGER.warning("Skipping credentials of %s: %s", serial_number, err)
    else:
        _LOGGER.warning("Device %s has no local credentials in the directory", serial_number)

    return DirectoryEntry(
        serial_number=serial_number,
        product_type=str(getattr(device, "product_type", "") or ""),
        name=getattr(device, "name", None) or f"Dyson {serial_number}",
        version=getattr(firmware, "version", None),
        password=password,
    )


async def async_fetch_directory(auth_token: str) -> list[DirectoryEntry]:
    """Read every device of a cloud account.

    Raises:
        DirectoryError: The directory could not be read; retry later.
    """
    if not auth_token:
        raise DirectoryError("No auth token available")

    try:
        async with AsyncDysonClient(auth_token=auth_token) as client:
            devices = await client.get_devices()
    except DysonAuthError as err:
        raise DirectoryError(f"Authentication rejected: {err}") from err
    except (DysonConnectionError, DysonAPIError) as err:
        raise DirectoryError(f"Directory unavailable: {err}") from err

    entries = [entry_from_cloud_device(device) for device in devices or []]
    _LOGGER.debug("Directory lists %d device(s)", len(entries))
    return entries
