"""Exceptions raised by the Dyson Pure Cool integration."""


class DysonPureCoolError(Exception):
    """Base class for integration errors."""


class InvalidCredentialsError(DysonPureCoolError):
    """Raised when a credentials blob or LocalCredentials value cannot be decoded."""


class DeviceConnectionError(DysonPureCoolError):
    """Raised when the local MQTT broker of a device cannot be reached."""


class DirectoryError(DysonPureCoolError):
    """Raised when the cloud device directory cannot be read."""
