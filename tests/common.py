"""Shared values and helpers for Dyson Pure Cool tests."""

import base64
import json

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

TEST_SERIAL = "NN2-EU-KFA0000A"
TEST_PRODUCT_TYPE = "438"
TEST_PASSWORD = "local-password-hash"
TEST_HOST = "192.168.1.42"


def encrypt_local_credentials(password: str, serial: str = TEST_SERIAL) -> str:
    """Build a LocalCredentials value the way the Dyson cloud does."""
    key = bytes(range(1, 33))
    encryptor = Cipher(algorithms.AES(key), modes.CBC(bytes(16))).encryptor()
    padder = padding.PKCS7(128).padder()
    plain = json.dumps({"serial": serial, "apPasswordHash": password}).encode()
    padded = padder.update(plain) + padder.finalize()
    return base64.b64encode(encryptor.update(padded) + encryptor.finalize()).decode()


def make_credentials_blob(
    serial: str = TEST_SERIAL,
    product_type: str = TEST_PRODUCT_TYPE,
    password: str = TEST_PASSWORD,
    name: str = "Living Room",
) -> str:
    """Build a manual-setup credentials blob."""
    payload = {
        "Serial": serial,
        "ProductType": product_type,
        "Version": "21.04.03",
        "Name": name,
        "password": password,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()
