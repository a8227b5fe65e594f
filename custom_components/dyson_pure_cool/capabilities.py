"""Capability profiles for Dyson air treatment product types.

Each product type code reported by the device directory maps to exactly one
``CapabilityProfile``. Product codes do not follow a uniform numbering scheme
(``438`` is a tower purifier, ``438E`` a formaldehyde tower, ``455`` a heater),
so the mapping is an explicit table rather than anything derived from the
shape of the code.

Unknown codes resolve to ``DEFAULT_PROFILE`` so a newer device still gets a
power switch, a fan speed and its filter readout instead of failing setup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class CapabilityProfile:
    """Model information and feature flags of one product type."""

    model: str
    hardware_revision: str = ""
    has_heating: bool = False
    has_humidifier: bool = False
    has_jet_focus: bool = False
    has_oscillation: bool = False
    has_advanced_air_quality_sensors: bool = False


DEFAULT_PROFILE: Final = CapabilityProfile(model="Pure Cool")

PRODUCT_TYPES: Final[dict[str, CapabilityProfile]] = {
    "358": CapabilityProfile(
        model="Dyson Pure Humidify+Cool",
        hardware_revision="PH01",
        has_humidifier=True,
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "358E": CapabilityProfile(
        model="Dyson Pure Humidify+Cool Formaldehyde",
        hardware_revision="PH03/PH04",
        has_humidifier=True,
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "358K": CapabilityProfile(
        model="Dyson Pure Humidify+Cool Formaldehyde",
        hardware_revision="PH03/PH04",
        has_humidifier=True,
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "438": CapabilityProfile(
        model="Dyson Pure Cool (Tower)",
        hardware_revision="TP04/TP11",
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "438E": CapabilityProfile(
        model="Dyson Pure Cool",
        hardware_revision="TP07/TP09",
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "438K": CapabilityProfile(
        model="Dyson Pure Cool",
        hardware_revision="TP07/TP09",
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "455": CapabilityProfile(
        model="Dyson Pure Hot+Cool Link",
        hardware_revision="HP02",
        has_heating=True,
        has_jet_focus=True,
        has_oscillation=True,
    ),
    "469": CapabilityProfile(
        model="Dyson Pure Cool Link Desk",
        hardware_revision="DP01",
        has_oscillation=True,
    ),
    "475": CapabilityProfile(
        model="Dyson Pure Cool Link Tower",
        hardware_revision="TP02",
        has_oscillation=True,
    ),
    "520": CapabilityProfile(
        model="Dyson Pure Cool Purifying Desk",
        hardware_revision="DP04",
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "527": CapabilityProfile(
        model="Dyson Pure Hot+Cool",
        hardware_revision="HP04",
        has_heating=True,
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "527E": CapabilityProfile(
        model="Dyson Purifier Hot+Cool Formaldehyde",
        hardware_revision="HP07/HP09",
        has_heating=True,
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "527K": CapabilityProfile(
        model="Dyson Purifier Hot+Cool",
        hardware_revision="HP07",
        has_heating=True,
        has_jet_focus=True,
        has_oscillation=True,
        has_advanced_air_quality_sensors=True,
    ),
    "664": CapabilityProfile(
        model="Dyson Purifier Big+Quiet Formaldehyde",
        hardware_revision="BP02/BP03/BP04/BP06",
        has_advanced_air_quality_sensors=True,
    ),
}


def lookup(product_type: str | None) -> CapabilityProfile:
    """Return the capability profile of a product type code.

    Never raises: ``None``, empty strings and unknown codes all resolve to
    ``DEFAULT_PROFILE``.
    """
    if not isinstance(product_type, str):
        return DEFAULT_PROFILE
    return PRODUCT_TYPES.get(product_type.strip().upper(), DEFAULT_PROFILE)


def is_supported(product_type: str | None) -> bool:
    """Return True when the product type has its own table entry."""
    return isinstance(product_type, str) and product_type.strip().upper() in PRODUCT_TYPES


def supported_product_types() -> list[str]:
    """Return every product type code with a dedicated profile."""
    return list(PRODUCT_TYPES)
