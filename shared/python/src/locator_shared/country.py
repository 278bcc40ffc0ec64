"""
country.py — Country-dependent display settings.

Canadian visitors see kilometres and "Postal Code"; everyone else sees
miles and "Zip Code". Radii are always stored and compared in miles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from locator_shared.geo import km_to_miles

DistanceUnit = Literal["miles", "km"]

# (miles, km) pairs offered by the locator radius selector
DISTANCE_OPTIONS: tuple[tuple[int, int], ...] = (
    (50, 80),
    (100, 150),
    (250, 400),
    (500, 800),
)


@dataclass(frozen=True)
class CountrySettings:
    is_canada: bool

    @property
    def distance_unit(self) -> DistanceUnit:
        return "km" if self.is_canada else "miles"

    @property
    def postal_code_label(self) -> str:
        return "Postal Code" if self.is_canada else "Zip Code"

    @property
    def distance_options(self) -> list[int]:
        return [km if self.is_canada else miles for miles, km in DISTANCE_OPTIONS]

    def to_dict(self) -> dict[str, object]:
        return {
            "is_canada": self.is_canada,
            "distance_unit": self.distance_unit,
            "postal_code_label": self.postal_code_label,
            "distance_options": self.distance_options,
        }


US_SETTINGS = CountrySettings(is_canada=False)
CANADA_SETTINGS = CountrySettings(is_canada=True)


def detect_country_settings(accept_language: str | None) -> CountrySettings:
    """Canada when the Accept-Language header mentions en-CA or fr-CA."""
    if accept_language and ("en-CA" in accept_language or "fr-CA" in accept_language):
        return CANADA_SETTINGS
    return US_SETTINGS


def radius_to_miles(value: float, settings: CountrySettings) -> float:
    """Convert a radius typed in the display unit to miles."""
    return km_to_miles(value) if settings.is_canada else float(value)
