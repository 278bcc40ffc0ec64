"""
models/installer.py — Pydantic model for the installers table.

Column names follow the table exactly, including the mixed-case legacy
columns (``Alta``, ``PowerView``, ``Country`` ...) inherited from the
spreadsheet the table was first loaded from.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from locator_shared.constants import (
    BRAND_COLUMNS,
    CERTIFICATION_ALIASES,
    CERTIFICATION_COLUMNS,
    SKILL_COLUMNS,
)
from locator_shared.postal import is_canadian_country

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9\s]")
_SPACES_RE = re.compile(r"\s+")

_TRUTHY_STRINGS = frozenset({"1", "yes", "true"})


def to_boolean(value: Any) -> bool:
    """Interpret a stored flag: '1' / 'yes' / 'true' (any case), 1 and True are truthy."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    if isinstance(value, bool):
        return value
    return value == 1


def standardize_certification(text: str | None) -> str | None:
    """
    Map free-text certification wording to a standard certification name.

    Punctuation is stripped, whitespace collapsed and case folded before
    the lookup; any text mentioning "motorization pro" counts as that
    certification. Unknown text returns None.
    """
    if not text:
        return None
    normalized = _SPACES_RE.sub(" ", _NON_ALNUM_RE.sub("", text)).strip().lower()
    if "motorization pro" in normalized:
        return "Motorization Pro"
    return CERTIFICATION_ALIASES.get(normalized)


class Installer(BaseModel):
    """Matches the installers table row."""

    model_config = ConfigDict(extra="allow")

    id: UUID | None = None
    name: str | None = None

    primary_phone: str | None = None
    secondary_phone: str | None = None
    email: str | None = None

    address1: str | None = None
    add2: str | None = None
    city: str | None = None
    state: str | None = None
    postalcode: str | None = None
    Country: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    # Brand flags (1 / 0)
    hunter_douglas: int | None = None
    Alta: int | None = None
    carole: int | None = None
    architectural: int | None = None
    levolor: int | None = None
    three_day_blinds: int | None = None

    # Skill flags (1 / 0; PowerView is stored as text '1' / '0')
    Blinds_and_Shades: int | None = None
    PowerView: str | None = None
    Service_Call: int | None = None
    Shutters: int | None = None
    Draperies: int | None = None
    alta_motorization: int | None = None
    tall_window: int | None = None
    fixture_displays: int | None = None
    outdoor: int | None = None
    high_voltage_hardwired: int | None = None

    # Free-text certification levels
    PIP_Certification_Level: str | None = None
    Shutter_Certification_Level: str | None = None
    Powerview_Certification: str | None = None
    Draperies_Certification_Level: str | None = None

    Installer_Vendor_ID: float | str | None = None
    Shipment: str | None = None             # "Yes" / "No"
    Star_Rating: float | None = None
    Sales_Org: str | None = None
    specialnote: str | None = None
    comments: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator(
        "hunter_douglas", "Alta", "carole", "architectural", "levolor",
        "three_day_blinds", "Blinds_and_Shades", "Service_Call", "Shutters",
        "Draperies", "alta_motorization", "tall_window", "fixture_displays",
        "outdoor", "high_voltage_hardwired",
        mode="before",
    )
    @classmethod
    def coerce_flag(cls, v: Any) -> int | None:
        if v is None or v == "":
            return None
        return 1 if to_boolean(v) else 0

    @field_validator("PowerView", mode="before")
    @classmethod
    def coerce_text_flag(cls, v: Any) -> str | None:
        if v is None or v == "":
            return None
        return "1" if to_boolean(v) else "0"

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Installer":
        return cls(**row)

    def to_insert_dict(self) -> dict[str, Any]:
        d = self.model_dump(
            mode="json",
            exclude={"id", "created_at", "updated_at"},
            exclude_none=True,
        )
        if self.id is not None:
            d["id"] = str(self.id)
        return d

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def brands(self) -> list[str]:
        return [name for name, col in BRAND_COLUMNS.items() if to_boolean(getattr(self, col))]

    @property
    def skills(self) -> list[str]:
        return [name for name, col in SKILL_COLUMNS.items() if to_boolean(getattr(self, col))]

    @property
    def certifications(self) -> list[str]:
        found: list[str] = []
        for col in CERTIFICATION_COLUMNS:
            raw = getattr(self, col) or ""
            for part in raw.split(","):
                cert = standardize_certification(part)
                if cert and cert not in found:
                    found.append(cert)
        return found

    @property
    def accepts_shipments(self) -> bool:
        return to_boolean(self.Shipment)

    @property
    def full_address(self) -> str:
        street = " ".join(p for p in (self.address1, self.add2) if p)
        region = " ".join(p for p in (self.state, self.postalcode) if p)
        return ", ".join(p for p in (street, self.city, region) if p)

    @property
    def geocode_address(self) -> str:
        """Address sent to the geocoder; the secondary address line is left out."""
        region = " ".join(p for p in (self.state, self.postalcode) if p)
        return ", ".join(p for p in (self.address1, self.city, region, self.Country) if p)

    @property
    def is_canada(self) -> bool:
        return is_canadian_country(self.Country)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def summary(self) -> dict[str, Any]:
        """Card-style view used by the locator and the directory listing."""
        return {
            "id": str(self.id) if self.id else None,
            "name": self.name,
            "address": self.full_address,
            "zip_code": self.postalcode,
            "phone": self.primary_phone,
            "email": self.email,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "brands": self.brands,
            "skills": self.skills,
            "certifications": self.certifications,
            "installer_vendor_id": self.Installer_Vendor_ID,
            "accepts_shipments": self.accepts_shipments,
        }
