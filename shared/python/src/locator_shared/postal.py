"""
postal.py — US ZIP and Canadian FSA helpers.

Territories are keyed by 5-digit US ZIP codes and 3-character Canadian
Forward Sortation Areas (the first half of a postal code).
"""

from __future__ import annotations

import re

from locator_shared.constants import FSA_PROVINCES

_CANADA_NAMES = frozenset({"CANADA", "CA", "CAN"})
_FSA_RE = re.compile(r"^[A-Z]\d[A-Z]$")
_ZIP_RE = re.compile(r"^\d{5}$")
_WHITESPACE_RE = re.compile(r"\s+")


def is_canadian_country(country: str | None) -> bool:
    """True for ``Canada`` / ``CA`` / ``CAN`` in any case."""
    if not country:
        return False
    return country.strip().upper() in _CANADA_NAMES


def normalize_postal_code(code: str, *, is_canada: bool) -> str:
    """
    Normalize a raw postal code to the territory key.

    US: first five characters, left-padded with zeros when numeric and
    short (spreadsheets drop the leading zero of "02134").
    Canada: uppercase with whitespace removed, first three characters.
    """
    if code is None:
        return ""
    if is_canada:
        return _WHITESPACE_RE.sub("", str(code)).upper()[:3]

    zip_code = str(code).strip()
    if zip_code.isdigit() and len(zip_code) < 5:
        zip_code = zip_code.zfill(5)
    return zip_code[:5]


def looks_like_fsa(code: str) -> bool:
    return bool(code) and bool(_FSA_RE.match(code.strip().upper()))


def looks_like_us_zip(code: str) -> bool:
    return bool(code) and bool(_ZIP_RE.match(code.strip()))


def fsa_to_province_code(fsa: str) -> str | None:
    """
    Map a Forward Sortation Area prefix letter to a province abbreviation.

    The first letter of a Canadian postal code identifies the province.
    """
    if not fsa:
        return None
    return FSA_PROVINCES.get(fsa.strip()[:1].upper())
