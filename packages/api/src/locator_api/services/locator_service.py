"""
Public installer locator.

Finds installers with coordinates near a searched postal code (or the
caller's IP location), filtered by brand, skill and certification, and
ranks them by driving distance. When the routing service is not configured
or fails, great-circle distance is used instead.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

import structlog

from locator_shared.constants import BRAND_COLUMNS, CERTIFICATIONS, SKILL_COLUMNS
from locator_shared.country import CountrySettings
from locator_shared.db import get_supabase_client
from locator_shared.geo import KM_PER_MILE, haversine_miles
from locator_shared.geocoding import (
    Coordinates,
    DrivingDistanceMatrix,
    IpLocator,
    OpenCageGeocoder,
    UpstreamServiceError,
)
from locator_shared.models.installer import Installer

from locator_api.utils.pagination import fetch_all

logger = structlog.get_logger(__name__)

DistanceSource = Literal["driving", "great_circle"]


class LocationNotFound(Exception):
    """The searched postal code could not be geocoded."""


class LocationRequired(Exception):
    """No postal code was given and the caller's IP could not be located."""


@dataclass
class SearchResult:
    installers: list[dict[str, Any]]
    location: Coordinates | None
    location_source: Literal["postal_code", "ip", "state"]
    distance_source: DistanceSource | None


def load_installers(states: Sequence[str] = ()) -> list[Installer]:
    """Installers that have coordinates (optionally restricted to states)."""
    supabase = get_supabase_client()

    def _query() -> Any:
        query = (
            supabase.table("installers")
            .select("*")
            .not_.is_("latitude", "null")
            .not_.is_("longitude", "null")
            .order("name")
        )
        if states:
            query = query.in_("state", list(states))
        return query

    return [Installer.from_db_row(row) for row in fetch_all(_query)]


def display_names(values: Sequence[str], mapping: dict[str, str], kind: str) -> list[str]:
    """Map column or display names to display names.

    Raises:
        ValueError: a name matches neither.
    """
    by_column = {column: name for name, column in mapping.items()}
    names: list[str] = []
    for value in values:
        if value in mapping:
            names.append(value)
        elif value in by_column:
            names.append(by_column[value])
        else:
            raise ValueError(f"Unknown {kind}: {value!r}. Expected one of: {', '.join(mapping)}")
    return names


def matches_filters(
    installer: Installer,
    brands: Sequence[str] = (),
    skills: Sequence[str] = (),
    certifications: Sequence[str] = (),
) -> bool:
    """Every selected brand, skill and certification must be present."""
    return (
        all(b in installer.brands for b in brands)
        and all(s in installer.skills for s in skills)
        and all(c in installer.certifications for c in certifications)
    )


def public_ip(forwarded_for: str | None, client_host: str | None) -> str | None:
    """The caller's public IP, or None to let the IP service use the request source."""
    candidate = (forwarded_for or "").split(",")[0].strip() or client_host
    if not candidate:
        return None
    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        return None
    if address.is_private or address.is_loopback or address.is_reserved:
        return None
    return candidate


async def resolve_location(
    postal_code: str | None,
    *,
    country: CountrySettings,
    geocoder: OpenCageGeocoder,
    ip_locator: IpLocator,
    ip: str | None = None,
) -> tuple[Coordinates, Literal["postal_code", "ip"]]:
    """
    Where to search from.

    Raises:
        LocationNotFound: postal code given but not found.
        LocationRequired: no postal code and IP lookup failed.
    """
    if postal_code and postal_code.strip():
        coords = await geocoder.geocode(postal_code, country="ca" if country.is_canada else "us")
        if not coords.found:
            raise LocationNotFound(f"Could not find coordinates for {postal_code.strip()}")
        return coords, "postal_code"

    coords = await ip_locator.locate(ip)
    if not coords.found:
        raise LocationRequired(
            f"Could not determine your location. Please enter a {country.postal_code_label.lower()}."
        )
    return coords, "ip"


async def rank_by_distance(
    origin: Coordinates,
    installers: list[Installer],
    matrix: DrivingDistanceMatrix,
) -> tuple[list[tuple[Installer, float]], DistanceSource]:
    """Pair each installer with its distance in miles; unreachable ones are dropped."""
    if not installers:
        return [], "driving" if matrix.configured else "great_circle"

    if matrix.configured:
        try:
            miles = await matrix.distances_miles(
                (origin.lat, origin.lng),  # type: ignore[arg-type]
                [(i.latitude, i.longitude) for i in installers],  # type: ignore[misc]
            )
            return (
                [(inst, d) for inst, d in zip(installers, miles) if d is not None],
                "driving",
            )
        except UpstreamServiceError as exc:
            logger.warning(
                "driving_distance_fallback",
                error=exc.message,
                status_code=exc.status_code,
                rate_limited=exc.is_rate_limited,
            )

    return (
        [
            (inst, haversine_miles(origin.lat, origin.lng, inst.latitude, inst.longitude))  # type: ignore[arg-type]
            for inst in installers
        ],
        "great_circle",
    )


def _card(installer: Installer, miles: float | None, country: CountrySettings) -> dict[str, Any]:
    card = installer.summary()
    if miles is None:
        card["distance"] = None
        card["distance_miles"] = None
    else:
        shown = miles * KM_PER_MILE if country.is_canada else miles
        card["distance"] = round(shown, 1)
        card["distance_miles"] = round(miles, 2)
    return card


async def search(
    *,
    postal_code: str | None,
    radius_miles: float,
    country: CountrySettings,
    geocoder: OpenCageGeocoder,
    ip_locator: IpLocator,
    matrix: DrivingDistanceMatrix,
    brands: Sequence[str] = (),
    skills: Sequence[str] = (),
    certifications: Sequence[str] = (),
    states: Sequence[str] = (),
    ip: str | None = None,
) -> SearchResult:
    """
    Run a locator search.

    With ``states`` the search lists installers in those states and skips
    location and distance entirely. Otherwise results are sorted by
    ascending distance and limited to ``radius_miles``.

    Raises:
        ValueError:       unknown brand, skill or certification.
        LocationNotFound: the postal code could not be geocoded.
        LocationRequired: no postal code and no IP location.
    """
    brands = display_names(brands, BRAND_COLUMNS, "brand")
    skills = display_names(skills, SKILL_COLUMNS, "skill")
    unknown = [c for c in certifications if c not in CERTIFICATIONS]
    if unknown:
        raise ValueError(f"Unknown certification: {unknown[0]!r}. Expected one of: {', '.join(CERTIFICATIONS)}")

    if states:
        installers = [
            i for i in load_installers(states)
            if matches_filters(i, brands, skills, certifications)
        ]
        return SearchResult(
            installers=[_card(i, None, country) for i in installers],
            location=None,
            location_source="state",
            distance_source=None,
        )

    origin, source = await resolve_location(
        postal_code, country=country, geocoder=geocoder, ip_locator=ip_locator, ip=ip,
    )
    candidates = [i for i in load_installers() if matches_filters(i, brands, skills, certifications)]
    ranked, distance_source = await rank_by_distance(origin, candidates, matrix)

    within = sorted(
        ((inst, miles) for inst, miles in ranked if miles <= radius_miles),
        key=lambda pair: pair[1],
    )
    logger.info(
        "locator_search",
        location_source=source,
        distance_source=distance_source,
        candidates=len(candidates),
        results=len(within),
        radius_miles=radius_miles,
    )
    return SearchResult(
        installers=[_card(inst, miles, country) for inst, miles in within],
        location=origin,
        location_source=source,
        distance_source=distance_source,
    )
