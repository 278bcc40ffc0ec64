"""Postal geometry service (zip_code_geometries)."""

from __future__ import annotations

from typing import Any, Literal

import structlog

from locator_shared.db import get_supabase_client
from locator_shared.geo import (
    filter_within_radius,
    select_intersecting_bounds,
    select_within_bounds,
    select_within_circle,
)

from locator_api.utils.cache import geometry_cache
from locator_api.utils.pagination import fetch_all

logger = structlog.get_logger(__name__)

TABLE = "zip_code_geometries"
CENTROID_COLUMNS = "zip_code, state_province, centroid_latitude, centroid_longitude, is_canada"

SelectionMode = Literal["centroid", "intersects"]


def list_geometries(country: str = "us", *, include_geometry: bool = True) -> list[dict[str, Any]]:
    """All postal rows for a country; cached for 24h per country and shape."""
    cache_key = f"geometries:{country}:{'full' if include_geometry else 'centroids'}"

    def load() -> list[dict[str, Any]]:
        supabase = get_supabase_client()
        columns = f"{CENTROID_COLUMNS}, geometry" if include_geometry else CENTROID_COLUMNS
        rows = fetch_all(
            lambda: (
                supabase.table(TABLE)
                .select(columns)
                .eq("is_canada", country == "ca")
                .order("zip_code")
            )
        )
        logger.info("geometries_loaded", country=country, rows=len(rows), with_geometry=include_geometry)
        return rows

    return geometry_cache.get_or_load(cache_key, load)


def postal_codes_near(
    country: str,
    lat: float | None,
    lng: float | None,
    radius_miles: float | None,
    *,
    include_geometry: bool = True,
) -> list[dict[str, Any]]:
    """Rows within the display radius of a point; no point or radius → every row."""
    rows = list_geometries(country, include_geometry=include_geometry)
    if lat is None or lng is None:
        return rows
    return filter_within_radius(rows, lat, lng, radius_miles)


def select_postal_codes(
    country: str,
    *,
    circle: tuple[float, float, float] | None = None,
    bounds: tuple[float, float, float, float] | None = None,
    mode: SelectionMode = "centroid",
) -> list[dict[str, Any]]:
    """
    Rows picked by a bulk selection gesture.

    Args:
        circle: (lat, lng, radius_meters).
        bounds: (south, west, north, east).
        mode:   "centroid" tests the centroid; "intersects" tests the polygon
                against the rectangle (circles always use centroids).

    Raises:
        ValueError: neither or both shapes given.
    """
    if (circle is None) == (bounds is None):
        raise ValueError("Provide exactly one of circle or bounds")

    if circle is not None:
        rows = list_geometries(country, include_geometry=False)
        return select_within_circle(rows, *circle)

    if mode == "intersects":
        return select_intersecting_bounds(list_geometries(country), *bounds)  # type: ignore[misc]
    return select_within_bounds(list_geometries(country, include_geometry=False), *bounds)  # type: ignore[misc]


def centroid_lookup(zip_codes: list[str]) -> dict[str, dict[str, Any]]:
    """{zip_code: row} with centroid columns for the given codes."""
    if not zip_codes:
        return {}
    supabase = get_supabase_client()
    rows: list[dict[str, Any]] = []
    # Keep the in.() filter well under URL length limits
    for i in range(0, len(zip_codes), 200):
        chunk = zip_codes[i : i + 200]
        result = (
            supabase.table(TABLE)
            .select(CENTROID_COLUMNS)
            .in_("zip_code", chunk)
            .execute()
        )
        rows.extend(result.data or [])
    return {row["zip_code"]: row for row in rows}
