"""
geo.py — Great-circle distance and postal-code selection helpers.

Every territory gesture (radius filter, drag-to-select circle, rectangle
selection) is a linear scan over postal-code records that carry a centroid.
Records may be plain dicts (Supabase rows) or objects exposing the same
attribute names.

Usage:
    from locator_shared.geo import haversine_miles, is_point_in_circle

    haversine_miles(40.7128, -74.0060, 34.0522, -118.2437)   # ~2445.6
    is_point_in_circle(40.0, -75.0, 40.0, -75.0, 1000)        # True
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from shapely.geometry import box, shape

from locator_shared.constants import DISTANCE_BANDS

EARTH_RADIUS_MILES = 3958.8
METERS_PER_MILE = 1609.34
KM_PER_MILE = 1.609344

R = TypeVar("R")


# ---------------------------------------------------------------------------
# Distance
# ---------------------------------------------------------------------------

def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in statute miles.

    Args:
        lat1, lon1: First point in decimal degrees.
        lat2, lon2: Second point in decimal degrees.

    Returns:
        Distance in miles (0.0 for identical points).
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push a marginally above 1 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def is_point_in_circle(
    point_lat: float,
    point_lng: float,
    center_lat: float,
    center_lng: float,
    radius_meters: float,
) -> bool:
    """True when the point lies within (or on) a circle given in meters."""
    distance = haversine_miles(point_lat, point_lng, center_lat, center_lng)
    return distance * METERS_PER_MILE <= radius_meters


def miles_to_meters(miles: float) -> float:
    return miles * METERS_PER_MILE


def miles_to_km(miles: float) -> float:
    return miles * KM_PER_MILE


def km_to_miles(km: float) -> float:
    return km / KM_PER_MILE


# ---------------------------------------------------------------------------
# Record access
# ---------------------------------------------------------------------------

def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def record_centroid(record: Any) -> tuple[float, float] | None:
    """Return (lat, lng) of a postal record, or None when either is missing."""
    lat = _field(record, "centroid_latitude")
    lng = _field(record, "centroid_longitude")
    if lat is None or lng is None:
        return None
    try:
        lat_f, lng_f = float(lat), float(lng)
    except (TypeError, ValueError):
        return None
    if math.isnan(lat_f) or math.isnan(lng_f):
        return None
    return lat_f, lng_f


def _record_geometry(record: Any) -> dict[str, Any] | None:
    geometry = _field(record, "geometry")
    if isinstance(geometry, str):
        geometry = json.loads(geometry) if geometry.strip() else None
    return geometry or None


# ---------------------------------------------------------------------------
# Selection gestures
# ---------------------------------------------------------------------------

def select_within_circle(
    records: Iterable[R],
    center_lat: float,
    center_lng: float,
    radius_meters: float,
) -> list[R]:
    """Records whose centroid lies inside the circle; boundary points included."""
    selected: list[R] = []
    for record in records:
        centroid = record_centroid(record)
        if centroid is None:
            continue
        if is_point_in_circle(centroid[0], centroid[1], center_lat, center_lng, radius_meters):
            selected.append(record)
    return selected


def select_within_bounds(
    records: Iterable[R],
    south: float,
    west: float,
    north: float,
    east: float,
) -> list[R]:
    """Records whose centroid lies inside the inclusive lat/lng rectangle."""
    selected: list[R] = []
    for record in records:
        centroid = record_centroid(record)
        if centroid is None:
            continue
        lat, lng = centroid
        if south <= lat <= north and west <= lng <= east:
            selected.append(record)
    return selected


def select_intersecting_bounds(
    records: Iterable[R],
    south: float,
    west: float,
    north: float,
    east: float,
) -> list[R]:
    """
    Records whose polygon intersects the rectangle.

    Records without a geometry fall back to the centroid test used by
    :func:`select_within_bounds`.
    """
    rectangle = box(west, south, east, north)
    selected: list[R] = []
    for record in records:
        geometry = _record_geometry(record)
        if geometry is not None:
            if shape(geometry).intersects(rectangle):
                selected.append(record)
            continue
        centroid = record_centroid(record)
        if centroid is not None and south <= centroid[0] <= north and west <= centroid[1] <= east:
            selected.append(record)
    return selected


# ---------------------------------------------------------------------------
# Display filters
# ---------------------------------------------------------------------------

def filter_within_radius(
    records: Iterable[R],
    center_lat: float,
    center_lng: float,
    radius_miles: float | None,
) -> list[R]:
    """Records within ``radius_miles`` of the center; ``None`` keeps everything."""
    if radius_miles is None:
        return list(records)
    return select_within_circle(records, center_lat, center_lng, miles_to_meters(radius_miles))


def parse_distance_band(band: str) -> tuple[float, float]:
    """Parse ``"25-50"`` into ``(25.0, 50.0)``; raises ValueError for unknown bands."""
    if band not in DISTANCE_BANDS:
        raise ValueError(f"Unknown distance band: {band!r}")
    low, high = band.split("-")
    return float(low), float(high)


def filter_by_distance_band(
    records: Iterable[R],
    center_lat: float,
    center_lng: float,
    band: str,
) -> list[R]:
    """
    Keep records whose centroid distance falls inside a band.

    The lower bound is inclusive and the upper bound exclusive, except for
    the last band which also includes its upper bound. ``"all"`` applies no
    filter; records without a centroid are dropped by any real band.
    """
    if band == "all":
        return list(records)

    low, high = parse_distance_band(band)
    is_last = band == DISTANCE_BANDS[-1]
    kept: list[R] = []
    for record in records:
        centroid = record_centroid(record)
        if centroid is None:
            continue
        distance = haversine_miles(center_lat, center_lng, centroid[0], centroid[1])
        if distance < low:
            continue
        if distance < high or (is_last and distance <= high):
            kept.append(record)
    return kept
