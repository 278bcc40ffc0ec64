"""
geojson.py — Postal geometry feature collections (US ZCTA and Canadian FSA).

US features come from the Census ZCTA file and carry their own interior
point (INTPTLAT20 / INTPTLON20). Canadian FSA boundaries are published in
Web Mercator (EPSG:3857); their polygons and centroids are reprojected to
WGS84 (EPSG:4326) here so every stored geometry shares one CRS.

Usage:
    from locator_shared.geojson import read_feature_collection, parse_postal_features

    collection = read_feature_collection("data/us-zip-codes.json")
    features, skipped = parse_postal_features(collection, is_canada=False)
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from pyproj import Transformer
from shapely.geometry import mapping, shape
from shapely.ops import transform

CANADA_SOURCE_CRS = "EPSG:3857"
TARGET_CRS = "EPSG:4326"


@dataclass
class PostalFeature:
    zip_code: str
    state_province: str
    geometry: dict[str, Any] | None
    centroid_latitude: float | None
    centroid_longitude: float | None
    is_canada: bool

    @property
    def has_centroid(self) -> bool:
        return self.centroid_latitude is not None and self.centroid_longitude is not None

    def geometry_json(self) -> str | None:
        return json.dumps(self.geometry) if self.geometry else None


@lru_cache(maxsize=4)
def _transformer(source_crs: str, target_crs: str) -> Transformer:
    return Transformer.from_crs(source_crs, target_crs, always_xy=True)


def read_feature_collection(path: str | Path) -> dict[str, Any]:
    """Load a GeoJSON FeatureCollection; raises ValueError when it has no feature list."""
    with open(path, encoding="utf-8") as fh:
        collection = json.load(fh)
    if not isinstance(collection, dict) or not isinstance(collection.get("features"), list):
        raise ValueError(
            f'Invalid GeoJSON file {path}: "features" array not found or is not an array.'
        )
    return collection


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(result) else result


def us_feature(feature: dict[str, Any]) -> PostalFeature | None:
    """Build a PostalFeature from a Census ZCTA feature; None when the ZIP is missing."""
    props = feature.get("properties") or {}
    zip_code = props.get("ZCTA5CE20")
    if not zip_code:
        return None
    return PostalFeature(
        zip_code=str(zip_code),
        state_province=props.get("STUSPS") or "Unknown",
        geometry=feature.get("geometry"),
        centroid_latitude=_to_float(props.get("INTPTLAT20")),
        centroid_longitude=_to_float(props.get("INTPTLON20")),
        is_canada=False,
    )


def canada_feature(
    feature: dict[str, Any],
    *,
    source_crs: str = CANADA_SOURCE_CRS,
) -> PostalFeature | None:
    """
    Build a PostalFeature from a Statistics Canada FSA boundary feature.

    The polygon centroid is computed in the source CRS and both centroid
    and polygon are reprojected to WGS84. None when the FSA is missing.
    """
    props = feature.get("properties") or {}
    fsa = props.get("CFSAUID")
    if not fsa:
        return None

    geometry = feature.get("geometry")
    lat: float | None = None
    lng: float | None = None
    out_geometry: dict[str, Any] | None = None

    if geometry:
        polygon = shape(geometry)
        if source_crs != TARGET_CRS:
            project = _transformer(source_crs, TARGET_CRS).transform
            centroid = transform(project, polygon.centroid)
            polygon = transform(project, polygon)
        else:
            centroid = polygon.centroid
        if not centroid.is_empty:
            lng, lat = centroid.x, centroid.y
        out_geometry = mapping(polygon)

    return PostalFeature(
        zip_code=str(fsa).upper(),
        state_province=props.get("PRNAME") or "Unknown",
        geometry=_as_plain(out_geometry),
        centroid_latitude=lat,
        centroid_longitude=lng,
        is_canada=True,
    )


def _as_plain(geometry: dict[str, Any] | None) -> dict[str, Any] | None:
    # shapely.mapping returns nested tuples; round-trip to JSON-native lists
    if geometry is None:
        return None
    return json.loads(json.dumps(geometry))


def parse_postal_features(
    collection: dict[str, Any],
    *,
    is_canada: bool,
) -> tuple[list[PostalFeature], int]:
    """
    Convert every feature of a collection.

    Returns:
        (features, skipped) where skipped counts features without a postal code.
    """
    build = canada_feature if is_canada else us_feature
    features: list[PostalFeature] = []
    skipped = 0
    for raw in collection.get("features", []):
        parsed = build(raw)
        if parsed is None:
            skipped += 1
            continue
        features.append(parsed)
    return features, skipped


def build_centroid_lookup(
    features: list[PostalFeature],
) -> dict[str, tuple[float, float, str]]:
    """Map postal code -> (lat, lng, state) for features that have a centroid."""
    lookup: dict[str, tuple[float, float, str]] = {}
    for feature in features:
        if feature.has_centroid:
            lookup[feature.zip_code] = (
                feature.centroid_latitude,  # type: ignore[assignment]
                feature.centroid_longitude,
                feature.state_province or "Unknown",
            )
    return lookup
