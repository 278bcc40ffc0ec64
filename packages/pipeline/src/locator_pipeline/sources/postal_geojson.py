"""
sources/postal_geojson.py — Postal boundary GeoJSON files as DataFrames.

Wraps locator_shared.geojson for the geometry migration: one row per
feature with the RPC payload columns. Features without a postal code are
counted on ``skipped`` after run().

    source = PostalGeoJsonSource(is_canada=True)
    df = await source.run(path="data/canada-fsa.geojson")
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import polars as pl

from locator_shared.geojson import parse_postal_features, read_feature_collection
from locator_pipeline.sources.base import BaseSource

SCHEMA = {
    "zip_code": pl.String,
    "state_province": pl.String,
    "geometry_json": pl.String,
    "centroid_latitude": pl.Float64,
    "centroid_longitude": pl.Float64,
    "is_canada": pl.Boolean,
}


class PostalGeoJsonSource(BaseSource):
    """US ZCTA or Canadian FSA boundaries."""

    def __init__(self, *, is_canada: bool) -> None:
        self.is_canada = is_canada
        self.name = "canada_fsa_geojson" if is_canada else "us_zcta_geojson"
        self.skipped = 0
        super().__init__()

    async def extract(self, *, path: str | Path, **kwargs: Any) -> pl.DataFrame:
        collection = read_feature_collection(path)
        features, self.skipped = parse_postal_features(collection, is_canada=self.is_canada)
        if self.skipped:
            self._log.warning("features_without_code", skipped=self.skipped)
        rows = [
            {
                "zip_code": f.zip_code,
                "state_province": f.state_province,
                "geometry_json": f.geometry_json(),
                "centroid_latitude": f.centroid_latitude,
                "centroid_longitude": f.centroid_longitude,
                "is_canada": f.is_canada,
            }
            for f in features
        ]
        return pl.DataFrame(rows, schema=SCHEMA)

    def transform(self, raw: pl.DataFrame) -> pl.DataFrame:
        # A code appearing twice would be upserted twice; keep the first
        return raw.unique(subset=["zip_code"], keep="first", maintain_order=True)

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "description": "Canadian FSA boundaries" if self.is_canada else "US ZCTA boundaries",
            "is_canada": self.is_canada,
        }
