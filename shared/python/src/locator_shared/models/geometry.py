"""
models/geometry.py — Postal geometry rows (zip_code_geometries table).
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, field_validator


class ZipGeometry(BaseModel):
    """Matches the zip_code_geometries table row."""

    zip_code: str
    state_province: str | None = None
    geometry: dict[str, Any] | None = None
    centroid_latitude: float | None = None
    centroid_longitude: float | None = None
    is_canada: bool = False

    @field_validator("geometry", mode="before")
    @classmethod
    def parse_geometry(cls, v: Any) -> Any:
        # The RPC stores the GeoJSON string; some rows come back as text
        if isinstance(v, str):
            return json.loads(v) if v.strip() else None
        return v

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "ZipGeometry":
        return cls(**row)

