"""
sources/territories_csv.py — Territory (ZIP / FSA assignment) CSV reader.

Expected headers: ZipCode, Status, StateProvince. Values are trimmed; a row
is valid when all three are present and Status is one of the territory
statuses. Invalid rows stay in the frame with ``_valid`` False so the import
can count them.
"""

from __future__ import annotations

from typing import Any

import polars as pl

from locator_shared.constants import TERRITORY_CSV_HEADERS, TERRITORY_STATUSES
from locator_pipeline.sources.base import (
    BaseSource,
    blank_to_null,
    check_headers,
    read_csv_bytes,
)

_RENAMES = {
    "ZipCode": "zip_code",
    "Status": "status",
    "StateProvince": "state_province",
}


class TerritoriesCsvSource(BaseSource):
    """Reads a territory CSV upload for one installer."""

    name = "territories_csv"

    async def extract(self, *, data: bytes, **kwargs: Any) -> pl.DataFrame:
        raw = read_csv_bytes(data)
        check_headers(raw, TERRITORY_CSV_HEADERS)
        return raw.with_row_index("_row", offset=2)

    def transform(self, raw: pl.DataFrame) -> pl.DataFrame:
        df = raw.select(["_row", *TERRITORY_CSV_HEADERS]).rename(_RENAMES)
        df = df.with_columns([blank_to_null(c) for c in _RENAMES.values()])
        return df.with_columns(
            (
                pl.col("zip_code").is_not_null()
                & pl.col("state_province").is_not_null()
                & pl.col("status").is_in(list(TERRITORY_STATUSES)).fill_null(False)
            ).alias("_valid")
        )

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "description": "Installer territory CSV upload",
            "headers": list(TERRITORY_CSV_HEADERS),
            "statuses": list(TERRITORY_STATUSES),
        }
