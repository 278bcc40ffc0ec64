"""
sources/installers_csv.py — Installer spreadsheet reader.

The CSV uses the spreadsheet's column titles (``Hunter_Douglas``,
``Postalcode`` …); every header in INSTALLER_CSV_HEADERS must be present.
Columns are renamed to the installers table columns and values coerced to
the stored encodings:

  brand / skill flags   "yes" or "1" → 1, anything else → 0
  PowerView             same test   → '1' / '0' (text column)
  Shipment              same test   → 'Yes' / 'No'
  vendor id, rating     float, unparseable → null
  everything else       stripped, empty → null

transform() keeps invalid rows and marks them: ``_valid`` is False when a
required field (name, address1, city, state, postalcode) is null, and
``_row`` is the 1-based CSV line number for error reporting.

Usage:
    source = InstallersCsvSource()
    df = await source.run(data=csv_bytes)
    valid, invalid = split_valid(df)
"""

from __future__ import annotations

from typing import Any

import polars as pl

from locator_shared.constants import (
    FLAG_COLUMNS,
    INSTALLER_CSV_HEADERS,
    NUMERIC_FIELDS,
    REQUIRED_IMPORT_FIELDS,
    TEXT_FLAG_COLUMNS,
)
from locator_pipeline.sources.base import (
    BaseSource,
    blank_to_null,
    check_headers,
    read_csv_bytes,
)

_TRUTHY = ["yes", "1"]

# Columns added by transform() that are not table columns
META_COLUMNS = ("_row", "_valid")


def _is_truthy(column: str) -> pl.Expr:
    return (
        pl.col(column)
        .str.strip_chars()
        .str.to_lowercase()
        .is_in(_TRUTHY)
        .fill_null(False)
    )


class InstallersCsvSource(BaseSource):
    """Reads an installer CSV upload into installers-table rows."""

    name = "installers_csv"

    async def extract(self, *, data: bytes, **kwargs: Any) -> pl.DataFrame:
        raw = read_csv_bytes(data)
        check_headers(raw, INSTALLER_CSV_HEADERS)
        # Line 1 is the header
        return raw.with_row_index("_row", offset=2)

    def transform(self, raw: pl.DataFrame) -> pl.DataFrame:
        df = raw.select(["_row", *INSTALLER_CSV_HEADERS]).rename(INSTALLER_CSV_HEADERS)

        exprs: list[pl.Expr] = []
        for column in df.columns:
            if column == "_row":
                continue
            if column in TEXT_FLAG_COLUMNS:
                exprs.append(
                    pl.when(_is_truthy(column)).then(pl.lit("1")).otherwise(pl.lit("0")).alias(column)
                )
            elif column in FLAG_COLUMNS:
                exprs.append(_is_truthy(column).cast(pl.Int64).alias(column))
            elif column == "Shipment":
                exprs.append(
                    pl.when(_is_truthy(column)).then(pl.lit("Yes")).otherwise(pl.lit("No")).alias(column)
                )
            elif column in NUMERIC_FIELDS:
                exprs.append(pl.col(column).str.strip_chars().cast(pl.Float64, strict=False))
            else:
                exprs.append(blank_to_null(column))

        df = df.with_columns(exprs)
        return df.with_columns(
            pl.all_horizontal(
                [pl.col(field).is_not_null() for field in REQUIRED_IMPORT_FIELDS]
            ).alias("_valid")
        )

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "description": "Installer CSV upload",
            "headers": list(INSTALLER_CSV_HEADERS),
            "required": list(REQUIRED_IMPORT_FIELDS),
        }


def split_valid(df: pl.DataFrame) -> tuple[pl.DataFrame, pl.DataFrame]:
    """Split a transformed frame into (valid rows, invalid rows)."""
    return df.filter(pl.col("_valid")), df.filter(~pl.col("_valid"))


def missing_fields(row: dict[str, Any]) -> list[str]:
    return [field for field in REQUIRED_IMPORT_FIELDS if row.get(field) is None]


def to_installer_rows(df: pl.DataFrame) -> list[dict[str, Any]]:
    """Table rows without the bookkeeping columns."""
    return df.drop([c for c in META_COLUMNS if c in df.columns]).to_dicts()
