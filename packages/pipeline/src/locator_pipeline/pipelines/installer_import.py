"""
pipelines/installer_import.py — Installer CSV import.

Steps:
  1. Parse and validate the CSV (missing headers abort before any write)
  2. overwrite mode: delete every installer
  3. Geocode every valid row concurrently (address1, city, state postalcode, Country)
  4. Insert all valid rows in one write

Rows missing a required field are skipped and counted; rows the geocoder
cannot place are still imported, without coordinates, and listed on the
result.

Usage:
    from locator_pipeline.pipelines.installer_import import run
    result = await run(csv_bytes, mode="append")
    result = await run(csv_bytes, mode="overwrite", dry_run=True)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from supabase import Client

from locator_shared.constants import ImportMode
from locator_shared.geocoding import OpenCageGeocoder
from locator_shared.models.installer import Installer
from locator_pipeline.loaders.supabase_loader import SupabaseLoader
from locator_pipeline.sources.installers_csv import (
    InstallersCsvSource,
    missing_fields,
    split_valid,
    to_installer_rows,
)
from locator_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="installer_import")

TABLE = "installers"


class ImportAbortedError(RuntimeError):
    """A database step failed and the import stopped."""


@dataclass
class ImportResult:
    mode: str
    imported: int = 0
    skipped: int = 0
    skipped_rows: list[int] = field(default_factory=list)
    not_geocoded: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False
    duration_ms: int = 0

    @property
    def message(self) -> str:
        text = f"Successfully imported {self.imported} installers."
        if self.skipped:
            text += f" {self.skipped} rows skipped."
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "imported": self.imported,
            "skipped": self.skipped,
            "skipped_rows": self.skipped_rows,
            "not_geocoded": self.not_geocoded,
            "errors": self.errors,
            "dry_run": self.dry_run,
            "message": self.message,
        }


async def _geocode_row(geocoder: OpenCageGeocoder, row: dict[str, Any]) -> bool:
    """Set latitude/longitude on ``row``; returns whether coordinates were found."""
    installer = Installer.from_db_row(row)
    coords = await geocoder.geocode(
        installer.geocode_address,
        country="ca" if installer.is_canada else "us",
    )
    row["latitude"] = coords.lat
    row["longitude"] = coords.lng
    if not coords.found:
        log.warning(
            "installer_not_geocoded",
            installer=row.get("name"),
            address=installer.geocode_address,
        )
    return coords.found


async def run(
    data: bytes,
    mode: ImportMode = "append",
    *,
    geocoder: OpenCageGeocoder | None = None,
    client: Client | None = None,
    dry_run: bool = False,
) -> ImportResult:
    """
    Import installers from CSV bytes.

    Args:
        data:     Raw CSV upload.
        mode:     "append" keeps existing installers; "overwrite" deletes them first.
        geocoder: Geocoding client (default OpenCageGeocoder()).
        client:   Supabase client for the loader (default service-role client).
        dry_run:  Parse and geocode, skip every database call.

    Raises:
        CsvHeaderError / CsvParseError: the file is unusable; nothing was written.
        ImportAbortedError:             the overwrite delete failed.
    """
    t0 = time.monotonic()
    result = ImportResult(mode=mode, dry_run=dry_run)
    run_log = log.bind(mode=mode, dry_run=dry_run)

    df = await InstallersCsvSource().run(data=data)
    valid, invalid = split_valid(df)

    for row in invalid.to_dicts():
        run_log.warning("row_skipped", row=row["_row"], missing=missing_fields(row))
    result.skipped = len(invalid)
    result.skipped_rows = invalid["_row"].to_list()

    loader = None if dry_run else SupabaseLoader(client=client)

    if mode == "overwrite" and loader is not None:
        try:
            await loader.delete_all(TABLE)
        except Exception as exc:
            run_log.error("overwrite_delete_failed", error=str(exc))
            raise ImportAbortedError(f"Failed to clear existing data: {exc}") from exc

    rows = to_installer_rows(valid)
    geocoder = geocoder or OpenCageGeocoder()
    found = await asyncio.gather(*(_geocode_row(geocoder, row) for row in rows))
    result.not_geocoded = [row.get("name") or "" for row, ok in zip(rows, found) if not ok]

    if not rows:
        run_log.info("import_nothing_to_insert", skipped=result.skipped)
    elif loader is None:
        result.imported = len(rows)
    else:
        load = await loader.insert(TABLE, rows)
        result.imported = load.records_loaded
        result.errors.extend(load.errors)

    result.duration_ms = int((time.monotonic() - t0) * 1000)
    run_log.info(
        "import_complete",
        imported=result.imported,
        skipped=result.skipped,
        not_geocoded=len(result.not_geocoded),
        errors=len(result.errors),
        duration_ms=result.duration_ms,
    )
    return result

