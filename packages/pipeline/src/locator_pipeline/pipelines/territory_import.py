"""
pipelines/territory_import.py — Territory CSV import for one installer.

Rows need ZipCode, Status and StateProvince, and Status must be
"Approved" or "Needs Approval"; anything else is skipped. Overwrite mode
deletes the installer's current territories first. Rows are upserted on
(installer_id, zip_code) so re-importing a file is idempotent.

Usage:
    from locator_pipeline.pipelines.territory_import import run
    result = await run(installer_id, csv_bytes, mode="overwrite")
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import polars as pl
from supabase import Client

from locator_shared.constants import ImportMode
from locator_pipeline.loaders.supabase_loader import SupabaseLoader
from locator_pipeline.pipelines.installer_import import ImportAbortedError
from locator_pipeline.sources.territories_csv import TerritoriesCsvSource
from locator_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="territory_import")

TABLE = "installer_zip_codes"
CONFLICT_COLUMNS = ["installer_id", "zip_code"]


@dataclass
class TerritoryImportResult:
    installer_id: str
    mode: str
    imported: int = 0
    skipped: int = 0
    skipped_rows: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def message(self) -> str:
        if self.imported == 0 and not self.errors:
            return "No valid territories found in the CSV to import."
        text = f"Successfully imported {self.imported} territories."
        if self.skipped:
            text += f" {self.skipped} rows skipped."
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "installer_id": self.installer_id,
            "mode": self.mode,
            "imported": self.imported,
            "skipped": self.skipped,
            "skipped_rows": self.skipped_rows,
            "errors": self.errors,
            "dry_run": self.dry_run,
            "message": self.message,
        }


async def run(
    installer_id: UUID | str,
    data: bytes,
    mode: ImportMode = "append",
    *,
    client: Client | None = None,
    dry_run: bool = False,
) -> TerritoryImportResult:
    """
    Import territories for ``installer_id`` from CSV bytes.

    Raises:
        CsvHeaderError / CsvParseError: the file is unusable; nothing was written.
        ImportAbortedError:             the overwrite delete failed.
    """
    installer_id = str(installer_id)
    result = TerritoryImportResult(installer_id=installer_id, mode=mode, dry_run=dry_run)
    run_log = log.bind(installer_id=installer_id, mode=mode, dry_run=dry_run)
    t0 = time.monotonic()

    df = await TerritoriesCsvSource().run(data=data)
    invalid = df.filter(~pl.col("_valid"))
    for row in invalid.to_dicts():
        run_log.warning(
            "row_skipped",
            row=row["_row"],
            zip_code=row["zip_code"],
            status=row["status"],
        )
    result.skipped = len(invalid)
    result.skipped_rows = invalid["_row"].to_list()

    rows = (
        df.filter(pl.col("_valid"))
        .select(
            pl.lit(installer_id).alias("installer_id"),
            "zip_code",
            "status",
            "state_province",
        )
        .to_dicts()
    )

    loader = None if dry_run else SupabaseLoader(client=client)

    if mode == "overwrite" and loader is not None:
        try:
            await loader.delete_eq(TABLE, "installer_id", installer_id)
        except Exception as exc:
            run_log.error("overwrite_delete_failed", error=str(exc))
            raise ImportAbortedError(f"Failed to clear existing territories: {exc}") from exc

    if not rows:
        run_log.info("no_valid_territories", skipped=result.skipped)
        return result

    if loader is None:
        result.imported = len(rows)
    else:
        load = await loader.upsert(TABLE, rows, conflict_columns=CONFLICT_COLUMNS)
        result.imported = load.records_loaded
        result.errors.extend(load.errors)

    run_log.info(
        "territory_import_complete",
        imported=result.imported,
        skipped=result.skipped,
        duration_ms=int((time.monotonic() - t0) * 1000),
    )
    return result
