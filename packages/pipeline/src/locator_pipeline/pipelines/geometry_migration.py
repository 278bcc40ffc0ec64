"""
pipelines/geometry_migration.py — Load postal boundaries into zip_code_geometries.

Reads a US ZCTA or Canadian FSA GeoJSON file and calls the
``upsert_zip_geometry`` RPC once per feature, pausing between calls
(settings.geometry_rpc_delay_ms) to stay under the API rate limit. A failed
call is counted and the migration moves on; features without a postal code
count as failures too.

Usage:
    from locator_pipeline.pipelines.geometry_migration import run
    result = await run("data/us-zip-codes.json", country="us")
    result = await run("data/canada-fsa.geojson", country="ca", dry_run=True)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from supabase import Client
from tqdm import tqdm

from locator_shared.config import settings
from locator_shared.constants import Country
from locator_pipeline.loaders.supabase_loader import SupabaseLoader
from locator_pipeline.sources.postal_geojson import PostalGeoJsonSource
from locator_pipeline.utils.logging import configure_logging, get_logger

log = get_logger(__name__, pipeline="geometry_migration")

RPC_FUNCTION = "upsert_zip_geometry"


@dataclass
class MigrationResult:
    country: str
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False
    duration_ms: int = 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "success"
        if self.succeeded > 0:
            return "partial_failure"
        return "failure"


def rpc_params(row: dict[str, Any]) -> dict[str, Any]:
    """Arguments for upsert_zip_geometry from a PostalGeoJsonSource row."""
    return {
        "_zip_code": row["zip_code"],
        "_state_province": row["state_province"],
        "_geometry_geojson_string": row["geometry_json"],
        "_centroid_latitude": row["centroid_latitude"],
        "_centroid_longitude": row["centroid_longitude"],
        "_is_canada": row["is_canada"],
    }


async def run(
    path: str | Path,
    country: Country = "us",
    *,
    delay_ms: int | None = None,
    client: Client | None = None,
    dry_run: bool = False,
    progress: bool = True,
) -> MigrationResult:
    """
    Migrate one GeoJSON file.

    Args:
        path:     GeoJSON FeatureCollection.
        country:  "us" (ZCTA properties) or "ca" (FSA properties, EPSG:3857).
        delay_ms: Pause between RPC calls (default settings.geometry_rpc_delay_ms).
        client:   Supabase client (default service-role client).
        dry_run:  Parse and count, skip RPC calls.
        progress: Show a tqdm progress bar.

    Raises:
        ValueError: the file is not a FeatureCollection.
    """
    configure_logging()
    t0 = time.monotonic()
    delay = (settings.geometry_rpc_delay_ms if delay_ms is None else delay_ms) / 1000
    result = MigrationResult(country=country, dry_run=dry_run)
    run_log = log.bind(country=country, path=str(path), dry_run=dry_run)

    source = PostalGeoJsonSource(is_canada=country == "ca")
    df = await source.run(path=path)
    result.skipped = source.skipped
    result.failed = source.skipped
    result.total = len(df) + source.skipped
    run_log.info("migration_start", features=result.total, skipped=result.skipped)

    loader = None if dry_run else SupabaseLoader(client=client)

    for row in tqdm(df.iter_rows(named=True), total=len(df), desc=source.name, disable=not progress):
        if loader is None:
            result.succeeded += 1
            continue
        try:
            await loader.rpc(RPC_FUNCTION, rpc_params(row))
            result.succeeded += 1
        except Exception as exc:
            run_log.error("geometry_upsert_failed", zip_code=row["zip_code"], error=str(exc))
            result.failed += 1
            result.errors.append(f"{row['zip_code']}: {exc}")
        if delay:
            await asyncio.sleep(delay)

    result.duration_ms = int((time.monotonic() - t0) * 1000)
    run_log.info(
        "migration_complete",
        succeeded=result.succeeded,
        failed=result.failed,
        status=result.status,
        duration_ms=result.duration_ms,
    )
    return result
