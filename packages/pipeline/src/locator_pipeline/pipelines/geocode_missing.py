"""
pipelines/geocode_missing.py — Geocode installers that have no coordinates.

Installers imported while the geocoder was unreachable (or whose address
could not be placed) keep null latitude/longitude and never show up in
locator results. This job retries them one at a time and writes back the
coordinates it finds.

Usage:
    from locator_pipeline.pipelines.geocode_missing import run
    result = await run()
    result = await run(limit=20, dry_run=True)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from supabase import Client

from locator_shared.geocoding import OpenCageGeocoder
from locator_shared.models.installer import Installer
from locator_pipeline.loaders.supabase_loader import SELECT_PAGE_SIZE, SupabaseLoader
from locator_pipeline.utils.logging import configure_logging, get_logger

log = get_logger(__name__, pipeline="geocode_missing")

TABLE = "installers"


@dataclass
class GeocodeResult:
    checked: int = 0
    updated: int = 0
    not_found: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    dry_run: bool = False
    duration_ms: int = 0


def fetch_missing(
    client: Client,
    limit: int | None = None,
    *,
    page_size: int | None = None,
) -> list[Installer]:
    """
    Installers with a null latitude or longitude, ordered by name.

    Pages with ``range`` until a short page so more than one response
    worth of rows is returned; ``limit`` caps the total across pages.
    """
    page_size = page_size or SELECT_PAGE_SIZE
    rows: list[dict] = []
    while limit is None or len(rows) < limit:
        size = page_size if limit is None else min(page_size, limit - len(rows))
        page = (
            client.table(TABLE)
            .select("*")
            .or_("latitude.is.null,longitude.is.null")
            .order("name")
            .order("id")
            .range(len(rows), len(rows) + size - 1)
            .execute()
        ).data or []
        rows.extend(page)
        if len(page) < size:
            break
    return [Installer.from_db_row(row) for row in rows]


async def run(
    *,
    limit: int | None = None,
    geocoder: OpenCageGeocoder | None = None,
    client: Client | None = None,
    dry_run: bool = False,
) -> GeocodeResult:
    """
    Geocode every installer missing coordinates.

    Args:
        limit:    Process at most this many installers.
        geocoder: Geocoding client (default OpenCageGeocoder()).
        client:   Supabase client (default service-role client).
        dry_run:  Geocode but do not update rows.
    """
    configure_logging()
    t0 = time.monotonic()
    loader = SupabaseLoader(client=client)
    geocoder = geocoder or OpenCageGeocoder()
    result = GeocodeResult(dry_run=dry_run)

    installers = fetch_missing(loader.client, limit or None)
    log.info("geocode_missing_start", installers=len(installers), dry_run=dry_run)

    for installer in installers:
        result.checked += 1
        coords = await geocoder.geocode(
            installer.geocode_address,
            country="ca" if installer.is_canada else "us",
        )
        if not coords.found:
            result.not_found.append(installer.name or str(installer.id))
            continue
        if dry_run:
            result.updated += 1
            continue
        try:
            await loader.update_eq(
                TABLE,
                {"latitude": coords.lat, "longitude": coords.lng},
                "id",
                installer.id,
            )
            result.updated += 1
        except Exception as exc:
            log.error("installer_update_failed", installer_id=str(installer.id), error=str(exc))
            result.errors.append(f"{installer.name}: {exc}")

    result.duration_ms = int((time.monotonic() - t0) * 1000)
    log.info(
        "geocode_missing_complete",
        checked=result.checked,
        updated=result.updated,
        not_found=len(result.not_found),
        errors=len(result.errors),
        duration_ms=result.duration_ms,
    )
    return result
