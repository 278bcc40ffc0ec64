"""
locator_pipeline — batch jobs for the installer locator.

Architecture:
  sources/     — CSV and GeoJSON readers that produce normalized polars frames
  loaders/     — Supabase writes (batched insert/upsert, deletes, RPC calls)
  pipelines/   — orchestrators: installer/territory import, exports,
                 postal geometry migration, re-geocoding
  utils/       — structlog configuration

Quick start:
    import asyncio
    from locator_pipeline.pipelines import installer_import

    result = asyncio.run(installer_import.run(Path("installers.csv").read_bytes(), mode="append"))

CLI:
    locator-pipeline migrate-geometries data/us-zip-codes.json --country us
    locator-pipeline import-installers installers.csv --mode overwrite
    locator-pipeline geocode-missing
"""

__version__ = "0.1.0"
