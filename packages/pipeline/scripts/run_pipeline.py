#!/usr/bin/env python3
"""
scripts/run_pipeline.py — Script entry point for the locator batch jobs.

Usage:
    python scripts/run_pipeline.py migrate-us --path data/us-zip-codes.json
    python scripts/run_pipeline.py migrate-canada --path data/canada-fsa.geojson
    python scripts/run_pipeline.py geocode-missing --limit 100
    python scripts/run_pipeline.py all --dry-run

Available jobs:
    migrate-us       — US ZCTA boundaries into zip_code_geometries
    migrate-canada   — Canadian FSA boundaries into zip_code_geometries
    geocode-missing  — geocode installers without coordinates
    all              — both migrations, then geocode-missing

CSV imports and exports take file arguments; use the locator-pipeline CLI
for those.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

DEFAULT_US_PATH = Path("data/us-zip-codes.json")
DEFAULT_CANADA_PATH = Path("data/canada-fsa.geojson")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="run_pipeline",
        description="installer locator batch job runner",
    )
    parser.add_argument(
        "pipeline",
        choices=["migrate-us", "migrate-canada", "geocode-missing", "all"],
        help="Job to run",
    )
    parser.add_argument(
        "--path",
        type=Path,
        default=None,
        help="GeoJSON file for a single migration (default: data/…)",
    )
    parser.add_argument(
        "--delay-ms",
        type=int,
        default=None,
        help="Pause between geometry RPC calls (default: GEOMETRY_RPC_DELAY_MS)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="geocode-missing: process at most N installers",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Read and transform but do not write to Supabase",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
    )
    return parser


async def run_pipeline(args: argparse.Namespace) -> int:
    """Dispatch to the requested job and return the exit code."""
    from locator_pipeline.utils.logging import configure_logging
    configure_logging(log_level=args.log_level)

    import structlog
    log = structlog.get_logger("run_pipeline")

    pipeline = args.pipeline
    log.info("pipeline_dispatch", pipeline=pipeline, dry_run=args.dry_run)

    from locator_pipeline.pipelines import geocode_missing, geometry_migration

    failed = 0
    try:
        if pipeline in ("migrate-us", "all"):
            result = await geometry_migration.run(
                args.path if pipeline == "migrate-us" and args.path else DEFAULT_US_PATH,
                "us",
                delay_ms=args.delay_ms,
                dry_run=args.dry_run,
            )
            log.info("done", job="migrate-us", succeeded=result.succeeded, failed=result.failed)
            failed += result.failed

        if pipeline in ("migrate-canada", "all"):
            result = await geometry_migration.run(
                args.path if pipeline == "migrate-canada" and args.path else DEFAULT_CANADA_PATH,
                "ca",
                delay_ms=args.delay_ms,
                dry_run=args.dry_run,
            )
            log.info("done", job="migrate-canada", succeeded=result.succeeded, failed=result.failed)
            failed += result.failed

        if pipeline in ("geocode-missing", "all"):
            geo = await geocode_missing.run(limit=args.limit, dry_run=args.dry_run)
            log.info("done", job="geocode-missing", updated=geo.updated, not_found=len(geo.not_found))
            failed += len(geo.errors)

    except Exception as exc:
        log.error("pipeline_failed", pipeline=pipeline, error=str(exc), exc_info=True)
        return 1

    return 1 if failed else 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    sys.exit(asyncio.run(run_pipeline(args)))


if __name__ == "__main__":
    main()
