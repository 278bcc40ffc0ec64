"""
cli.py — Click CLI entrypoint for the locator batch jobs.

Usage:
    locator-pipeline migrate-geometries data/us-zip-codes.json --country us
    locator-pipeline import-installers installers.csv --mode overwrite
    locator-pipeline import-territories <installer-id> territories.csv
    locator-pipeline export-installers installers.csv
    locator-pipeline export-territories <installer-id> territories.csv
    locator-pipeline geocode-missing --limit 50
"""

from __future__ import annotations

import asyncio
import sys

import click
import structlog

from locator_shared.config import settings
from locator_pipeline.sources.base import CsvHeaderError, CsvParseError
from locator_pipeline.utils.logging import configure_logging

log = structlog.get_logger(__name__)

_MODE = click.Choice(["append", "overwrite"], case_sensitive=False)


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
def main(log_level: str) -> None:
    """Installer locator batch jobs."""
    configure_logging(log_level=log_level)


@main.command("migrate-geometries")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--country", type=click.Choice(["us", "ca"]), default="us", show_default=True)
@click.option("--delay-ms", type=int, default=None, help="Pause between RPC calls")
@click.option("--dry-run", is_flag=True, help="Parse only; no RPC calls")
def migrate_geometries(path: str, country: str, delay_ms: int | None, dry_run: bool) -> None:
    """Upsert postal boundaries from a GeoJSON file."""
    from locator_pipeline.pipelines import geometry_migration

    try:
        result = asyncio.run(
            geometry_migration.run(path, country, delay_ms=delay_ms, dry_run=dry_run)  # type: ignore[arg-type]
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo("Migration complete.")
    click.echo(f"Successfully processed: {result.succeeded}")
    click.echo(f"Failed/Skipped: {result.failed}")
    if result.failed:
        sys.exit(1)


@main.command("import-installers")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--mode", type=_MODE, default="append", show_default=True)
@click.option("--dry-run", is_flag=True, help="Parse and geocode; no writes")
def import_installers(csv_path: str, mode: str, dry_run: bool) -> None:
    """Import installers from a CSV file."""
    from locator_pipeline.pipelines import installer_import

    with open(csv_path, "rb") as fh:
        data = fh.read()
    try:
        result = asyncio.run(installer_import.run(data, mode.lower(), dry_run=dry_run))  # type: ignore[arg-type]
    except (CsvHeaderError, CsvParseError, installer_import.ImportAbortedError) as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(result.message)
    for name in result.not_geocoded:
        click.echo(f"  Could not find coordinates for '{name}'.")
    for error in result.errors:
        click.echo(f"  Error: {error}", err=True)
    if result.errors:
        sys.exit(1)


@main.command("import-territories")
@click.argument("installer_id")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--mode", type=_MODE, default="append", show_default=True)
@click.option("--dry-run", is_flag=True, help="Parse only; no writes")
def import_territories(installer_id: str, csv_path: str, mode: str, dry_run: bool) -> None:
    """Import territories for one installer from a CSV file."""
    from locator_pipeline.pipelines import territory_import
    from locator_pipeline.pipelines.installer_import import ImportAbortedError

    with open(csv_path, "rb") as fh:
        data = fh.read()
    try:
        result = asyncio.run(
            territory_import.run(installer_id, data, mode.lower(), dry_run=dry_run)  # type: ignore[arg-type]
        )
    except (CsvHeaderError, CsvParseError, ImportAbortedError) as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(result.message)
    for error in result.errors:
        click.echo(f"  Error: {error}", err=True)
    if result.errors:
        sys.exit(1)


@main.command("export-installers")
@click.argument("out_path", type=click.Path(dir_okay=False, writable=True))
@click.option("--columns", default=None, help="Comma-separated column keys (default: visible set)")
@click.option("--canada", is_flag=True, help="Label the postal code column 'Postal Code'")
def export_installers(out_path: str, columns: str | None, canada: bool) -> None:
    """Export every installer to a CSV file."""
    from locator_pipeline.pipelines.exports import run_installer_export

    keys = [c.strip() for c in columns.split(",") if c.strip()] if columns else None
    try:
        count = asyncio.run(
            run_installer_export(
                out_path,
                keys=keys,
                postal_code_label="Postal Code" if canada else "Zip Code",
            )
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Exported {count} installers to {out_path}")


@main.command("export-territories")
@click.argument("installer_id")
@click.argument("out_path", type=click.Path(dir_okay=False, writable=True))
def export_territories(installer_id: str, out_path: str) -> None:
    """Export one installer's territories to a CSV file."""
    from locator_pipeline.pipelines.exports import run_territory_export

    count = asyncio.run(run_territory_export(installer_id, out_path))
    if count == 0:
        click.echo("No territories found for this installer to export.")
    else:
        click.echo(f"Exported {count} territories to {out_path}")


@main.command("geocode-missing")
@click.option("--limit", type=int, default=None, help="Process at most N installers")
@click.option("--dry-run", is_flag=True, help="Geocode only; no updates")
def geocode_missing(limit: int | None, dry_run: bool) -> None:
    """Geocode installers that have no coordinates."""
    from locator_pipeline.pipelines import geocode_missing as job

    result = asyncio.run(job.run(limit=limit, dry_run=dry_run))
    click.echo(f"Checked {result.checked} installers, updated {result.updated}.")
    for name in result.not_found:
        click.echo(f"  Could not find coordinates for '{name}'.")
    if result.errors:
        for error in result.errors:
            click.echo(f"  Error: {error}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
