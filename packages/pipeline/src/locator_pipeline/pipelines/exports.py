"""
pipelines/exports.py — CSV exports of installers and territories.

Installer exports use the directory's display columns: headers are the
column titles, brand and skill flags render as Yes/No, empty certification
levels as "-". Territory exports use the same ZipCode,Status,StateProvince
layout the territory import reads, so an export can be re-imported as is.

Usage:
    from locator_pipeline.pipelines.exports import installers_to_csv, run_installer_export

    csv_text = installers_to_csv(rows, keys=["name", "email", "zipCode"])
    written = await run_installer_export("installers.csv")
"""

from __future__ import annotations

import io
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import polars as pl
from supabase import Client

from locator_shared.models.installer import to_boolean
from locator_pipeline.loaders.supabase_loader import SupabaseLoader
from locator_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="exports")

INSTALLER_EXPORT_FILENAME = "installers_filtered.csv"

ColumnKind = Literal["text", "dash", "flag", "certification", "shipment", "address", "number"]


@dataclass(frozen=True)
class ExportColumn:
    key: str
    header: str
    db_column: str | None = None
    kind: ColumnKind = "text"

    def render(self, row: dict[str, Any]) -> str:
        if self.kind == "address":
            return format_export_address(row)
        value = row.get(self.db_column or self.key)
        if self.kind == "flag":
            return "Yes" if to_boolean(value) else "No"
        if self.kind == "shipment":
            return "Yes" if value == "Yes" else "No"
        if self.kind in ("dash", "certification"):
            return _text(value) or "-"
        return _text(value)


# Order matches the directory table; zipCode's header is replaced by the
# country's postal code label at export time.
INSTALLER_EXPORT_COLUMNS: tuple[ExportColumn, ...] = (
    ExportColumn("name", "Name", "name"),
    ExportColumn("email", "Email", "email", "dash"),
    ExportColumn("phone", "Phone", "primary_phone"),
    ExportColumn("address", "Address", kind="address"),
    ExportColumn("city", "City", "city", "dash"),
    ExportColumn("state", "State", "state", "dash"),
    ExportColumn("zipCode", "Zip Code", "postalcode"),
    ExportColumn("hunterDouglas", "Hunter Douglas", "hunter_douglas", "flag"),
    ExportColumn("alta", "Alta", "Alta", "flag"),
    ExportColumn("carole", "Carole", "carole", "flag"),
    ExportColumn("architectural", "Architectural", "architectural", "flag"),
    ExportColumn("levolor", "Levolor", "levolor", "flag"),
    ExportColumn("threeDayBlinds", "Three Day Blinds", "three_day_blinds", "flag"),
    ExportColumn("blindsAndShades", "Blinds & Shades", "Blinds_and_Shades", "flag"),
    ExportColumn("shutters", "Shutters", "Shutters", "flag"),
    ExportColumn("draperies", "Draperies", "Draperies", "flag"),
    ExportColumn("motorization", "Motorization", "PowerView", "flag"),
    ExportColumn("altaMotorization", "Alta Motorization", "alta_motorization", "flag"),
    ExportColumn("tallWindow", "Tall Window", "tall_window", "flag"),
    ExportColumn("fixtureDisplays", "Fixture Displays", "fixture_displays", "flag"),
    ExportColumn("outdoor", "Outdoor", "outdoor", "flag"),
    ExportColumn("highVoltageHardwired", "High Voltage Hardwired", "high_voltage_hardwired", "flag"),
    ExportColumn("pipCertification", "PIP Certification", "PIP_Certification_Level", "certification"),
    ExportColumn(
        "motorizationCertification", "Motorization Certification",
        "Powerview_Certification", "certification",
    ),
    ExportColumn(
        "draperiesCertification", "Draperies Certification",
        "Draperies_Certification_Level", "certification",
    ),
    ExportColumn(
        "shutterCertificationLevel", "Shutter Certification Level",
        "Shutter_Certification_Level", "certification",
    ),
    ExportColumn("installerVendorId", "Vendor ID", "Installer_Vendor_ID", "number"),
    ExportColumn("acceptsShipments", "Accepts Shipments", "Shipment", "shipment"),
    ExportColumn("latitude", "Latitude", "latitude", "number"),
    ExportColumn("longitude", "Longitude", "longitude", "number"),
)

EXPORT_COLUMNS_BY_KEY: dict[str, ExportColumn] = {c.key: c for c in INSTALLER_EXPORT_COLUMNS}

DEFAULT_EXPORT_KEYS: tuple[str, ...] = tuple(
    c.key for c in INSTALLER_EXPORT_COLUMNS
    if c.key not in {"installerVendorId", "acceptsShipments", "latitude", "longitude"}
)

TERRITORY_EXPORT_COLUMNS: dict[str, str] = {
    "ZipCode": "zip_code",
    "Status": "status",
    "StateProvince": "state_province",
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_export_address(row: dict[str, Any]) -> str:
    """``"address1 add2, city, state postalcode"`` with missing parts left empty."""
    parts = [
        f"{row.get('address1') or ''} {row.get('add2') or ''}",
        row.get("city") or "",
        f"{row.get('state') or ''} {row.get('postalcode') or ''}",
    ]
    return ", ".join(parts).strip()


def resolve_export_columns(keys: Iterable[str] | None = None) -> list[ExportColumn]:
    """
    Columns for the requested keys, in table order.

    Raises:
        ValueError: an unknown column key was requested.
    """
    if keys is None:
        keys = DEFAULT_EXPORT_KEYS
    wanted = set(keys)
    unknown = wanted - EXPORT_COLUMNS_BY_KEY.keys()
    if unknown:
        raise ValueError(f"Unknown export columns: {', '.join(sorted(unknown))}")
    return [c for c in INSTALLER_EXPORT_COLUMNS if c.key in wanted]


def _frame_to_csv(records: list[dict[str, str]], headers: Sequence[str]) -> str:
    df = pl.DataFrame(records, schema={h: pl.String for h in headers})
    buffer = io.StringIO()
    df.write_csv(buffer)
    return buffer.getvalue()


def installers_to_csv(
    rows: list[dict[str, Any]],
    keys: Iterable[str] | None = None,
    *,
    postal_code_label: str = "Zip Code",
) -> str:
    """Render installer table rows as CSV text with display headers."""
    columns = resolve_export_columns(keys)
    headers = [postal_code_label if c.key == "zipCode" else c.header for c in columns]
    records = [
        {header: column.render(row) for header, column in zip(headers, columns)}
        for row in rows
    ]
    return _frame_to_csv(records, headers)


def territories_to_csv(rows: list[dict[str, Any]]) -> str:
    records = [
        {header: _text(row.get(column)) for header, column in TERRITORY_EXPORT_COLUMNS.items()}
        for row in rows
    ]
    return _frame_to_csv(records, list(TERRITORY_EXPORT_COLUMNS))


def territory_export_filename(installer_name: str | None) -> str:
    name = re.sub(r"\s", "_", installer_name) if installer_name else "unknown"
    return f"installer_{name}_territories.csv"


# ---------------------------------------------------------------------------
# File exports (CLI)
# ---------------------------------------------------------------------------

async def run_installer_export(
    path: str | Path,
    *,
    keys: Iterable[str] | None = None,
    postal_code_label: str = "Zip Code",
    client: Client | None = None,
) -> int:
    """Write every installer to ``path`` ordered by name; returns the row count."""
    loader = SupabaseLoader(client=client)
    rows = await loader.select_all("installers")
    rows.sort(key=lambda r: (r.get("name") or "").lower())
    Path(path).write_text(
        installers_to_csv(rows, keys, postal_code_label=postal_code_label),
        encoding="utf-8",
    )
    log.info("installers_exported", path=str(path), rows=len(rows))
    return len(rows)


async def run_territory_export(
    installer_id: str,
    path: str | Path,
    *,
    client: Client | None = None,
) -> int:
    """Write one installer's territories to ``path``; returns the row count."""
    loader = SupabaseLoader(client=client)
    rows = await loader.select_all(
        "installer_zip_codes",
        "zip_code, status, state_province",
        filters={"installer_id": installer_id},
        order="zip_code",
    )
    Path(path).write_text(territories_to_csv(rows), encoding="utf-8")
    log.info("territories_exported", path=str(path), installer_id=installer_id, rows=len(rows))
    return len(rows)
