"""Installer directory data service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from locator_shared.constants import (
    ADDRESS_FIELDS,
    CERTIFICATION_COLUMNS,
    FLAG_COLUMNS,
    NUMERIC_FIELDS,
    REQUIRED_FORM_FIELDS,
    SEARCH_COLUMNS,
    SORTABLE_INSTALLER_COLUMNS,
    TEXT_FLAG_COLUMNS,
)
from locator_shared.db import get_supabase_client
from locator_shared.geocoding import OpenCageGeocoder
from locator_shared.models.installer import Installer, to_boolean

from locator_api.services import ServiceError
from locator_api.utils.filtering import (
    ShipmentFilter,
    apply_installer_filters,
    apply_sort,
    apply_text_search,
)
from locator_api.utils.pagination import fetch_all

logger = structlog.get_logger(__name__)

TABLE = "installers"

# Columns a form may write; id, timestamps and coordinates are managed here
_WRITABLE_COLUMNS = frozenset(Installer.model_fields) - {
    "id", "created_at", "updated_at", "latitude", "longitude",
}
_IGNORED_FORM_FIELDS = frozenset({"Sales_Org"})


@dataclass
class InstallerFilters:
    q: str | None = None
    brands: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    certifications: list[str] = field(default_factory=list)
    states: list[str] = field(default_factory=list)
    accepts_shipments: ShipmentFilter = "any"

    def apply(self, query: Any) -> Any:
        query = apply_text_search(query, SEARCH_COLUMNS, self.q)
        return apply_installer_filters(
            query,
            brands=self.brands,
            skills=self.skills,
            certifications=self.certifications,
            states=self.states,
            accepts_shipments=self.accepts_shipments,
        )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def list_installers(
    filters: InstallerFilters,
    *,
    sort: str | None = None,
    direction: str = "asc",
    start: int = 0,
    end: int = 49,
) -> tuple[list[dict[str, Any]], int | None]:
    supabase = get_supabase_client()
    query = filters.apply(supabase.table(TABLE).select("*", count="exact"))
    query = apply_sort(query, sort, direction, SORTABLE_INSTALLER_COLUMNS, "name")
    result = query.range(start, end).execute()
    return result.data or [], result.count


def export_installers(
    filters: InstallerFilters,
    *,
    sort: str | None = None,
    direction: str = "asc",
) -> list[dict[str, Any]]:
    """Every installer matching the filters (no page limit)."""
    supabase = get_supabase_client()

    def _query() -> Any:
        query = filters.apply(supabase.table(TABLE).select("*"))
        return apply_sort(query, sort, direction, SORTABLE_INSTALLER_COLUMNS, "name")

    return fetch_all(_query)


def get_installer(installer_id: str) -> dict[str, Any] | None:
    supabase = get_supabase_client()
    result = (
        supabase.table(TABLE)
        .select("*")
        .eq("id", installer_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def unique_states(rows: list[dict[str, Any]]) -> list[str]:
    return sorted({row["state"] for row in rows if row.get("state")})


# ---------------------------------------------------------------------------
# Form handling
# ---------------------------------------------------------------------------

def _flag_value(column: str, value: Any) -> Any:
    truthy = to_boolean(value)
    if column == "Shipment":
        return "Yes" if truthy else "No"
    if column in TEXT_FLAG_COLUMNS:
        return "1" if truthy else "0"
    return 1 if truthy else 0


def coerce_form_values(form: dict[str, Any]) -> dict[str, Any]:
    """
    Convert form values to the stored encodings.

    Flags become 1/0 ('1'/'0' for PowerView, Yes/No for Shipment),
    certification lists are joined with ", ", vendor id and star rating are
    parsed as numbers and empty strings become null. Sales_Org is read-only.

    Raises:
        ValueError: unknown field or non-numeric vendor id / star rating.
    """
    unknown = set(form) - _WRITABLE_COLUMNS - _IGNORED_FORM_FIELDS
    if unknown:
        raise ValueError(f"Unknown installer fields: {', '.join(sorted(unknown))}")

    values: dict[str, Any] = {}
    for key, value in form.items():
        if key in _IGNORED_FORM_FIELDS:
            continue
        if key in FLAG_COLUMNS or key == "Shipment":
            values[key] = _flag_value(key, value)
        elif key in CERTIFICATION_COLUMNS:
            joined = ", ".join(value) if isinstance(value, list) else value
            values[key] = joined or None
        elif key in NUMERIC_FIELDS and isinstance(value, str) and value.strip():
            try:
                values[key] = float(value)
            except ValueError:
                raise ValueError(f"{key} must be a number, got {value!r}") from None
        elif value == "":
            values[key] = None
        else:
            values[key] = value
    return values


def missing_required_fields(values: dict[str, Any]) -> list[str]:
    return [f for f in REQUIRED_FORM_FIELDS if not str(values.get(f) or "").strip()]


def address_changed(existing: dict[str, Any], values: dict[str, Any]) -> bool:
    """True when any submitted address field differs from the stored row."""
    return any(
        str(existing.get(f) or "") != str(values.get(f) or "")
        for f in ADDRESS_FIELDS
        if f in values
    )


async def _geocode(geocoder: OpenCageGeocoder, record: dict[str, Any]) -> tuple[float | None, float | None]:
    installer = Installer.from_db_row(record)
    coords = await geocoder.geocode(
        installer.geocode_address,
        country="ca" if installer.is_canada else "us",
    )
    return coords.lat, coords.lng


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_installer(
    form: dict[str, Any],
    geocoder: OpenCageGeocoder,
) -> tuple[dict[str, Any], bool]:
    """
    Insert an installer, then geocode its address.

    Returns:
        (row, geocoded). The row is saved even when geocoding fails.

    Raises:
        ValueError:   validation failure.
        ServiceError: the insert failed.
    """
    values = coerce_form_values(form)
    missing = missing_required_fields(values)
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    supabase = get_supabase_client(service_role=True)
    try:
        result = supabase.table(TABLE).insert(values).execute()
    except Exception as exc:
        logger.error("installer_insert_failed", name=values.get("name"), error=str(exc))
        raise ServiceError(f"Failed to add installer: {exc}") from exc
    row = result.data[0] if result.data else values

    lat, lng = await _geocode(geocoder, row)
    if lat is None or lng is None:
        logger.warning("installer_not_geocoded", installer_id=row.get("id"), name=row.get("name"))
        return row, False

    try:
        updated = (
            supabase.table(TABLE)
            .update({"latitude": lat, "longitude": lng})
            .eq("id", row["id"])
            .execute()
        )
    except Exception as exc:
        logger.error("installer_coordinates_update_failed", installer_id=row.get("id"), error=str(exc))
        return row, False

    logger.info("installer_created", installer_id=row.get("id"), name=row.get("name"))
    return (updated.data[0] if updated.data else {**row, "latitude": lat, "longitude": lng}), True


async def update_installer(
    installer_id: str,
    form: dict[str, Any],
    geocoder: OpenCageGeocoder,
) -> tuple[dict[str, Any], bool | None] | None:
    """
    Apply an edit form to an installer.

    When any address field changed the address is geocoded again; a miss
    clears the stored coordinates.

    Returns:
        None when the installer does not exist, otherwise (row, geocoded)
        where geocoded is None when the address was not touched.
    """
    existing = get_installer(installer_id)
    if existing is None:
        return None

    values = coerce_form_values(form)
    merged = {**existing, **values}
    missing = missing_required_fields(merged)
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    geocoded: bool | None = None
    if address_changed(existing, values):
        lat, lng = await _geocode(geocoder, merged)
        values["latitude"] = lat
        values["longitude"] = lng
        geocoded = lat is not None and lng is not None
        if not geocoded:
            logger.warning("installer_coordinates_cleared", installer_id=installer_id)

    supabase = get_supabase_client(service_role=True)
    try:
        result = supabase.table(TABLE).update(values).eq("id", installer_id).execute()
    except Exception as exc:
        logger.error("installer_update_failed", installer_id=installer_id, error=str(exc))
        raise ServiceError(f"Failed to update installer: {exc}") from exc

    logger.info("installer_updated", installer_id=installer_id, address_changed=geocoded is not None)
    return (result.data[0] if result.data else {**existing, **values}), geocoded


def delete_installer(installer_id: str) -> bool:
    if get_installer(installer_id) is None:
        return False
    supabase = get_supabase_client(service_role=True)
    try:
        supabase.table(TABLE).delete().eq("id", installer_id).execute()
    except Exception as exc:
        logger.error("installer_delete_failed", installer_id=installer_id, error=str(exc))
        raise ServiceError(f"Failed to delete installer: {exc}") from exc
    logger.info("installer_deleted", installer_id=installer_id)
    return True
