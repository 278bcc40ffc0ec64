"""
Installer territory service (installer_zip_codes).

Selection editing (toggle_selection / apply_bulk_selection) is pure: it
takes the caller's in-progress selection and returns a new one. Nothing is
persisted until save_territories() replaces the installer's rows.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Literal

import structlog

from locator_shared.constants import SORTABLE_TERRITORY_COLUMNS
from locator_shared.db import get_supabase_client
from locator_shared.geo import filter_by_distance_band
from locator_shared.models.territory import (
    InstallerZipAssignment,
    StatusCounts,
    TerritorySelection,
)

from locator_api.services import ServiceError
from locator_api.services.geometry_service import centroid_lookup
from locator_api.utils.filtering import apply_sort, apply_text_search
from locator_api.utils.pagination import fetch_all

logger = structlog.get_logger(__name__)

TABLE = "installer_zip_codes"

GLOBAL_SELECT = (
    "*, "
    "installer:installer_id(id, name), "
    "field_ops_rep:field_ops_rep_id(id, first_name, last_name, role), "
    "field_service_manager:field_service_manager_id(id, first_name, last_name, role)"
)

BulkAction = Literal["approve", "needs_approval"]


# ---------------------------------------------------------------------------
# Selection editing
# ---------------------------------------------------------------------------

def toggle_selection(
    selection: Sequence[TerritorySelection],
    zip_code: str,
    state_province: str | None = None,
    *,
    centroid: tuple[float, float] | None = None,
) -> list[TerritorySelection]:
    """
    Cycle one postal code: absent → Approved → Needs Approval → removed.
    """
    result: list[TerritorySelection] = []
    found = False
    for item in selection:
        if item.zip_code != zip_code:
            result.append(item)
            continue
        found = True
        if item.status == "Approved":
            result.append(item.model_copy(update={"status": "Needs Approval"}))
        # Needs Approval: dropped

    if not found:
        result.append(
            TerritorySelection(
                zip_code=zip_code,
                state_province=state_province,
                status="Approved",
                centroid_latitude=centroid[0] if centroid else None,
                centroid_longitude=centroid[1] if centroid else None,
            )
        )
    return result


def apply_bulk_selection(
    selection: Sequence[TerritorySelection],
    candidates: Iterable[dict[str, Any]],
    action: BulkAction,
) -> list[TerritorySelection]:
    """
    Apply a bulk gesture to every candidate postal row.

    approve marks every candidate Approved. needs_approval only adds
    candidates that are absent (or already Needs Approval); Approved codes
    are left as they are.
    """
    by_code: dict[str, TerritorySelection] = {item.zip_code: item for item in selection}
    for row in candidates:
        code = row["zip_code"]
        current = by_code.get(code)
        if action == "needs_approval" and current is not None and current.status == "Approved":
            continue
        status = "Approved" if action == "approve" else "Needs Approval"
        if current is not None:
            by_code[code] = current.model_copy(update={"status": status})
        else:
            by_code[code] = TerritorySelection(
                zip_code=code,
                state_province=row.get("state_province"),
                status=status,
                centroid_latitude=row.get("centroid_latitude"),
                centroid_longitude=row.get("centroid_longitude"),
            )
    return list(by_code.values())


# ---------------------------------------------------------------------------
# Installer territory list
# ---------------------------------------------------------------------------

def list_installer_territories(
    installer_id: str,
    *,
    installer: dict[str, Any] | None = None,
    band: str = "all",
    q: str | None = None,
) -> tuple[list[dict[str, Any]], StatusCounts]:
    """
    One installer's assignments with centroids, optionally filtered.

    Raises:
        ValueError: unknown band, or a band was requested for an installer
                    without coordinates.
    """
    supabase = get_supabase_client()
    result = (
        supabase.table(TABLE)
        .select("*")
        .eq("installer_id", installer_id)
        .order("zip_code")
        .execute()
    )
    rows = result.data or []

    centroids = centroid_lookup([r["zip_code"] for r in rows])
    for row in rows:
        geo = centroids.get(row["zip_code"], {})
        row["centroid_latitude"] = geo.get("centroid_latitude")
        row["centroid_longitude"] = geo.get("centroid_longitude")

    if q:
        needle = q.strip().lower()
        rows = [
            r for r in rows
            if needle in (r.get("zip_code") or "").lower()
            or needle in (r.get("state_province") or "").lower()
        ]

    if band != "all":
        lat = (installer or {}).get("latitude")
        lng = (installer or {}).get("longitude")
        if lat is None or lng is None:
            raise ValueError("Installer has no coordinates; distance filters are unavailable")
        rows = filter_by_distance_band(rows, lat, lng, band)

    return rows, StatusCounts.of([r["status"] for r in rows])


def export_territories(installer_id: str) -> list[dict[str, Any]]:
    """Every assignment of one installer, in CSV column order."""
    supabase = get_supabase_client()
    return fetch_all(
        lambda: (
            supabase.table(TABLE)
            .select("zip_code, status, state_province")
            .eq("installer_id", installer_id)
            .order("zip_code")
        )
    )


def current_selection(installer_id: str) -> list[TerritorySelection]:
    rows, _ = list_installer_territories(installer_id)
    return [TerritorySelection(**{k: r.get(k) for k in TerritorySelection.model_fields}) for r in rows]


# ---------------------------------------------------------------------------
# Save (delete-then-insert)
# ---------------------------------------------------------------------------

def save_territories(
    installer_id: str,
    selection: Sequence[TerritorySelection],
) -> list[InstallerZipAssignment]:
    """
    Replace an installer's territories with ``selection``.

    Rep and manager assignments of codes that stay selected are kept. The
    delete and insert are separate requests: if the insert fails the
    installer is left with no territories and a ServiceError says so.
    """
    supabase = get_supabase_client(service_role=True)
    log = logger.bind(installer_id=installer_id, selected=len(selection))

    try:
        existing = (
            supabase.table(TABLE)
            .select("zip_code, field_ops_rep_id, field_service_manager_id")
            .eq("installer_id", installer_id)
            .execute()
        ).data or []
    except Exception as exc:
        log.error("territory_fetch_failed", error=str(exc))
        raise ServiceError(f"Failed to fetch current assignments: {exc}") from exc
    reps = {row["zip_code"]: row for row in existing}

    assignments: list[InstallerZipAssignment] = []
    for item in selection:
        previous = reps.get(item.zip_code, {})
        kept = item.model_copy(
            update={
                "field_ops_rep_id": previous.get("field_ops_rep_id"),
                "field_service_manager_id": previous.get("field_service_manager_id"),
            }
        )
        assignments.append(kept.to_assignment(installer_id))  # type: ignore[arg-type]

    try:
        supabase.table(TABLE).delete().eq("installer_id", installer_id).execute()
    except Exception as exc:
        log.error("territory_delete_failed", error=str(exc))
        raise ServiceError(f"Failed to clear existing territories: {exc}") from exc

    if assignments:
        try:
            supabase.table(TABLE).insert([a.to_insert_dict() for a in assignments]).execute()
        except Exception as exc:
            log.error("territory_save_failed_after_delete", previous=len(existing), error=str(exc))
            raise ServiceError(
                f"Failed to save new territories: {exc}. "
                f"The installer's {len(existing)} previous territories were already removed.",
                code="territory_save_incomplete",
            ) from exc

    log.info("territories_saved", previous=len(existing), saved=len(assignments))
    return assignments


# ---------------------------------------------------------------------------
# Global management list
# ---------------------------------------------------------------------------

def list_territories(
    *,
    q: str | None = None,
    status: str | None = None,
    states: list[str] | None = None,
    installer_ids: list[str] | None = None,
    sort: str | None = None,
    direction: str = "asc",
    start: int = 0,
    end: int = 49,
) -> tuple[list[dict[str, Any]], int | None]:
    supabase = get_supabase_client()
    query = supabase.table(TABLE).select(GLOBAL_SELECT, count="exact")
    query = apply_text_search(query, ("zip_code", "state_province"), q)
    if status:
        query = query.eq("status", status)
    if states:
        query = query.in_("state_province", states)
    if installer_ids:
        query = query.in_("installer_id", installer_ids)
    query = apply_sort(query, sort, direction, SORTABLE_TERRITORY_COLUMNS, "zip_code")
    result = query.range(start, end).execute()
    rows = [
        InstallerZipAssignment.from_db_row(row).model_dump(mode="json")
        for row in result.data or []
    ]
    return rows, result.count


def delete_assignment(assignment_id: str) -> bool:
    supabase = get_supabase_client(service_role=True)
    try:
        result = supabase.table(TABLE).delete().eq("id", assignment_id).execute()
    except Exception as exc:
        logger.error("assignment_delete_failed", assignment_id=assignment_id, error=str(exc))
        raise ServiceError(f"Failed to delete assignment: {exc}") from exc
    deleted = bool(result.data)
    if deleted:
        logger.info("assignment_deleted", assignment_id=assignment_id)
    return deleted
