"""Installer territory endpoints: per-installer editing and the global list."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from pydantic import BaseModel, model_validator

from locator_shared.constants import Country, ImportMode, TerritoryStatus
from locator_shared.models.territory import StatusCounts, TerritorySelection

from locator_pipeline.pipelines import territory_import
from locator_pipeline.pipelines.exports import territories_to_csv, territory_export_filename
from locator_pipeline.pipelines.installer_import import ImportAbortedError
from locator_pipeline.sources import CsvHeaderError, CsvParseError

from locator_api.dependencies import AuthUser, PaginationParams, get_supabase_client, require_admin
from locator_api.responses import wrap_response
from locator_api.routers.v1.geography import Bounds, Circle
from locator_api.services import ServiceError, installer_service, territory_service
from locator_api.services.geometry_service import (
    SelectionMode,
    centroid_lookup,
    select_postal_codes,
)
from locator_api.services.territory_service import BulkAction
from locator_api.utils.filtering import split_csv_param
from locator_api.utils.pagination import build_links

router = APIRouter(tags=["territories"])

SOURCE = "supabase"


class ToggleRequest(BaseModel):
    zip_code: str
    state_province: str | None = None


class BulkRequest(BaseModel):
    action: BulkAction
    country: Country = "us"
    circle: Circle | None = None
    bounds: Bounds | None = None
    mode: SelectionMode = "centroid"

    @model_validator(mode="after")
    def _one_shape(self) -> "BulkRequest":
        if (self.circle is None) == (self.bounds is None):
            raise ValueError("Provide exactly one of circle or bounds")
        return self


class SelectRequest(BaseModel):
    """A selection edit. ``selection`` defaults to the installer's saved rows."""

    selection: list[TerritorySelection] | None = None
    toggle: ToggleRequest | None = None
    bulk: BulkRequest | None = None

    @model_validator(mode="after")
    def _one_edit(self) -> "SelectRequest":
        if (self.toggle is None) == (self.bulk is None):
            raise ValueError("Provide exactly one of toggle or bulk")
        return self


class SaveRequest(BaseModel):
    selection: list[TerritorySelection]


def _load_installer(installer_id: UUID) -> dict:
    installer = installer_service.get_installer(str(installer_id))
    if installer is None:
        raise HTTPException(status_code=404, detail="Installer not found")
    return installer


def _selection_response(selection: list[TerritorySelection]) -> dict:
    counts = StatusCounts.of([s.status for s in selection])
    return wrap_response(
        [s.model_dump(mode="json") for s in selection],
        total_count=counts.total,
        counts=counts.model_dump(),
    )


# ---------------------------------------------------------------------------
# Per-installer territories
# ---------------------------------------------------------------------------

@router.get("/installers/{installer_id}/territories")
async def list_installer_territories(
    installer_id: UUID,
    band: str = Query("all", description="Distance band from the installer, e.g. 0-25"),
    q: str | None = Query(None, description="Search postal code or state/province"),
):
    installer = _load_installer(installer_id)
    try:
        rows, counts = territory_service.list_installer_territories(
            str(installer_id), installer=installer, band=band, q=q,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return wrap_response(
        rows, total_count=counts.total, source=SOURCE,
        counts=counts.model_dump(), installer_name=installer.get("name"),
    )


@router.put("/installers/{installer_id}/territories")
async def save_installer_territories(
    installer_id: UUID,
    body: SaveRequest,
    user: AuthUser = Depends(require_admin),
):
    _load_installer(installer_id)
    saved = territory_service.save_territories(str(installer_id), body.selection)
    counts = StatusCounts.of([a.status for a in saved])
    return wrap_response(
        [a.model_dump(mode="json") for a in saved],
        total_count=counts.total, source=SOURCE, counts=counts.model_dump(),
    )


@router.post("/installers/{installer_id}/territories/select")
async def edit_selection(installer_id: UUID, body: SelectRequest):
    """Apply a toggle or bulk gesture to a selection without saving it."""
    if body.selection is not None:
        selection = body.selection
    else:
        _load_installer(installer_id)
        selection = territory_service.current_selection(str(installer_id))

    if body.toggle is not None:
        code = body.toggle.zip_code.strip()
        geo = centroid_lookup([code]).get(code, {})
        lat, lng = geo.get("centroid_latitude"), geo.get("centroid_longitude")
        selection = territory_service.toggle_selection(
            selection,
            code,
            body.toggle.state_province or geo.get("state_province"),
            centroid=(lat, lng) if lat is not None and lng is not None else None,
        )
    elif body.bulk is not None:
        bulk = body.bulk
        candidates = select_postal_codes(
            bulk.country,
            circle=(bulk.circle.lat, bulk.circle.lng, bulk.circle.radius_meters) if bulk.circle else None,
            bounds=(
                (bulk.bounds.south, bulk.bounds.west, bulk.bounds.north, bulk.bounds.east)
                if bulk.bounds else None
            ),
            mode=bulk.mode,
        )
        selection = territory_service.apply_bulk_selection(selection, candidates, bulk.action)
    else:
        raise HTTPException(status_code=422, detail="Provide either toggle or bulk.")

    return _selection_response(selection)


@router.post("/installers/{installer_id}/territories/import")
async def import_installer_territories(
    installer_id: UUID,
    file: UploadFile = File(..., description="Territory CSV (ZipCode,Status,StateProvince)"),
    mode: ImportMode = Query("append"),
    dry_run: bool = Query(False),
    user: AuthUser = Depends(require_admin),
):
    _load_installer(installer_id)
    data = await file.read()
    try:
        result = await territory_import.run(
            installer_id,
            data,
            mode,
            client=get_supabase_client(service_role=True),
            dry_run=dry_run,
        )
    except (CsvHeaderError, CsvParseError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ImportAbortedError as exc:
        raise ServiceError(str(exc), code="import_aborted") from exc
    return wrap_response(result.to_dict(), source="csv_import")


@router.get("/installers/{installer_id}/territories/export")
async def export_installer_territories(installer_id: UUID):
    installer = _load_installer(installer_id)
    rows = territory_service.export_territories(str(installer_id))
    filename = territory_export_filename(installer.get("name"))
    return Response(
        content=territories_to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# Global territory management
# ---------------------------------------------------------------------------

@router.get("/territories")
async def list_territories(
    pagination: PaginationParams = Depends(),
    q: str | None = Query(None, description="Search postal code or state/province"),
    status: TerritoryStatus | None = Query(None),
    state: list[str] | None = Query(None),
    installer_id: list[str] | None = Query(None),
    sort: str | None = Query(None),
    direction: Literal["asc", "desc"] = Query("asc"),
):
    states = split_csv_param(state)
    installer_ids = split_csv_param(installer_id)
    start, end = pagination.to_range()
    try:
        data, total = territory_service.list_territories(
            q=q, status=status, states=states, installer_ids=installer_ids,
            sort=sort, direction=direction, start=start, end=end,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    links = build_links(
        "/v1/territories",
        {
            "q": q, "status": status, "state": states, "installer_id": installer_ids,
            "sort": sort, "direction": direction,
        },
        pagination.page,
        pagination.page_size,
        total,
    )
    return wrap_response(
        data, total_count=total, page=pagination.page, page_size=pagination.page_size,
        source=SOURCE, links=links,
    )


@router.delete("/territories/{assignment_id}")
async def delete_assignment(
    assignment_id: UUID,
    user: AuthUser = Depends(require_admin),
):
    if not territory_service.delete_assignment(str(assignment_id)):
        raise HTTPException(status_code=404, detail="Territory assignment not found")
    return wrap_response({"id": str(assignment_id), "deleted": True}, source=SOURCE)
