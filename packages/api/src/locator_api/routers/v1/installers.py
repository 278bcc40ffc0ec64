"""Installer directory endpoints."""

from __future__ import annotations

from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, Response, UploadFile

from locator_shared.constants import ImportMode
from locator_shared.country import CountrySettings
from locator_shared.geocoding import OpenCageGeocoder

from locator_pipeline.pipelines import installer_import
from locator_pipeline.pipelines.exports import (
    INSTALLER_EXPORT_FILENAME,
    installers_to_csv,
    resolve_export_columns,
)
from locator_pipeline.sources import CsvHeaderError, CsvParseError

from locator_api.dependencies import (
    AuthUser,
    PaginationParams,
    get_country_settings,
    get_geocoder,
    get_supabase_client,
    require_admin,
)
from locator_api.responses import wrap_response
from locator_api.services import ServiceError, installer_service
from locator_api.services.installer_service import InstallerFilters
from locator_api.utils.filtering import ShipmentFilter, split_csv_param
from locator_api.utils.pagination import build_links

router = APIRouter(prefix="/installers", tags=["installers"])

SOURCE = "supabase"


def _filters(
    q: str | None = Query(None, description="Search name, phone, email, city, state or postal code"),
    brand: list[str] | None = Query(None),
    skill: list[str] | None = Query(None),
    certification: list[str] | None = Query(None),
    state: list[str] | None = Query(None),
    accepts_shipments: ShipmentFilter = Query("any"),
) -> InstallerFilters:
    return InstallerFilters(
        q=q,
        brands=split_csv_param(brand),
        skills=split_csv_param(skill),
        certifications=split_csv_param(certification),
        states=split_csv_param(state),
        accepts_shipments=accepts_shipments,
    )


@router.get("")
async def list_installers(
    pagination: PaginationParams = Depends(),
    filters: InstallerFilters = Depends(_filters),
    sort: str | None = Query(None),
    direction: Literal["asc", "desc"] = Query("asc"),
):
    start, end = pagination.to_range()
    try:
        data, total = installer_service.list_installers(
            filters, sort=sort, direction=direction, start=start, end=end,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    links = build_links(
        "/v1/installers",
        {
            "q": filters.q,
            "brand": filters.brands,
            "skill": filters.skills,
            "certification": filters.certifications,
            "state": filters.states,
            "accepts_shipments": filters.accepts_shipments,
            "sort": sort,
            "direction": direction,
        },
        pagination.page,
        pagination.page_size,
        total,
    )
    return wrap_response(
        data, total_count=total, page=pagination.page, page_size=pagination.page_size,
        source=SOURCE, links=links, states=installer_service.unique_states(data),
    )


@router.get("/export")
async def export_installers(
    filters: InstallerFilters = Depends(_filters),
    columns: list[str] | None = Query(None, description="Export column keys; default is the visible set"),
    sort: str | None = Query(None),
    direction: Literal["asc", "desc"] = Query("asc"),
    country: CountrySettings = Depends(get_country_settings),
):
    keys = split_csv_param(columns) or None
    try:
        resolve_export_columns(keys)
        rows = installer_service.export_installers(filters, sort=sort, direction=direction)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if not rows:
        return Response(status_code=204)

    return Response(
        content=installers_to_csv(rows, keys, postal_code_label=country.postal_code_label),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{INSTALLER_EXPORT_FILENAME}"'},
    )


@router.post("/import")
async def import_installers(
    file: UploadFile = File(..., description="Installer CSV"),
    mode: ImportMode = Query("append"),
    dry_run: bool = Query(False),
    user: AuthUser = Depends(require_admin),
    geocoder: OpenCageGeocoder = Depends(get_geocoder),
):
    data = await file.read()
    try:
        result = await installer_import.run(
            data,
            mode,
            geocoder=geocoder,
            client=get_supabase_client(service_role=True),
            dry_run=dry_run,
        )
    except (CsvHeaderError, CsvParseError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except installer_import.ImportAbortedError as exc:
        raise ServiceError(str(exc), code="import_aborted") from exc
    return wrap_response(result.to_dict(), source="csv_import", imported_by=user.user_id)


@router.get("/{installer_id}")
async def get_installer(installer_id: UUID):
    data = installer_service.get_installer(str(installer_id))
    if data is None:
        raise HTTPException(status_code=404, detail="Installer not found")
    return wrap_response(data, source=SOURCE)


@router.post("", status_code=201)
async def create_installer(
    form: dict[str, Any] = Body(..., description="Installer column values"),
    user: AuthUser = Depends(require_admin),
    geocoder: OpenCageGeocoder = Depends(get_geocoder),
):
    try:
        row, geocoded = await installer_service.create_installer(form, geocoder)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    warning = None if geocoded else "Installer saved, but the address could not be geocoded."
    return wrap_response(row, source=SOURCE, geocoded=geocoded, warning=warning)


@router.put("/{installer_id}")
async def update_installer(
    installer_id: UUID,
    form: dict[str, Any] = Body(..., description="Changed installer column values"),
    user: AuthUser = Depends(require_admin),
    geocoder: OpenCageGeocoder = Depends(get_geocoder),
):
    try:
        updated = await installer_service.update_installer(str(installer_id), form, geocoder)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if updated is None:
        raise HTTPException(status_code=404, detail="Installer not found")

    row, geocoded = updated
    warning = (
        "Address changed, but the new address could not be geocoded; coordinates were cleared."
        if geocoded is False
        else None
    )
    return wrap_response(row, source=SOURCE, geocoded=geocoded, warning=warning)


@router.delete("/{installer_id}")
async def delete_installer(
    installer_id: UUID,
    user: AuthUser = Depends(require_admin),
):
    if not installer_service.delete_installer(str(installer_id)):
        raise HTTPException(status_code=404, detail="Installer not found")
    return wrap_response({"id": str(installer_id), "deleted": True}, source=SOURCE)
