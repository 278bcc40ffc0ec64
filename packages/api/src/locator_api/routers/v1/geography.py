"""Postal geometry endpoints for the territory map."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from locator_shared.constants import Country

from locator_api.responses import wrap_response
from locator_api.services import geometry_service
from locator_api.services.geometry_service import SelectionMode

router = APIRouter(prefix="/geo", tags=["geography"])


class Circle(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius_meters: float = Field(gt=0)


class Bounds(BaseModel):
    south: float
    west: float
    north: float
    east: float


class SelectionGesture(BaseModel):
    country: Country = "us"
    circle: Circle | None = None
    bounds: Bounds | None = None
    mode: SelectionMode = "centroid"


@router.get("/postal-codes")
async def list_postal_codes(
    country: Country = Query("us"),
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    radius_miles: float | None = Query(None, gt=0, description="Omit to return every postal code"),
    include_geometry: bool = Query(True),
):
    """Postal codes (with polygons) near a point, for drawing the map."""
    data = geometry_service.postal_codes_near(
        country, lat, lng, radius_miles, include_geometry=include_geometry,
    )
    return wrap_response(data, total_count=len(data), page_size=len(data), source="zip_code_geometries")


@router.post("/postal-codes/select")
async def select_postal_codes(body: SelectionGesture):
    """Postal codes picked by a circle or rectangle drawn on the map."""
    try:
        rows = geometry_service.select_postal_codes(
            body.country,
            circle=(body.circle.lat, body.circle.lng, body.circle.radius_meters) if body.circle else None,
            bounds=(
                (body.bounds.south, body.bounds.west, body.bounds.north, body.bounds.east)
                if body.bounds else None
            ),
            mode=body.mode,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    data = [{"zip_code": r["zip_code"], "state_province": r.get("state_province")} for r in rows]
    return wrap_response(data, total_count=len(data), page_size=len(data), source="zip_code_geometries")
