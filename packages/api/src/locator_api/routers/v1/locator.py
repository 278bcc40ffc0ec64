"""Public installer locator endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from locator_shared.config import settings
from locator_shared.country import CountrySettings, radius_to_miles
from locator_shared.geocoding import DrivingDistanceMatrix, IpLocator, OpenCageGeocoder

from locator_api.dependencies import (
    get_country_settings,
    get_distance_matrix,
    get_geocoder,
    get_ip_locator,
)
from locator_api.responses import wrap_response
from locator_api.services import locator_service
from locator_api.utils.filtering import split_csv_param

router = APIRouter(prefix="/locator", tags=["locator"])


@router.get("/search")
async def search_installers(
    request: Request,
    postal_code: str | None = Query(None, description="Zip or postal code to search from"),
    radius: float | None = Query(None, gt=0, description="Radius in the caller's distance unit"),
    brand: list[str] | None = Query(None),
    skill: list[str] | None = Query(None),
    certification: list[str] | None = Query(None),
    state: list[str] | None = Query(None, description="List installers in these states instead"),
    country: CountrySettings = Depends(get_country_settings),
    geocoder: OpenCageGeocoder = Depends(get_geocoder),
    ip_locator: IpLocator = Depends(get_ip_locator),
    matrix: DrivingDistanceMatrix = Depends(get_distance_matrix),
):
    radius_miles = (
        radius_to_miles(radius, country) if radius is not None
        else float(settings.default_search_radius_miles)
    )
    ip = locator_service.public_ip(
        request.headers.get("X-Forwarded-For"),
        request.client.host if request.client else None,
    )
    try:
        result = await locator_service.search(
            postal_code=postal_code,
            radius_miles=radius_miles,
            country=country,
            geocoder=geocoder,
            ip_locator=ip_locator,
            matrix=matrix,
            brands=split_csv_param(brand),
            skills=split_csv_param(skill),
            certifications=split_csv_param(certification),
            states=split_csv_param(state),
            ip=ip,
        )
    except (ValueError, locator_service.LocationNotFound) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except locator_service.LocationRequired as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return wrap_response(
        result.installers,
        total_count=len(result.installers),
        page_size=len(result.installers),
        source="supabase",
        location=result.location.to_dict() if result.location else None,
        location_source=result.location_source,
        distance_source=result.distance_source,
        unit=country.distance_unit,
        radius_miles=radius_miles,
    )
