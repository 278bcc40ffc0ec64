"""Caller display settings."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from locator_shared.config import settings
from locator_shared.country import CountrySettings

from locator_api.dependencies import get_country_settings
from locator_api.responses import wrap_response

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/country")
async def country_settings(country: CountrySettings = Depends(get_country_settings)):
    return wrap_response(
        {
            **country.to_dict(),
            "default_search_radius_miles": settings.default_search_radius_miles,
            "default_map_radius_miles": settings.default_map_radius_miles,
        }
    )
