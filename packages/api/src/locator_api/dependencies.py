"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from locator_shared.country import CountrySettings, detect_country_settings
from locator_shared.db import get_supabase_client
from locator_shared.geocoding import DrivingDistanceMatrix, IpLocator, OpenCageGeocoder

from locator_api.middleware.auth import AuthUser, get_current_user, require_admin, require_role
from locator_api.utils.pagination import PaginationParams


def get_geocoder() -> OpenCageGeocoder:
    return OpenCageGeocoder()


def get_ip_locator() -> IpLocator:
    return IpLocator()


def get_distance_matrix() -> DrivingDistanceMatrix:
    return DrivingDistanceMatrix()


def get_country_settings(request: Request) -> CountrySettings:
    """Display settings for the caller, from the Accept-Language header."""
    return detect_country_settings(request.headers.get("Accept-Language"))


__all__ = [
    "AuthUser",
    "PaginationParams",
    "get_country_settings",
    "get_current_user",
    "get_distance_matrix",
    "get_geocoder",
    "get_ip_locator",
    "get_supabase_client",
    "require_admin",
    "require_role",
]
