"""Shared test fixtures for locator-api."""

from __future__ import annotations

from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from api_mocks import make_chain, make_supabase, make_token

SUPABASE_TARGETS = (
    "locator_shared.db.get_supabase_client",
    "locator_api.middleware.auth.get_supabase_client",
    "locator_api.services.installer_service.get_supabase_client",
    "locator_api.services.territory_service.get_supabase_client",
    "locator_api.services.geometry_service.get_supabase_client",
    "locator_api.services.locator_service.get_supabase_client",
    "locator_api.services.profile_service.get_supabase_client",
    "locator_api.routers.v1.installers.get_supabase_client",
    "locator_api.routers.v1.territories.get_supabase_client",
    "locator_api.routers.health.get_supabase_client",
)


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear all in-memory caches between tests."""
    from locator_api.utils.cache import geometry_cache, profile_cache
    yield
    for cache in (geometry_cache, profile_cache):
        cache.clear()


@pytest.fixture()
def supabase():
    """Patch get_supabase_client everywhere it's imported with one mock client."""
    mock = make_supabase()
    patches = [patch(target, return_value=mock) for target in SUPABASE_TARGETS]
    for p in patches:
        p.start()
    yield mock
    for p in patches:
        p.stop()


@pytest.fixture()
def app(supabase):
    """Create test FastAPI app with mocked Supabase."""
    from locator_api.app import create_app
    return create_app()


@pytest.fixture()
def client(app):
    """HTTP test client."""
    return TestClient(app)

@pytest.fixture()
def auth_headers(supabase):
    """Factory: Authorization headers for a signed-in user with ``role``."""

    def _headers(role: str = "admin") -> dict[str, str]:
        user_id = str(uuid4())
        supabase.tables["profiles"] = make_chain(
            [{"id": user_id, "first_name": "Dana", "last_name": "Reyes", "role": role}], 1,
        )
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return _headers


@pytest.fixture()
def admin_headers(auth_headers):
    return auth_headers("admin")


@pytest.fixture()
def sample_installer():
    return {
        "id": str(uuid4()),
        "name": "Bright Blinds Co",
        "email": "ops@brightblinds.example",
        "primary_phone": "555-0100",
        "address1": "12 Main St",
        "add2": None,
        "city": "Springfield",
        "state": "IL",
        "postalcode": "62701",
        "Country": "USA",
        "latitude": 39.7990,
        "longitude": -89.6440,
        "hunter_douglas": 1,
        "Alta": 0,
        "levolor": 1,
        "Shutters": 1,
        "PowerView": "1",
        "Draperies": 0,
        "Powerview_Certification": "Motorization Pro",
        "PIP_Certification_Level": "Master Installer",
        "Shipment": "Yes",
    }


@pytest.fixture()
def sample_geometries():
    return [
        {
            "zip_code": "62701",
            "state_province": "IL",
            "centroid_latitude": 39.80,
            "centroid_longitude": -89.65,
            "is_canada": False,
        },
        {
            "zip_code": "62702",
            "state_province": "IL",
            "centroid_latitude": 39.82,
            "centroid_longitude": -89.64,
            "is_canada": False,
        },
        {
            "zip_code": "60601",
            "state_province": "IL",
            "centroid_latitude": 41.886,
            "centroid_longitude": -87.618,
            "is_canada": False,
        },
    ]
