"""Tests for installer directory endpoints."""

from __future__ import annotations

import io
from uuid import uuid4

import pytest

from api_mocks import make_chain
from locator_api.dependencies import get_geocoder
from locator_shared.constants import INSTALLER_CSV_HEADERS
from locator_shared.geocoding import NOT_FOUND, Coordinates


class FakeGeocoder:
    def __init__(self, coords: Coordinates = Coordinates(lat=39.8, lng=-89.6)) -> None:
        self.coords = coords
        self.queries: list[tuple[str, str | None]] = []

    async def geocode(self, search_text: str, *, country: str | None = None) -> Coordinates:
        self.queries.append((search_text, country))
        return self.coords


@pytest.fixture()
def geocoder(app):
    fake = FakeGeocoder()
    app.dependency_overrides[get_geocoder] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


def _csv(rows: list[dict[str, str]], headers=tuple(INSTALLER_CSV_HEADERS)) -> bytes:
    lines = [",".join(headers)]
    for row in rows:
        lines.append(",".join(row.get(h, "") for h in headers))
    return ("\n".join(lines) + "\n").encode()


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

def test_list_installers(client, supabase, sample_installer):
    other = {**sample_installer, "id": str(uuid4()), "state": "WI"}
    supabase.tables["installers"] = make_chain([sample_installer, other], 2)

    response = client.get("/v1/installers", params={"page_size": 1})

    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 2
    assert body["meta"]["total_count"] == 2
    assert body["meta"]["states"] == ["IL", "WI"]
    assert "next" in body["links"]


def test_list_installers_applies_filters(client, supabase):
    chain = supabase.table("installers")

    response = client.get(
        "/v1/installers",
        params={
            "q": "bright",
            "brand": "Hunter Douglas",
            "skill": "Motorization",
            "certification": "Shutter Pro",
            "state": "IL,WI",
            "accepts_shipments": "yes",
        },
    )

    assert response.status_code == 200
    chain.eq.assert_any_call("hunter_douglas", 1)
    chain.eq.assert_any_call("PowerView", "1")
    chain.eq.assert_any_call("Shipment", "Yes")
    chain.ilike.assert_any_call("Shutter_Certification_Level", "%Shutter Pro%")
    chain.or_.assert_any_call("state.eq.IL,state.eq.WI")
    chain.range.assert_called_with(0, 49)


def test_list_installers_unknown_brand(client):
    response = client.get("/v1/installers", params={"brand": "Acme"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "bad_request"


def test_list_installers_rejects_unknown_sort(client):
    response = client.get("/v1/installers", params={"sort": "password"})
    assert response.status_code == 400


def test_get_installer_not_found(client):
    response = client.get(f"/v1/installers/{uuid4()}")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Installer not found"


def test_get_installer(client, supabase, sample_installer):
    supabase.tables["installers"] = make_chain([sample_installer], 1)
    response = client.get(f"/v1/installers/{sample_installer['id']}")
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Bright Blinds Co"


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def _form(**overrides):
    form = {
        "name": "Bright Blinds Co",
        "email": "ops@brightblinds.example",
        "primary_phone": "555-0100",
        "address1": "12 Main St",
        "city": "Springfield",
        "state": "IL",
        "postalcode": "62701",
        "Country": "USA",
        "hunter_douglas": True,
        "PowerView": "yes",
        "Shipment": False,
        "Powerview_Certification": ["Motorization Pro", "Certified Installer"],
        "Installer_Vendor_ID": "10442",
        "Sales_Org": "ignored",
    }
    form.update(overrides)
    return form


def test_create_requires_auth(client):
    response = client.post("/v1/installers", json=_form())
    assert response.status_code == 401


def test_create_requires_admin(client, auth_headers):
    response = client.post("/v1/installers", json=_form(), headers=auth_headers("field_ops_rep"))
    assert response.status_code == 403
    assert "admin" in response.json()["error"]["message"]


def test_create_installer_geocodes(client, supabase, admin_headers, geocoder, sample_installer):
    chain = make_chain([sample_installer], 1)
    supabase.tables["installers"] = chain

    response = client.post("/v1/installers", json=_form(), headers=admin_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["meta"]["geocoded"] is True
    assert "warning" not in body["meta"]

    inserted = chain.insert.call_args[0][0]
    assert inserted["hunter_douglas"] == 1
    assert inserted["PowerView"] == "1"
    assert inserted["Shipment"] == "No"
    assert inserted["Powerview_Certification"] == "Motorization Pro, Certified Installer"
    assert inserted["Installer_Vendor_ID"] == 10442.0
    assert "Sales_Org" not in inserted
    chain.update.assert_called_with({"latitude": 39.8, "longitude": -89.6})
    assert geocoder.queries == [("12 Main St, Springfield, IL 62701, USA", "us")]


def test_create_installer_not_geocoded_warns(client, supabase, admin_headers, geocoder, sample_installer):
    geocoder.coords = NOT_FOUND
    chain = make_chain([sample_installer], 1)
    supabase.tables["installers"] = chain

    response = client.post("/v1/installers", json=_form(), headers=admin_headers)

    assert response.status_code == 201
    meta = response.json()["meta"]
    assert meta["geocoded"] is False
    assert "could not be geocoded" in meta["warning"]
    chain.update.assert_not_called()


def test_create_installer_missing_fields(client, admin_headers, geocoder):
    response = client.post("/v1/installers", json=_form(email="", city=""), headers=admin_headers)
    assert response.status_code == 400
    assert "email" in response.json()["error"]["message"]


def test_create_installer_unknown_field(client, admin_headers, geocoder):
    response = client.post("/v1/installers", json=_form(favourite_colour="blue"), headers=admin_headers)
    assert response.status_code == 400


def test_create_installer_insert_failure(client, supabase, admin_headers, geocoder):
    chain = make_chain()
    chain.execute.side_effect = RuntimeError("connection reset")
    supabase.tables["installers"] = chain

    response = client.post("/v1/installers", json=_form(), headers=admin_headers)

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "database_error"


def test_update_installer_regeocodes_changed_address(
    client, supabase, admin_headers, geocoder, sample_installer,
):
    geocoder.coords = NOT_FOUND
    chain = make_chain([sample_installer], 1)
    supabase.tables["installers"] = chain

    response = client.put(
        f"/v1/installers/{sample_installer['id']}",
        json={"city": "Chatham", "Star_Rating": ""},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["meta"]["geocoded"] is False
    update = chain.update.call_args[0][0]
    assert update["city"] == "Chatham"
    assert update["latitude"] is None and update["longitude"] is None
    assert update["Star_Rating"] is None


def test_update_installer_without_address_change_skips_geocoding(
    client, supabase, admin_headers, geocoder, sample_installer,
):
    supabase.tables["installers"] = make_chain([sample_installer], 1)

    response = client.put(
        f"/v1/installers/{sample_installer['id']}",
        json={"email": "new@brightblinds.example"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert "geocoded" not in response.json()["meta"]
    assert geocoder.queries == []


def test_update_installer_not_found(client, admin_headers, geocoder):
    response = client.put(f"/v1/installers/{uuid4()}", json={"city": "X"}, headers=admin_headers)
    assert response.status_code == 404


def test_delete_installer(client, supabase, admin_headers, sample_installer):
    chain = make_chain([sample_installer], 1)
    supabase.tables["installers"] = chain

    response = client.delete(f"/v1/installers/{sample_installer['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["deleted"] is True
    chain.delete.assert_called_once()


def test_delete_installer_not_found(client, admin_headers):
    response = client.delete(f"/v1/installers/{uuid4()}", headers=admin_headers)
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Export / import
# ---------------------------------------------------------------------------

def test_export_empty_returns_204(client):
    response = client.get("/v1/installers/export")
    assert response.status_code == 204


def test_export_csv(client, supabase, sample_installer):
    supabase.tables["installers"] = make_chain([sample_installer], 1)

    response = client.get(
        "/v1/installers/export",
        params={"columns": "name,zipCode,hunterDouglas,pipCertification"},
        headers={"Accept-Language": "en-CA,en;q=0.8"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="installers_filtered.csv"' in response.headers["content-disposition"]
    header, row = response.text.strip().splitlines()
    assert header == "Name,Postal Code,Hunter Douglas,PIP Certification"
    assert row == "Bright Blinds Co,62701,Yes,Master Installer"


def test_export_unknown_column(client):
    response = client.get("/v1/installers/export", params={"columns": "password"})
    assert response.status_code == 400


def test_import_requires_admin(client):
    files = {"file": ("installers.csv", io.BytesIO(_csv([])), "text/csv")}
    response = client.post("/v1/installers/import", files=files)
    assert response.status_code == 401


def test_import_missing_headers(client, admin_headers, geocoder):
    data = _csv([], headers=("Name", "City"))
    files = {"file": ("installers.csv", io.BytesIO(data), "text/csv")}

    response = client.post("/v1/installers/import", files=files, headers=admin_headers)

    assert response.status_code == 400
    assert "Missing required CSV headers" in response.json()["error"]["message"]


def test_import_dry_run(client, admin_headers, geocoder):
    rows = [
        {
            "Name": "Bright Blinds Co", "Address1": "12 Main St", "City": "Springfield",
            "State": "IL", "Postalcode": "62701", "Country": "USA", "Hunter_Douglas": "Yes",
        },
        {"Name": "No Address LLC", "City": "Peoria", "State": "IL"},
    ]
    files = {"file": ("installers.csv", io.BytesIO(_csv(rows)), "text/csv")}

    response = client.post(
        "/v1/installers/import",
        params={"mode": "overwrite", "dry_run": "true"},
        files=files,
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["imported"] == 1
    assert data["skipped"] == 1
    assert data["skipped_rows"] == [3]
    assert data["message"] == "Successfully imported 1 installers. 1 rows skipped."
