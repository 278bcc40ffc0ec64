"""
tests/test_pipelines/test_geocode_missing.py — Unit tests for re-geocoding installers without coordinates.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from locator_pipeline.pipelines import geocode_missing
from locator_pipeline.pipelines.geocode_missing import fetch_missing, run

BRIGHT_ID = str(uuid4())


def _rows():
    return [
        {
            "id": BRIGHT_ID,
            "name": "Bright Blinds Co",
            "address1": "12 Main St",
            "city": "Springfield",
            "state": "IL",
            "postalcode": "62701",
            "Country": "USA",
        },
        {
            "id": str(uuid4()),
            "name": "Nowhere Shades",
            "address1": "1 Lost Rd",
            "city": "Atlantis",
            "state": "ZZ",
            "postalcode": "00000",
            "Country": "USA",
        },
    ]


@pytest.fixture
def client_with_missing(mock_supabase_client):
    mock_supabase_client.table.return_value.execute.return_value.data = _rows()
    return mock_supabase_client


def test_fetch_missing_query(client_with_missing):
    installers = fetch_missing(client_with_missing, limit=10)

    query = client_with_missing.table.return_value
    query.or_.assert_called_once_with("latitude.is.null,longitude.is.null")
    assert [c.args for c in query.order.call_args_list] == [("name",), ("id",)]
    query.range.assert_called_once_with(0, 9)
    assert [i.name for i in installers] == ["Bright Blinds Co", "Nowhere Shades"]


def test_fetch_missing_without_limit(client_with_missing):
    fetch_missing(client_with_missing)
    client_with_missing.table.return_value.range.assert_called_once_with(0, 999)


def _named(*names):
    return [
        {"id": str(uuid4()), "name": name, "address1": "1 Elm St", "city": "Peoria",
         "state": "IL", "postalcode": "61602", "Country": "USA"}
        for name in names
    ]


def test_fetch_missing_reads_every_page(mock_supabase_client):
    query = mock_supabase_client.table.return_value
    query.execute.side_effect = [
        MagicMock(data=_named("A", "B")),
        MagicMock(data=_named("C", "D")),
        MagicMock(data=_named("E")),
    ]

    installers = fetch_missing(mock_supabase_client, page_size=2)

    assert [i.name for i in installers] == ["A", "B", "C", "D", "E"]
    assert [c.args for c in query.range.call_args_list] == [(0, 1), (2, 3), (4, 5)]


def test_fetch_missing_limit_spans_pages(mock_supabase_client):
    query = mock_supabase_client.table.return_value
    query.execute.side_effect = [
        MagicMock(data=_named("A", "B")),
        MagicMock(data=_named("C")),
    ]

    installers = fetch_missing(mock_supabase_client, limit=3, page_size=2)

    assert len(installers) == 3
    assert [c.args for c in query.range.call_args_list] == [(0, 1), (2, 2)]


class TestGeocodeMissingRun:
    @pytest.mark.asyncio
    async def test_updates_found_coordinates(self, client_with_missing, stub_geocoder):
        result = await run(geocoder=stub_geocoder, client=client_with_missing)

        query = client_with_missing.table.return_value
        query.update.assert_called_once_with({"latitude": 39.799, "longitude": -89.644})
        query.eq.assert_called_once_with("id", BRIGHT_ID)
        assert result.checked == 2
        assert result.updated == 1
        assert result.not_found == ["Nowhere Shades"]

    @pytest.mark.asyncio
    async def test_dry_run(self, client_with_missing, stub_geocoder):
        result = await run(geocoder=stub_geocoder, client=client_with_missing, dry_run=True)

        client_with_missing.table.return_value.update.assert_not_called()
        assert result.updated == 1

    @pytest.mark.asyncio
    async def test_update_failure_recorded(self, client_with_missing, stub_geocoder):
        query = client_with_missing.table.return_value
        query.execute.side_effect = [MagicMock(data=_rows()), RuntimeError("row locked")]

        result = await run(geocoder=stub_geocoder, client=client_with_missing)

        assert result.updated == 0
        assert result.errors == ["Bright Blinds Co: row locked"]

    @pytest.mark.asyncio
    async def test_geocodes_rows_from_every_page(self, mock_supabase_client, stub_geocoder):
        query = mock_supabase_client.table.return_value
        query.execute.side_effect = [
            MagicMock(data=_rows()),
            MagicMock(data=_named("Late Page Shades")),
            MagicMock(data=None),
        ]

        with patch.object(geocode_missing, "SELECT_PAGE_SIZE", 2):
            result = await run(geocoder=stub_geocoder, client=mock_supabase_client)

        assert result.checked == 3
        assert result.updated == 1
        assert result.not_found == ["Nowhere Shades", "Late Page Shades"]
        assert len(stub_geocoder.queries) == 3

    @pytest.mark.asyncio
    async def test_page_read_failure_propagates(self, mock_supabase_client, stub_geocoder):
        query = mock_supabase_client.table.return_value
        query.execute.side_effect = [MagicMock(data=_rows()), RuntimeError("statement timeout")]

        with patch.object(geocode_missing, "SELECT_PAGE_SIZE", 2):
            with pytest.raises(RuntimeError, match="statement timeout"):
                await run(geocoder=stub_geocoder, client=mock_supabase_client)

        assert stub_geocoder.queries == []

    @pytest.mark.asyncio
    async def test_nothing_missing(self, mock_supabase_client, stub_geocoder):
        result = await run(geocoder=stub_geocoder, client=mock_supabase_client)

        assert result.checked == 0
        assert stub_geocoder.queries == []
