"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  fixture_path()          — resolves paths to tests/fixtures/
  mock_supabase_client()  — chainable MagicMock of the Supabase client
  mock_supabase()         — patches the loader's client factory with it
  *_csv_bytes             — CSV uploads read from fixture files
  mock_http               — configured respx router for faking HTTP responses
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import respx

from locator_shared.geocoding import NOT_FOUND, Coordinates

FIXTURES_DIR = Path(__file__).parent / "fixtures"

_CHAIN_METHODS = (
    "select", "eq", "neq", "in_", "is_", "or_", "order", "limit", "range",
    "insert", "upsert", "update", "delete",
)


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def fixture_path() -> Path:
    return FIXTURES_DIR


# ---------------------------------------------------------------------------
# Supabase client mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """
    A MagicMock that simulates the supabase.Client interface.

    Every query builder method returns the same chain object, so
    ``client.table.return_value`` is the query and its ``execute`` result
    holds empty data by default. Override in individual tests:

        mock_supabase_client.table.return_value.execute.return_value.data = [...]
    """
    client = MagicMock()

    query = MagicMock()
    for method in _CHAIN_METHODS:
        getattr(query, method).return_value = query

    default_result = MagicMock()
    default_result.data = []
    default_result.count = 0
    query.execute.return_value = default_result

    client.table.return_value = query
    client.rpc.return_value.execute.return_value.data = None
    return client


@pytest.fixture
def mock_supabase(mock_supabase_client: MagicMock):
    """
    Patch get_supabase_client() where the loader uses it.
    Yields the mock client so tests can inspect calls.
    """
    with patch(
        "locator_pipeline.loaders.supabase_loader.get_supabase_client",
        return_value=mock_supabase_client,
    ):
        yield mock_supabase_client


# ---------------------------------------------------------------------------
# CSV uploads
# ---------------------------------------------------------------------------

@pytest.fixture
def installers_csv_bytes() -> bytes:
    return (FIXTURES_DIR / "installers.csv").read_bytes()


@pytest.fixture
def territories_csv_bytes() -> bytes:
    return (FIXTURES_DIR / "territories.csv").read_bytes()


# ---------------------------------------------------------------------------
# Geocoder stand-in
# ---------------------------------------------------------------------------

class StubGeocoder:
    """Answers from a fixed address -> Coordinates table; anything else misses."""

    def __init__(self, known: dict[str, Coordinates] | None = None) -> None:
        self.known = known or {}
        self.queries: list[tuple[str, str | None]] = []

    async def geocode(self, search_text: str, *, country: str | None = None) -> Coordinates:
        self.queries.append((search_text, country))
        return self.known.get(search_text, NOT_FOUND)


@pytest.fixture
def stub_geocoder() -> StubGeocoder:
    return StubGeocoder(
        {
            "12 Main St, Springfield, IL 62701, USA": Coordinates(lat=39.799, lng=-89.644),
        }
    )


# ---------------------------------------------------------------------------
# respx HTTP mock router
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_http.get("https://...").mock(return_value=httpx.Response(200, json={...}))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router
