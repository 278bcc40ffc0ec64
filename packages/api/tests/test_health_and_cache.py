"""Tests for the probes, request logging middleware and TTL caches."""

from __future__ import annotations

from api_mocks import make_chain
from locator_api.utils.cache import TTLCache


def test_ready_when_database_answers(client, supabase):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}
    supabase.tables["installers"].limit.assert_called_once_with(1)


def test_not_ready_when_database_fails(client, supabase):
    chain = make_chain()
    chain.execute.side_effect = RuntimeError("connection refused")
    supabase.tables["installers"] = chain

    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "unavailable"


def test_request_id_generated(client):
    response = client.get("/health")
    assert len(response.headers["X-Request-ID"]) == 32


def test_request_id_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


class TestTTLCache:
    def test_loader_runs_once_while_fresh(self):
        cache = TTLCache("test", ttl=60)
        calls = []

        def load():
            calls.append(1)
            return ["62701"]

        assert cache.get_or_load("geometries:us", load) == ["62701"]
        assert cache.get_or_load("geometries:us", load) == ["62701"]
        assert len(calls) == 1

    def test_expired_entry_reloads(self):
        cache = TTLCache("test", ttl=0)
        cache.get_or_load("k", lambda: "old")
        assert cache.get_or_load("k", lambda: "new") == "new"

    def test_invalidate_by_prefix(self):
        cache = TTLCache("test", ttl=60)
        cache.get_or_load("geometries:us:full", lambda: 1)
        cache.get_or_load("geometries:ca:full", lambda: 2)

        assert cache.invalidate("geometries:us") == 1
        assert cache.get_or_load("geometries:us:full", lambda: 3) == 3
        assert cache.get_or_load("geometries:ca:full", lambda: 4) == 2
