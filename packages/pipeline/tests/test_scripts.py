"""
tests/test_scripts.py — Tests for scripts/run_pipeline.py and monitoring/coverage_check.py.

Both are plain scripts rather than package modules, so they are loaded from
their file paths.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from locator_pipeline.pipelines.geocode_missing import GeocodeResult
from locator_pipeline.pipelines.geometry_migration import MigrationResult

REPO_ROOT = Path(__file__).resolve().parents[3]


def _load(path: Path, name: str) -> ModuleType:
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture(scope="module")
def run_pipeline_script() -> ModuleType:
    return _load(REPO_ROOT / "packages" / "pipeline" / "scripts" / "run_pipeline.py", "run_pipeline_script")


@pytest.fixture(scope="module")
def coverage_script() -> ModuleType:
    return _load(REPO_ROOT / "monitoring" / "coverage_check.py", "coverage_check_script")


# ---------------------------------------------------------------------------
# run_pipeline.py
# ---------------------------------------------------------------------------

class TestRunPipelineScript:
    @pytest.mark.asyncio
    async def test_all_runs_every_job(self, run_pipeline_script):
        args = run_pipeline_script.build_parser().parse_args(["all", "--dry-run", "--delay-ms", "0"])
        migrate = AsyncMock(return_value=MigrationResult(country="us", succeeded=3))
        geocode = AsyncMock(return_value=GeocodeResult(checked=1, updated=1))

        with patch("locator_pipeline.pipelines.geometry_migration.run", new=migrate), \
             patch("locator_pipeline.pipelines.geocode_missing.run", new=geocode):
            code = await run_pipeline_script.run_pipeline(args)

        assert code == 0
        paths = [(c.args[0], c.args[1]) for c in migrate.call_args_list]
        assert paths == [
            (run_pipeline_script.DEFAULT_US_PATH, "us"),
            (run_pipeline_script.DEFAULT_CANADA_PATH, "ca"),
        ]
        geocode.assert_awaited_once_with(limit=None, dry_run=True)

    @pytest.mark.asyncio
    async def test_single_migration_path_and_failures(self, run_pipeline_script, tmp_path):
        path = tmp_path / "fsa.geojson"
        args = run_pipeline_script.build_parser().parse_args(["migrate-canada", "--path", str(path)])
        migrate = AsyncMock(return_value=MigrationResult(country="ca", succeeded=3, failed=1))

        with patch("locator_pipeline.pipelines.geometry_migration.run", new=migrate):
            code = await run_pipeline_script.run_pipeline(args)

        assert code == 1
        assert migrate.call_args.args[:2] == (path, "ca")

    @pytest.mark.asyncio
    async def test_exception_returns_one(self, run_pipeline_script):
        args = run_pipeline_script.build_parser().parse_args(["geocode-missing"])
        with patch(
            "locator_pipeline.pipelines.geocode_missing.run",
            new=AsyncMock(side_effect=RuntimeError("SUPABASE_SERVICE_KEY is not set")),
        ):
            assert await run_pipeline_script.run_pipeline(args) == 1


# ---------------------------------------------------------------------------
# coverage_check.py
# ---------------------------------------------------------------------------

def _client(tables: dict[str, list[dict]]) -> MagicMock:
    client = MagicMock()
    client.queries = {}

    def _table(name):
        query = client.queries[name] = MagicMock()
        query.select.return_value = query
        query.order.return_value = query
        query.range.return_value = query
        query.execute.return_value = MagicMock(data=tables.get(name, []))
        return query

    client.table.side_effect = _table
    return client


class TestCoverageCheck:
    def test_report_finds_gaps(self, coverage_script):
        client = _client(
            {
                "installers": [
                    {"id": "a", "name": "Bright Blinds Co", "city": "Springfield", "state": "IL",
                     "latitude": 39.8, "longitude": -89.6},
                    {"id": "b", "name": "Nowhere Shades", "city": None, "state": "ZZ",
                     "latitude": None, "longitude": None},
                ],
                "installer_zip_codes": [
                    {"installer_id": "a", "status": "Approved"},
                    {"installer_id": "a", "status": "Needs Approval"},
                ],
            }
        )
        with patch.object(coverage_script, "get_supabase_client", return_value=client):
            report = coverage_script.generate_report()

        assert report["installers"] == 2
        assert report["assignments"] == 2
        assert report["pending_approval"] == 1
        assert [r["name"] for r in report["missing_coordinates"]] == ["Nowhere Shades"]
        assert [r["name"] for r in report["without_territories"]] == ["Nowhere Shades"]
        for name in ("installers", "installer_zip_codes"):
            client.queries[name].order.assert_called_once_with("id")

    def test_print_report(self, coverage_script, capsys):
        coverage_script.print_report(
            {
                "installers": 1,
                "assignments": 0,
                "pending_approval": 0,
                "missing_coordinates": [],
                "without_territories": [{"id": "a", "name": "Bright Blinds Co", "city": None, "state": "IL"}],
            }
        )
        out = capsys.readouterr().out
        assert "No territory assignments:" in out
        assert "Bright Blinds Co" in out
        assert "Not shown by the locator" not in out
