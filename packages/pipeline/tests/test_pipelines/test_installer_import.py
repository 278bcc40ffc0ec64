"""
tests/test_pipelines/test_installer_import.py — Unit tests for the installer CSV import.

Supabase is a MagicMock passed as ``client``; geocoding uses the stub from
conftest. No network access required.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from locator_shared.constants import NIL_UUID
from locator_pipeline.pipelines.installer_import import ImportAbortedError, ImportResult, run
from locator_pipeline.sources.base import CsvHeaderError

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


class TestImportResult:
    def test_message_without_skips(self):
        assert ImportResult(mode="append", imported=3).message == "Successfully imported 3 installers."

    def test_message_with_skips(self):
        result = ImportResult(mode="append", imported=3, skipped=2)
        assert result.message == "Successfully imported 3 installers. 2 rows skipped."

    def test_to_dict_includes_message(self):
        data = ImportResult(mode="overwrite", imported=1).to_dict()
        assert data["mode"] == "overwrite"
        assert data["message"].startswith("Successfully imported 1")


class TestInstallerImportRun:
    @pytest.mark.asyncio
    async def test_append_inserts_valid_rows(
        self, installers_csv_bytes, mock_supabase_client, stub_geocoder,
    ):
        result = await run(
            installers_csv_bytes, "append", geocoder=stub_geocoder, client=mock_supabase_client,
        )

        query = mock_supabase_client.table.return_value
        query.delete.assert_not_called()
        inserted = query.insert.call_args[0][0]
        assert [row["name"] for row in inserted] == ["Bright Blinds Co", "Maple Shades"]

        assert result.imported == 2
        assert result.skipped == 1
        assert result.skipped_rows == [4]
        assert result.message == "Successfully imported 2 installers. 1 rows skipped."

    @pytest.mark.asyncio
    async def test_geocoded_coordinates_stored(
        self, installers_csv_bytes, mock_supabase_client, stub_geocoder,
    ):
        result = await run(installers_csv_bytes, geocoder=stub_geocoder, client=mock_supabase_client)

        inserted = mock_supabase_client.table.return_value.insert.call_args[0][0]
        bright, maple = inserted
        assert (bright["latitude"], bright["longitude"]) == (39.799, -89.644)
        # Null coordinates are left out of the insert payload
        assert "latitude" not in maple
        assert result.not_geocoded == ["Maple Shades"]

    @pytest.mark.asyncio
    async def test_geocoder_receives_country(
        self, installers_csv_bytes, mock_supabase_client, stub_geocoder,
    ):
        await run(installers_csv_bytes, geocoder=stub_geocoder, client=mock_supabase_client)

        assert ("12 Main St, Springfield, IL 62701, USA", "us") in stub_geocoder.queries
        assert ("88 King St W, Toronto, ON M5H 1A1, Canada", "ca") in stub_geocoder.queries

    @pytest.mark.asyncio
    async def test_overwrite_clears_table_first(
        self, installers_csv_bytes, mock_supabase_client, stub_geocoder,
    ):
        await run(installers_csv_bytes, "overwrite", geocoder=stub_geocoder, client=mock_supabase_client)

        query = mock_supabase_client.table.return_value
        query.delete.assert_called_once()
        query.neq.assert_called_once_with("id", NIL_UUID)
        query.insert.assert_called_once()

    @pytest.mark.asyncio
    async def test_overwrite_delete_failure_aborts(
        self, installers_csv_bytes, mock_supabase_client, stub_geocoder,
    ):
        query = mock_supabase_client.table.return_value
        query.execute.side_effect = RuntimeError("permission denied")

        with pytest.raises(ImportAbortedError, match="Failed to clear existing data"):
            await run(installers_csv_bytes, "overwrite", geocoder=stub_geocoder, client=mock_supabase_client)

        query.insert.assert_not_called()
        assert stub_geocoder.queries == []

    @pytest.mark.asyncio
    async def test_insert_failure_reported(
        self, installers_csv_bytes, mock_supabase_client, stub_geocoder,
    ):
        mock_supabase_client.table.return_value.execute.side_effect = RuntimeError("payload too large")

        result = await run(installers_csv_bytes, geocoder=stub_geocoder, client=mock_supabase_client)

        assert result.imported == 0
        assert result.errors == ["Batch 1/1: payload too large"]

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(
        self, installers_csv_bytes, mock_supabase_client, stub_geocoder,
    ):
        result = await run(
            installers_csv_bytes, "overwrite",
            geocoder=stub_geocoder, client=mock_supabase_client, dry_run=True,
        )

        mock_supabase_client.table.assert_not_called()
        assert result.dry_run is True
        assert result.imported == 2

    @pytest.mark.asyncio
    async def test_missing_headers_abort_before_writes(self, mock_supabase_client, stub_geocoder):
        data = (FIXTURES_DIR / "installers_missing_header.csv").read_bytes()

        with pytest.raises(CsvHeaderError):
            await run(data, "overwrite", geocoder=stub_geocoder, client=mock_supabase_client)

        mock_supabase_client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_valid_rows(self, mock_supabase_client, stub_geocoder):
        lines = (FIXTURES_DIR / "installers.csv").read_text().splitlines()
        data = "\n".join([lines[0], lines[3]]).encode()

        result = await run(data, geocoder=stub_geocoder, client=mock_supabase_client)

        mock_supabase_client.table.return_value.insert.assert_not_called()
        assert result.imported == 0
        assert result.message == "Successfully imported 0 installers. 1 rows skipped."
