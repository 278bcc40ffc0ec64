"""
tests/test_sources/test_installers_csv.py — Unit tests for the installer CSV reader.

Tests cover:
  - Header validation (missing headers abort before transform)
  - Flag, PowerView and Shipment coercion
  - Numeric fields (unparseable → null)
  - Required-field validation and CSV line numbers
"""

from __future__ import annotations

from pathlib import Path

import polars as pl
import pytest

from locator_pipeline.sources.base import CsvHeaderError, CsvParseError, read_csv_bytes
from locator_pipeline.sources.installers_csv import (
    InstallersCsvSource,
    missing_fields,
    split_valid,
    to_installer_rows,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def transformed() -> pl.DataFrame:
    source = InstallersCsvSource()
    raw = pl.read_csv(FIXTURES_DIR / "installers.csv", infer_schema_length=0)
    return source.transform(raw.with_row_index("_row", offset=2))


def _by_name(df: pl.DataFrame, name: str) -> dict:
    return df.filter(pl.col("name") == name).to_dicts()[0]


# ---------------------------------------------------------------------------
# read_csv_bytes
# ---------------------------------------------------------------------------

class TestReadCsvBytes:
    def test_strips_byte_order_mark(self):
        df = read_csv_bytes("\ufeffZipCode,Status\n62701,Approved\n".encode())
        assert df.columns == ["ZipCode", "Status"]

    def test_all_columns_are_strings(self):
        df = read_csv_bytes(b"ZipCode,Status\n02108,Approved\n")
        assert df["ZipCode"].to_list() == ["02108"]

    def test_empty_payload(self):
        with pytest.raises(CsvParseError, match="empty"):
            read_csv_bytes(b"   \n")

    def test_not_utf8(self):
        with pytest.raises(CsvParseError, match="UTF-8"):
            read_csv_bytes(b"\xff\xfe\x00N\x00a")


# ---------------------------------------------------------------------------
# extract
# ---------------------------------------------------------------------------

class TestInstallersExtract:
    @pytest.mark.asyncio
    async def test_missing_headers_listed(self):
        data = (FIXTURES_DIR / "installers_missing_header.csv").read_bytes()
        with pytest.raises(CsvHeaderError) as exc_info:
            await InstallersCsvSource().extract(data=data)
        assert "Address1" in exc_info.value.missing
        assert "Name" not in exc_info.value.missing
        assert str(exc_info.value).startswith("Missing required CSV headers:")

    @pytest.mark.asyncio
    async def test_row_numbers_start_after_header(self, installers_csv_bytes):
        raw = await InstallersCsvSource().extract(data=installers_csv_bytes)
        assert raw["_row"].to_list() == [2, 3, 4]


# ---------------------------------------------------------------------------
# transform
# ---------------------------------------------------------------------------

class TestInstallersTransform:
    def test_columns_renamed_to_table(self, transformed):
        assert "hunter_douglas" in transformed.columns
        assert "Hunter_Douglas" not in transformed.columns
        assert "postalcode" in transformed.columns

    def test_brand_flags(self, transformed):
        row = _by_name(transformed, "Bright Blinds Co")
        assert row["hunter_douglas"] == 1
        assert row["Alta"] == 0
        assert row["carole"] == 0
        assert row["levolor"] == 1
        assert row["Blinds_and_Shades"] == 1

    def test_powerview_is_text_flag(self, transformed):
        assert _by_name(transformed, "Bright Blinds Co")["PowerView"] == "1"
        assert _by_name(transformed, "Maple Shades")["PowerView"] == "0"

    def test_shipment_yes_no(self, transformed):
        assert _by_name(transformed, "Bright Blinds Co")["Shipment"] == "Yes"
        assert _by_name(transformed, "Maple Shades")["Shipment"] == "No"

    def test_numeric_fields(self, transformed):
        bright = _by_name(transformed, "Bright Blinds Co")
        assert bright["Installer_Vendor_ID"] == 10442.0
        assert bright["Star_Rating"] == 4.5
        assert _by_name(transformed, "Maple Shades")["Installer_Vendor_ID"] is None

    def test_blank_text_is_null(self, transformed):
        assert _by_name(transformed, "Bright Blinds Co")["add2"] is None
        assert _by_name(transformed, "Maple Shades")["add2"] == "Suite 200"

    def test_required_fields_mark_validity(self, transformed):
        valid, invalid = split_valid(transformed)
        assert valid["name"].to_list() == ["Bright Blinds Co", "Maple Shades"]
        assert invalid["_row"].to_list() == [4]
        assert missing_fields(invalid.to_dicts()[0]) == ["address1"]

    def test_rows_drop_bookkeeping_columns(self, transformed):
        valid, _ = split_valid(transformed)
        rows = to_installer_rows(valid)
        assert "_row" not in rows[0]
        assert "_valid" not in rows[0]
        assert rows[0]["name"] == "Bright Blinds Co"


class TestInstallersRun:
    @pytest.mark.asyncio
    async def test_run_end_to_end(self, installers_csv_bytes):
        df = await InstallersCsvSource().run(data=installers_csv_bytes)
        assert len(df) == 3
        assert df["_valid"].to_list() == [True, True, False]

    @pytest.mark.asyncio
    async def test_metadata(self):
        meta = await InstallersCsvSource().get_metadata()
        assert meta["source_name"] == "installers_csv"
        assert "Name" in meta["headers"]
