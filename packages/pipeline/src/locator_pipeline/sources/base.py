"""
sources/base.py — Abstract base class for pipeline input sources.

Each concrete source must implement:
  extract()      — read the raw input (CSV bytes, GeoJSON file) into a DataFrame
  transform()    — validate/coerce into the table schema
  get_metadata() — describe the source for logging

The run() method orchestrates extract → transform with timing and logging.
Pipelines call run() rather than the individual methods.

CSV helpers shared by the installer and territory readers live here too:
read_csv_bytes() parses uploads with every column as a string, and the two
exceptions separate "the file is unusable" from "a row is unusable".
"""

from __future__ import annotations

import io
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import polars as pl
import structlog

log = structlog.get_logger(__name__)


class CsvParseError(ValueError):
    """The upload could not be parsed as CSV at all."""


class CsvHeaderError(ValueError):
    """The CSV is missing headers the importer needs."""

    def __init__(self, missing: list[str], expected: Iterable[str]) -> None:
        self.missing = missing
        self.expected = list(expected)
        super().__init__(
            f"Missing required CSV headers: {', '.join(missing)}. "
            f"Expected: {', '.join(self.expected)}"
        )


def read_csv_bytes(data: bytes) -> pl.DataFrame:
    """
    Parse CSV bytes into an all-string DataFrame.

    A UTF-8 byte-order mark is dropped, empty cells become null and rows
    that are entirely empty are removed.

    Raises:
        CsvParseError: the payload is not decodable / parseable CSV.
    """
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CsvParseError(f"CSV is not valid UTF-8: {exc}") from exc

    if not text.strip():
        raise CsvParseError("CSV file is empty")

    try:
        df = pl.read_csv(
            io.StringIO(text),
            infer_schema_length=0,
            truncate_ragged_lines=False,
        )
    except pl.exceptions.PolarsError as exc:
        raise CsvParseError(f"CSV parsing error: {exc}") from exc

    if df.width == 0:
        return df
    return df.filter(~pl.all_horizontal(pl.all().is_null()))


def check_headers(df: pl.DataFrame, expected: Iterable[str]) -> None:
    """Raise CsvHeaderError listing every expected header absent from ``df``."""
    expected = list(expected)
    missing = [h for h in expected if h not in df.columns]
    if missing:
        raise CsvHeaderError(missing, expected)


def blank_to_null(column: str) -> pl.Expr:
    """Strip a string column and turn empty strings into null."""
    stripped = pl.col(column).str.strip_chars()
    return pl.when(stripped == "").then(None).otherwise(stripped).alias(column)


class BaseSource(ABC):
    """Abstract base for the locator's pipeline input sources."""

    # Override in subclass; used for logging
    name: str = "unknown"

    def __init__(self) -> None:
        self._log = log.bind(source_name=self.name)

    @abstractmethod
    async def extract(self, **kwargs: Any) -> pl.DataFrame:
        """
        Read the raw input.

        Header / structure validation belongs here so a malformed file fails
        before any transform or database write.
        """
        ...

    @abstractmethod
    def transform(self, raw: pl.DataFrame) -> pl.DataFrame:
        """Coerce a raw DataFrame into the target table schema."""
        ...

    @abstractmethod
    async def get_metadata(self) -> dict[str, Any]:
        ...

    async def run(self, **kwargs: Any) -> pl.DataFrame:
        """
        Extract + transform in sequence with timing and structured logging.

        Raises:
            Any exception from extract() or transform() after logging it.
        """
        run_log = self._log.bind(
            **{k: (f"<{len(v)} bytes>" if isinstance(v, bytes) else str(v)) for k, v in kwargs.items()}
        )
        run_log.info("source_run_start")

        t0 = time.monotonic()
        try:
            raw = await self.extract(**kwargs)
            run_log.info(
                "extract_complete",
                raw_rows=len(raw),
                raw_cols=raw.width,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )

            t1 = time.monotonic()
            result = self.transform(raw)
            run_log.info(
                "transform_complete",
                result_rows=len(result),
                duration_ms=int((time.monotonic() - t1) * 1000),
            )
            return result

        except Exception as exc:
            run_log.error(
                "source_run_failed",
                error=str(exc),
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            raise
