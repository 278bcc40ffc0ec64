"""
loaders/supabase_loader.py — Batched writes to the locator's Supabase tables.

Every pipeline writes through this module. The loader:
  - Accepts polars DataFrames or lists of dicts
  - Batches rows to respect Supabase payload limits
  - Inserts or upserts (INSERT … ON CONFLICT DO UPDATE via on_conflict)
  - Handles partial failures: logs failed batches and continues
  - Returns a LoadResult with records_loaded and records_failed counts
  - Wraps the delete / update / RPC calls the import and migration jobs need

No call is retried; a failed batch is recorded on the result.

Usage:
    from locator_pipeline.loaders.supabase_loader import SupabaseLoader

    loader = SupabaseLoader()
    result = await loader.upsert(
        "installer_zip_codes",
        rows,
        conflict_columns=["installer_id", "zip_code"],
    )
    print(result.records_loaded, result.records_failed)
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Any

import polars as pl
import structlog
from supabase import Client

from locator_shared.constants import NIL_UUID
from locator_shared.db import get_supabase_client

log = structlog.get_logger(__name__)

BATCH_SIZE = 500      # rows per Supabase request
SELECT_PAGE_SIZE = 1000  # PostgREST default max rows per response

Rows = pl.DataFrame | list[dict[str, Any]]


@dataclass
class LoadResult:
    """Summary of a loader write."""

    table: str
    records_loaded: int = 0
    records_failed: int = 0
    batches_total: int = 0
    batches_failed: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.records_failed == 0

    @property
    def status(self) -> str:
        if self.records_failed == 0:
            return "success"
        if self.records_loaded > 0:
            return "partial_failure"
        return "failure"


class SupabaseLoader:
    """
    Handles all pipeline writes to Supabase.

    Uses the service role key so RLS is bypassed for batch jobs; tests pass
    their own mocked client.
    """

    def __init__(self, client: Client | None = None, batch_size: int = BATCH_SIZE) -> None:
        self._batch_size = batch_size
        self._client = client if client is not None else get_supabase_client(service_role=True)

    @property
    def client(self) -> Client:
        return self._client

    # ------------------------------------------------------------------
    # Batched writes
    # ------------------------------------------------------------------

    async def insert(self, table: str, rows: Rows) -> LoadResult:
        """Insert rows in batches. Null values are omitted so DB defaults apply."""
        return self._write(table, rows, conflict_columns=None)

    async def upsert(
        self,
        table: str,
        rows: Rows,
        conflict_columns: list[str],
    ) -> LoadResult:
        """
        Upsert rows in batches.

        Args:
            table:            Target table name.
            rows:             DataFrame or list of row dicts.
            conflict_columns: Columns that identify a row for ON CONFLICT.
        """
        return self._write(table, rows, conflict_columns=conflict_columns)

    def _write(
        self,
        table: str,
        rows: Rows,
        *,
        conflict_columns: list[str] | None,
    ) -> LoadResult:
        result = LoadResult(table=table)
        t0 = time.monotonic()
        records = self._to_dicts(rows)
        op = "upsert" if conflict_columns else "insert"

        if not records:
            log.warning(f"{op}_empty", table=table)
            return result

        loader_log = log.bind(table=table, total_rows=len(records), op=op)
        loader_log.info("write_start")

        n_batches = math.ceil(len(records) / self._batch_size)
        result.batches_total = n_batches

        for batch_idx in range(n_batches):
            start = batch_idx * self._batch_size
            batch = records[start : start + self._batch_size]
            try:
                query = self._client.table(table)
                if conflict_columns:
                    query.upsert(batch, on_conflict=",".join(conflict_columns)).execute()
                else:
                    query.insert(batch).execute()
                result.records_loaded += len(batch)
                loader_log.debug(
                    "batch_loaded",
                    batch=batch_idx + 1,
                    n_batches=n_batches,
                    batch_size=len(batch),
                )
            except Exception as exc:
                log.error("batch_failed", table=table, batch=batch_idx + 1, error=str(exc))
                result.records_failed += len(batch)
                result.batches_failed += 1
                result.errors.append(f"Batch {batch_idx + 1}/{n_batches}: {exc}")

        result.duration_ms = int((time.monotonic() - t0) * 1000)
        loader_log.info(
            "write_complete",
            records_loaded=result.records_loaded,
            records_failed=result.records_failed,
            duration_ms=result.duration_ms,
            status=result.status,
        )
        return result

    # ------------------------------------------------------------------
    # Deletes, updates, RPC
    # ------------------------------------------------------------------

    async def delete_eq(self, table: str, column: str, value: Any) -> None:
        """Delete every row where ``column = value``. Errors propagate."""
        self._client.table(table).delete().eq(column, str(value)).execute()
        log.info("rows_deleted", table=table, column=column, value=str(value))

    async def delete_all(self, table: str) -> None:
        """
        Delete every row of a table.

        PostgREST refuses an unfiltered delete, so the filter matches every
        id that is not the nil UUID.
        """
        self._client.table(table).delete().neq("id", NIL_UUID).execute()
        log.warning("table_cleared", table=table)

    async def update_eq(
        self,
        table: str,
        values: dict[str, Any],
        column: str,
        value: Any,
    ) -> None:
        self._client.table(table).update(values).eq(column, str(value)).execute()

    async def rpc(self, function: str, params: dict[str, Any]) -> Any:
        """Call a Postgres function; returns the response data."""
        response = self._client.rpc(function, params).execute()
        return response.data

    async def select_all(
        self,
        table: str,
        columns: str = "*",
        *,
        filters: dict[str, Any] | None = None,
        order: str = "id",
        page_size: int = SELECT_PAGE_SIZE,
    ) -> list[dict[str, Any]]:
        """
        Read every matching row, paging with ``range`` past the response cap.

        ``order`` must name a unique column so pages neither overlap nor skip rows.
        """
        rows: list[dict[str, Any]] = []
        offset = 0
        while True:
            query = self._client.table(table).select(columns)
            for column, value in (filters or {}).items():
                query = query.eq(column, value)
            response = query.order(order).range(offset, offset + page_size - 1).execute()
            page = response.data or []
            rows.extend(page)
            if len(page) < page_size:
                break
            offset += page_size
        log.debug("select_all_complete", table=table, rows=len(rows))
        return rows

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_dicts(rows: Rows) -> list[dict[str, Any]]:
        """
        Convert rows to JSON-serialisable dicts.

        - Date and datetime values → ISO string
        - None/null values omitted (use DB defaults)
        """
        if isinstance(rows, pl.DataFrame):
            cast_exprs = []
            for col_name in rows.columns:
                dtype = rows[col_name].dtype
                if dtype == pl.Date:
                    cast_exprs.append(pl.col(col_name).cast(pl.String))
                elif dtype == pl.Datetime:
                    cast_exprs.append(pl.col(col_name).dt.strftime("%Y-%m-%dT%H:%M:%SZ"))
            if cast_exprs:
                rows = rows.with_columns(cast_exprs)
            raw = rows.to_dicts()
        else:
            raw = rows
        return [{k: v for k, v in row.items() if v is not None} for row in raw]
