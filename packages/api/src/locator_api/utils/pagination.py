"""Page-number pagination helpers (Supabase ``range``)."""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

from fastapi import Query

# PostgREST caps a single response at this many rows
MAX_ROWS_PER_REQUEST = 1000


class PaginationParams:
    """Dependency for extracting pagination query params."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="1-based page number"),
        page_size: int = Query(50, ge=1, le=500, description="Number of results per page"),
    ) -> None:
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def to_range(self) -> tuple[int, int]:
        """Inclusive (start, end) row indexes for ``query.range()``."""
        return self.offset, self.offset + self.page_size - 1


def total_pages(total_count: int | None, page_size: int) -> int:
    if not total_count:
        return 0
    return math.ceil(total_count / page_size)


def build_links(
    path: str,
    params: dict[str, Any],
    page: int,
    page_size: int,
    total_count: int | None,
) -> dict[str, str]:
    """Build self/prev/next links for a paginated response."""

    def _link(p: int) -> str:
        query_params = {**params, "page": p, "page_size": page_size}
        parts: list[str] = []
        for k, v in query_params.items():
            if v is None:
                continue
            if isinstance(v, (list, tuple)):
                parts.extend(f"{k}={item}" for item in v)
            else:
                parts.append(f"{k}={v}")
        return f"{path}?{'&'.join(parts)}"

    links = {"self": _link(page)}
    if page > 1:
        links["prev"] = _link(page - 1)
    if page < total_pages(total_count, page_size):
        links["next"] = _link(page + 1)
    return links


def fetch_all(
    build_query: Callable[[], Any],
    *,
    batch_size: int = MAX_ROWS_PER_REQUEST,
) -> list[dict[str, Any]]:
    """
    Read every row a query matches.

    ``build_query`` must return a fresh, fully filtered query builder each
    call; pages are requested with ``range`` until a short page comes back.
    """
    rows: list[dict[str, Any]] = []
    offset = 0
    while True:
        result = build_query().range(offset, offset + batch_size - 1).execute()
        page = result.data or []
        rows.extend(page)
        if len(page) < batch_size:
            return rows
        offset += batch_size
