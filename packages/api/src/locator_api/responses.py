"""
Response envelopes shared by every v1 route.

Success bodies are ``{"data", "meta", "links"}``; errors are
``{"error": {"code", "message", "details"?}}``. Meta keys whose value is
None are dropped, so a single-record response carries only what applies to
it (``source``, ``geocoded``, ``warning`` …).
"""

from __future__ import annotations

from typing import Any


def wrap_response(
    data: Any,
    *,
    total_count: int | None = None,
    page: int | None = None,
    page_size: int | None = None,
    source: str | None = None,
    links: dict[str, str] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Success envelope; ``extra`` keys go into meta."""
    if page_size is None and isinstance(data, list):
        page_size = len(data)
    meta = {
        "total_count": total_count,
        "page": page,
        "page_size": page_size,
        "source": source,
        **extra,
    }
    return {
        "data": data,
        "meta": {k: v for k, v in meta.items() if v is not None},
        "links": links or {},
    }


def error_response(
    code: str,
    message: str,
    *,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    err: dict[str, Any] = {"code": code, "message": message}
    if details:
        err["details"] = details
    return {"error": err}
