"""Query parameter parsing and Supabase filter builders."""

from __future__ import annotations

import re
from collections.abc import Collection, Sequence
from typing import Any, Literal

from locator_shared.constants import (
    BRAND_COLUMNS,
    CERTIFICATION_FILTER_COLUMNS,
    SKILL_COLUMNS,
    TEXT_FLAG_COLUMNS,
)

ShipmentFilter = Literal["any", "yes", "no"]

# Characters that delimit PostgREST or=() filter expressions
_OR_RESERVED = re.compile(r"[,()]")


def _or_safe(value: str) -> str:
    return _OR_RESERVED.sub(" ", value).strip()


def apply_text_search(
    query: Any,
    columns: Sequence[str],
    search_term: str | None,
) -> Any:
    """Case-insensitive substring match on any of ``columns`` (PostgREST or=)."""
    term = _or_safe(search_term or "")
    if not term:
        return query
    return query.or_(",".join(f"{column}.ilike.%{term}%" for column in columns))


def _resolve(name: str, mapping: dict[str, str], kind: str) -> str:
    if name in mapping:
        return mapping[name]
    if name in mapping.values():
        return name
    raise ValueError(f"Unknown {kind}: {name!r}. Expected one of: {', '.join(mapping)}")


def apply_installer_filters(
    query: Any,
    *,
    brands: Sequence[str] = (),
    skills: Sequence[str] = (),
    certifications: Sequence[str] = (),
    states: Sequence[str] = (),
    accepts_shipments: ShipmentFilter = "any",
) -> Any:
    """
    Apply the directory filters to an installers query.

    Every selected brand, skill and certification must match; states match
    any of the list.

    Raises:
        ValueError: unknown brand / skill / certification name.
    """
    for brand in brands:
        query = query.eq(_resolve(brand, BRAND_COLUMNS, "brand"), 1)

    for skill in skills:
        column = _resolve(skill, SKILL_COLUMNS, "skill")
        query = query.eq(column, "1" if column in TEXT_FLAG_COLUMNS else 1)

    for cert in certifications:
        if cert not in CERTIFICATION_FILTER_COLUMNS:
            raise ValueError(
                f"Unknown certification: {cert!r}. "
                f"Expected one of: {', '.join(CERTIFICATION_FILTER_COLUMNS)}"
            )
        query = query.ilike(CERTIFICATION_FILTER_COLUMNS[cert], f"%{cert}%")

    cleaned = [_or_safe(s) for s in states if _or_safe(s)]
    if cleaned:
        query = query.or_(",".join(f"state.eq.{s}" for s in cleaned))

    if accepts_shipments == "yes":
        query = query.eq("Shipment", "Yes")
    elif accepts_shipments == "no":
        query = query.eq("Shipment", "No")

    return query


def apply_sort(
    query: Any,
    sort: str | None,
    direction: str,
    allowed: Collection[str],
    default: str,
) -> Any:
    """
    Order by a whitelisted column.

    Raises:
        ValueError: ``sort`` is not in ``allowed``.
    """
    column = sort or default
    if column not in allowed:
        raise ValueError(f"Cannot sort by {column!r}")
    return query.order(column, desc=direction == "desc")


def split_csv_param(values: list[str] | None) -> list[str]:
    """Accept both ``?brand=A&brand=B`` and ``?brand=A,B``."""
    out: list[str] = []
    for value in values or []:
        out.extend(part.strip() for part in value.split(",") if part.strip())
    return out
