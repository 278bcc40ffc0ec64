"""User profile lookups for rep / manager pick lists."""

from __future__ import annotations

from typing import Any

from locator_shared.db import get_supabase_client
from locator_shared.models.profile import UserProfile

from locator_api.utils.cache import profile_cache


def _load_profiles(role: str | None) -> list[dict[str, Any]]:
    supabase = get_supabase_client()
    query = supabase.table("profiles").select("id, first_name, last_name, role")
    if role:
        query = query.eq("role", role)
    result = query.order("last_name").execute()

    profiles = []
    for row in result.data or []:
        profile = UserProfile.from_db_row(row)
        profiles.append({**profile.model_dump(mode="json"), "display_name": profile.display_name})
    return profiles


def list_profiles(role: str | None = None) -> list[dict[str, Any]]:
    return profile_cache.get_or_load(f"profiles:{role or 'all'}", lambda: _load_profiles(role))
