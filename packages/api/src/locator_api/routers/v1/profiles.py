"""User profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from locator_shared.constants import Role

from locator_api.dependencies import AuthUser, require_role
from locator_api.responses import wrap_response
from locator_api.services import profile_service

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("")
async def list_profiles(
    role: Role | None = Query(None, description="Only profiles with this role"),
    user: AuthUser = Depends(require_role()),
):
    data = profile_service.list_profiles(role)
    return wrap_response(data, total_count=len(data), page_size=len(data), source="supabase")
