"""Liveness and readiness probes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from locator_api import __version__
from locator_shared.db import get_supabase_client

router = APIRouter(tags=["health"])

logger = structlog.get_logger(__name__)


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": __version__}


@router.get("/ready")
async def ready():
    """Ready once the installers table answers a one-row read."""
    try:
        get_supabase_client().table("installers").select("id").limit(1).execute()
    except Exception as exc:
        logger.warning("readiness_check_failed", error=str(exc))
        return JSONResponse(status_code=503, content={"status": "unavailable", "error": str(exc)})
    return {"status": "ready"}
