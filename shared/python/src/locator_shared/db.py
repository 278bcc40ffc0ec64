"""
db.py — Supabase client singletons.

The API reads with the anon key so row-level security applies; admin
writes, imports, the geometry migration and monitoring use the service
role key. One client per key is created lazily and shared by the process.

Usage:
    from locator_shared.db import get_supabase_client

    supabase = get_supabase_client()                    # anon key (public reads)
    supabase = get_supabase_client(service_role=True)   # service key (writes, batch jobs)
"""

from __future__ import annotations

import threading

import structlog
from supabase import Client, create_client

from locator_shared.config import settings

logger = structlog.get_logger(__name__)

_lock = threading.Lock()
_clients: dict[str, Client] = {}

# role -> (settings attribute holding its key, env var named in the error)
_KEYS = {
    "anon": ("supabase_anon_key", "SUPABASE_ANON_KEY"),
    "service_role": ("supabase_service_key", "SUPABASE_SERVICE_KEY"),
}


def get_supabase_client(*, service_role: bool = False) -> Client:
    """
    Return the shared Supabase client for the anon or service role.

    Raises:
        RuntimeError: the key for the requested role is not configured.
    """
    role = "service_role" if service_role else "anon"
    with _lock:
        client = _clients.get(role)
        if client is None:
            attr, env_var = _KEYS[role]
            key = getattr(settings, attr)
            if not key:
                raise RuntimeError(f"{env_var} is not set. Set it in .env before using the {role} client.")
            client = create_client(settings.supabase_url, key)
            _clients[role] = client
            logger.info("supabase_client_created", role=role)
        return client


def reset_supabase_clients() -> None:
    """Forget cached clients so the next call re-reads settings."""
    with _lock:
        _clients.clear()
