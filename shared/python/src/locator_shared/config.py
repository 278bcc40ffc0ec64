"""
config.py — pydantic-settings Settings class.

All environment variables for the installer locator are declared here.
The API, the pipeline and the monitoring scripts import `settings` from
this module.

Usage:
    from locator_shared.config import settings
    print(settings.supabase_url)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_anon_key: str = Field(default="")
    supabase_service_key: str = Field(default="")
    # Supabase project JWT secret; access tokens are HS256-signed with it
    jwt_secret: str = Field(default="change-me-in-production")

    # -------------------------------------------------------------------------
    # Geocoding and routing services
    # -------------------------------------------------------------------------
    opencage_api_key: str = Field(default="")
    opencage_base_url: str = Field(
        default="https://api.opencagedata.com/geocode/v1"
    )
    ip_location_url: str = Field(default="https://ip-api.com/json")
    openrouteservice_api_key: str = Field(default="")
    openrouteservice_base_url: str = Field(
        default="https://api.openrouteservice.org"
    )
    http_timeout: float = Field(default=15.0, gt=0, description="Seconds per geocoding / matrix request")

    # -------------------------------------------------------------------------
    # Search defaults
    # -------------------------------------------------------------------------
    default_search_radius_miles: float = Field(default=50.0, gt=0)
    default_map_radius_miles: float = Field(default=150.0, gt=0)

    # Delay between RPC calls in the geometry migration (rate limiting)
    geometry_rpc_delay_ms: int = Field(default=50, ge=0)

    # -------------------------------------------------------------------------
    # API server
    # -------------------------------------------------------------------------
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:5173")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @field_validator(
        "supabase_url",
        "opencage_base_url",
        "ip_location_url",
        "openrouteservice_base_url",
        mode="before",
    )
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton, import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
