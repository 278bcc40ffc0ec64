"""
locator_shared.models — Pydantic models matching each database table.

These models are used by:
- packages/pipeline: validate data before writing to Supabase
- packages/api: serialize query results into API responses

Table models provide:
  .from_db_row(row: dict) -> Model
"""

from locator_shared.models.geometry import ZipGeometry
from locator_shared.models.installer import Installer, standardize_certification, to_boolean
from locator_shared.models.profile import UserProfile
from locator_shared.models.territory import (
    InstallerZipAssignment,
    StatusCounts,
    TerritorySelection,
)

__all__ = [
    "Installer",
    "InstallerZipAssignment",
    "StatusCounts",
    "TerritorySelection",
    "UserProfile",
    "ZipGeometry",
    "standardize_certification",
    "to_boolean",
]
