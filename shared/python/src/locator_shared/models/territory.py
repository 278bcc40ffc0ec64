"""
models/territory.py — Installer territory assignments (installer_zip_codes table).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from locator_shared.constants import TerritoryStatus


class InstallerZipAssignment(BaseModel):
    """Matches the installer_zip_codes table row (plus optional joined names)."""

    id: UUID | None = None
    installer_id: UUID
    zip_code: str
    state_province: str | None = None
    status: TerritoryStatus = "Approved"
    field_ops_rep_id: UUID | None = None
    field_service_manager_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Populated from PostgREST embedded selects, never written back
    installer_name: str | None = None
    field_ops_rep_name: str | None = None
    field_service_manager_name: str | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "InstallerZipAssignment":
        data = dict(row)
        installer = data.pop("installer", None) or data.pop("installers", None) or {}
        rep = data.pop("field_ops_rep", None) or {}
        manager = data.pop("field_service_manager", None) or {}
        if installer.get("name"):
            data.setdefault("installer_name", installer["name"])
        if rep:
            data.setdefault("field_ops_rep_name", _profile_name(rep))
        if manager:
            data.setdefault("field_service_manager_name", _profile_name(manager))
        return cls(**data)

    def to_insert_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "installer_id": str(self.installer_id),
            "zip_code": self.zip_code,
            "state_province": self.state_province,
            "status": self.status,
            "field_ops_rep_id": str(self.field_ops_rep_id) if self.field_ops_rep_id else None,
            "field_service_manager_id": (
                str(self.field_service_manager_id) if self.field_service_manager_id else None
            ),
        }
        if self.id is not None:
            d["id"] = str(self.id)
        return d


def _profile_name(profile: dict[str, Any]) -> str | None:
    name = " ".join(p for p in (profile.get("first_name"), profile.get("last_name")) if p)
    return name or None


class TerritorySelection(BaseModel):
    """One postal code in an installer's in-progress territory selection."""

    zip_code: str
    state_province: str | None = None
    status: TerritoryStatus = "Approved"
    centroid_latitude: float | None = None
    centroid_longitude: float | None = None
    field_ops_rep_id: UUID | None = None
    field_service_manager_id: UUID | None = None

    def to_assignment(self, installer_id: UUID) -> InstallerZipAssignment:
        return InstallerZipAssignment(
            installer_id=installer_id,
            zip_code=self.zip_code,
            state_province=self.state_province,
            status=self.status,
            field_ops_rep_id=self.field_ops_rep_id,
            field_service_manager_id=self.field_service_manager_id,
        )


class StatusCounts(BaseModel):
    approved: int = 0
    needs_approval: int = 0
    total: int = 0

    @classmethod
    def of(cls, statuses: list[str]) -> "StatusCounts":
        approved = sum(1 for s in statuses if s == "Approved")
        needs = sum(1 for s in statuses if s == "Needs Approval")
        return cls(approved=approved, needs_approval=needs, total=len(statuses))
