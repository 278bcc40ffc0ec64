"""Tests for the shared row models."""

from __future__ import annotations

from uuid import uuid4

import pytest

from locator_shared.models import Installer, InstallerZipAssignment, StatusCounts, UserProfile
from locator_shared.models.installer import standardize_certification, to_boolean


@pytest.mark.parametrize(
    "value, expected",
    [("1", True), ("Yes", True), (" TRUE ", True), (1, True), (True, True),
     ("0", False), ("no", False), (0, False), (None, False), ("", False)],
)
def test_to_boolean(value, expected):
    assert to_boolean(value) is expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Master Installer", "Master Installer"),
        ("master  installer.", "Master Installer"),
        ("PowerView Motorization Pro (2023)", "Motorization Pro"),
        ("Master Shutter", "Shutter Pro"),
        ("Level 2", None),
        (None, None),
    ],
)
def test_standardize_certification(text, expected):
    assert standardize_certification(text) == expected


def test_installer_derived_views(sample_installer):
    installer = Installer.from_db_row({**sample_installer, "Sales_Territory": "North"})

    assert installer.brands == ["Hunter Douglas", "Levolor"]
    assert installer.skills == ["Motorization", "Shutters"]
    assert installer.certifications == ["Motorization Pro", "Master Installer"]
    assert installer.accepts_shipments
    assert installer.full_address == "12 Main St, Springfield, IL 62701"
    assert installer.has_coordinates
    assert not installer.is_canada


def test_installer_flag_coercion():
    installer = Installer(name="X", hunter_douglas="Yes", PowerView=1, Shutters="0")
    assert installer.hunter_douglas == 1
    assert installer.PowerView == "1"
    assert installer.Shutters == 0


def test_installer_insert_dict_drops_managed_fields(sample_installer):
    d = Installer.from_db_row({**sample_installer, "created_at": "2024-05-01T00:00:00Z"}).to_insert_dict()
    assert "created_at" not in d
    assert d["id"] == sample_installer["id"]
    assert "add2" not in d


def test_assignment_from_embedded_row():
    installer_id = str(uuid4())
    row = {
        "id": str(uuid4()),
        "installer_id": installer_id,
        "zip_code": "M5V",
        "state_province": "Ontario",
        "status": "Approved",
        "installers": {"name": "Maple Blinds"},
        "field_service_manager": {"first_name": "Lee", "last_name": None},
    }
    assignment = InstallerZipAssignment.from_db_row(row)

    assert assignment.installer_name == "Maple Blinds"
    assert assignment.field_service_manager_name == "Lee"
    assert assignment.field_ops_rep_name is None
    assert assignment.to_insert_dict()["installer_id"] == installer_id


def test_status_counts():
    counts = StatusCounts.of(["Approved", "Needs Approval", "Approved"])
    assert (counts.approved, counts.needs_approval, counts.total) == (2, 1, 3)


def test_profile_display_name():
    profile_id = uuid4()
    assert UserProfile(id=profile_id, first_name="Ana").display_name == "Ana"
    assert UserProfile(id=profile_id).display_name == str(profile_id)
    assert UserProfile(id=profile_id, role="admin").is_admin
