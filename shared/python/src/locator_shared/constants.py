"""
constants.py — shared constants used across the pipeline and API.

Brand, skill and certification vocabularies, their database columns, the
CSV header schemas, territory statuses and user roles are defined here so
they stay in sync between Python packages.
"""

from __future__ import annotations

from typing import Final, Literal

# ---------------------------------------------------------------------------
# Typed literals
# ---------------------------------------------------------------------------
TerritoryStatus = Literal["Approved", "Needs Approval"]
Role = Literal["admin", "field_ops_rep", "field_service_manager", "user"]
ImportMode = Literal["append", "overwrite"]
Country = Literal["us", "ca"]

TERRITORY_STATUSES: Final[tuple[str, ...]] = ("Approved", "Needs Approval")
ROLES: Final[tuple[str, ...]] = ("admin", "field_ops_rep", "field_service_manager", "user")

# ---------------------------------------------------------------------------
# Brands: display name -> installers column (flag stored as 1/0)
# ---------------------------------------------------------------------------
BRAND_COLUMNS: Final[dict[str, str]] = {
    "Hunter Douglas": "hunter_douglas",
    "Alta": "Alta",
    "Carole": "carole",
    "Architectural": "architectural",
    "Levolor": "levolor",
    "Three Day Blinds": "three_day_blinds",
}

# ---------------------------------------------------------------------------
# Product skills: display name -> installers column
# ---------------------------------------------------------------------------
SKILL_COLUMNS: Final[dict[str, str]] = {
    "Blinds & Shades": "Blinds_and_Shades",
    "Motorization": "PowerView",
    "Service Call": "Service_Call",
    "Shutters": "Shutters",
    "Drapery": "Draperies",
    "Tall Window": "tall_window",
    "Fixture Displays": "fixture_displays",
    "Outdoor": "outdoor",
    "High Voltage Hardwired": "high_voltage_hardwired",
}

# Flag columns that are not exposed as a searchable skill
EXTRA_FLAG_COLUMNS: Final[tuple[str, ...]] = ("alta_motorization",)

# PowerView is a text column holding '1' / '0' rather than an integer
TEXT_FLAG_COLUMNS: Final[frozenset[str]] = frozenset({"PowerView"})

FLAG_COLUMNS: Final[tuple[str, ...]] = (
    *BRAND_COLUMNS.values(),
    *SKILL_COLUMNS.values(),
    *EXTRA_FLAG_COLUMNS,
)

# ---------------------------------------------------------------------------
# Certifications
# ---------------------------------------------------------------------------
CERTIFICATION_COLUMNS: Final[tuple[str, ...]] = (
    "Powerview_Certification",
    "Shutter_Certification_Level",
    "Draperies_Certification_Level",
    "PIP_Certification_Level",
)

# Standardized certification name -> column searched when filtering
CERTIFICATION_FILTER_COLUMNS: Final[dict[str, str]] = {
    "Motorization Pro": "Powerview_Certification",
    "Shutter Pro": "Shutter_Certification_Level",
    "Master Installer": "PIP_Certification_Level",
    "Certified Installer": "PIP_Certification_Level",
    "PIP Certified": "PIP_Certification_Level",
    "Drapery Pro": "Draperies_Certification_Level",
}

# Normalized free text (lowercase, punctuation stripped) -> standard name
CERTIFICATION_ALIASES: Final[dict[str, str]] = {
    "motorization pro": "Motorization Pro",
    "certified installer": "Certified Installer",
    "master installer": "Master Installer",
    "master shutter": "Shutter Pro",
    "drapery pro": "Drapery Pro",
    "pip certified": "PIP Certified",
}

CERTIFICATIONS: Final[tuple[str, ...]] = tuple(CERTIFICATION_FILTER_COLUMNS)

# ---------------------------------------------------------------------------
# Installer record fields
# ---------------------------------------------------------------------------
REQUIRED_FORM_FIELDS: Final[tuple[str, ...]] = (
    "name", "email", "primary_phone", "address1", "city", "state", "postalcode",
)
REQUIRED_IMPORT_FIELDS: Final[tuple[str, ...]] = (
    "name", "address1", "city", "state", "postalcode",
)
ADDRESS_FIELDS: Final[tuple[str, ...]] = (
    "address1", "add2", "city", "state", "postalcode", "Country",
)
NUMERIC_FIELDS: Final[tuple[str, ...]] = ("Installer_Vendor_ID", "Star_Rating")

# Columns searched by the free-text installer search
SEARCH_COLUMNS: Final[tuple[str, ...]] = (
    "name", "primary_phone", "email", "city", "state", "postalcode",
)

SORTABLE_INSTALLER_COLUMNS: Final[frozenset[str]] = frozenset({
    "name", "email", "primary_phone", "city", "state", "postalcode",
    "Installer_Vendor_ID", "Shipment", "latitude", "longitude",
    *FLAG_COLUMNS, *CERTIFICATION_COLUMNS,
})

SORTABLE_TERRITORY_COLUMNS: Final[frozenset[str]] = frozenset({
    "zip_code", "state_province", "status", "created_at", "updated_at",
})

# ---------------------------------------------------------------------------
# CSV schemas
# ---------------------------------------------------------------------------
INSTALLER_CSV_HEADERS: Final[dict[str, str]] = {
    "Name": "name",
    "Address1": "address1",
    "Add2": "add2",
    "City": "city",
    "State": "state",
    "Postalcode": "postalcode",
    "Primary_Phone": "primary_phone",
    "Secondary_Phone": "secondary_phone",
    "Country": "Country",
    "Hunter_Douglas": "hunter_douglas",
    "Alta": "Alta",
    "Carole": "carole",
    "Architectural": "architectural",
    "Levolor": "levolor",
    "Three_Day_Blinds": "three_day_blinds",
    "Blinds_and_Shades": "Blinds_and_Shades",
    "PowerView": "PowerView",
    "Service_Call": "Service_Call",
    "Shutters": "Shutters",
    "Draperies": "Draperies",
    "Alta_Motorization": "alta_motorization",
    "Tall_Window": "tall_window",
    "Fixture_Displays": "fixture_displays",
    "Outdoor": "outdoor",
    "High_Voltage_Hardwired": "high_voltage_hardwired",
    "Shipment": "Shipment",
    "Email": "email",
    "Specialnote": "specialnote",
    "Comments": "comments",
    "Installer_Vendor_ID": "Installer_Vendor_ID",
    "PIP_Certification_Level": "PIP_Certification_Level",
    "Shutter_Certification_Level": "Shutter_Certification_Level",
    "Powerview_Certification": "Powerview_Certification",
    "Draperies_Certification_Level": "Draperies_Certification_Level",
    "Sales_Org": "Sales_Org",
    "Star_Rating": "Star_Rating",
}

TERRITORY_CSV_HEADERS: Final[tuple[str, ...]] = ("ZipCode", "Status", "StateProvince")

# Sentinel used to address every row in a delete (PostgREST requires a filter)
NIL_UUID: Final[str] = "00000000-0000-0000-0000-000000000000"

# ---------------------------------------------------------------------------
# Territory list distance bands (miles from the installer)
# ---------------------------------------------------------------------------
DISTANCE_BANDS: Final[tuple[str, ...]] = (
    "0-25", "25-50", "50-75", "75-100", "100-125", "125-150",
)

# ---------------------------------------------------------------------------
# Canadian FSA first letter -> province abbreviation
# ---------------------------------------------------------------------------
FSA_PROVINCES: Final[dict[str, str]] = {
    "A": "NL",
    "B": "NS",
    "C": "PE",
    "E": "NB",
    "G": "QC",
    "H": "QC",
    "J": "QC",
    "K": "ON",
    "L": "ON",
    "M": "ON",
    "N": "ON",
    "P": "ON",
    "R": "MB",
    "S": "SK",
    "T": "AB",
    "V": "BC",
    "X": "NT",
    "Y": "YT",
}
