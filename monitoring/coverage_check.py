"""
coverage_check.py — Directory coverage monitor for the installer locator.

Reports installers that the public locator cannot show (no coordinates)
and installers with no territory assignments, prints a summary table and
writes a JSON report next to this script. Exits non-zero when any gap is
found so it can gate a scheduled job.

Usage:
    python monitoring/coverage_check.py
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Bootstrap: make sure locator_shared is importable even when running
# this script directly from the repo root.
# ---------------------------------------------------------------------------
_REPO_ROOT = Path(__file__).resolve().parent.parent
_SHARED_SRC = _REPO_ROOT / "shared" / "python" / "src"
if str(_SHARED_SRC) not in sys.path:
    sys.path.insert(0, str(_SHARED_SRC))

from locator_shared.db import get_supabase_client  # noqa: E402

PAGE_SIZE = 1000


def _fetch_all(table: str, columns: str) -> list[dict[str, Any]]:
    supabase = get_supabase_client(service_role=True)
    rows: list[dict[str, Any]] = []
    offset = 0
    while True:
        page = (
            supabase.table(table)
            .select(columns)
            .order("id")
            .range(offset, offset + PAGE_SIZE - 1)
            .execute()
        ).data or []
        rows.extend(page)
        if len(page) < PAGE_SIZE:
            return rows
        offset += PAGE_SIZE


# ---------------------------------------------------------------------------
# Report generation
# ---------------------------------------------------------------------------


def generate_report() -> dict[str, Any]:
    """Query installers and assignments and return the coverage report."""
    installers = _fetch_all("installers", "id,name,city,state,latitude,longitude")
    assignments = _fetch_all("installer_zip_codes", "installer_id,status")

    assigned: dict[str, dict[str, int]] = {}
    for row in assignments:
        counts = assigned.setdefault(str(row["installer_id"]), {"Approved": 0, "Needs Approval": 0})
        counts[row["status"]] = counts.get(row["status"], 0) + 1

    missing_coordinates = [
        {"id": r["id"], "name": r["name"], "city": r.get("city"), "state": r.get("state")}
        for r in installers
        if r.get("latitude") is None or r.get("longitude") is None
    ]
    without_territories = [
        {"id": r["id"], "name": r["name"], "city": r.get("city"), "state": r.get("state")}
        for r in installers
        if str(r["id"]) not in assigned
    ]
    pending_approval = sum(c.get("Needs Approval", 0) for c in assigned.values())

    return {
        "installers": len(installers),
        "assignments": len(assignments),
        "pending_approval": pending_approval,
        "missing_coordinates": missing_coordinates,
        "without_territories": without_territories,
    }


def print_report(report: dict[str, Any]) -> None:
    print()
    print(f"{'Installers':<28} {report['installers']:>8}")
    print(f"{'Territory assignments':<28} {report['assignments']:>8}")
    print(f"{'Needs Approval':<28} {report['pending_approval']:>8}")
    print(f"{'Missing coordinates':<28} {len(report['missing_coordinates']):>8}")
    print(f"{'Without territories':<28} {len(report['without_territories']):>8}")

    for title, key in (
        ("Not shown by the locator (no coordinates):", "missing_coordinates"),
        ("No territory assignments:", "without_territories"),
    ):
        if report[key]:
            print()
            print(title)
            for row in report[key]:
                place = ", ".join(p for p in (row["city"], row["state"]) if p) or "-"
                print(f"  {row['name']:<40} {place}")
    print()


def write_json_report(report: dict[str, Any], path: Path) -> None:
    payload = {"generated_at": datetime.now(timezone.utc).isoformat(), **report}
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=str) + "\n")
    print(f"Report written to {path}")


def main() -> int:
    print("=== installer locator coverage check ===")

    report = generate_report()
    print_report(report)
    write_json_report(report, Path(__file__).resolve().parent / "coverage_report.json")

    gaps = len(report["missing_coordinates"]) + len(report["without_territories"])
    if gaps:
        print(f"{gaps} coverage gap(s) found. Run `locator-pipeline geocode-missing` for coordinates.")
        return 1
    print("All installers are geocoded and have territories.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
