"""
locator_shared — shared utilities, models, and configuration for the installer locator.

Usage:
    from locator_shared.config import settings
    from locator_shared.db import get_supabase_client
    from locator_shared.models import Installer, InstallerZipAssignment
    from locator_shared.geo import haversine_miles, is_point_in_circle
    from locator_shared.constants import BRAND_COLUMNS, SKILL_COLUMNS
"""

__version__ = "0.1.0"
