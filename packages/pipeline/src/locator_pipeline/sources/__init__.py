"""
locator_pipeline.sources — input adapters for the batch jobs.

  InstallersCsvSource   — installer spreadsheet upload
  TerritoriesCsvSource  — ZIP / FSA assignments for one installer
  PostalGeoJsonSource   — US ZCTA / Canadian FSA boundary files
"""

from locator_pipeline.sources.base import CsvHeaderError, CsvParseError
from locator_pipeline.sources.installers_csv import InstallersCsvSource
from locator_pipeline.sources.postal_geojson import PostalGeoJsonSource
from locator_pipeline.sources.territories_csv import TerritoriesCsvSource

__all__ = [
    "CsvHeaderError",
    "CsvParseError",
    "InstallersCsvSource",
    "PostalGeoJsonSource",
    "TerritoriesCsvSource",
]
