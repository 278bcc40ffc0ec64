"""
geocoding.py — Third-party location clients.

Three small JSON APIs back the locator and the installer forms:

  OpenCage          address / postal code -> coordinates
  ip-api.com        caller IP -> approximate coordinates
  OpenRouteService  driving distance matrix from one origin

Every call is a single attempt. Geocoder and IP lookups never raise on a
miss: they return empty ``Coordinates`` and log a warning. The distance
matrix raises ``UpstreamServiceError`` so the caller can fall back to
great-circle distance.

Usage:
    geocoder = OpenCageGeocoder()
    coords = await geocoder.geocode("10001")
    if coords.found:
        print(coords.lat, coords.lng)
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from locator_shared.config import settings
from locator_shared.geo import METERS_PER_MILE

log = structlog.get_logger(__name__)

_NUMERIC_RE = re.compile(r"^\d+$")


@dataclass(frozen=True)
class Coordinates:
    lat: float | None = None
    lng: float | None = None

    @property
    def found(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_dict(self) -> dict[str, float | None]:
        return {"lat": self.lat, "lng": self.lng}


NOT_FOUND = Coordinates()


class UpstreamServiceError(Exception):
    """A third-party HTTP service failed or is not configured."""

    def __init__(self, service: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.message = message
        self.status_code = status_code

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


# ---------------------------------------------------------------------------
# OpenCage forward geocoding
# ---------------------------------------------------------------------------

class OpenCageGeocoder:
    """Resolve free-text addresses and postal codes through OpenCage."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.opencage_api_key
        self._base_url = (base_url or settings.opencage_base_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout

    @staticmethod
    def build_query(search_text: str) -> str:
        """Bare numbers are almost always US ZIP codes; say so to the geocoder."""
        text = search_text.strip()
        if _NUMERIC_RE.match(text):
            return f"{text}, USA"
        return text

    async def geocode(self, search_text: str, *, country: str | None = None) -> Coordinates:
        """
        Geocode ``search_text`` and return the first result's coordinates.

        Args:
            search_text: Address or postal code.
            country:     ISO country code restricting results ("us" or "ca").
                         Defaults to "us".

        Returns:
            Coordinates; both fields are None when nothing was found or the
            request failed.
        """
        if not search_text or not search_text.strip():
            return NOT_FOUND
        if not self._api_key:
            log.warning("geocode_not_configured")
            return NOT_FOUND

        params = {
            "q": self.build_query(search_text),
            "key": self._api_key,
            "countrycode": (country or "us").lower(),
            "limit": "1",
            "no_annotations": "1",
        }
        url = f"{self._base_url}/json"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                payload: dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.error("geocode_failed", search_text=search_text, error=str(exc))
            return NOT_FOUND

        results = payload.get("results") or []
        if not results:
            log.warning("geocode_no_results", search_text=search_text)
            return NOT_FOUND

        geometry = results[0].get("geometry") or {}
        coords = Coordinates(lat=geometry.get("lat"), lng=geometry.get("lng"))
        log.debug("geocode_ok", search_text=search_text, lat=coords.lat, lng=coords.lng)
        return coords


# ---------------------------------------------------------------------------
# IP-based location
# ---------------------------------------------------------------------------

class IpLocator:
    """Approximate the caller's position from their public IP (ip-api.com)."""

    FIELDS = "lat,lon,status,message"

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self._base_url = (base_url or settings.ip_location_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout

    async def locate(self, ip: str | None = None) -> Coordinates:
        """
        Look up ``ip`` (or the address the request comes from when None).

        Success requires ``status == "success"`` and both lat and lon.
        """
        url = f"{self._base_url}/{ip}" if ip else f"{self._base_url}/"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, params={"fields": self.FIELDS})
                response.raise_for_status()
                payload: dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.error("ip_location_failed", ip=ip, error=str(exc))
            return NOT_FOUND

        if payload.get("status") == "success" and payload.get("lat") is not None and payload.get("lon") is not None:
            return Coordinates(lat=payload["lat"], lng=payload["lon"])

        log.warning("ip_location_unresolved", ip=ip, message=payload.get("message") or "Unknown error")
        return NOT_FOUND


# ---------------------------------------------------------------------------
# OpenRouteService driving distance matrix
# ---------------------------------------------------------------------------

class DrivingDistanceMatrix:
    """One-to-many driving distances from the OpenRouteService matrix API."""

    service = "openrouteservice"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.openrouteservice_api_key
        self._base_url = (base_url or settings.openrouteservice_base_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def distances_miles(
        self,
        origin: tuple[float, float],
        destinations: list[tuple[float, float]],
    ) -> list[float | None]:
        """
        Driving distance in miles from ``origin`` to each destination.

        Points are (lat, lng). The result is aligned with ``destinations``;
        unreachable destinations come back as None.

        Raises:
            UpstreamServiceError: missing API key or a non-2xx response.
        """
        if not self.configured:
            raise UpstreamServiceError(self.service, "not configured")
        if not destinations:
            return []

        # ORS expects [lng, lat]
        locations = [[origin[1], origin[0]], *([lng, lat] for lat, lng in destinations)]
        body = {
            "locations": locations,
            "sources": [0],
            "destinations": list(range(1, len(destinations) + 1)),
            "metrics": ["distance"],
        }
        url = f"{self._base_url}/v2/matrix/driving-car"
        headers = {"Authorization": self._api_key, "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            log.error("driving_matrix_request_failed", error=str(exc))
            raise UpstreamServiceError(self.service, str(exc)) from exc

        if response.status_code >= 400:
            message = _error_message(response)
            log.error(
                "driving_matrix_error",
                status_code=response.status_code,
                message=message,
                rate_limited=response.status_code == 429,
            )
            raise UpstreamServiceError(self.service, message, status_code=response.status_code)

        rows = response.json().get("distances") or [[]]
        meters = rows[0] if rows else []
        miles: list[float | None] = []
        for i in range(len(destinations)):
            value = meters[i] if i < len(meters) else None
            if value is None or (isinstance(value, float) and math.isinf(value)):
                miles.append(None)
            else:
                miles.append(value / METERS_PER_MILE)
        return miles


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return response.reason_phrase or f"HTTP {response.status_code}"
