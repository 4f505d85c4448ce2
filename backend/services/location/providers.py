"""
Geocoding Providers

Two interchangeable backends behind one interface:

    GoogleRelayProvider - Google Geocoding / Places, reached through this
                          backend's /relay endpoints (server holds the key)
    NominatimProvider   - OpenStreetMap Nominatim, called directly, no key,
                          rate limited by the provider itself

Providers raise ProviderError on any transport, HTTP, JSON or
provider-reported failure, and return an empty result when the provider
simply found nothing. Choosing between them is geocoding.GeocodingAdapter's job.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from settings_helper import get_relay_base_url, get_nominatim_user_agent
from .results import LocationSuggestion, ResolvedLocation

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 10  # seconds

# Nominatim
NOMINATIM_BASE = "https://nominatim.openstreetmap.org"

# Southern India bias for Nominatim searches (Kerala operations).
# viewbox is lon1,lat1,lon2,lat2 - Kanyakumari up to Kolkata.
SEARCH_COUNTRY_CODES = "IN"
SEARCH_VIEWBOX = "73.0,8.0,88.0,21.0"

SUGGESTION_LIMIT = 5


class ProviderError(Exception):
    """A provider call failed; the adapter falls back or absorbs it."""


class GeocodingProvider(ABC):
    """Capability surface shared by every geocoding backend."""

    name = "provider"

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        # Shared client is optional; without one each call opens its own
        self._client = client

    @property
    def headers(self) -> dict:
        return {}

    async def _get_json(self, url: str, params: dict):
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, headers=self.headers)
                response.raise_for_status()
                return response.json()
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                response = await client.get(url, params=params, headers=self.headers)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as e:
            raise ProviderError(f"{self.name}: timeout calling {url}") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"{self.name}: HTTP {e.response.status_code} from {url}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name}: request to {url} failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"{self.name}: malformed JSON from {url}") from e

    @abstractmethod
    async def search(self, text: str) -> list[LocationSuggestion]:
        """Search-as-you-type candidates, in provider order."""

    @abstractmethod
    async def geocode(self, text: str) -> Optional[ResolvedLocation]:
        """Best single match for free text, or None."""

    @abstractmethod
    async def reverse(self, lat: float, lon: float) -> Optional[str]:
        """Address label for a point, or None."""

    async def details(self, provider_ref: str) -> Optional[tuple[float, float]]:
        """Coordinates for a provider reference. Only the primary supports it."""
        return None


# =============================================================================
# GOOGLE (via relay)
# =============================================================================

class GoogleRelayProvider(GeocodingProvider):
    """
    Google Geocoding + Places through the same-origin relay.
    The relay returns Google's JSON unmodified, so parsing here is
    against Google's response shapes.
    """

    name = "google"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, base_url: Optional[str] = None):
        super().__init__(client)
        self.base_url = (base_url or get_relay_base_url()).rstrip("/")

    @staticmethod
    def _check_status(data: dict, allow_empty: bool = True) -> str:
        status = data.get("status", "")
        if status == "OK" or (allow_empty and status == "ZERO_RESULTS"):
            return status
        raise ProviderError(f"google: status '{status}' {data.get('error_message', '')}".strip())

    async def search(self, text: str) -> list[LocationSuggestion]:
        data = await self._get_json(f"{self.base_url}/places/autocomplete", {"input": text})
        self._check_status(data)

        suggestions = []
        for prediction in data.get("predictions") or []:
            suggestions.append(LocationSuggestion(
                display_name=prediction.get("description", ""),
                provider_ref=prediction.get("place_id"),
                kind=(prediction.get("types") or ["place"])[0],
            ))
        return suggestions

    async def geocode(self, text: str) -> Optional[ResolvedLocation]:
        data = await self._get_json(f"{self.base_url}/geocode", {"address": text})
        self._check_status(data)

        results = data.get("results") or []
        if not results:
            return None
        best = results[0]
        try:
            loc = best["geometry"]["location"]
            return ResolvedLocation.from_point(best["formatted_address"], float(loc["lat"]), float(loc["lng"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"google: unexpected geocode result shape: {e}") from e

    async def reverse(self, lat: float, lon: float) -> Optional[str]:
        data = await self._get_json(f"{self.base_url}/geocode", {"latlng": f"{lat},{lon}"})
        self._check_status(data)

        results = data.get("results") or []
        if not results:
            return None
        return results[0].get("formatted_address") or None

    async def details(self, provider_ref: str) -> Optional[tuple[float, float]]:
        data = await self._get_json(f"{self.base_url}/places/details", {"place_id": provider_ref})
        self._check_status(data, allow_empty=False)

        try:
            loc = data["result"]["geometry"]["location"]
            return float(loc["lat"]), float(loc["lng"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"google: place details missing geometry for {provider_ref}") from e


# =============================================================================
# NOMINATIM
# =============================================================================

class NominatimProvider(GeocodingProvider):
    """OpenStreetMap Nominatim, biased to southern India."""

    name = "nominatim"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, base_url: str = NOMINATIM_BASE):
        super().__init__(client)
        self.base_url = base_url.rstrip("/")

    @property
    def headers(self) -> dict:
        # Nominatim usage policy requires an identifying User-Agent
        return {"User-Agent": get_nominatim_user_agent()}

    def _search_params(self, text: str, limit: int) -> dict:
        return {
            "format": "json",
            "q": text,
            "limit": limit,
            "addressdetails": 1,
            "dedupe": 1,
            "accept-language": "en",
            "countrycodes": SEARCH_COUNTRY_CODES,
            "viewbox": SEARCH_VIEWBOX,
            "bounded": 1,
        }

    async def _search_raw(self, text: str, limit: int) -> list:
        data = await self._get_json(f"{self.base_url}/search", self._search_params(text, limit))
        if not isinstance(data, list):
            raise ProviderError("nominatim: search did not return a list")
        return data

    async def search(self, text: str) -> list[LocationSuggestion]:
        suggestions = []
        for item in await self._search_raw(text, SUGGESTION_LIMIT):
            try:
                lat, lon = float(item["lat"]), float(item["lon"])
            except (KeyError, TypeError, ValueError):
                lat = lon = None
            suggestions.append(LocationSuggestion(
                display_name=item.get("display_name", ""),
                latitude=lat,
                longitude=lon,
                kind=item.get("type", "place"),
            ))
        return suggestions

    async def geocode(self, text: str) -> Optional[ResolvedLocation]:
        results = await self._search_raw(text, 1)
        if not results:
            return None
        best = results[0]
        try:
            return ResolvedLocation.from_point(best["display_name"], float(best["lat"]), float(best["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"nominatim: unexpected search result shape: {e}") from e

    async def reverse(self, lat: float, lon: float) -> Optional[str]:
        data = await self._get_json(f"{self.base_url}/reverse", {
            "format": "json",
            "lat": lat,
            "lon": lon,
            "zoom": 18,
            "addressdetails": 1,
            "accept-language": "en",
        })
        if not isinstance(data, dict):
            raise ProviderError("nominatim: reverse did not return an object")
        return data.get("display_name") or None
