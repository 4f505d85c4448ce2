"""
Geocoding Adapter for Location Services

Primary:  Google (Places autocomplete / Geocoding via relay, requires API key)
Fallback: OpenStreetMap Nominatim (free, no API key, southern India bias)

Strategy:
    1. If Google key configured -> try Google first
    2. If Google errors or finds nothing -> fall back to Nominatim
    3. If Nominatim fails too -> empty result / None / raw coordinates
    4. Errors never escape this module - they are logged and absorbed

One fallback hop, no retries, no caching between calls.
"""

import logging
from typing import Optional

import httpx

from settings_helper import get_google_api_key
from .providers import GeocodingProvider, GoogleRelayProvider, NominatimProvider, ProviderError
from .results import LocationSuggestion, ResolvedLocation, format_coordinate_pair

logger = logging.getLogger(__name__)


class GeocodingAdapter:
    """
    Single capability surface over a primary and a secondary provider.
    The primary is None when no provider credential is configured.
    """

    def __init__(self, secondary: GeocodingProvider, primary: Optional[GeocodingProvider] = None):
        self.primary = primary
        self.secondary = secondary

    @property
    def primary_configured(self) -> bool:
        return self.primary is not None

    async def forward_search(self, text: str) -> list[LocationSuggestion]:
        """Suggestions for search-as-you-type. Empty list on total failure."""
        if self.primary is not None:
            try:
                suggestions = await self.primary.search(text)
                if suggestions:
                    return suggestions
                logger.info(f"{self.primary.name}: no predictions for '{text}', falling back")
            except ProviderError as e:
                logger.warning(f"Primary search failed for '{text}', falling back: {e}")

        try:
            return await self.secondary.search(text)
        except ProviderError as e:
            logger.error(f"All suggestion providers failed for '{text}': {e}")
            return []

    async def forward_geocode(self, text: str) -> Optional[ResolvedLocation]:
        """Best match for free text. None means not found (or nothing reachable)."""
        if not text or not text.strip():
            return None

        if self.primary is not None:
            try:
                result = await self.primary.geocode(text)
                if result:
                    return result
                logger.info(f"{self.primary.name}: no geocode results for '{text}', falling back")
            except ProviderError as e:
                logger.warning(f"Primary geocode failed for '{text}', falling back: {e}")

        try:
            result = await self.secondary.geocode(text)
        except ProviderError as e:
            logger.error(f"All geocoding providers failed for '{text}': {e}")
            return None

        if result is None:
            logger.warning(f"Geocoding found nothing for: {text}")
        return result

    async def reverse_geocode(self, lat: float, lon: float) -> str:
        """Label for a point. Never fails - worst case is the raw coordinates."""
        if self.primary is not None:
            try:
                label = await self.primary.reverse(lat, lon)
                if label:
                    return label
            except ProviderError as e:
                logger.warning(f"Primary reverse geocode failed for {lat},{lon}, falling back: {e}")

        try:
            label = await self.secondary.reverse(lat, lon)
            if label:
                return label
        except ProviderError as e:
            logger.error(f"All reverse geocoding providers failed for {lat},{lon}: {e}")

        return format_coordinate_pair(lat, lon)

    async def place_details(self, provider_ref: str) -> Optional[tuple[float, float]]:
        """Coordinates for a primary-provider suggestion, or None."""
        if self.primary is None:
            return None
        try:
            return await self.primary.details(provider_ref)
        except ProviderError as e:
            logger.warning(f"Place details lookup failed for {provider_ref}: {e}")
            return None


def build_adapter(
    client: Optional[httpx.AsyncClient] = None,
    relay_base_url: Optional[str] = None,
) -> GeocodingAdapter:
    """Adapter wired from configuration: Google only when a key is set."""
    primary = None
    if get_google_api_key():
        primary = GoogleRelayProvider(client=client, base_url=relay_base_url)
    else:
        logger.info("Google Maps API key not configured - using OpenStreetMap only")
    return GeocodingAdapter(secondary=NominatimProvider(client=client), primary=primary)
