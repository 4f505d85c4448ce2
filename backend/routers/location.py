"""
Location Relay Router

Same-origin relay to Google Maps so the API key never leaves the server.
Each endpoint returns Google's JSON unmodified; the location picker's
primary provider parses it.

Endpoints:
    GET /relay/geocode?address=...           - Forward geocode
    GET /relay/geocode?latlng=lat,lng        - Reverse geocode
    GET /relay/places/autocomplete?input=... - Place predictions
    GET /relay/places/details?place_id=...   - Place geometry
    GET /relay/config                        - Which providers are configured

Errors are {"error": "..."}: 400 for a missing parameter, 500 for a missing
key or an upstream failure.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from settings_helper import get_google_api_key

logger = logging.getLogger(__name__)

router = APIRouter()

# Google Maps endpoints
GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
GOOGLE_AUTOCOMPLETE_URL = "https://maps.googleapis.com/maps/api/place/autocomplete/json"
GOOGLE_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
GOOGLE_TIMEOUT = 10

REGION_COMPONENTS = "country:IN"
# Autocomplete bias - Kochi centre, ~600km radius
AUTOCOMPLETE_LOCATION = "9.9312,76.2673"
AUTOCOMPLETE_RADIUS = 600000

KEY_MISSING = "Google Maps API key not configured"


async def get_upstream_client():
    """HTTP client for Google calls. Overridden in tests."""
    async with httpx.AsyncClient(timeout=GOOGLE_TIMEOUT) as client:
        yield client


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _relay(client: httpx.AsyncClient, url: str, params: dict, failure: str, what: str) -> JSONResponse:
    try:
        response = await client.get(url, params=params)
        response.raise_for_status()
        data = response.json()
    except httpx.TimeoutException:
        logger.warning(f"Google {what} timeout")
        return _error(failure, 500)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Google {what} error: {e}")
        return _error(failure, 500)

    return JSONResponse(data)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/geocode")
async def relay_geocode(
    address: Optional[str] = Query(None),
    latlng: Optional[str] = Query(None),
    client: httpx.AsyncClient = Depends(get_upstream_client),
):
    """Forward (address) or reverse (latlng) geocoding."""
    api_key = get_google_api_key()
    if not api_key:
        return _error(KEY_MISSING, 500)

    if address:
        params = {
            "address": address,
            "key": api_key,
            "language": "en",
            "components": REGION_COMPONENTS,
        }
    elif latlng:
        params = {
            "latlng": latlng,
            "key": api_key,
            "language": "en",
            "result_type": "establishment|geocode",
            "location_type": "ROOFTOP|RANGE_INTERPOLATED",
            "components": REGION_COMPONENTS,
        }
    else:
        return _error("Either address or latlng parameter is required", 400)

    return await _relay(client, GOOGLE_GEOCODE_URL, params, "Failed to fetch geocoding data", "geocoding")


@router.get("/places/autocomplete")
async def relay_autocomplete(
    input: Optional[str] = Query(None),
    client: httpx.AsyncClient = Depends(get_upstream_client),
):
    """Place predictions biased to southern India."""
    if not input:
        return _error("Input parameter is required", 400)

    api_key = get_google_api_key()
    if not api_key:
        return _error(KEY_MISSING, 500)

    params = {
        "input": input,
        "key": api_key,
        "types": "establishment|geocode",
        "components": REGION_COMPONENTS,
        "location": AUTOCOMPLETE_LOCATION,
        "radius": AUTOCOMPLETE_RADIUS,
        "strictbounds": "true",
    }
    return await _relay(client, GOOGLE_AUTOCOMPLETE_URL, params, "Failed to fetch places data", "places autocomplete")


@router.get("/places/details")
async def relay_place_details(
    place_id: Optional[str] = Query(None),
    client: httpx.AsyncClient = Depends(get_upstream_client),
):
    """Geometry for a place prediction."""
    if not place_id:
        return _error("Place ID parameter is required", 400)

    api_key = get_google_api_key()
    if not api_key:
        return _error(KEY_MISSING, 500)

    params = {"place_id": place_id, "key": api_key, "fields": "geometry"}
    return await _relay(client, GOOGLE_DETAILS_URL, params, "Failed to fetch place details", "place details")


@router.get("/config")
async def get_location_config():
    """
    Location provider configuration for the frontend.
    Never exposes the key itself.
    """
    return {
        "has_google": bool(get_google_api_key()),
        "fallback_provider": "nominatim",
    }
