"""
Geocoding Router - location lookups for the incident form

Endpoints:
    GET /api/location/suggestions?q=...      - Search-as-you-type candidates
    GET /api/location/geocode?q=...          - Best match for free text
    GET /api/location/reverse?lat=..&lon=..  - Label for a point
    GET /api/location/details?place_id=...   - Coordinates for a Google suggestion

Provider choice and fallback live in services.location.geocoding; these
endpoints never fail because a provider did.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from services.location.geocoding import GeocodingAdapter, build_adapter
from services.location.picker import NOT_FOUND_MESSAGE
from services.location.providers import HTTP_TIMEOUT
from services.location.results import LocationSuggestion, format_coordinate
from services.location.suggestions import MIN_QUERY_LENGTH, seed_suggestions

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_geocoder():
    """Adapter wired from configuration, one HTTP client per request. Overridden in tests."""
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        yield build_adapter(client=client)


def suggestion_to_dict(s: LocationSuggestion) -> dict:
    return {
        "display_name": s.display_name,
        "primary_text": s.primary_text,
        "latitude": format_coordinate(s.latitude) if s.latitude is not None else "",
        "longitude": format_coordinate(s.longitude) if s.longitude is not None else "",
        "place_id": s.provider_ref,
        "kind": s.kind,
    }


@router.get("/suggestions")
async def location_suggestions(
    q: str = Query(""),
    geocoder: GeocodingAdapter = Depends(get_geocoder),
):
    """Popular places for an empty query, nothing below the minimum length."""
    text = q.strip()
    if not text:
        suggestions = seed_suggestions()
    elif len(text) < MIN_QUERY_LENGTH:
        suggestions = []
    else:
        suggestions = await geocoder.forward_search(text)

    return [suggestion_to_dict(s) for s in suggestions]


@router.get("/geocode")
async def location_geocode(
    q: str = Query(...),
    geocoder: GeocodingAdapter = Depends(get_geocoder),
):
    result = await geocoder.forward_geocode(q)
    if result is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    return result.as_dict()


@router.get("/reverse")
async def location_reverse(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    geocoder: GeocodingAdapter = Depends(get_geocoder),
):
    """Label for a point; raw coordinates when no provider can describe it."""
    label = await geocoder.reverse_geocode(lat, lon)
    return {"location": label, "latitude": format_coordinate(lat), "longitude": format_coordinate(lon)}


@router.get("/details")
async def location_details(
    place_id: Optional[str] = Query(None),
    geocoder: GeocodingAdapter = Depends(get_geocoder),
):
    if not place_id:
        raise HTTPException(status_code=400, detail="Place ID parameter is required")

    coords = await geocoder.place_details(place_id)
    if coords is None:
        raise HTTPException(status_code=404, detail="No coordinates for this place")

    lat, lon = coords
    return {"latitude": format_coordinate(lat), "longitude": format_coordinate(lon)}
