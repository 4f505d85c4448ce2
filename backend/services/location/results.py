"""
Location value types shared by the geocoding adapter, suggestion fetcher
and location picker.
"""

import math
from dataclasses import dataclass
from typing import Optional


COORD_DECIMALS = 6


def format_coordinate(value: float) -> str:
    """Format a coordinate the way every committed value is stored (6 dp)."""
    return f"{value:.{COORD_DECIMALS}f}"


def format_coordinate_pair(lat: float, lon: float) -> str:
    """Label used when no provider can describe a point."""
    return f"{format_coordinate(lat)}, {format_coordinate(lon)}"


def parse_coordinate(raw: Optional[str]) -> Optional[float]:
    """Parse a user-entered coordinate. None when not a finite number."""
    if raw is None:
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class LocationSuggestion:
    """
    Candidate location produced by a provider or the seed list.

    Google predictions carry a provider_ref (place_id) and no coordinates;
    Nominatim results and seeds carry coordinates and no provider_ref.
    """
    display_name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    provider_ref: Optional[str] = None
    kind: str = "place"

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def primary_text(self) -> str:
        """First comma-separated part, shown as the dropdown headline"""
        return self.display_name.split(",")[0]


@dataclass(frozen=True)
class ResolvedLocation:
    """
    Committed value handed to the incident form.
    Latitude/longitude are empty strings, never None, when unknown.
    """
    location: str = ""
    latitude: str = ""
    longitude: str = ""

    @classmethod
    def from_point(cls, location: str, lat: float, lon: float) -> "ResolvedLocation":
        return cls(location=location, latitude=format_coordinate(lat), longitude=format_coordinate(lon))

    def as_dict(self) -> dict:
        return {"location": self.location, "latitude": self.latitude, "longitude": self.longitude}
