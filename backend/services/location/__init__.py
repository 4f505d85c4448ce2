"""
Location Services Module

Geocoding and the location picker used when reporting an incident.
Primary provider: Google (Places / Geocoding through the /relay endpoints)
Fallback provider: OpenStreetMap Nominatim (free, no API key)

Usage:
    from services.location.geocoding import build_adapter
    from services.location.picker import LocationPicker
"""
