"""Tests for the location lookup endpoints."""

import pytest

from conftest import StubProvider, KOCHI
from main import app
from routers.geocoding import get_geocoder
from services.location.geocoding import GeocodingAdapter
from services.location.results import ResolvedLocation


@pytest.fixture
def providers():
    """Adapter over stub providers in place of the configured one."""
    state = {"secondary": StubProvider("nominatim", suggestions=[KOCHI], label="Marine Drive, Kochi"), "primary": None}

    async def override():
        yield GeocodingAdapter(state["secondary"], state["primary"])

    app.dependency_overrides[get_geocoder] = override
    yield state
    app.dependency_overrides.pop(get_geocoder, None)


class TestSuggestions:

    def test_empty_query_returns_popular_places(self, client, providers):
        body = client.get("/api/location/suggestions").json()

        assert len(body) == 10
        assert body[0]["display_name"] == "Kochi, Kerala"
        assert providers["secondary"].calls == []

    def test_single_character_returns_nothing(self, client, providers):
        assert client.get("/api/location/suggestions", params={"q": "K"}).json() == []
        assert providers["secondary"].calls == []

    def test_search(self, client, providers):
        body = client.get("/api/location/suggestions", params={"q": "Kochi"}).json()

        assert body == [{
            "display_name": "Kochi, Kerala, India",
            "primary_text": "Kochi",
            "latitude": "9.931200",
            "longitude": "76.267300",
            "place_id": None,
            "kind": "place",
        }]

    def test_provider_failure_is_empty_list(self, client, providers):
        providers["secondary"] = StubProvider("nominatim", fail=True)

        response = client.get("/api/location/suggestions", params={"q": "Kochi"})

        assert response.status_code == 200
        assert response.json() == []


class TestGeocodeAndReverse:

    def test_geocode(self, client, providers):
        providers["secondary"] = StubProvider(
            "nominatim", geocoded=ResolvedLocation("Kochi, Kerala, India", "9.931200", "76.267300"),
        )

        body = client.get("/api/location/geocode", params={"q": "Kochi"}).json()

        assert body == {"location": "Kochi, Kerala, India", "latitude": "9.931200", "longitude": "76.267300"}

    def test_geocode_not_found(self, client, providers):
        response = client.get("/api/location/geocode", params={"q": "nowhere"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Location not found. Please try a different search term."

    def test_reverse(self, client, providers):
        body = client.get("/api/location/reverse", params={"lat": 9.9312, "lon": 76.2673}).json()

        assert body == {"location": "Marine Drive, Kochi", "latitude": "9.931200", "longitude": "76.267300"}

    def test_reverse_falls_back_to_coordinates(self, client, providers):
        providers["secondary"] = StubProvider("nominatim", fail=True)

        body = client.get("/api/location/reverse", params={"lat": 9.9312, "lon": 76.2673}).json()

        assert body["location"] == "9.931200, 76.267300"

    def test_reverse_out_of_range(self, client, providers):
        assert client.get("/api/location/reverse", params={"lat": 91, "lon": 0}).status_code == 422


class TestDetails:

    def test_requires_place_id(self, client, providers):
        assert client.get("/api/location/details").status_code == 400

    def test_without_primary(self, client, providers):
        assert client.get("/api/location/details", params={"place_id": "abc123"}).status_code == 404

    def test_primary_coordinates(self, client, providers):
        providers["primary"] = StubProvider("google", details=(10.0271, 76.3083))

        body = client.get("/api/location/details", params={"place_id": "abc123"}).json()

        assert body == {"latitude": "10.027100", "longitude": "76.308300"}
