"""Tests for the Google relay and Nominatim providers."""

import httpx
import pytest

from services.location.providers import (
    GoogleRelayProvider,
    NominatimProvider,
    ProviderError,
    SEARCH_VIEWBOX,
)

RELAY = "http://relay.test/relay"


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGoogleRelayProvider:
    """Parsing of Google responses passed through the relay."""

    @pytest.mark.asyncio
    async def test_search_maps_predictions(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json={
                "status": "OK",
                "predictions": [
                    {"description": "Lulu Mall, Edappally, Kochi", "place_id": "abc123", "types": ["establishment"]},
                    {"description": "Kochi, Kerala, India", "place_id": "def456"},
                ],
            })

        async with mock_client(handler) as client:
            results = await GoogleRelayProvider(client, base_url=RELAY).search("lulu")

        assert seen["url"].path == "/relay/places/autocomplete"
        assert seen["url"].params["input"] == "lulu"
        assert [r.provider_ref for r in results] == ["abc123", "def456"]
        assert results[0].kind == "establishment"
        assert results[1].kind == "place"
        assert not results[0].has_coordinates

    @pytest.mark.asyncio
    async def test_zero_results_is_empty_not_error(self):
        def handler(request):
            return httpx.Response(200, json={"status": "ZERO_RESULTS", "predictions": []})

        async with mock_client(handler) as client:
            assert await GoogleRelayProvider(client, base_url=RELAY).search("zzzz") == []

    @pytest.mark.asyncio
    async def test_denied_status_raises(self):
        def handler(request):
            return httpx.Response(200, json={"status": "REQUEST_DENIED", "error_message": "bad key"})

        async with mock_client(handler) as client:
            with pytest.raises(ProviderError):
                await GoogleRelayProvider(client, base_url=RELAY).search("kochi")

    @pytest.mark.asyncio
    async def test_relay_error_response_raises(self):
        def handler(request):
            return httpx.Response(500, json={"error": "Failed to fetch places data"})

        async with mock_client(handler) as client:
            with pytest.raises(ProviderError):
                await GoogleRelayProvider(client, base_url=RELAY).search("kochi")

    @pytest.mark.asyncio
    async def test_geocode_takes_first_result(self):
        def handler(request):
            assert request.url.params["address"] == "Kochi"
            return httpx.Response(200, json={
                "status": "OK",
                "results": [{
                    "formatted_address": "Kochi, Kerala, India",
                    "geometry": {"location": {"lat": 9.9312328, "lng": 76.2673041}},
                }],
            })

        async with mock_client(handler) as client:
            result = await GoogleRelayProvider(client, base_url=RELAY).geocode("Kochi")

        assert result.location == "Kochi, Kerala, India"
        assert result.latitude == "9.931233"
        assert result.longitude == "76.267304"

    @pytest.mark.asyncio
    async def test_reverse_sends_latlng(self):
        def handler(request):
            assert request.url.params["latlng"] == "9.9312,76.2673"
            return httpx.Response(200, json={
                "status": "OK",
                "results": [{"formatted_address": "MG Road, Kochi"}],
            })

        async with mock_client(handler) as client:
            label = await GoogleRelayProvider(client, base_url=RELAY).reverse(9.9312, 76.2673)

        assert label == "MG Road, Kochi"

    @pytest.mark.asyncio
    async def test_details_returns_coordinates(self):
        def handler(request):
            assert request.url.params["place_id"] == "abc123"
            return httpx.Response(200, json={
                "status": "OK",
                "result": {"geometry": {"location": {"lat": 10.0271, "lng": 76.3083}}},
            })

        async with mock_client(handler) as client:
            coords = await GoogleRelayProvider(client, base_url=RELAY).details("abc123")

        assert coords == (10.0271, 76.3083)

    @pytest.mark.asyncio
    async def test_details_without_geometry_raises(self):
        def handler(request):
            return httpx.Response(200, json={"status": "OK", "result": {}})

        async with mock_client(handler) as client:
            with pytest.raises(ProviderError):
                await GoogleRelayProvider(client, base_url=RELAY).details("abc123")


class TestNominatimProvider:
    """Nominatim request shape and parsing."""

    @pytest.mark.asyncio
    async def test_search_is_biased_to_southern_india(self, monkeypatch):
        monkeypatch.setenv("NOMINATIM_USER_AGENT", "fleet-tests/0.1")
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json=[
                {"display_name": "Kochi, Ernakulam, Kerala, India", "lat": "9.9312", "lon": "76.2673", "type": "city"},
            ])

        async with mock_client(handler) as client:
            results = await NominatimProvider(client).search("Kochi")

        request = seen["request"]
        params = request.url.params
        assert request.url.path == "/search"
        assert params["q"] == "Kochi"
        assert params["countrycodes"] == "IN"
        assert params["viewbox"] == SEARCH_VIEWBOX
        assert params["bounded"] == "1"
        assert params["limit"] == "5"
        assert params["accept-language"] == "en"
        assert request.headers["User-Agent"] == "fleet-tests/0.1"

        assert len(results) == 1
        assert results[0].latitude == 9.9312
        assert results[0].longitude == 76.2673
        assert results[0].kind == "city"
        assert results[0].provider_ref is None

    @pytest.mark.asyncio
    async def test_geocode_limits_to_one(self):
        def handler(request):
            assert request.url.params["limit"] == "1"
            return httpx.Response(200, json=[
                {"display_name": "Kochi, Kerala, India", "lat": "9.9312", "lon": "76.2673"},
            ])

        async with mock_client(handler) as client:
            result = await NominatimProvider(client).geocode("Kochi")

        assert result.as_dict() == {
            "location": "Kochi, Kerala, India",
            "latitude": "9.931200",
            "longitude": "76.267300",
        }

    @pytest.mark.asyncio
    async def test_geocode_nothing_found(self):
        def handler(request):
            return httpx.Response(200, json=[])

        async with mock_client(handler) as client:
            assert await NominatimProvider(client).geocode("nowhere at all") is None

    @pytest.mark.asyncio
    async def test_reverse_parameters(self):
        def handler(request):
            params = request.url.params
            assert request.url.path == "/reverse"
            assert params["zoom"] == "18"
            assert params["lat"] == "9.9312"
            return httpx.Response(200, json={"display_name": "Marine Drive, Kochi"})

        async with mock_client(handler) as client:
            assert await NominatimProvider(client).reverse(9.9312, 76.2673) == "Marine Drive, Kochi"

    @pytest.mark.asyncio
    async def test_reverse_error_object_has_no_label(self):
        def handler(request):
            return httpx.Response(200, json={"error": "Unable to geocode"})

        async with mock_client(handler) as client:
            assert await NominatimProvider(client).reverse(0.0, 0.0) is None

    @pytest.mark.asyncio
    async def test_malformed_json_raises(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>rate limited</html>")

        async with mock_client(handler) as client:
            with pytest.raises(ProviderError):
                await NominatimProvider(client).search("Kochi")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("network down", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(ProviderError):
                await NominatimProvider(client).reverse(9.9, 76.2)
