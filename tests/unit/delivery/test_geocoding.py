"""Unit tests for the postcodes.io geocoder (HTTP mocked with httpx)."""

import httpx
import pytest

from modules.delivery.geocoding import PostcodesIoGeocoder, normalize_postcode
from modules.delivery.services import DeliveryAreaService

pytestmark = pytest.mark.unit


def _geocoder(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return PostcodesIoGeocoder(
        base_url="https://postcodes.example.com/", timeout=1.0, cache_ttl=60, client=client
    )


def _found(latitude, longitude):
    return httpx.Response(
        200, json={"status": 200, "result": {"latitude": latitude, "longitude": longitude}}
    )


class TestNormalizePostcode:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("la11 7ez", "LA117EZ"), (" LA9  4DT ", "LA94DT"), ("", ""), (None, "")],
    )
    def test_normalize(self, raw, expected):
        assert normalize_postcode(raw) == expected


class TestPostcodesIoGeocoder:
    def test_resolves_coordinates(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return _found(54.328, -2.7463)

        coords = _geocoder(handler).resolve("la9 4dt")

        assert (coords.latitude, coords.longitude) == (54.328, -2.7463)
        assert seen == ["https://postcodes.example.com/postcodes/LA94DT"]

    def test_successful_lookup_is_cached(self):
        calls = []

        def handler(request):
            calls.append(request)
            return _found(54.1925, -2.9157)

        geocoder = _geocoder(handler)
        geocoder.resolve("LA11 7EZ")
        geocoder.resolve("la117ez")

        assert len(calls) == 1

    def test_unknown_postcode(self):
        def handler(request):
            return httpx.Response(404, json={"status": 404, "error": "Invalid postcode"})

        assert _geocoder(handler).resolve("ZZ99 9ZZ") is None

    def test_failures_are_not_cached(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404, json={"status": 404, "error": "Invalid postcode"})

        geocoder = _geocoder(handler)
        geocoder.resolve("ZZ99 9ZZ")
        geocoder.resolve("ZZ99 9ZZ")

        assert len(calls) == 2

    def test_timeout_resolves_to_none(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        assert _geocoder(handler).resolve("LA9 4DT") is None

    def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        assert _geocoder(handler).resolve("LA9 4DT") is None

    def test_non_object_body(self):
        def handler(request):
            return httpx.Response(200, json=["unexpected"])

        assert _geocoder(handler).resolve("LA9 4DT") is None

    def test_result_without_coordinates(self):
        def handler(request):
            return httpx.Response(
                200, json={"status": 200, "result": {"latitude": None, "longitude": None}}
            )

        assert _geocoder(handler).resolve("LA9 4DT") is None

    def test_blank_postcode_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert _geocoder(handler).resolve("   ") is None

    @pytest.mark.parametrize(
        "result",
        [
            {"latitude": "n/a", "longitude": -2.9},
            {"latitude": 54.3, "longitude": [1]},
            {"latitude": "nan", "longitude": -2.9},
            ["LA9 4DT"],
            "LA9 4DT",
        ],
    )
    def test_malformed_result_resolves_to_none(self, result):
        def handler(request):
            return httpx.Response(200, json={"status": 200, "result": result})

        assert _geocoder(handler).resolve("LA9 4DT") is None

    def test_malformed_result_fails_the_radius_check_closed(self):
        def handler(request):
            return httpx.Response(
                200, json={"status": 200, "result": {"latitude": "n/a", "longitude": -2.9}}
            )

        service = DeliveryAreaService(
            geocoder=_geocoder(handler), origin_postcode="LA11 7EZ", radius_miles=15.0
        )

        assert service.is_within_service_radius("LA9 4DT") is False
