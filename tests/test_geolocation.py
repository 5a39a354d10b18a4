import asyncio

import pytest
import requests

from utils.errors import GeolocationDenied, GeolocationUnavailable
from utils.geocoding import geocode_address
from utils.geolocation import Coordinates, location_from_payload, request_location


def run(provider, timeout=1.0):
    return asyncio.run(request_location(provider, timeout=timeout))


class TestRequestLocation:
    def test_success(self):
        async def provider():
            return (-23.56, "-46.65")

        assert run(provider) == Coordinates(-23.56, -46.65)

    def test_permission_denied(self):
        async def provider():
            raise PermissionError("user said no")

        assert isinstance(run(provider), GeolocationDenied)

    def test_timeout(self):
        async def provider():
            await asyncio.sleep(1)

        result = run(provider, timeout=0.01)
        assert isinstance(result, GeolocationUnavailable)
        assert result.reason == "timeout"
        assert "too long" in result.message

    def test_position_unavailable(self):
        async def provider():
            raise OSError("no fix")

        assert isinstance(run(provider), GeolocationUnavailable)

    def test_no_position(self):
        async def provider():
            return None

        assert isinstance(run(provider), GeolocationUnavailable)

    def test_cancellation_propagates(self):
        async def provider():
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            run(provider)


class TestLocationFromPayload:
    def test_coordinates(self):
        assert location_from_payload({"lat": 1.5, "lng": "2"}) == Coordinates(1.5, 2.0)

    def test_long_names(self):
        assert location_from_payload({"latitude": 1, "longitude": 2}) == Coordinates(1.0, 2.0)

    def test_nothing_reported(self):
        assert location_from_payload({}) is None
        assert location_from_payload({"lat": 1.0}) is None

    @pytest.mark.parametrize("error, expected", [
        ("denied", GeolocationDenied),
        ("unavailable", GeolocationUnavailable),
        ("timeout", GeolocationUnavailable),
    ])
    def test_reported_failure(self, error, expected):
        assert isinstance(location_from_payload({"geolocation_error": error, "lat": 1, "lng": 2}), expected)

    def test_garbage_coordinates(self):
        assert isinstance(location_from_payload({"lat": "north", "lng": 2}), GeolocationUnavailable)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class TestGeocodeAddress:
    def test_first_match(self, app, monkeypatch):
        calls = {}

        def fake_get(url, params=None, headers=None, timeout=None):
            calls.update(url=url, params=params, headers=headers)
            return FakeResponse([{"lat": "-23.5614", "lon": "-46.6559"}, {"lat": "0", "lon": "0"}])

        monkeypatch.setattr("utils.geocoding.requests.get", fake_get)

        assert geocode_address("Av. Paulista, 1000") == (-23.5614, -46.6559)
        assert calls["params"]["q"] == "Av. Paulista, 1000"
        assert calls["params"]["limit"] == 1
        assert calls["headers"]["User-Agent"] == app.config["GEOCODING_USER_AGENT"]

    def test_no_match(self, app, monkeypatch):
        monkeypatch.setattr("utils.geocoding.requests.get", lambda *args, **kwargs: FakeResponse([]))
        assert geocode_address("nowhere") is None

    def test_http_error_propagates(self, app, monkeypatch):
        monkeypatch.setattr("utils.geocoding.requests.get", lambda *args, **kwargs: FakeResponse({}, 503))
        with pytest.raises(requests.HTTPError):
            geocode_address("Av. Paulista")
