import unittest

import requests

from ecowatch.data_sources.tomorrow_io_client import TomorrowIoClient, describe_weather_code
from ecowatch.domain import Condition, Coordinates
from ecowatch.errors import FetchError, MalformedResponse, ProviderUnavailable


class DummyResp:
    def __init__(self, payload, status_code=200, bad_json=False):
        self._payload = payload
        self.status_code = status_code
        self._bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._bad_json:
            raise ValueError("not json")
        return self._payload


class RecordingSession:
    def __init__(self, resp=None, exc=None):
        self.resp = resp
        self.exc = exc
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.exc:
            raise self.exc
        return self.resp


def _payload(**values):
    base = {
        "temperature": 22.5,
        "humidity": 40,
        "pressureSeaLevel": 1012.3,
        "windSpeed": 3.2,
        "windDirection": 270,
        "visibility": 16,
        "uvIndex": 5,
        "cloudCover": 10,
        "precipitationProbability": 5,
        "precipitationType": 0,
        "weatherCode": 1000,
    }
    base.update(values)
    return {"data": {"time": "2024-05-01T06:00:00Z", "values": base}, "location": {"lat": 32.2, "lon": 77.1}}


MANALI = Coordinates(32.2396, 77.1887, "Manali")


class TestTomorrowIoClient(unittest.TestCase):
    def _client(self, session):
        return TomorrowIoClient("test-key", session=session, timeout=3)

    def test_fetch_normalizes_payload(self):
        session = RecordingSession(DummyResp(_payload()))
        snap = self._client(session).fetch(MANALI, "Manali", destination_id="dest-2")

        self.assertEqual(snap.destination_id, "dest-2")
        self.assertEqual(snap.label, "Manali")
        self.assertEqual(snap.temperature, 22.5)
        self.assertEqual(snap.pressure, 1012.3)
        self.assertEqual(snap.visibility, 16.0)
        self.assertEqual(snap.condition, Condition.CLEAR)
        self.assertEqual(snap.description, "Clear skies")
        self.assertEqual(snap.precipitation_type, "None")
        self.assertEqual(snap.source, "tomorrow_io")

        call = session.calls[0]
        self.assertEqual(call["timeout"], 3)
        self.assertEqual(call["params"]["location"], "32.2396,77.1887")
        self.assertEqual(call["params"]["units"], "metric")
        self.assertEqual(call["params"]["apikey"], "test-key")
        self.assertIn("weatherCode", call["params"]["fields"])

    def test_unknown_weather_code_maps_to_unknown(self):
        session = RecordingSession(DummyResp(_payload(weatherCode=9999)))
        snap = self._client(session).fetch(MANALI, "Manali")
        self.assertEqual(snap.condition, Condition.UNKNOWN)
        self.assertEqual(snap.icon, "01d")
        self.assertEqual(describe_weather_code(None)[0], Condition.UNKNOWN)

    def test_missing_numeric_fields_default_to_zero(self):
        payload = {"data": {"values": {"weatherCode": 8000}}}
        snap = self._client(RecordingSession(DummyResp(payload))).fetch(MANALI, "Manali")
        self.assertEqual(snap.temperature, 0.0)
        self.assertEqual(snap.wind_speed, 0.0)
        self.assertEqual(snap.uv_index, 0.0)
        self.assertEqual(snap.condition, Condition.THUNDERSTORM)

    def test_null_fields_default_to_zero(self):
        payload = _payload(temperature=None, humidity="n/a")
        snap = self._client(RecordingSession(DummyResp(payload))).fetch(MANALI, "Manali")
        self.assertEqual(snap.temperature, 0.0)
        self.assertEqual(snap.humidity, 0.0)

    def test_precipitation_types(self):
        for code, label in [(1, "Rain"), (2, "Snow"), (3, "Freezing Rain"), (4, "Ice Pellets"), (9, "Unknown")]:
            with self.subTest(code=code):
                payload = _payload(precipitationType=code)
                snap = self._client(RecordingSession(DummyResp(payload))).fetch(MANALI, "Manali")
                self.assertEqual(snap.precipitation_type, label)

    def test_http_error_is_provider_unavailable(self):
        session = RecordingSession(DummyResp({}, status_code=503))
        with self.assertRaises(ProviderUnavailable) as ctx:
            self._client(session).fetch(MANALI, "Manali")
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.kind, "ProviderUnavailable")

    def test_network_error_is_provider_unavailable(self):
        session = RecordingSession(exc=requests.ConnectionError("boom"))
        with self.assertRaises(ProviderUnavailable):
            self._client(session).fetch(MANALI, "Manali")

    def test_timeout_is_provider_unavailable(self):
        session = RecordingSession(exc=requests.Timeout("slow"))
        with self.assertRaises(FetchError):
            self._client(session).fetch(MANALI, "Manali")

    def test_non_json_is_malformed(self):
        session = RecordingSession(DummyResp(None, bad_json=True))
        with self.assertRaises(MalformedResponse):
            self._client(session).fetch(MANALI, "Manali")

    def test_missing_values_is_malformed(self):
        session = RecordingSession(DummyResp({"data": {}}))
        with self.assertRaises(MalformedResponse) as ctx:
            self._client(session).fetch(MANALI, "Manali")
        self.assertEqual(ctx.exception.kind, "MalformedResponse")

    def test_requires_api_key(self):
        with self.assertRaises(ValueError):
            TomorrowIoClient("", session=RecordingSession())


if __name__ == "__main__":
    unittest.main()
