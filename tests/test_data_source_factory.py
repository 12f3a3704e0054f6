import unittest

from ecowatch.data_sources.factory import DEFAULT_PROVIDER_NAME, build_weather_provider
from ecowatch.data_sources.open_meteo_client import OPEN_METEO_WEATHER_URL, OpenMeteoClient
from ecowatch.data_sources.tomorrow_io_client import TomorrowIoClient


class DummySettings:
    def __init__(self, **kwargs):
        self.weather_provider = DEFAULT_PROVIDER_NAME
        self.weather_base_url = None
        self.weather_api_key = None
        self.weather_timeout_seconds = 5.0
        self.weather_retries = 1
        for k, v in kwargs.items():
            setattr(self, k, v)


class TestWeatherProviderFactory(unittest.TestCase):
    def test_build_open_meteo_default(self):
        provider = build_weather_provider(DummySettings())
        self.assertIsInstance(provider, OpenMeteoClient)
        self.assertEqual(provider.base_url, OPEN_METEO_WEATHER_URL)
        self.assertEqual(provider.timeout, 5.0)

    def test_base_url_override(self):
        provider = build_weather_provider(DummySettings(weather_base_url="http://localhost:9000/v1/forecast"))
        self.assertEqual(provider.base_url, "http://localhost:9000/v1/forecast")

    def test_build_tomorrow_io(self):
        provider = build_weather_provider(
            DummySettings(weather_provider="tomorrow_io", weather_api_key="k", weather_timeout_seconds=2.0)
        )
        self.assertIsInstance(provider, TomorrowIoClient)
        self.assertEqual(provider.api_key, "k")
        self.assertEqual(provider.timeout, 2.0)

    def test_tomorrow_io_without_key_raises(self):
        with self.assertRaises(ValueError):
            build_weather_provider(DummySettings(weather_provider="tomorrow_io"))

    def test_unknown_provider_raises(self):
        with self.assertRaises(ValueError):
            build_weather_provider(DummySettings(weather_provider="unknown-source"))


if __name__ == "__main__":
    unittest.main()
