import os
import unittest

from ecowatch.config import Settings

_ENV_KEYS = (
    "ECOWATCH_WEATHER_PROVIDER",
    "ECOWATCH_WEATHER_BASE_URL",
    "ECOWATCH_MAX_WORKERS",
    "ECOWATCH_FRESHNESS_SECONDS",
    "ECOWATCH_SWEEP_INTERVAL_SECONDS",
    "ECOWATCH_BROADCAST_REDIS_URL",
)


class TestConfig(unittest.TestCase):
    def setUp(self):
        self._saved = {k: os.environ.pop(k) for k in _ENV_KEYS if k in os.environ}

    def tearDown(self):
        for k in _ENV_KEYS:
            os.environ.pop(k, None)
        os.environ.update(self._saved)

    def test_settings_defaults(self):
        s = Settings()
        self.assertEqual(s.weather_provider, "open_meteo")
        self.assertEqual(s.record_store_url, "memory://")
        self.assertEqual(s.freshness_seconds, 6 * 3600)
        self.assertEqual(s.alert_retention_seconds, 3600)
        self.assertEqual(s.weather_timeout_seconds, 5.0)
        self.assertEqual(s.sweep_interval_seconds, 0)
        self.assertIsNone(s.broadcast_redis_url)

    def test_settings_env_override(self):
        os.environ["ECOWATCH_WEATHER_PROVIDER"] = "Tomorrow-IO"
        os.environ["ECOWATCH_WEATHER_BASE_URL"] = "http://example.com/v4/weather/realtime/"
        os.environ["ECOWATCH_BROADCAST_REDIS_URL"] = "redis://cache:6379/0"
        s = Settings()
        self.assertEqual(s.weather_provider, "tomorrow_io")
        self.assertEqual(s.weather_base_url, "http://example.com/v4/weather/realtime")
        self.assertEqual(s.broadcast_redis_url, "redis://cache:6379/0")

    def test_bounds_are_clamped(self):
        os.environ["ECOWATCH_MAX_WORKERS"] = "0"
        os.environ["ECOWATCH_FRESHNESS_SECONDS"] = "-5"
        os.environ["ECOWATCH_SWEEP_INTERVAL_SECONDS"] = "-1"
        s = Settings()
        self.assertEqual(s.max_workers, 1)
        self.assertEqual(s.freshness_seconds, 0)
        self.assertEqual(s.sweep_interval_seconds, 0)


if __name__ == "__main__":
    unittest.main()
