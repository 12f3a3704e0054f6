import unittest

from ecowatch.config import Settings
from ecowatch.main import app, create_app
from ecowatch.record_store.memory import InMemoryRecordStore


class TestMain(unittest.TestCase):
    def test_app_metadata(self):
        self.assertEqual(app.title, "EcoWatch Monitor")
        paths = set(app.openapi()["paths"])
        self.assertTrue({"/", "/v1/sweep", "/v1/alerts", "/v1/stream"} <= paths)

    def test_lifespan_builds_services_from_settings(self):
        from fastapi.testclient import TestClient

        with TestClient(create_app(settings=Settings(record_store_url="memory://"))) as client:
            services = client.app.state.services
            self.assertIsInstance(services.store, InMemoryRecordStore)
            self.assertEqual(services.provider.name, "open_meteo")


if __name__ == "__main__":
    unittest.main()
