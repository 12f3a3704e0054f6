import unittest

from fastapi.testclient import TestClient

from ecowatch.config import Settings
from ecowatch.domain import AlertType, Condition, Destination, Sensitivity, Severity, WeatherSnapshot, utc_now
from ecowatch.errors import PersistenceError
from ecowatch.fanout import InMemoryTopic
from ecowatch.main import create_app
from ecowatch.record_store.memory import InMemoryRecordStore
from ecowatch.services import build_services


class FakeProvider:
    name = "fake"

    def __init__(self, wind_speed=4.0):
        self.wind_speed = wind_speed

    def fetch(self, coordinates, label, *, destination_id=""):
        return WeatherSnapshot(
            destination_id=destination_id,
            label=label,
            temperature=21.0,
            humidity=40.0,
            pressure=1010.0,
            wind_speed=self.wind_speed,
            wind_direction=90.0,
            visibility=10.0,
            uv_index=3.0,
            cloud_cover=15.0,
            precipitation_probability=5.0,
            precipitation_type="None",
            condition=Condition.CLEAR,
            description="Clear skies",
            icon="01d",
            captured_at=utc_now(),
            source=self.name,
        )


class UnavailableStore(InMemoryRecordStore):
    def list_alerts(self, **kwargs):
        raise PersistenceError("list_alerts failed: connection refused")


def _destinations():
    return [
        Destination(id="dest-2", name="Manali", max_capacity=100, current_occupancy=20,
                    ecological_sensitivity=Sensitivity.HIGH),
        Destination(id="dest-3", name="Shimla", max_capacity=200, current_occupancy=190,
                    ecological_sensitivity=Sensitivity.MEDIUM),
    ]


class TestApi(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryRecordStore(_destinations())
        self.provider = FakeProvider(wind_speed=17.5)
        services = build_services(
            Settings(sweep_interval_seconds=0),
            store=self.store,
            provider=self.provider,
            topic=InMemoryTopic(),
        )
        self.client_cm = TestClient(create_app(services=services))
        self.client = self.client_cm.__enter__()

    def tearDown(self):
        self.client_cm.__exit__(None, None, None)

    def test_health(self):
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_describe_sweep(self):
        resp = self.client.get("/v1/sweep")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["provider"], "fake")

    def test_trigger_sweep_returns_report(self):
        resp = self.client.post("/v1/sweep")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["status"], "completed")
        self.assertEqual(body["destinations_processed"], 2)
        # wind alert for both, capacity alert for Shimla (190/180)
        self.assertEqual(body["alerts_generated"], 3)
        titles = sorted(a["destination_title"] for a in body["alerts"])
        self.assertEqual(titles, ["Capacity Alert - Shimla", "Weather Alert - Manali", "Weather Alert - Shimla"])

    def test_trigger_unknown_destination_is_404(self):
        resp = self.client.post("/v1/sweep", params={"destination_id": "dest-404"})
        self.assertEqual(resp.status_code, 404)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["status"], "not_found")

    def test_list_alerts_after_sweep(self):
        self.client.post("/v1/sweep")
        resp = self.client.get("/v1/alerts", params={"destination_id": "dest-3", "type": "capacity"})
        self.assertEqual(resp.status_code, 200)
        alerts = resp.json()
        self.assertEqual(len(alerts), 1)
        self.assertEqual(alerts[0]["severity"], Severity.CRITICAL.value)
        self.assertTrue(alerts[0]["is_active"])
        self.assertTrue(alerts[0]["message"].startswith("Over ecological capacity."))

    def test_list_alerts_rejects_unknown_type(self):
        resp = self.client.get("/v1/alerts", params={"type": "volcano"})
        self.assertEqual(resp.status_code, 422)

    def test_capacity_view(self):
        resp = self.client.get("/v1/destinations/dest-3/capacity")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["adjusted_capacity"], 180)
        self.assertEqual(body["available_spots"], 0)
        self.assertEqual(body["risk_tier"], "critical")
        self.assertTrue(body["over_capacity"])
        self.assertTrue(body["requires_eco_briefing"])

    def test_capacity_view_uses_fallback_catalog(self):
        resp = self.client.get("/v1/destinations/manali-fallback/capacity")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["adjusted_capacity"], 800)

    def test_capacity_view_unknown_destination(self):
        resp = self.client.get("/v1/destinations/nope/capacity")
        self.assertEqual(resp.status_code, 404)

    def test_stream_route_registered(self):
        paths = set(self.client.app.openapi()["paths"])
        self.assertIn("/v1/stream", paths)


class TestApiStoreFailure(unittest.TestCase):
    def test_alert_listing_unavailable(self):
        services = build_services(
            Settings(),
            store=UnavailableStore(_destinations()),
            provider=FakeProvider(),
            topic=InMemoryTopic(),
        )
        with TestClient(create_app(services=services)) as client:
            resp = client.get("/v1/alerts")
        self.assertEqual(resp.status_code, 503)


if __name__ == "__main__":
    unittest.main()
