import threading
import unittest
from datetime import datetime, timedelta, timezone

from ecowatch.alert_lifecycle import AlertLifecycleManager
from ecowatch.domain import Alert, AlertType, Severity
from ecowatch.record_store.memory import InMemoryRecordStore

T0 = datetime(2024, 6, 1, 9, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestAlertLifecycleManager(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryRecordStore()
        self.clock = FakeClock(T0)
        self.manager = AlertLifecycleManager(self.store, retention_seconds=3600, clock=self.clock)

    def _activate(self, destination_id="dest-1", alert_type=AlertType.WEATHER, message="High wind warning."):
        return self.manager.activate(destination_id, alert_type, Severity.HIGH, "Weather Alert - Manali", message)

    def test_activate_supersedes_previous_alert(self):
        first = self._activate()
        second = self._activate(message="High wind warning.")

        active = self.manager.active_alerts(destination_id="dest-1", alert_type=AlertType.WEATHER)
        self.assertEqual([a.id for a in active], [second.id])
        self.assertNotEqual(first.id, second.id)
        self.assertTrue(second.is_active)
        self.assertEqual(second.created_at, T0)

    def test_pairs_are_independent(self):
        self._activate()
        self._activate(alert_type=AlertType.CAPACITY)
        self._activate(destination_id="dest-2")
        self.assertEqual(len(self.manager.active_alerts()), 3)

    def test_concurrent_activation_leaves_one_active(self):
        barrier = threading.Barrier(8)

        def fire():
            barrier.wait()
            self._activate()

        threads = [threading.Thread(target=fire) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(self.manager.active_alerts(destination_id="dest-1")), 1)
        self.assertEqual(len(self.store.list_alerts(active_only=False)), 8)

    def test_cleanup_deactivates_and_purges_past_retention(self):
        self._activate()
        self.clock.now = T0 + timedelta(minutes=30)
        self._activate(destination_id="dest-2", alert_type=AlertType.CAPACITY)
        self.store.insert_alert(
            Alert(
                id="maintenance",
                type=AlertType.MAINTENANCE,
                title="Trail closed",
                message="Bridge repair.",
                severity=Severity.LOW,
                destination_id="dest-1",
                is_active=True,
                created_at=T0 - timedelta(days=1),
            )
        )

        self.clock.now = T0 + timedelta(minutes=90)
        result = self.manager.sweep_cleanup()

        self.assertEqual(result.deactivated, {"weather": 1, "capacity": 1})
        self.assertEqual(result.purged, {"weather": 1, "capacity": 0})
        remaining = self.store.list_alerts(active_only=False)
        self.assertEqual({a.type for a in remaining}, {AlertType.CAPACITY, AlertType.MAINTENANCE})
        self.assertEqual([a.id for a in self.manager.active_alerts()], ["maintenance"])

    def test_cleanup_is_idempotent(self):
        self._activate()
        self.manager.sweep_cleanup()
        again = self.manager.sweep_cleanup()
        self.assertEqual(again.deactivated, {"weather": 0, "capacity": 0})
        self.assertEqual(again.purged, {"weather": 0, "capacity": 0})
        self.assertEqual(len(self.store.list_alerts(active_only=False)), 1)

    def test_cleanup_scoped_to_destination(self):
        self._activate()
        self._activate(destination_id="dest-2")
        result = self.manager.sweep_cleanup(destination_id="dest-1")
        self.assertEqual(result.deactivated["weather"], 1)
        self.assertEqual([a.destination_id for a in self.manager.active_alerts()], ["dest-2"])


if __name__ == "__main__":
    unittest.main()
