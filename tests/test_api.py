import os
import sys
import unittest
from unittest import mock
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import APIKeyRepository, UserRepository
from rest_api import InsightsAPI
from seed_sample_data import seed


class APITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_insights_api.db"
        self.yaml_path = "test_insights_api.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = InsightsAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def _key_for_demo_user(self) -> str:
        uid = seed(self.db_path)
        resp = self.client.post(
            "/api_keys", params={"user_id": uid, "name": "app", "key": "secret"}
        )
        self.assertEqual(resp.status_code, 200)
        return resp.json()["key"]

    def test_health(self) -> None:
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "ok"})

    def test_insights_without_key(self) -> None:
        resp = self.client.get("/insights")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), [])

        resp = self.client.get("/insights", headers={"X-API-Key": "unknown"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), [])

    def test_insights_for_demo_user(self) -> None:
        key = self._key_for_demo_user()
        resp = self.client.get("/insights", headers={"X-API-Key": key})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        ids = [item["id"] for item in data]
        for expected in ("adherence-low", "pr-1", "pr-2", "load-up-1", "volume-summary"):
            self.assertIn(expected, ids)
        self.assertEqual(ids[-1], "volume-summary")
        summary = data[-1]
        self.assertEqual(summary["type"], "volume")
        self.assertEqual(summary["severity"], "info")
        self.assertIn("weeklyVolume", summary["meta"])
        low = data[ids.index("adherence-low")]
        self.assertEqual(low["meta"], {"adherenceAvg": 0.5})

    def test_insights_use_async_lookups(self) -> None:
        key = self._key_for_demo_user()
        with mock.patch.object(
            APIKeyRepository, "resolve_user", side_effect=AssertionError("sync lookup")
        ), mock.patch.object(
            UserRepository, "exists", side_effect=AssertionError("sync lookup")
        ):
            resp = self.client.get("/insights", headers={"X-API-Key": key})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()[-1]["id"], "volume-summary")

    def test_insights_language(self) -> None:
        key = self._key_for_demo_user()
        resp = self.client.get(
            "/insights", params={"language": "es"}, headers={"X-API-Key": key}
        )
        self.assertEqual(resp.json()[-1]["title"], "Volumen semanal")

        resp = self.client.get(
            "/insights", params={"language": "fr"}, headers={"X-API-Key": key}
        )
        self.assertEqual(resp.status_code, 400)

    def test_user_and_key_provisioning(self) -> None:
        resp = self.client.post("/users", params={"name": "Robin"})
        self.assertEqual(resp.status_code, 200)
        uid = resp.json()["id"]

        resp = self.client.post("/api_keys", params={"user_id": uid, "name": "phone"})
        self.assertEqual(resp.status_code, 200)
        key = resp.json()["key"]
        self.assertEqual(len(key), 32)
        self.assertEqual(self.api.api_keys.resolve_user(key), uid)

        resp = self.client.get("/insights", headers={"X-API-Key": key})
        self.assertEqual(resp.json(), [])

        resp = self.client.post("/api_keys", params={"user_id": 999, "name": "x"})
        self.assertEqual(resp.status_code, 404)

        resp = self.client.get("/users")
        self.assertEqual(resp.json(), [{"id": uid, "name": "Robin"}])

        resp = self.client.get("/api_keys")
        listed = resp.json()
        self.assertEqual(len(listed), 1)
        self.assertEqual(listed[0]["user_id"], uid)
        self.assertNotIn("key", listed[0])

        resp = self.client.delete(f"/api_keys/{listed[0]['id']}")
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(self.api.api_keys.resolve_user(key))

    def test_one_rep_max(self) -> None:
        resp = self.client.get("/one_rep_max", params={"weight": 100, "reps": 10})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"one_rep_max": 133.3})

        resp = self.client.get("/one_rep_max", params={"weight": 100, "reps": 0})
        self.assertEqual(resp.status_code, 400)


if __name__ == "__main__":
    unittest.main()
