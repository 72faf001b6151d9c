import unittest

from backend.app import route_area
from backend.realtime import ConnectionHub
from backend.dependencies import get_connection_hub
from backend.tests.helpers import AUTH_HEADERS, ApiTestContext


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.ctx = ApiTestContext()
        self.client = self.ctx.client

    def test_health_does_not_require_auth(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_missing_token_is_access_denied(self):
        response = self.client.get("/api/users/me")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(
            response.json(),
            {"error": "access_denied", "message": "Authentication required"},
        )

    def test_unknown_route_uses_error_shape(self):
        response = self.client.get("/api/nope", headers=AUTH_HEADERS)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "not_found")

    def test_wrong_method_is_invalid_request(self):
        response = self.client.delete("/api/health")
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response.json()["error"], "invalid_request")

    def test_users_me_creates_defaults(self):
        response = self.client.get("/api/users/me", headers=AUTH_HEADERS)
        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["id"], "user-1")
        self.assertEqual(user["language"], "tr")
        self.assertEqual(user["timezone"], "Europe/Istanbul")
        self.assertEqual(user["goal"], "maintain")
        self.assertIn("user-1", self.ctx.db.users_info)

    def test_patch_users_me_ignores_unknown_fields(self):
        response = self.client.patch(
            "/api/users/me",
            headers=AUTH_HEADERS,
            json={"name": "Ayşe", "goal": "lose", "id": "someone-else", "foo": 1},
        )
        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["id"], "user-1")
        self.assertEqual(user["name"], "Ayşe")
        self.assertEqual(user["goal"], "lose")
        self.assertNotIn("foo", self.ctx.db.users_info["user-1"])

    def test_patch_users_me_rejects_bad_goal(self):
        response = self.client.patch(
            "/api/users/me", headers=AUTH_HEADERS, json={"goal": "bulk"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_request")

    def test_daily_progress_is_created_once(self):
        first = self.client.get(
            "/api/progress/daily", params={"date": "2025-01-02"}, headers=AUTH_HEADERS
        )
        second = self.client.get(
            "/api/progress/daily", params={"date": "2025-01-02"}, headers=AUTH_HEADERS
        )
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["stats"]["id"], second.json()["stats"]["id"])
        self.assertEqual(first.json()["stats"]["calories_consumed"], 0)
        self.assertEqual(len(self.ctx.db.daily_stats), 1)

    def test_daily_progress_rejects_bad_date(self):
        response = self.client.get(
            "/api/progress/daily", params={"date": "02/01/2025"}, headers=AUTH_HEADERS
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_request")

    def test_realtime_socket_requires_token(self):
        self.ctx.app.dependency_overrides[get_connection_hub] = ConnectionHub
        with self.assertRaises(Exception):
            with self.client.websocket_connect("/api/realtime") as ws:
                ws.receive_json()

    def test_realtime_socket_registers_connection(self):
        hub = ConnectionHub()
        self.ctx.app.dependency_overrides[get_connection_hub] = lambda: hub
        with self.client.websocket_connect("/api/realtime?token=user-1") as ws:
            hello = ws.receive_json()
            self.assertEqual(hello["event"], "connected")
            self.assertEqual(hub.connection_count("user-1"), 1)
            ws.send_text("ping")
            self.assertEqual(ws.receive_json()["event"], "pong")

    def test_route_area(self):
        self.assertEqual(route_area("/api/styles/history", "/api"), "styles")
        self.assertEqual(route_area("/api", "/api"), "root")
        self.assertEqual(route_area("/other/x", "/api"), "other")


if __name__ == "__main__":
    unittest.main()
