import unittest

from backend.tests.helpers import AUTH_HEADERS, ApiTestContext

VALID_CHILD = {
    "name": "  Deniz ",
    "gender": "Kiz",
    "birthDate": "2024-05-01",
    "avatarUri": "https://example.test/avatar.png",
}


class ChildrenRouteTests(unittest.TestCase):
    def setUp(self):
        self.ctx = ApiTestContext()
        self.client = self.ctx.client

    def test_add_child_trims_and_stores_parent(self):
        response = self.client.post("/api/add-child", json=VALID_CHILD, headers=AUTH_HEADERS)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["child"]["name"], "Deniz")
        self.assertEqual(payload["child"]["parentUuid"], "user-1")
        self.assertIn(payload["child"]["id"], self.ctx.db.children)

    def test_add_child_requires_valid_gender(self):
        response = self.client.post(
            "/api/add-child",
            json={**VALID_CHILD, "gender": "unknown"},
            headers=AUTH_HEADERS,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["message"],
            "name, gender, birthDate and avatarUri are required",
        )

    def test_list_children_newest_first_and_scoped_to_parent(self):
        self.ctx.db.add_child(
            {"parentUuid": "user-1", "name": "Old", "createdAt": "2024-01-01T00:00:00Z"}
        )
        self.ctx.db.add_child(
            {"parentUuid": "user-1", "name": "New", "createdAt": "2024-06-01T00:00:00Z"}
        )
        self.ctx.db.add_child({"parentUuid": "user-1", "name": "NoDate"})
        self.ctx.db.add_child(
            {"parentUuid": "user-2", "name": "Other", "createdAt": "2025-01-01T00:00:00Z"}
        )

        response = self.client.get("/api/add-child", headers=AUTH_HEADERS)
        self.assertEqual(response.status_code, 200)
        names = [child["name"] for child in response.json()["children"]]
        self.assertEqual(names, ["New", "Old", "NoDate"])


if __name__ == "__main__":
    unittest.main()
