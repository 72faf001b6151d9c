import unittest

from backend.tests.helpers import AUTH_HEADERS, PNG_BYTES, ApiTestContext


class VideoRouteTests(unittest.TestCase):
    def setUp(self):
        self.ctx = ApiTestContext()
        self.client = self.ctx.client

    def _image(self):
        return {"image": ("baby.png", PNG_BYTES, "image/png")}

    def test_generate_queues_job_when_redis_is_configured(self):
        ctx = ApiTestContext(redis_url="redis://localhost:6379/0")
        response = ctx.client.post(
            "/api/videos/generate",
            files=self._image(),
            data={"prompt": "baby waves", "duration": "10"},
            headers=AUTH_HEADERS,
        )
        self.assertEqual(response.status_code, 202)
        payload = response.json()
        self.assertEqual(payload["status"], "QUEUED")
        self.assertEqual(payload["kind"], "image_to_video")
        self.assertEqual(payload["duration"], 10)
        self.assertEqual(ctx.queue.items, [f"user-1:{payload['id']}"])
        self.assertIn(payload["inputImagePath"], ctx.storage.stored_objects)
        status = ctx.client.get(f"/api/videos/{payload['id']}", headers=AUTH_HEADERS).json()
        self.assertEqual(status["status"], "QUEUED")

    def test_generate_runs_in_process_without_redis(self):
        response = self.client.post(
            "/api/videos/generate",
            files=self._image(),
            data={"prompt": "baby waves"},
            headers=AUTH_HEADERS,
        )
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json()["status"], "QUEUED")
        video_id = response.json()["id"]
        self.assertEqual(self.ctx.queue.items, [])

        status = self.client.get(f"/api/videos/{video_id}", headers=AUTH_HEADERS).json()
        self.assertEqual(status["status"], "SUCCEEDED")
        self.assertEqual(status["progressPercent"], 1.0)
        self.assertEqual([name for name, _ in self.ctx.marketplace.calls], ["image_to_video"])

    def test_generate_rejects_bad_duration(self):
        response = self.client.post(
            "/api/videos/generate",
            files=self._image(),
            data={"prompt": "baby waves", "duration": "7"},
            headers=AUTH_HEADERS,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.ctx.queue.items, [])

    def test_swap_requires_video(self):
        response = self.client.post(
            "/api/videos/swap", files=self._image(), headers=AUTH_HEADERS
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "video file or video_url is required")

    def test_swap_runs_inline_when_configured(self):
        ctx = ApiTestContext(run_video_jobs_inline=True)
        response = ctx.client.post(
            "/api/videos/swap",
            files=self._image(),
            data={
                "video_url": "https://cdn.example.test/dance.mp4",
                "background_prompt": "beach at sunset",
            },
            headers=AUTH_HEADERS,
        )
        self.assertEqual(response.status_code, 202)
        video_id = response.json()["id"]
        self.assertEqual(ctx.queue.items, [])

        status = ctx.client.get(f"/api/videos/{video_id}", headers=AUTH_HEADERS).json()
        self.assertEqual(status["status"], "SUCCEEDED")
        self.assertEqual(
            [name for name, _ in ctx.marketplace.calls],
            ["swap_video_person", "swap_video_background"],
        )
        self.assertEqual(status["outputVideoPath"], f"users/user-1/generated/videos/{video_id}.mp4")

    def test_unknown_video_is_not_found(self):
        response = self.client.get("/api/videos/missing", headers=AUTH_HEADERS)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "not_found")

    def test_list_videos(self):
        self.client.post(
            "/api/videos/generate",
            files=self._image(),
            data={"prompt": "first"},
            headers=AUTH_HEADERS,
        )
        response = self.client.get("/api/videos", headers=AUTH_HEADERS)
        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["prompt"] for item in response.json()["items"]], ["first"])


if __name__ == "__main__":
    unittest.main()
