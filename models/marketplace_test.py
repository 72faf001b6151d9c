# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import unittest
from unittest.mock import MagicMock

from models import marketplace
from models.marketplace import MarketplaceClient, Prediction


def _response(payload, content=b"", content_type="application/json"):
    response = MagicMock()
    response.json.return_value = payload
    response.content = content
    response.headers = {"content-type": content_type}
    response.raise_for_status.return_value = None
    return response


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class MarketplaceClientTest(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.client = MarketplaceClient(
            api_token="token",
            base_url="https://api.example.test/v1",
            poll_interval=2.0,
            timeout=10.0,
            sleep=self.clock.sleep,
            clock=self.clock,
        )
        self.client.session = MagicMock()

    def test_create_prediction_uses_model_endpoint(self):
        self.client.session.post.return_value = _response({"id": "p1", "status": "starting"})
        prediction = self.client.create_prediction("owner/model", {"a": 1})

        self.assertEqual(prediction.id, "p1")
        url = self.client.session.post.call_args.args[0]
        self.assertEqual(url, "https://api.example.test/v1/models/owner/model/predictions")
        self.assertEqual(self.client.session.post.call_args.kwargs["json"], {"input": {"a": 1}})
        headers = self.client.session.post.call_args.kwargs["headers"]
        self.assertEqual(headers["Authorization"], "Bearer token")

    def test_create_prediction_with_version(self):
        self.client.session.post.return_value = _response({"id": "p1", "status": "starting"})
        self.client.create_prediction("owner/model:abc123", {"a": 1})

        url = self.client.session.post.call_args.args[0]
        self.assertEqual(url, "https://api.example.test/v1/predictions")
        self.assertEqual(
            self.client.session.post.call_args.kwargs["json"],
            {"version": "abc123", "input": {"a": 1}},
        )

    def test_wait_polls_until_succeeded(self):
        self.client.session.get.side_effect = [
            _response({"id": "p1", "status": "processing"}),
            _response({"id": "p1", "status": "succeeded", "output": ["https://out"]}),
        ]
        seen = []
        result = self.client.wait_for_prediction(
            Prediction(id="p1", status="starting"), on_status=lambda p: seen.append(p.status)
        )
        self.assertEqual(result.status, "succeeded")
        self.assertEqual(seen, ["starting", "processing", "succeeded"])
        self.assertEqual(self.clock.sleeps, [2.0, 2.0])
        self.assertEqual(marketplace.output_url(result), "https://out")

    def test_wait_raises_on_failure(self):
        with self.assertRaises(marketplace.PredictionFailedError) as ctx:
            self.client.wait_for_prediction(
                Prediction(id="p1", status="failed", error="NSFW")
            )
        self.assertIn("NSFW", str(ctx.exception))

    def test_wait_times_out(self):
        self.client.session.get.return_value = _response({"id": "p1", "status": "processing"})
        with self.assertRaises(marketplace.PredictionTimeoutError):
            self.client.wait_for_prediction(Prediction(id="p1", status="starting"))
        self.assertEqual(sum(self.clock.sleeps), 10.0)

    def test_missing_token(self):
        client = MarketplaceClient(api_token=None)
        self.assertFalse(client.is_available())
        with self.assertRaises(marketplace.MarketplaceConfigurationError):
            client.create_prediction("owner/model", {})

    def test_swap_face_input(self):
        self.client.session.post.return_value = _response(
            {"id": "p1", "status": "succeeded", "output": "https://face"}
        )
        prediction = self.client.swap_face("data:src", "data:target")
        body = self.client.session.post.call_args.kwargs["json"]
        self.assertEqual(body["input"], {"swap_image": "data:src", "input_image": "data:target"})
        self.assertEqual(marketplace.output_url(prediction), "https://face")

    def test_download_strips_content_type_params(self):
        self.client.session.get.return_value = _response(
            {}, content=b"mp4", content_type="video/mp4; charset=binary"
        )
        self.assertEqual(self.client.download("https://out"), (b"mp4", "video/mp4"))

    def test_output_url_requires_url(self):
        with self.assertRaises(marketplace.PredictionFailedError):
            marketplace.output_url(Prediction(id="p", status="succeeded", output=None))


if __name__ == "__main__":
    unittest.main()
