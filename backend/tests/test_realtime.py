import asyncio
import threading
import unittest
from unittest.mock import patch

from backend.dependencies import get_connection_hub
from backend.realtime import ConnectionHub
from backend.tests.helpers import AUTH_HEADERS, ApiTestContext


class BrokenSocket:
    async def send_json(self, message):
        raise RuntimeError("socket closed")


class ConnectionHubTests(unittest.TestCase):
    def test_failed_send_from_worker_thread_drops_connection(self):
        hub = ConnectionHub()
        loop = asyncio.new_event_loop()
        thread = threading.Thread(target=loop.run_forever, daemon=True)
        thread.start()
        try:

            async def register():
                hub.register("user-1", BrokenSocket())

            asyncio.run_coroutine_threadsafe(register(), loop).result(timeout=5)
            self.assertEqual(hub.connection_count("user-1"), 1)

            delivered = hub.send_to_user("user-1", "chat:stream", {"delta": "hi"})

            self.assertEqual(delivered, 0)
            self.assertEqual(hub.connection_count("user-1"), 0)
        finally:
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=5)
            loop.close()

    def test_failed_send_on_socket_loop_drops_connection(self):
        hub = ConnectionHub()

        async def scenario():
            hub.register("user-1", BrokenSocket())
            hub.send_to_user("user-1", "chat:stream", {"delta": "hi"})
            for _ in range(3):
                await asyncio.sleep(0)
            return hub.connection_count("user-1")

        self.assertEqual(asyncio.run(scenario()), 0)

    def test_send_without_connections(self):
        self.assertEqual(ConnectionHub().send_to_user("nobody", "chat:stream", {}), 0)


class RealtimeChatStreamTests(unittest.TestCase):
    def setUp(self):
        self.ctx = ApiTestContext(gemini_api_key="test-key")
        self.hub = ConnectionHub()
        self.ctx.app.dependency_overrides[get_connection_hub] = lambda: self.hub

    def test_stream_events_reach_websocket(self):
        def fake_stream(context, history, image=None, *, api_key, model, on_delta):
            on_delta("Mer", "Mer")
            on_delta("haba", "Merhaba")
            return "Merhaba"

        client = self.ctx.client
        with client.websocket_connect("/api/realtime?token=user-1") as ws:
            self.assertEqual(ws.receive_json()["event"], "connected")
            with patch("coach.chat.gemini.stream_coach_response", side_effect=fake_stream):
                response = client.post(
                    "/api/chat",
                    json={"message": "selam", "stream": True},
                    headers=AUTH_HEADERS,
                )
            self.assertEqual(response.status_code, 200)
            payload = response.json()

            messages = [ws.receive_json() for _ in range(3)]

        self.assertEqual({m["event"] for m in messages}, {"chat:stream"})
        events = [m["data"] for m in messages]
        self.assertEqual([e.get("delta") for e in events], ["Mer", "haba", None])
        self.assertEqual(events[-1]["content"], "Merhaba")
        self.assertTrue(events[-1]["isFinal"])
        self.assertTrue(all(e["messageId"] == payload["messageId"] for e in events))


if __name__ == "__main__":
    unittest.main()
