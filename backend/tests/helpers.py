"""Shared wiring for route tests: in-memory backends and fake providers."""

from __future__ import annotations

from fastapi.testclient import TestClient

from backend.app import create_app
from backend.config import Settings, get_settings
from backend.db import InMemoryDbClient
from backend.dependencies import (
    get_connection_hub,
    get_db_client,
    get_marketplace_client,
    get_queue_client,
    get_storage_client,
)
from backend.queue import InMemoryJobQueue
from backend.storage import InMemoryStorageClient
from models.marketplace import Prediction

AUTH_HEADERS = {"Authorization": "Bearer user-1"}
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png"


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "development",
        "auth_disabled": True,
        "use_in_memory_backends": True,
        "gemini_api_key": None,
        "replicate_api_token": None,
        "redis_url": None,
        "run_video_jobs_inline": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeHub:
    def __init__(self):
        self.events: list[tuple[str, str, dict]] = []

    def send_to_user(self, user_id: str, event: str, payload: dict) -> int:
        self.events.append((user_id, event, payload))
        return 1


class FakeMarketplace:
    """Records calls and answers every model with a fixed output URL."""

    def __init__(self, available: bool = True, download_type: str = "image/png"):
        self.available = available
        self.download_type = download_type
        self.calls: list[tuple[str, dict]] = []
        self.downloads: list[str] = []

    def is_available(self) -> bool:
        return self.available

    def _run(self, name: str, payload: dict, on_status=None) -> Prediction:
        self.calls.append((name, payload))
        prediction_id = f"pred-{len(self.calls)}"
        if on_status:
            on_status(Prediction(id=prediction_id, status="processing"))
        return Prediction(
            id=prediction_id,
            status="succeeded",
            output=[f"https://cdn.example.test/{name}/{prediction_id}"],
        )

    def swap_face(self, source_image, target_image, on_status=None):
        return self._run(
            "swap_face",
            {"source_image": source_image, "target_image": target_image},
            on_status,
        )

    def image_to_video(self, image, prompt, duration=5, on_status=None):
        return self._run(
            "image_to_video",
            {"image": image, "prompt": prompt, "duration": duration},
            on_status,
        )

    def swap_video_person(self, video, character_image, on_status=None):
        return self._run(
            "swap_video_person",
            {"video": video, "character_image": character_image},
            on_status,
        )

    def swap_video_background(self, video, prompt, on_status=None):
        return self._run(
            "swap_video_background", {"video": video, "prompt": prompt}, on_status
        )

    def download(self, url: str) -> tuple[bytes, str]:
        self.downloads.append(url)
        return f"content-of:{url}".encode(), self.download_type


class ApiTestContext:
    def __init__(self, **setting_overrides):
        self.settings = make_settings(**setting_overrides)
        self.db = InMemoryDbClient()
        self.storage = InMemoryStorageClient()
        self.queue = InMemoryJobQueue()
        self.marketplace = FakeMarketplace()
        self.hub = FakeHub()

        self.app = create_app()
        overrides = self.app.dependency_overrides
        overrides[get_settings] = lambda: self.settings
        overrides[get_db_client] = lambda: self.db
        overrides[get_storage_client] = lambda: self.storage
        overrides[get_queue_client] = lambda: self.queue
        overrides[get_marketplace_client] = lambda: self.marketplace
        overrides[get_connection_hub] = lambda: self.hub
        self.client = TestClient(self.app)
