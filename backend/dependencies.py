"""
Dependency wiring for the FastAPI app and the video worker.
"""

from __future__ import annotations

from backend.config import get_settings
from backend.db import DbClient, FirestoreDbClient, InMemoryDbClient
from backend.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from backend.realtime import ConnectionHub
from backend.storage import (
    CosStorageClient,
    FirebaseStorageClient,
    InMemoryStorageClient,
    StorageClient,
)
from models.marketplace import MarketplaceClient

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_queue_client: JobQueue | None = None
_marketplace_client: MarketplaceClient | None = None
_connection_hub: ConnectionHub | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _db_client = InMemoryDbClient()
    else:
        _db_client = FirestoreDbClient()
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _storage_client = InMemoryStorageClient()
    elif settings.cos_bucket:
        _storage_client = CosStorageClient(
            bucket=settings.cos_bucket,
            region=settings.cos_region or "",
            endpoint=settings.cos_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    else:
        _storage_client = FirebaseStorageClient(settings.firebase_storage_bucket)
    return _storage_client


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for dispatching video jobs to workers.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_marketplace_client() -> MarketplaceClient:
    global _marketplace_client
    if _marketplace_client:
        return _marketplace_client

    settings = get_settings()
    _marketplace_client = MarketplaceClient(
        api_token=settings.replicate_api_token,
        base_url=settings.replicate_base_url,
        poll_interval=settings.prediction_poll_interval_seconds,
        timeout=settings.prediction_timeout_seconds,
        face_swap_model=settings.face_swap_model,
        image_to_video_model=settings.image_to_video_model,
        video_person_swap_model=settings.video_person_swap_model,
        video_background_model=settings.video_background_model,
    )
    return _marketplace_client


def get_connection_hub() -> ConnectionHub:
    global _connection_hub
    if _connection_hub is None:
        _connection_hub = ConnectionHub()
    return _connection_hub
