"""
Document store abstraction for Firestore and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Dict, Optional, Protocol

from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter
from firebase_admin import firestore

from backend.firebase import get_firebase_app
from shared.constants import (
    CHAT_MEMORY_SUMMARIES_COLLECTION,
    CHAT_MESSAGES_COLLECTION,
    CHAT_SESSIONS_COLLECTION,
    CHAT_SETTINGS_COLLECTION,
    CHILDREN_COLLECTION,
    DAILY_STATS_COLLECTION,
    GENERATED_PHOTOS_COLLECTION,
    GENERATED_VIDEOS_COLLECTION,
    USERS_COLLECTION,
    USERS_INFO_COLLECTION,
)
from shared.types import VideoJob
from shared.utils import parse_iso_timestamp, utc_now_iso

logger = logging.getLogger(__name__)


class DbClient(Protocol):
    """Interface for document store access."""

    # users_info
    def get_user_info(self, user_id: str) -> Optional[dict]:
        ...

    def set_user_info(self, user_id: str, data: dict) -> None:
        ...

    # daily_stats
    def find_daily_stats(self, user_id: str, date: str) -> Optional[dict]:
        ...

    def add_daily_stats(self, data: dict) -> str:
        ...

    # children
    def add_child(self, data: dict) -> str:
        ...

    def list_children(self, parent_id: str) -> list[dict]:
        ...

    # chat
    def create_chat_session(self, data: dict) -> str:
        ...

    def touch_chat_session(self, session_id: str, updated_at: str) -> None:
        ...

    def list_chat_sessions(self, user_id: str) -> list[dict]:
        ...

    def save_chat_message(self, message_id: str, data: dict) -> None:
        ...

    def list_chat_messages(self, session_id: str) -> list[dict]:
        ...

    def recent_chat_messages(self, session_id: str, limit: int) -> list[dict]:
        ...

    def get_memory_summary(self, user_id: str) -> Optional[dict]:
        ...

    def save_memory_summary(
        self, user_id: str, payload: dict, summary_id: Optional[str] = None
    ) -> None:
        ...

    def get_chat_settings(self, user_id: str) -> Optional[dict]:
        ...

    def save_chat_settings(self, user_id: str, data: dict) -> None:
        ...

    # users/{uid}/generatedPhotos
    def save_generated_photo(self, user_id: str, record_id: str, data: dict) -> None:
        ...

    def get_generated_photo(self, user_id: str, record_id: str) -> Optional[dict]:
        ...

    def list_generated_photos(self, user_id: str, limit: int) -> list[dict]:
        ...

    def delete_generated_photo(self, user_id: str, record_id: str) -> None:
        ...

    # users/{uid}/generatedVideos
    def save_video_job(self, job: VideoJob) -> None:
        ...

    def get_video_job(self, user_id: str, job_id: str) -> Optional[VideoJob]:
        ...

    def list_video_jobs(self, user_id: str, limit: int) -> list[VideoJob]:
        ...


def _sort_key(field_name: str):
    return lambda item: parse_iso_timestamp(item.get(field_name))


class InMemoryDbClient:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.users_info: Dict[str, dict] = {}
        self.daily_stats: Dict[str, dict] = {}
        self.children: Dict[str, dict] = {}
        self.chat_sessions: Dict[str, dict] = {}
        self.chat_messages: Dict[str, dict] = {}
        self.memory_summaries: Dict[str, dict] = {}
        self.chat_settings: Dict[str, dict] = {}
        self.generated_photos: Dict[tuple[str, str], dict] = {}
        self.video_jobs: Dict[tuple[str, str], dict] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users_info.clear()
        self.daily_stats.clear()
        self.children.clear()
        self.chat_sessions.clear()
        self.chat_messages.clear()
        self.memory_summaries.clear()
        self.chat_settings.clear()
        self.generated_photos.clear()
        self.video_jobs.clear()

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex[:20]

    def get_user_info(self, user_id: str) -> Optional[dict]:
        data = self.users_info.get(user_id)
        if data is None:
            return None
        return {**copy.deepcopy(data), "id": user_id}

    def set_user_info(self, user_id: str, data: dict) -> None:
        existing = self.users_info.setdefault(user_id, {})
        existing.update(copy.deepcopy(data))

    def find_daily_stats(self, user_id: str, date: str) -> Optional[dict]:
        for doc_id, data in self.daily_stats.items():
            if data.get("user_id") == user_id and data.get("date") == date:
                return {**copy.deepcopy(data), "id": doc_id}
        return None

    def add_daily_stats(self, data: dict) -> str:
        doc_id = self._new_id()
        self.daily_stats[doc_id] = copy.deepcopy(data)
        return doc_id

    def add_child(self, data: dict) -> str:
        doc_id = self._new_id()
        self.children[doc_id] = copy.deepcopy(data)
        return doc_id

    def list_children(self, parent_id: str) -> list[dict]:
        return [
            {"id": doc_id, **copy.deepcopy(data)}
            for doc_id, data in self.children.items()
            if data.get("parentUuid") == parent_id
        ]

    def create_chat_session(self, data: dict) -> str:
        doc_id = self._new_id()
        self.chat_sessions[doc_id] = copy.deepcopy(data)
        return doc_id

    def touch_chat_session(self, session_id: str, updated_at: str) -> None:
        self.chat_sessions.setdefault(session_id, {})["updated_at"] = updated_at

    def list_chat_sessions(self, user_id: str) -> list[dict]:
        sessions = [
            {"id": doc_id, **copy.deepcopy(data)}
            for doc_id, data in self.chat_sessions.items()
            if data.get("user_id") == user_id
        ]
        return sorted(sessions, key=_sort_key("updated_at"), reverse=True)

    def save_chat_message(self, message_id: str, data: dict) -> None:
        self.chat_messages[message_id] = copy.deepcopy(data)

    def list_chat_messages(self, session_id: str) -> list[dict]:
        messages = [
            {"id": doc_id, **copy.deepcopy(data)}
            for doc_id, data in self.chat_messages.items()
            if data.get("session_id") == session_id
        ]
        # Stable sort keeps insertion order for equal timestamps.
        return sorted(messages, key=_sort_key("created_at"))

    def recent_chat_messages(self, session_id: str, limit: int) -> list[dict]:
        messages = self.list_chat_messages(session_id)
        return list(reversed(messages))[:limit]

    def get_memory_summary(self, user_id: str) -> Optional[dict]:
        for doc_id, data in self.memory_summaries.items():
            if data.get("user_id") == user_id:
                return {"id": doc_id, **copy.deepcopy(data)}
        return None

    def save_memory_summary(
        self, user_id: str, payload: dict, summary_id: Optional[str] = None
    ) -> None:
        if summary_id:
            self.memory_summaries.setdefault(summary_id, {}).update(
                copy.deepcopy(payload)
            )
        else:
            self.memory_summaries[self._new_id()] = copy.deepcopy(payload)

    def get_chat_settings(self, user_id: str) -> Optional[dict]:
        data = self.chat_settings.get(user_id)
        return copy.deepcopy(data) if data is not None else None

    def save_chat_settings(self, user_id: str, data: dict) -> None:
        self.chat_settings.setdefault(user_id, {}).update(copy.deepcopy(data))

    def save_generated_photo(self, user_id: str, record_id: str, data: dict) -> None:
        now = utc_now_iso()
        self.generated_photos[(user_id, record_id)] = {
            "createdAt": now,
            "updatedAt": now,
            **copy.deepcopy(data),
        }

    def get_generated_photo(self, user_id: str, record_id: str) -> Optional[dict]:
        data = self.generated_photos.get((user_id, record_id))
        return copy.deepcopy(data) if data is not None else None

    def list_generated_photos(self, user_id: str, limit: int) -> list[dict]:
        items = [
            {"id": record_id, **copy.deepcopy(data)}
            for (owner, record_id), data in self.generated_photos.items()
            if owner == user_id
        ]
        items.sort(key=_sort_key("createdAt"), reverse=True)
        return items[:limit]

    def delete_generated_photo(self, user_id: str, record_id: str) -> None:
        self.generated_photos.pop((user_id, record_id), None)

    def save_video_job(self, job: VideoJob) -> None:
        self.video_jobs[(job.user_id, job.id)] = job.as_dict()

    def get_video_job(self, user_id: str, job_id: str) -> Optional[VideoJob]:
        data = self.video_jobs.get((user_id, job_id))
        return VideoJob.from_dict(data) if data is not None else None

    def list_video_jobs(self, user_id: str, limit: int) -> list[VideoJob]:
        items = [
            data for (owner, _), data in self.video_jobs.items() if owner == user_id
        ]
        items.sort(key=_sort_key("createdAt"), reverse=True)
        return [VideoJob.from_dict(data) for data in items[:limit]]


class FirestoreDbClient:
    """
    Firestore-backed implementation using the firebase-admin SDK.
    """

    def __init__(self, client=None):
        self.db = client or firestore.client(app=get_firebase_app())

    @staticmethod
    def _with_id(snapshot) -> dict:
        return {"id": snapshot.id, **(snapshot.to_dict() or {})}

    def _user_photos(self, user_id: str):
        return (
            self.db.collection(USERS_COLLECTION)
            .document(user_id)
            .collection(GENERATED_PHOTOS_COLLECTION)
        )

    def _user_videos(self, user_id: str):
        return (
            self.db.collection(USERS_COLLECTION)
            .document(user_id)
            .collection(GENERATED_VIDEOS_COLLECTION)
        )

    def get_user_info(self, user_id: str) -> Optional[dict]:
        snapshot = self.db.collection(USERS_INFO_COLLECTION).document(user_id).get()
        if not snapshot.exists:
            return None
        return self._with_id(snapshot)

    def set_user_info(self, user_id: str, data: dict) -> None:
        self.db.collection(USERS_INFO_COLLECTION).document(user_id).set(
            data, merge=True
        )

    def find_daily_stats(self, user_id: str, date: str) -> Optional[dict]:
        docs = (
            self.db.collection(DAILY_STATS_COLLECTION)
            .where(filter=FieldFilter("user_id", "==", user_id))
            .where(filter=FieldFilter("date", "==", date))
            .limit(1)
            .get()
        )
        if not docs:
            return None
        return self._with_id(docs[0])

    def add_daily_stats(self, data: dict) -> str:
        _, ref = self.db.collection(DAILY_STATS_COLLECTION).add(data)
        return ref.id

    def add_child(self, data: dict) -> str:
        _, ref = self.db.collection(CHILDREN_COLLECTION).add(data)
        return ref.id

    def list_children(self, parent_id: str) -> list[dict]:
        docs = (
            self.db.collection(CHILDREN_COLLECTION)
            .where(filter=FieldFilter("parentUuid", "==", parent_id))
            .get()
        )
        return [self._with_id(doc) for doc in docs]

    def create_chat_session(self, data: dict) -> str:
        _, ref = self.db.collection(CHAT_SESSIONS_COLLECTION).add(data)
        return ref.id

    def touch_chat_session(self, session_id: str, updated_at: str) -> None:
        self.db.collection(CHAT_SESSIONS_COLLECTION).document(session_id).set(
            {"updated_at": updated_at}, merge=True
        )

    def list_chat_sessions(self, user_id: str) -> list[dict]:
        docs = (
            self.db.collection(CHAT_SESSIONS_COLLECTION)
            .where(filter=FieldFilter("user_id", "==", user_id))
            .order_by("updated_at", direction=firestore.Query.DESCENDING)
            .get()
        )
        return [self._with_id(doc) for doc in docs]

    def save_chat_message(self, message_id: str, data: dict) -> None:
        self.db.collection(CHAT_MESSAGES_COLLECTION).document(message_id).set(data)

    def list_chat_messages(self, session_id: str) -> list[dict]:
        docs = (
            self.db.collection(CHAT_MESSAGES_COLLECTION)
            .where(filter=FieldFilter("session_id", "==", session_id))
            .order_by("created_at", direction=firestore.Query.ASCENDING)
            .get()
        )
        return [self._with_id(doc) for doc in docs]

    def recent_chat_messages(self, session_id: str, limit: int) -> list[dict]:
        docs = (
            self.db.collection(CHAT_MESSAGES_COLLECTION)
            .where(filter=FieldFilter("session_id", "==", session_id))
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
            .get()
        )
        return [doc.to_dict() or {} for doc in docs]

    def get_memory_summary(self, user_id: str) -> Optional[dict]:
        docs = (
            self.db.collection(CHAT_MEMORY_SUMMARIES_COLLECTION)
            .where(filter=FieldFilter("user_id", "==", user_id))
            .limit(1)
            .get()
        )
        if not docs:
            return None
        return self._with_id(docs[0])

    def save_memory_summary(
        self, user_id: str, payload: dict, summary_id: Optional[str] = None
    ) -> None:
        collection = self.db.collection(CHAT_MEMORY_SUMMARIES_COLLECTION)
        if summary_id:
            collection.document(summary_id).set(payload, merge=True)
        else:
            collection.add(payload)

    def get_chat_settings(self, user_id: str) -> Optional[dict]:
        snapshot = self.db.collection(CHAT_SETTINGS_COLLECTION).document(user_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def save_chat_settings(self, user_id: str, data: dict) -> None:
        self.db.collection(CHAT_SETTINGS_COLLECTION).document(user_id).set(
            data, merge=True
        )

    def save_generated_photo(self, user_id: str, record_id: str, data: dict) -> None:
        payload = {
            **data,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        }
        self._user_photos(user_id).document(record_id).set(payload)

    def get_generated_photo(self, user_id: str, record_id: str) -> Optional[dict]:
        snapshot = self._user_photos(user_id).document(record_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def list_generated_photos(self, user_id: str, limit: int) -> list[dict]:
        docs = (
            self._user_photos(user_id)
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
            .limit(limit)
            .get()
        )
        return [self._with_id(doc) for doc in docs]

    def delete_generated_photo(self, user_id: str, record_id: str) -> None:
        self._user_photos(user_id).document(record_id).delete()

    def save_video_job(self, job: VideoJob) -> None:
        self._user_videos(job.user_id).document(job.id).set(job.as_dict())

    def get_video_job(self, user_id: str, job_id: str) -> Optional[VideoJob]:
        snapshot = self._user_videos(user_id).document(job_id).get()
        if not snapshot.exists:
            return None
        return VideoJob.from_dict(snapshot.to_dict() or {})

    def list_video_jobs(self, user_id: str, limit: int) -> list[VideoJob]:
        docs = (
            self._user_videos(user_id)
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
            .limit(limit)
            .get()
        )
        return [VideoJob.from_dict(doc.to_dict() or {}) for doc in docs]
