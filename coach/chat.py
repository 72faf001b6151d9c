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
"""Coach chat: sessions, context assembly, replies and memory summaries."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from backend.config import Settings
from backend.db import DbClient
from models import gemini
from models import prompts
from shared.constants import (
    CHAT_RECENT_MESSAGE_LIMIT,
    CHAT_SUMMARY_WINDOW,
    DEFAULT_CHAT_SETTINGS,
)
from shared.types import HistoryTurn, ImagePayload
from shared.utils import get_unique_id, utc_now_iso

logger = logging.getLogger(__name__)

STREAM_EVENT = "chat:stream"
STREAM_FAILED_MESSAGE = "Streaming failed"

DISALLOWED_FILE_TYPES = ("pdf", "doc", "docx", "word", "ppt", "pptx", "powerpoint")
CREATE_VERBS = ("oluştur", "üret", "generate", "create", "yap", "tasarla", "çiz", "yaz")
CREATE_TARGETS = (
    "görsel",
    "resim",
    "image",
    "logo",
    "video",
    "kod",
    "code",
    "script",
    "website",
    "web sitesi",
    "uygulama",
    "app",
)

Publisher = Callable[[str, str, dict], None]


class ChatValidationError(ValueError):
    pass


def should_refuse(message: str) -> bool:
    """
    True for requests the coach does not fulfil: office documents, or asking
    it to produce images, videos, code or apps.
    """
    lower = (message or "").lower()
    if not lower:
        return False
    if any(file_type in lower for file_type in DISALLOWED_FILE_TYPES):
        return True
    has_verb = any(verb in lower for verb in CREATE_VERBS)
    has_target = any(target in lower for target in CREATE_TARGETS)
    return has_verb and has_target


def create_chat_session(db: DbClient, user_id: str, **extra) -> dict:
    now = utc_now_iso()
    session = {
        "user_id": user_id,
        "status": "open",
        **extra,
        "created_at": now,
        "updated_at": now,
    }
    session_id = db.create_chat_session(session)
    return {"id": session_id, **session}


def create_child_chat_session(
    db: DbClient, user_id: str, child_id: str, child_name: str
) -> dict:
    child_id = (child_id or "").strip()
    child_name = (child_name or "").strip()
    if not child_id or not child_name:
        raise ChatValidationError("childId and childName are required")
    return create_chat_session(
        db,
        user_id,
        child_id=child_id,
        child_name=child_name,
        title=f"{child_name} Sohbeti",
    )


def list_chat_sessions(db: DbClient, user_id: str) -> list[dict]:
    return db.list_chat_sessions(user_id)


def list_chat_messages(db: DbClient, session_id: str) -> list[dict]:
    return db.list_chat_messages(session_id)


def _speaker(message: dict) -> str:
    return "Koç" if message.get("role") == "assistant" else "Kullanıcı"


def format_transcript(messages: list[dict]) -> str:
    return "\n".join(
        f"{_speaker(message)}: {message.get('content') or ''}" for message in messages
    )


def format_assistant_preferences(chat_settings: Optional[dict]) -> str:
    if not chat_settings:
        return ""
    merged = resolve_assistant_settings(chat_settings)
    return (
        "Asistan Tercihleri: "
        f"Ton={merged['tone']}, Ruh Hali={merged['mood']}, "
        f"Uzunluk={merged['responseLength']}, Emoji={merged['emojiStyle']}"
    )


def build_context(
    user: dict,
    memory_summary: Optional[dict],
    recent_messages: list[dict],
    current_message: str,
    chat_settings: Optional[dict] = None,
) -> str:
    user_context = (
        f"Kullanıcı: {user.get('name') or 'Bilinmiyor'}, "
        f"Hedef: {user.get('goal') or 'maintain'}, "
        f"Boy/Kilo: {user.get('height_cm') or '-'} / {user.get('current_weight_kg') or '-'}"
    )
    summary = (memory_summary or {}).get("summary") or "Yeni kullanıcı, sıcak karşıla."
    sections = [
        user_context,
        f"Hafıza Özeti: {summary}",
        f"Son Konuşmalar:\n{format_transcript(recent_messages)}",
        f"Yeni Mesaj: {current_message}",
    ]
    preferences = format_assistant_preferences(chat_settings)
    if preferences:
        sections.append(preferences)
    return "\n---\n".join(sections)


@dataclass
class ChatContext:
    session_id: str
    user_message_id: str
    context: str
    history: list[HistoryTurn]


def prepare_context(
    db: DbClient,
    user: dict,
    message: str,
    session_id: Optional[str] = None,
    context_tags: Optional[dict] = None,
    image: Optional[ImagePayload] = None,
) -> ChatContext:
    """
    Stores the user's message and assembles the model context for it.

    A new open session is created when `session_id` is not given.
    """
    if not session_id:
        session_id = create_chat_session(db, user["id"])["id"]

    user_message_id = get_unique_id()
    db.save_chat_message(
        user_message_id,
        {
            "id": user_message_id,
            "session_id": session_id,
            "role": "user",
            "content": message,
            "metadata": context_tags or None,
            "image": {"mimeType": image.mime_type} if image else None,
            "created_at": utc_now_iso(),
        },
    )

    recent = list(reversed(db.recent_chat_messages(session_id, CHAT_RECENT_MESSAGE_LIMIT)))
    memory_summary = db.get_memory_summary(user["id"])
    chat_settings = db.get_chat_settings(user["id"])

    return ChatContext(
        session_id=session_id,
        user_message_id=user_message_id,
        context=build_context(user, memory_summary, recent, message, chat_settings),
        history=[
            HistoryTurn(role=item.get("role") or "user", content=item.get("content") or "")
            for item in recent
        ],
    )


def maybe_update_summary(
    db: DbClient, settings: Settings, user_id: str, session_id: str
) -> None:
    """Refreshes the user's memory summary once a session is long enough."""
    recent = db.recent_chat_messages(session_id, CHAT_SUMMARY_WINDOW)
    if len(recent) < CHAT_SUMMARY_WINDOW:
        return

    transcript = format_transcript(list(reversed(recent)))
    summary_text = gemini.generate_summary(
        transcript, api_key=settings.gemini_api_key, model=settings.summary_model
    )
    if not summary_text:
        return

    existing = db.get_memory_summary(user_id)
    db.save_memory_summary(
        user_id,
        {"user_id": user_id, "summary": summary_text, "last_message_at": utc_now_iso()},
        summary_id=existing["id"] if existing else None,
    )
    logger.info("Memory summary updated for %s", user_id)


def _persist_reply(
    db: DbClient,
    settings: Settings,
    user_id: str,
    session_id: str,
    message_id: str,
    content: str,
    context_tags: Optional[dict],
) -> None:
    db.save_chat_message(
        message_id,
        {
            "id": message_id,
            "session_id": session_id,
            "role": "assistant",
            "content": content,
            "metadata": context_tags or None,
            "created_at": utc_now_iso(),
        },
    )
    db.touch_chat_session(session_id, utc_now_iso())
    try:
        maybe_update_summary(db, settings, user_id, session_id)
    except Exception as e:
        logger.warning("Memory summary update failed for %s: %s", session_id, e)


def _generate_reply(
    settings: Settings, prepared: ChatContext, image: Optional[ImagePayload]
) -> str:
    return gemini.generate_coach_response(
        prepared.context,
        prepared.history,
        image,
        api_key=settings.gemini_api_key,
        model=settings.chat_model,
    )


def handle_chat_message(
    db: DbClient,
    settings: Settings,
    user: dict,
    message: str,
    session_id: Optional[str] = None,
    context_tags: Optional[dict] = None,
    image: Optional[ImagePayload] = None,
) -> dict:
    prepared = prepare_context(db, user, message, session_id, context_tags, image)
    logger.info(
        "Chat context assembled (user=%s, session=%s)", user["id"], prepared.session_id
    )
    if should_refuse(message):
        reply = prompts.COACH_REFUSAL_MESSAGE
    else:
        reply = _generate_reply(settings, prepared, image)

    _persist_reply(
        db, settings, user["id"], prepared.session_id, get_unique_id(), reply, context_tags
    )
    return {"reply": reply, "sessionId": prepared.session_id}


@dataclass
class ChatStream:
    session_id: str
    message_id: str
    run: Callable[[], None]


def handle_chat_message_stream(
    db: DbClient,
    settings: Settings,
    user: dict,
    message: str,
    publish: Publisher,
    session_id: Optional[str] = None,
    context_tags: Optional[dict] = None,
    image: Optional[ImagePayload] = None,
) -> ChatStream:
    """
    Prepares a streamed reply.

    The returned `run` callable performs the provider call and publishes
    `chat:stream` events to the user's realtime connections. It never raises.
    """
    prepared = prepare_context(db, user, message, session_id, context_tags, image)
    message_id = get_unique_id()
    user_id = user["id"]

    def send_chunk(**payload) -> None:
        publish(
            user_id,
            STREAM_EVENT,
            {"chatId": prepared.session_id, "messageId": message_id, **payload},
        )

    def finalize(content: str) -> None:
        _persist_reply(
            db, settings, user_id, prepared.session_id, message_id, content, context_tags
        )

    def run() -> None:
        if should_refuse(message):
            refusal = prompts.COACH_REFUSAL_MESSAGE
            send_chunk(delta=refusal, content=refusal, isFinal=True)
            finalize(refusal)
            return

        state = {"sent_any": False, "latest": ""}

        def on_delta(delta: str, full_text: str) -> None:
            state["sent_any"] = True
            state["latest"] = full_text
            send_chunk(delta=delta)

        try:
            final_text = gemini.stream_coach_response(
                prepared.context,
                prepared.history,
                image,
                api_key=settings.gemini_api_key,
                model=settings.chat_model,
                on_delta=on_delta,
            )
            send_chunk(content=final_text, isFinal=True)
            finalize(final_text)
        except Exception as e:
            logger.error(
                "Gemini streaming failed (user=%s, session=%s): %s",
                user_id,
                prepared.session_id,
                e,
            )
            if state["sent_any"]:
                partial = state["latest"]
                send_chunk(error=STREAM_FAILED_MESSAGE, isFinal=True, content=partial)
                if partial:
                    finalize(partial)
                return
            try:
                fallback = _generate_reply(settings, prepared, image)
            except Exception as fallback_error:
                logger.error("Chat fallback reply failed: %s", fallback_error)
                send_chunk(error=STREAM_FAILED_MESSAGE, isFinal=True, content="")
                return
            send_chunk(delta=fallback, content=fallback, isFinal=True)
            finalize(fallback)

    return ChatStream(session_id=prepared.session_id, message_id=message_id, run=run)


def resolve_assistant_settings(stored: Optional[dict]) -> dict:
    """Stored assistant settings with blank or non-string values defaulted."""
    stored = stored or {}
    resolved = {}
    for key, default in DEFAULT_CHAT_SETTINGS.items():
        value = stored.get(key)
        if isinstance(value, str) and value.strip():
            resolved[key] = value.strip()
        else:
            resolved[key] = default
    return resolved


def get_assistant_settings(db: DbClient, user_id: str) -> dict:
    stored = db.get_chat_settings(user_id)
    return {
        "success": True,
        "exists": stored is not None,
        "settings": resolve_assistant_settings(stored),
    }


def save_assistant_settings(db: DbClient, user_id: str, payload: dict) -> dict:
    settings = resolve_assistant_settings(payload)
    now = utc_now_iso()
    existing = db.get_chat_settings(user_id)
    db.save_chat_settings(
        user_id,
        {
            "userId": user_id,
            **settings,
            "createdAt": (existing or {}).get("createdAt") or now,
            "updatedAt": now,
        },
    )
    return {"success": True, "settings": settings}
