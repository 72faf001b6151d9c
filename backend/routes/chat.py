"""
Coach chat routes. Streamed replies are delivered over the realtime socket
after the HTTP response has been sent.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from backend.auth import get_current_user
from backend.config import Settings, get_settings
from backend.db import DbClient
from backend.dependencies import get_connection_hub, get_db_client
from backend.errors import ApiError
from backend.realtime import ConnectionHub
from backend.schemas import (
    AssistantSettingsRequest,
    ChatReplyResponse,
    ChatRequest,
    ChatStreamResponse,
    ChildSessionRequest,
)
from coach import chat, user_info
from shared.types import AuthUser, ImagePayload

logger = logging.getLogger(__name__)

router = APIRouter()


def _image_payload(payload: ChatRequest) -> ImagePayload | None:
    image = payload.image
    if image is None:
        return None
    if (
        not isinstance(image.data, str)
        or not isinstance(image.mimeType, str)
        or not image.mimeType.startswith("image/")
    ):
        raise ApiError.invalid_request("Only image attachments are supported")
    return ImagePayload(data=image.data, mime_type=image.mimeType)


def _run_stream(stream: chat.ChatStream) -> None:
    try:
        stream.run()
    except Exception:
        logger.exception("Chat stream failed (session=%s)", stream.session_id)


@router.post("", response_model=ChatReplyResponse | ChatStreamResponse)
def send_message(
    payload: ChatRequest,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
    hub: ConnectionHub = Depends(get_connection_hub),
):
    if not payload.message:
        raise ApiError.invalid_request("message is required")
    image = _image_payload(payload)

    try:
        info = user_info.ensure_user_info(
            db, user.id, {"name": user.name, "email": user.email}
        )
        if payload.stream:
            stream = chat.handle_chat_message_stream(
                db,
                settings,
                info,
                payload.message,
                hub.send_to_user,
                session_id=payload.sessionId,
                context_tags=payload.context,
                image=image,
            )
            background_tasks.add_task(_run_stream, stream)
            return ChatStreamResponse(
                messageId=stream.message_id, sessionId=stream.session_id
            )

        result = chat.handle_chat_message(
            db,
            settings,
            info,
            payload.message,
            session_id=payload.sessionId,
            context_tags=payload.context,
            image=image,
        )
    except Exception:
        logger.exception("Chat request failed for %s", user.id)
        raise ApiError.internal("Chat request failed")
    return ChatReplyResponse(**result)


@router.get("/sessions")
def list_sessions(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        return {"sessions": chat.list_chat_sessions(db, user.id)}
    except Exception:
        logger.exception("Failed to list chat sessions for %s", user.id)
        raise ApiError.internal("Failed to list chat sessions")


@router.get("/sessions/{session_id}/messages")
def list_messages(
    session_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        return {"messages": chat.list_chat_messages(db, session_id)}
    except Exception:
        logger.exception("Failed to list chat messages for %s", session_id)
        raise ApiError.internal("Failed to list chat messages")


@router.post("/sessions/child")
def create_child_session(
    payload: ChildSessionRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        session = chat.create_child_chat_session(
            db, user.id, payload.childId, payload.childName
        )
    except chat.ChatValidationError as e:
        raise ApiError.invalid_request(str(e))
    except Exception:
        logger.exception("Failed to create child chat session for %s", user.id)
        raise ApiError.internal("Failed to create child chat session")
    return {"success": True, "session": session}


@router.get("/settings/assistant")
def get_assistant_settings(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        return chat.get_assistant_settings(db, user.id)
    except Exception:
        logger.exception("Failed to fetch assistant settings for %s", user.id)
        raise ApiError.internal("Failed to fetch assistant settings")


@router.post("/settings/assistant")
def save_assistant_settings(
    payload: AssistantSettingsRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        return chat.save_assistant_settings(db, user.id, payload.model_dump())
    except Exception:
        logger.exception("Failed to save assistant settings for %s", user.id)
        raise ApiError.internal("Failed to save assistant settings")
