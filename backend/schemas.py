"""
Pydantic schemas for the Bebek AI API.

Request bodies keep fields optional where the routes report missing values
with their own messages.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"


class UserInfoUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    name: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[str] = None
    height_cm: Optional[float] = None
    current_weight_kg: Optional[float] = None
    target_weight_kg: Optional[float] = None
    activity_level: Optional[
        Literal["sedentary", "light", "moderate", "active", "very_active"]
    ] = None
    goal: Optional[Literal["lose", "maintain", "gain"]] = None
    language: Optional[str] = None
    timezone: Optional[str] = None
    onboarding_completed: Optional[bool] = None
    onboarding_device_id: Optional[str] = None
    onboarding_completed_at: Optional[str] = None


class UserInfoResponse(BaseModel):
    user: dict


class DailyStatsResponse(BaseModel):
    stats: dict


class AddChildRequest(BaseModel):
    name: Optional[str] = None
    gender: Optional[str] = None
    birthDate: Optional[str] = None
    avatarUri: Optional[str] = None


class ChatImage(BaseModel):
    data: Any = None
    mimeType: Any = None


class ChatRequest(BaseModel):
    message: Optional[str] = None
    sessionId: Optional[str] = None
    context: Optional[dict] = None
    stream: bool = False
    image: Optional[ChatImage] = None


class ChatReplyResponse(BaseModel):
    reply: str
    sessionId: str


class ChatStreamResponse(BaseModel):
    streaming: Literal[True] = True
    messageId: str
    sessionId: str


class ChildSessionRequest(BaseModel):
    childId: Optional[str] = None
    childName: Optional[str] = None


class AssistantSettingsRequest(BaseModel):
    tone: Any = None
    mood: Any = None
    responseLength: Any = None
    emojiStyle: Any = None


class VideoJobResponse(BaseModel):
    id: str
    kind: str
    status: str
    stage: Optional[str] = None
    progressPercent: float = 0.0
    prompt: Optional[str] = None
    inputImagePath: Optional[str] = None
    sourceVideoUrl: Optional[str] = None
    backgroundPrompt: Optional[str] = None
    duration: int = 5
    predictionIds: list[str] = Field(default_factory=list)
    outputVideoPath: Optional[str] = None
    outputVideoUrl: Optional[str] = None
    error: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class VideoListResponse(BaseModel):
    items: list[VideoJobResponse]
