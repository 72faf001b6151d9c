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

from dataclasses import dataclass, field
from enum import StrEnum
from typing import List, Optional


class VideoStatus(StrEnum):
    QUEUED = "QUEUED"
    SUBMITTED = "SUBMITTED"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


TERMINAL_VIDEO_STATUSES = (VideoStatus.SUCCEEDED, VideoStatus.FAILED)


class VideoKind(StrEnum):
    IMAGE_TO_VIDEO = "image_to_video"
    VIDEO_SWAP = "video_swap"


@dataclass
class AuthUser:
    """The authenticated caller, as decoded from the ID token."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass
class ImagePayload:
    """A base64 encoded image attached to a request or returned by a provider."""

    data: str
    mime_type: str


@dataclass
class GeneratedImage:
    data: str
    mime_type: str = "image/png"
    text: Optional[str] = None


@dataclass
class HistoryTurn:
    role: str
    content: str


@dataclass
class ResolvedImage:
    """Image bytes loaded from storage or a remote URL."""

    content: bytes
    mime_type: str
    object_path: Optional[str] = None


@dataclass
class UploadedFile:
    """A multipart upload read into memory."""

    filename: str
    content: bytes
    content_type: str


@dataclass
class VideoJob:
    """Bookkeeping for a long-running video generation."""

    id: str
    user_id: str
    kind: VideoKind
    prompt: str
    status: VideoStatus = VideoStatus.QUEUED
    stage: str = "QUEUED"
    progress_percent: float = 0.0
    input_image_path: Optional[str] = None
    source_video_url: Optional[str] = None
    background_prompt: Optional[str] = None
    duration: int = 5
    prediction_ids: List[str] = field(default_factory=list)
    output_video_path: Optional[str] = None
    output_video_url: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def queue_key(self) -> str:
        return f"{self.user_id}:{self.id}"

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "kind": str(self.kind),
            "prompt": self.prompt,
            "status": str(self.status),
            "stage": self.stage,
            "progressPercent": self.progress_percent,
            "inputImagePath": self.input_image_path,
            "sourceVideoUrl": self.source_video_url,
            "backgroundPrompt": self.background_prompt,
            "duration": self.duration,
            "predictionIds": list(self.prediction_ids),
            "outputVideoPath": self.output_video_path,
            "outputVideoUrl": self.output_video_url,
            "error": self.error,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VideoJob":
        return cls(
            id=data["id"],
            user_id=data["userId"],
            kind=VideoKind(data.get("kind") or VideoKind.IMAGE_TO_VIDEO),
            prompt=data.get("prompt") or "",
            status=VideoStatus(data.get("status") or VideoStatus.QUEUED),
            stage=data.get("stage") or "QUEUED",
            progress_percent=float(data.get("progressPercent") or 0.0),
            input_image_path=data.get("inputImagePath"),
            source_video_url=data.get("sourceVideoUrl"),
            background_prompt=data.get("backgroundPrompt"),
            duration=int(data.get("duration") or 5),
            prediction_ids=list(data.get("predictionIds") or []),
            output_video_path=data.get("outputVideoPath"),
            output_video_url=data.get("outputVideoUrl"),
            error=data.get("error"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )
