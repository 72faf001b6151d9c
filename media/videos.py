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
"""
Long-running video jobs: image-to-video and the person-then-background
video swap. Jobs are recorded first and run later by the worker.
"""

import logging
import time
from typing import Optional

from backend.db import DbClient
from backend.storage import StorageClient
from media import image_sources
from models import prompts
from models.marketplace import MarketplaceClient, Prediction, output_url, to_data_uri
from shared.constants import BLOB_CACHE_CONTROL, VIDEO_HISTORY_LIMIT
from shared.types import UploadedFile, VideoJob, VideoKind, VideoStatus
from shared.utils import get_unique_id, utc_now_iso

logger = logging.getLogger(__name__)

ALLOWED_DURATIONS = (5, 10)
DEFAULT_DURATION = 5
VIDEO_MIME_TYPE = "video/mp4"

STAGE_QUEUED = "QUEUED"
STAGE_SUBMITTED = "SUBMITTED"
STAGE_GENERATING = "GENERATING"
STAGE_PERSON_SWAP = "PERSON_SWAP"
STAGE_BACKGROUND_SWAP = "BACKGROUND_SWAP"
STAGE_STORING = "STORING"
STAGE_SUCCESS = "SUCCESS"
STAGE_ERROR = "ERROR"


class VideoRequestError(ValueError):
    pass


class VideoNotFoundError(LookupError):
    pass


def parse_duration(value) -> int:
    if value in (None, ""):
        return DEFAULT_DURATION
    try:
        duration = int(value)
    except (TypeError, ValueError):
        raise VideoRequestError("duration must be 5 or 10")
    if duration not in ALLOWED_DURATIONS:
        raise VideoRequestError("duration must be 5 or 10")
    return duration


def _upload_path(user_id: str, filename: str) -> str:
    now_ms = int(time.time() * 1000)
    return f"users/{user_id}/uploads/videos/{now_ms}-{image_sources.sanitize_filename(filename)}"


def _store_image_input(
    storage: StorageClient,
    user_id: str,
    upload: Optional[UploadedFile],
    image_url: Optional[str],
) -> str:
    """Returns the bucket path of the baby image, copying remote images in."""
    if upload is not None:
        mime_type = upload.content_type or "image/jpeg"
        name = upload.filename or f"baby.{image_sources.ext_from_mime(mime_type)}"
        path = _upload_path(user_id, name)
        storage.upload_bytes(path, upload.content, mime_type, cache_control=BLOB_CACHE_CONTROL)
        return path

    resolved = image_sources.download_image_from_source(storage, image_url.strip())
    if resolved.object_path:
        return resolved.object_path
    path = _upload_path(user_id, f"remote.{image_sources.ext_from_mime(resolved.mime_type)}")
    storage.upload_bytes(
        path, resolved.content, resolved.mime_type, cache_control=BLOB_CACHE_CONTROL
    )
    return path


def _new_job(user_id: str, kind: VideoKind, prompt: str, **fields) -> VideoJob:
    now = utc_now_iso()
    return VideoJob(
        id=get_unique_id(),
        user_id=user_id,
        kind=kind,
        prompt=prompt,
        status=VideoStatus.QUEUED,
        stage=STAGE_QUEUED,
        created_at=now,
        updated_at=now,
        **fields,
    )


def create_image_to_video_job(
    db: DbClient,
    storage: StorageClient,
    user_id: str,
    prompt: str,
    upload: Optional[UploadedFile] = None,
    image_url: Optional[str] = None,
    duration=None,
) -> VideoJob:
    prompt = (prompt or "").strip()
    if not prompt:
        raise VideoRequestError("prompt is required")
    if upload is None and not (image_url or "").strip():
        raise VideoRequestError("image file or image_url is required")
    duration = parse_duration(duration)

    input_path = _store_image_input(storage, user_id, upload, image_url)
    job = _new_job(
        user_id,
        VideoKind.IMAGE_TO_VIDEO,
        prompt,
        input_image_path=input_path,
        duration=duration,
    )
    db.save_video_job(job)
    logger.info("Video job %s created (kind=%s, user=%s)", job.id, job.kind, user_id)
    return job


def create_video_swap_job(
    db: DbClient,
    storage: StorageClient,
    user_id: str,
    video_url: Optional[str] = None,
    video_upload: Optional[UploadedFile] = None,
    image_upload: Optional[UploadedFile] = None,
    image_url: Optional[str] = None,
    background_prompt: Optional[str] = None,
) -> VideoJob:
    video_url = (video_url or "").strip()
    if video_upload is None and not video_url:
        raise VideoRequestError("video file or video_url is required")
    if image_upload is None and not (image_url or "").strip():
        raise VideoRequestError("image file or image_url is required")

    if video_upload is not None:
        path = _upload_path(user_id, video_upload.filename or "source.mp4")
        storage.upload_bytes(
            path,
            video_upload.content,
            video_upload.content_type or VIDEO_MIME_TYPE,
            cache_control=BLOB_CACHE_CONTROL,
        )
        video_url = image_sources.signed_or_public_url(storage, path)

    input_path = _store_image_input(storage, user_id, image_upload, image_url)
    background_prompt = (background_prompt or "").strip() or None
    job = _new_job(
        user_id,
        VideoKind.VIDEO_SWAP,
        background_prompt or "",
        input_image_path=input_path,
        source_video_url=video_url,
        background_prompt=background_prompt,
    )
    db.save_video_job(job)
    logger.info("Video job %s created (kind=%s, user=%s)", job.id, job.kind, user_id)
    return job


def get_video_job(db: DbClient, user_id: str, job_id: str) -> VideoJob:
    job = db.get_video_job(user_id, job_id)
    if job is None:
        raise VideoNotFoundError("Video not found")
    return job


def list_video_jobs(db: DbClient, user_id: str) -> list[VideoJob]:
    return db.list_video_jobs(user_id, VIDEO_HISTORY_LIMIT)


def _update_progress(
    db: DbClient,
    job: VideoJob,
    *,
    status: VideoStatus,
    stage: str,
    progress_percent: float,
) -> None:
    job.status = status
    job.stage = stage
    job.progress_percent = progress_percent
    job.updated_at = utc_now_iso()
    db.save_video_job(job)


def _status_reporter(db: DbClient, job: VideoJob, stage: str, progress_percent: float):
    """Records prediction ids and flips the job to PROCESSING once work starts."""

    def on_status(prediction: Prediction) -> None:
        changed = False
        if prediction.id and prediction.id not in job.prediction_ids:
            job.prediction_ids.append(prediction.id)
            changed = True
        if prediction.status == "processing" and job.status != VideoStatus.PROCESSING:
            job.status = VideoStatus.PROCESSING
            changed = True
        if changed:
            job.stage = stage
            job.progress_percent = max(job.progress_percent, progress_percent)
            job.updated_at = utc_now_iso()
            db.save_video_job(job)

    return on_status


def _input_image_uri(storage: StorageClient, path: str) -> str:
    mime_type = "image/png" if path.lower().endswith(".png") else "image/jpeg"
    return to_data_uri(storage.download_bytes(path), mime_type)


def _run_image_to_video(
    db: DbClient, storage: StorageClient, marketplace: MarketplaceClient, job: VideoJob
) -> str:
    _update_progress(
        db, job, status=VideoStatus.PROCESSING, stage=STAGE_GENERATING, progress_percent=0.1
    )
    prediction = marketplace.image_to_video(
        _input_image_uri(storage, job.input_image_path),
        prompts.make_video_motion_prompt(job.prompt),
        duration=job.duration,
        on_status=_status_reporter(db, job, STAGE_GENERATING, 0.15),
    )
    return output_url(prediction)


def _run_video_swap(
    db: DbClient, storage: StorageClient, marketplace: MarketplaceClient, job: VideoJob
) -> str:
    _update_progress(
        db, job, status=VideoStatus.PROCESSING, stage=STAGE_PERSON_SWAP, progress_percent=0.1
    )
    person = marketplace.swap_video_person(
        job.source_video_url,
        _input_image_uri(storage, job.input_image_path),
        on_status=_status_reporter(db, job, STAGE_PERSON_SWAP, 0.15),
    )
    result_url = output_url(person)
    if not job.background_prompt:
        return result_url

    _update_progress(
        db,
        job,
        status=VideoStatus.PROCESSING,
        stage=STAGE_BACKGROUND_SWAP,
        progress_percent=0.5,
    )
    background = marketplace.swap_video_background(
        result_url,
        prompts.make_video_background_prompt(job.background_prompt),
        on_status=_status_reporter(db, job, STAGE_BACKGROUND_SWAP, 0.55),
    )
    return output_url(background)


def run_video_job(
    db: DbClient, storage: StorageClient, marketplace: MarketplaceClient, job: VideoJob
) -> VideoJob:
    """
    Runs a queued job to completion, storing the result as an mp4.

    Failures are recorded on the job (status FAILED with the error message)
    rather than raised.
    """
    if job.status in (VideoStatus.SUCCEEDED, VideoStatus.FAILED):
        logger.info("[%s] Video job already %s; skipping", job.id, job.status)
        return job

    started = time.time()
    _update_progress(
        db, job, status=VideoStatus.SUBMITTED, stage=STAGE_SUBMITTED, progress_percent=0.05
    )
    try:
        if job.kind == VideoKind.VIDEO_SWAP:
            result_url = _run_video_swap(db, storage, marketplace, job)
        else:
            result_url = _run_image_to_video(db, storage, marketplace, job)

        _update_progress(
            db, job, status=VideoStatus.PROCESSING, stage=STAGE_STORING, progress_percent=0.9
        )
        content, _ = marketplace.download(result_url)
        output_path = f"users/{job.user_id}/generated/videos/{job.id}.mp4"
        storage.upload_bytes(
            output_path, content, VIDEO_MIME_TYPE, cache_control=BLOB_CACHE_CONTROL
        )
        job.output_video_path = output_path
        job.output_video_url = image_sources.signed_or_public_url(storage, output_path)
        job.error = None
        _update_progress(
            db, job, status=VideoStatus.SUCCEEDED, stage=STAGE_SUCCESS, progress_percent=1.0
        )
        logger.info(
            "[%s] Video job succeeded in %.1fs (%d bytes)",
            job.id,
            time.time() - started,
            len(content),
        )
    except Exception as e:
        logger.exception("[%s] Video job failed: %s", job.id, e)
        job.error = str(e) or e.__class__.__name__
        _update_progress(
            db,
            job,
            status=VideoStatus.FAILED,
            stage=STAGE_ERROR,
            progress_percent=job.progress_percent,
        )
    return job
