"""
Video job routes. Jobs are recorded and queued here; the worker (or an
inline background task in development) runs them.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool

from backend.auth import get_current_user
from backend.config import Settings, get_settings
from backend.db import DbClient
from backend.dependencies import (
    get_db_client,
    get_marketplace_client,
    get_queue_client,
    get_storage_client,
)
from backend.errors import ApiError
from backend.queue import JobQueue
from backend.routes.common import clean_form_value, read_upload
from backend.schemas import VideoJobResponse, VideoListResponse
from backend.storage import StorageClient
from media import image_sources, videos
from models.marketplace import MarketplaceClient
from shared.types import AuthUser, VideoJob

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(job: VideoJob) -> VideoJobResponse:
    return VideoJobResponse(**job.as_dict())


def _dispatch(
    job: VideoJob,
    settings: Settings,
    background_tasks: BackgroundTasks,
    db: DbClient,
    storage: StorageClient,
    queue: JobQueue,
    marketplace: MarketplaceClient,
) -> None:
    inline = settings.dispatch_video_jobs_inline
    if inline:
        background_tasks.add_task(videos.run_video_job, db, storage, marketplace, job)
    else:
        queue.enqueue(job.queue_key)
    logger.info("Video job %s dispatched (inline=%s)", job.id, inline)


@router.post("/generate", response_model=VideoJobResponse, status_code=202)
async def generate_video(
    background_tasks: BackgroundTasks,
    image: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    queue: JobQueue = Depends(get_queue_client),
    settings: Settings = Depends(get_settings),
    marketplace: MarketplaceClient = Depends(get_marketplace_client),
):
    upload = await read_upload(image)
    try:
        job = await run_in_threadpool(
            videos.create_image_to_video_job,
            db,
            storage,
            user.id,
            prompt or "",
            upload,
            clean_form_value(image_url),
            clean_form_value(duration),
        )
    except videos.VideoRequestError as e:
        raise ApiError.invalid_request(str(e))
    except image_sources.ImageSourceError as e:
        raise ApiError.invalid_request(str(e))
    except Exception:
        logger.exception("Video generation request failed for %s", user.id)
        raise ApiError.internal("Video generation request failed")

    _dispatch(job, settings, background_tasks, db, storage, queue, marketplace)
    return _to_response(job)


@router.post("/swap", response_model=VideoJobResponse, status_code=202)
async def swap_video(
    background_tasks: BackgroundTasks,
    video: Optional[UploadFile] = File(None),
    image: Optional[UploadFile] = File(None),
    video_url: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None),
    background_prompt: Optional[str] = Form(None),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    queue: JobQueue = Depends(get_queue_client),
    settings: Settings = Depends(get_settings),
    marketplace: MarketplaceClient = Depends(get_marketplace_client),
):
    video_upload = await read_upload(video)
    image_upload = await read_upload(image)
    try:
        job = await run_in_threadpool(
            videos.create_video_swap_job,
            db,
            storage,
            user.id,
            clean_form_value(video_url),
            video_upload,
            image_upload,
            clean_form_value(image_url),
            background_prompt,
        )
    except videos.VideoRequestError as e:
        raise ApiError.invalid_request(str(e))
    except image_sources.ImageSourceError as e:
        raise ApiError.invalid_request(str(e))
    except Exception:
        logger.exception("Video swap request failed for %s", user.id)
        raise ApiError.internal("Video swap request failed")

    _dispatch(job, settings, background_tasks, db, storage, queue, marketplace)
    return _to_response(job)


@router.get("", response_model=VideoListResponse)
def list_videos(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return VideoListResponse(
        items=[_to_response(job) for job in videos.list_video_jobs(db, user.id)]
    )


@router.get("/{video_id}", response_model=VideoJobResponse)
def get_video(
    video_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        job = videos.get_video_job(db, user.id, video_id)
    except videos.VideoNotFoundError as e:
        raise ApiError.not_found(str(e))
    return _to_response(job)
