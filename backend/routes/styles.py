"""
Photo styling routes: single-image styling, newborn templates, face swap
and the generated photo history.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, UploadFile
from starlette.concurrency import run_in_threadpool

from backend.auth import get_current_user
from backend.config import Settings, get_settings
from backend.db import DbClient
from backend.dependencies import get_db_client, get_marketplace_client, get_storage_client
from backend.errors import ApiError
from backend.routes.common import (
    clean_form_value,
    provider_error,
    read_upload,
    resolve_request_id,
)
from backend.storage import StorageClient
from media import photos
from models.marketplace import MarketplaceClient
from shared.types import AuthUser

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-photo")
async def generate_photo(
    image: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    style_id: Optional[str] = Form(None),
    request_id: Optional[str] = Form(None),
    model: Optional[str] = Form(None),
    x_request_id: Optional[str] = Header(None),
    user: AuthUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    upload = await read_upload(image)
    try:
        return await run_in_threadpool(
            photos.generate_styled_photo,
            settings,
            upload,
            prompt or "",
            clean_form_value(style_id),
            resolve_request_id(request_id, x_request_id),
            clean_form_value(model),
        )
    except photos.PhotoRequestError as e:
        raise ApiError.invalid_request(str(e))
    except Exception as e:
        logger.exception("Style photo generation failed for %s", user.id)
        raise provider_error(e, "Style photo generation failed")


async def _template_request(
    user: AuthUser,
    image: Optional[UploadFile],
    prompt: Optional[str],
    style_id: Optional[str],
    template_url: Optional[str],
    request_id: Optional[str],
    x_request_id: Optional[str],
    model: Optional[str],
    user_image_url: Optional[str],
    user_image_path: Optional[str],
) -> photos.TemplatePhotoRequest:
    return photos.TemplatePhotoRequest(
        user_id=user.id,
        prompt=prompt or "",
        style_id=clean_form_value(style_id),
        template_url=clean_form_value(template_url),
        request_id=resolve_request_id(request_id, x_request_id),
        model=clean_form_value(model),
        upload=await read_upload(image),
        user_image_source=clean_form_value(user_image_url)
        or clean_form_value(user_image_path),
    )


@router.post("/newborn/generate-photo")
async def generate_newborn_photo(
    image: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    style_id: Optional[str] = Form(None),
    template_url: Optional[str] = Form(None),
    request_id: Optional[str] = Form(None),
    model: Optional[str] = Form(None),
    user_image_url: Optional[str] = Form(None),
    user_image_path: Optional[str] = Form(None),
    x_request_id: Optional[str] = Header(None),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    request = await _template_request(
        user,
        image,
        prompt,
        style_id,
        template_url,
        request_id,
        x_request_id,
        model,
        user_image_url,
        user_image_path,
    )
    try:
        return await run_in_threadpool(
            photos.generate_newborn_photo, db, storage, settings, request
        )
    except photos.PhotoRequestError as e:
        raise ApiError.invalid_request(str(e))
    except Exception as e:
        logger.exception("Newborn style photo generation failed for %s", user.id)
        raise provider_error(e, "Newborn style photo generation failed")


@router.post("/face-swap")
async def face_swap(
    image: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    style_id: Optional[str] = Form(None),
    template_url: Optional[str] = Form(None),
    request_id: Optional[str] = Form(None),
    model: Optional[str] = Form(None),
    user_image_url: Optional[str] = Form(None),
    user_image_path: Optional[str] = Form(None),
    x_request_id: Optional[str] = Header(None),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
    marketplace: MarketplaceClient = Depends(get_marketplace_client),
):
    request = await _template_request(
        user,
        image,
        prompt,
        style_id,
        template_url,
        request_id,
        x_request_id,
        model,
        user_image_url,
        user_image_path,
    )
    try:
        return await run_in_threadpool(
            photos.generate_face_swap_photo, db, storage, settings, marketplace, request
        )
    except photos.PhotoRequestError as e:
        raise ApiError.invalid_request(str(e))
    except Exception as e:
        logger.exception("Face swap failed for %s", user.id)
        raise provider_error(e, "Face swap failed")


@router.get("/history")
def history(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    try:
        return {"items": photos.list_photo_history(db, user.id)}
    except Exception:
        logger.exception("Failed to fetch generated history for %s", user.id)
        raise ApiError.internal("Failed to fetch history")


@router.delete("/history/{record_id}")
def delete_history(
    record_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    try:
        return photos.delete_photo_history(db, storage, user.id, record_id)
    except photos.PhotoNotFoundError as e:
        raise ApiError.not_found(str(e))
    except Exception:
        logger.exception("Failed to delete history item %s", record_id)
        raise ApiError.internal("Failed to delete history record")
