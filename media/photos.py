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
Photo pipelines: single-image styling, template-guided newborn scenes, the
two-step face swap, and the generated photo history.
"""

import base64
import logging
import time
from dataclasses import dataclass
from typing import Optional

from backend.config import Settings
from backend.db import DbClient
from backend.storage import StorageClient
from media import image_sources
from models import gemini
from models.marketplace import MarketplaceClient, output_url, to_data_uri
from shared.constants import BLOB_CACHE_CONTROL, NEWBORN_TEMPLATE_URLS, PHOTO_HISTORY_LIMIT
from shared.types import GeneratedImage, ImagePayload, UploadedFile
from shared.utils import get_unique_id, to_iso_string

logger = logging.getLogger(__name__)

NEWBORN_STYLE_TYPE = "yenidogan"
FACE_SWAP_STYLE_TYPE = "faceswap"
DEFAULT_STYLE_TYPE = "photo"
PROMPT_PREVIEW_LENGTH = 180


class PhotoRequestError(ValueError):
    pass


class PhotoNotFoundError(LookupError):
    pass


@dataclass
class TemplatePhotoRequest:
    user_id: str
    prompt: str
    style_id: Optional[str] = None
    template_url: Optional[str] = None
    request_id: Optional[str] = None
    model: Optional[str] = None
    upload: Optional[UploadedFile] = None
    user_image_source: Optional[str] = None


@dataclass
class _UserImage:
    content: bytes
    mime_type: str
    path: str

    def as_payload(self) -> ImagePayload:
        return ImagePayload(
            data=base64.b64encode(self.content).decode("ascii"),
            mime_type=self.mime_type,
        )


def generate_styled_photo(
    settings: Settings,
    upload: Optional[UploadedFile],
    prompt: str,
    style_id: Optional[str] = None,
    request_id: Optional[str] = None,
    model: Optional[str] = None,
) -> dict:
    prompt = (prompt or "").strip()
    if upload is None:
        raise PhotoRequestError("image file is required")
    if not prompt:
        raise PhotoRequestError("prompt is required")

    generated = gemini.generate_styled_photo(
        ImagePayload(
            data=base64.b64encode(upload.content).decode("ascii"),
            mime_type=upload.content_type or "image/jpeg",
        ),
        prompt,
        api_key=settings.gemini_api_key,
        model=model or settings.image_model,
        allow_mock=not settings.is_production,
    )
    return {
        "request_id": request_id,
        "style_id": style_id,
        "prompt": prompt,
        "image": {"data": generated.data, "mimeType": generated.mime_type},
        "provider_text": generated.text,
    }


def resolve_template_url(style_id: Optional[str], template_url: Optional[str]) -> str:
    resolved = (template_url or "").strip()
    if not resolved and style_id:
        resolved = NEWBORN_TEMPLATE_URLS.get(style_id, "")
    if not resolved:
        raise PhotoRequestError("A valid style_id (n1-n14) or template_url is required")
    return resolved


def _validate_template_request(request: TemplatePhotoRequest) -> str:
    request.prompt = (request.prompt or "").strip()
    if not request.prompt:
        raise PhotoRequestError("prompt is required")
    template_url = resolve_template_url(request.style_id, request.template_url)
    if request.upload is None and not (request.user_image_source or "").strip():
        raise PhotoRequestError("image file or user_image_url is required")
    return template_url


def _load_user_image(
    storage: StorageClient, request: TemplatePhotoRequest, folder: str
) -> _UserImage:
    """Stores an upload under the user's uploads, or resolves the given source."""
    now_ms = int(time.time() * 1000)
    if request.upload is not None:
        mime_type = request.upload.content_type or "image/jpeg"
        name = image_sources.sanitize_filename(
            request.upload.filename or f"user.{image_sources.ext_from_mime(mime_type)}"
        )
        path = f"users/{request.user_id}/uploads/{folder}/{now_ms}-{name}"
        storage.upload_bytes(
            path, request.upload.content, mime_type, cache_control=BLOB_CACHE_CONTROL
        )
        return _UserImage(content=request.upload.content, mime_type=mime_type, path=path)

    resolved = image_sources.download_image_from_source(
        storage, request.user_image_source.strip()
    )
    path = resolved.object_path or f"users/{request.user_id}/uploads/{folder}/{now_ms}-remote.jpg"
    return _UserImage(
        content=resolved.content, mime_type=resolved.mime_type or "image/jpeg", path=path
    )


def _load_template(storage: StorageClient, template_url: str):
    stored_path = image_sources.resolve_existing_template_path(storage, template_url)
    return image_sources.download_image_from_source(storage, stored_path or template_url)


def _save_output(
    storage: StorageClient,
    user_id: str,
    folder: str,
    content: bytes,
    mime_type: str,
) -> tuple[str, str]:
    record_id = get_unique_id()
    ext = image_sources.ext_from_mime(mime_type)
    path = f"users/{user_id}/generated/{folder}/{record_id}.{ext}"
    storage.upload_bytes(path, content, mime_type, cache_control=BLOB_CACHE_CONTROL)
    return record_id, path


def _persist_and_respond(
    db: DbClient,
    storage: StorageClient,
    request: TemplatePhotoRequest,
    style_type: str,
    template_url: str,
    user_image: _UserImage,
    record_id: str,
    output_path: str,
    output_mime: str,
    provider_text: Optional[str],
) -> dict:
    input_url = image_sources.signed_or_public_url(storage, user_image.path)
    output_image_url = image_sources.signed_or_public_url(storage, output_path)
    db.save_generated_photo(
        request.user_id,
        record_id,
        {
            "id": record_id,
            "styleType": style_type,
            "styleId": request.style_id,
            "prompt": request.prompt,
            "requestId": request.request_id,
            "inputImagePath": user_image.path,
            "inputImageUrl": input_url,
            "templateUrl": template_url,
            "outputImagePath": output_path,
            "outputImageUrl": output_image_url,
            "outputMimeType": output_mime,
            "providerText": provider_text,
        },
    )
    return {
        "request_id": request.request_id,
        "style_id": request.style_id,
        "user_id": request.user_id,
        "prompt": request.prompt,
        "template_url": template_url,
        "input": {"path": user_image.path, "url": input_url},
        "output": {
            "id": record_id,
            "path": output_path,
            "url": output_image_url,
            "mimeType": output_mime,
        },
        "provider_text": provider_text,
    }


def generate_newborn_photo(
    db: DbClient, storage: StorageClient, settings: Settings, request: TemplatePhotoRequest
) -> dict:
    """
    Places the user's baby into one of the newborn studio scenes.

    The template is fetched so a broken reference fails the request before the
    provider call; the scene itself comes from the prompt.
    """
    template_url = _validate_template_request(request)
    user_image = _load_user_image(storage, request, "newborn")
    template = _load_template(storage, template_url)
    model = request.model or settings.image_model

    logger.info(
        "Newborn generation request prepared (user=%s, style=%s, request=%s, "
        "model=%s, prompt_length=%d, user_image_bytes=%d, template_bytes=%d): %s",
        request.user_id,
        request.style_id,
        request.request_id,
        model,
        len(request.prompt),
        len(user_image.content),
        len(template.content),
        request.prompt[:PROMPT_PREVIEW_LENGTH],
    )
    generated = gemini.generate_styled_photo_with_template(
        user_image.as_payload(),
        request.prompt,
        api_key=settings.gemini_api_key,
        model=model,
        allow_mock=not settings.is_production,
    )

    output_mime = generated.mime_type or "image/png"
    output_bytes = base64.b64decode(generated.data)
    record_id, output_path = _save_output(
        storage, request.user_id, "newborn", output_bytes, output_mime
    )
    response = _persist_and_respond(
        db,
        storage,
        request,
        NEWBORN_STYLE_TYPE,
        template_url,
        user_image,
        record_id,
        output_path,
        output_mime,
        generated.text,
    )
    logger.info(
        "Newborn generation completed (user=%s, record=%s, output_bytes=%d)",
        request.user_id,
        record_id,
        len(output_bytes),
    )
    return response


def _swap_face(
    marketplace: MarketplaceClient, user_image: _UserImage, scene: GeneratedImage
) -> tuple[bytes, str]:
    prediction = marketplace.swap_face(
        source_image=to_data_uri(user_image.content, user_image.mime_type),
        target_image=f"data:{scene.mime_type};base64,{scene.data}",
    )
    content, content_type = marketplace.download(output_url(prediction))
    if not content_type.startswith("image/"):
        content_type = scene.mime_type or "image/png"
    return content, content_type


def generate_face_swap_photo(
    db: DbClient,
    storage: StorageClient,
    settings: Settings,
    marketplace: MarketplaceClient,
    request: TemplatePhotoRequest,
) -> dict:
    """
    Two-step face swap.

    Step one adapts the template scene around the baby with Gemini, using the
    template image as the composition reference. Step two swaps the baby's
    face from the original photo onto that scene through the marketplace so
    the identity matches the source exactly.
    """
    template_url = _validate_template_request(request)
    user_image = _load_user_image(storage, request, "faceswap")
    template = _load_template(storage, template_url)
    allow_mock = not settings.is_production

    scene = gemini.generate_styled_photo_with_template(
        user_image.as_payload(),
        request.prompt,
        ImagePayload(
            data=base64.b64encode(template.content).decode("ascii"),
            mime_type=template.mime_type,
        ),
        api_key=settings.gemini_api_key,
        model=request.model or settings.image_model,
        allow_mock=allow_mock,
    )
    steps = ["scene"]

    if marketplace.is_available() or not allow_mock:
        started = time.time()
        output_bytes, output_mime = _swap_face(marketplace, user_image, scene)
        steps.append("face_swap")
        logger.info(
            "Face swap step completed in %.2fs (user=%s, output_bytes=%d)",
            time.time() - started,
            request.user_id,
            len(output_bytes),
        )
    else:
        logger.warning(
            "REPLICATE_API_TOKEN missing; returning the scene image without face swap"
        )
        output_bytes = base64.b64decode(scene.data)
        output_mime = scene.mime_type or "image/png"

    record_id, output_path = _save_output(
        storage, request.user_id, "faceswap", output_bytes, output_mime
    )
    response = _persist_and_respond(
        db,
        storage,
        request,
        FACE_SWAP_STYLE_TYPE,
        template_url,
        user_image,
        record_id,
        output_path,
        output_mime,
        scene.text,
    )
    response["steps"] = steps
    return response


def list_photo_history(db: DbClient, user_id: str) -> list[dict]:
    items = []
    for data in db.list_generated_photos(user_id, PHOTO_HISTORY_LIMIT):
        items.append(
            {
                "id": data.get("id"),
                "styleType": data.get("styleType") or DEFAULT_STYLE_TYPE,
                "styleId": data.get("styleId"),
                "prompt": data.get("prompt"),
                "outputImageUrl": data.get("outputImageUrl"),
                "outputImagePath": data.get("outputImagePath"),
                "outputMimeType": data.get("outputMimeType"),
                "inputImageUrl": data.get("inputImageUrl"),
                "templateUrl": data.get("templateUrl"),
                "createdAt": to_iso_string(data.get("createdAt")),
            }
        )
    return items


def delete_photo_history(
    db: DbClient, storage: StorageClient, user_id: str, record_id: str
) -> dict:
    record = db.get_generated_photo(user_id, record_id)
    if record is None:
        raise PhotoNotFoundError("History record not found")

    # Inputs may point at shared templates or other users' objects.
    owned_prefix = f"users/{user_id}/"
    paths = [
        p
        for p in (record.get("outputImagePath"), record.get("inputImagePath"))
        if p and p.startswith(owned_prefix)
    ]
    for path in paths:
        try:
            storage.delete(path)
        except Exception as e:
            logger.warning(
                "Failed to delete storage object %s for history item %s: %s",
                path,
                record_id,
                e,
            )

    db.delete_generated_photo(user_id, record_id)
    return {"success": True, "id": record_id}
