"""
Helpers shared by the route modules: upload limits, request ids and the
mapping from provider failures to API errors.
"""

from __future__ import annotations

from typing import Optional

from fastapi import UploadFile

from backend.errors import ApiError
from models.marketplace import MarketplaceConfigurationError
from shared.constants import MAX_UPLOAD_BYTES
from shared.types import UploadedFile

CONFIG_ERROR_MARKER = "gemini_api_key"


async def read_upload(file: Optional[UploadFile]) -> Optional[UploadedFile]:
    """Reads a multipart file, rejecting anything over the upload limit."""
    if file is None or not file.filename:
        return None
    content = await file.read(MAX_UPLOAD_BYTES + 1)
    if len(content) > MAX_UPLOAD_BYTES:
        raise ApiError.invalid_request("File too large (max 12 MiB)")
    return UploadedFile(
        filename=file.filename,
        content=content,
        content_type=file.content_type or "application/octet-stream",
    )


def clean_form_value(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def resolve_request_id(
    form_value: Optional[str], header_value: Optional[str]
) -> Optional[str]:
    return clean_form_value(form_value) or clean_form_value(header_value)


def provider_error(error: Exception, fallback: str) -> ApiError:
    """Missing provider credentials become 503, anything else 500."""
    message = str(error) or fallback
    if (
        CONFIG_ERROR_MARKER in message.lower()
        or isinstance(error, MarketplaceConfigurationError)
    ):
        return ApiError.service_unavailable(message)
    return ApiError.internal(message)
