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
"""Resolving user and template images from storage paths and URLs."""

import logging
import re
import unicodedata
from typing import Optional
from urllib.parse import unquote, urlparse

import requests

from backend.storage import StorageClient
from shared.types import ResolvedImage

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\-]")
_UNDERSCORE_RUNS = re.compile(r"_+")
_NON_WORD_CHARS = re.compile(r"[^\w]")
_OBJECT_MARKER = "/o/"


class ImageSourceError(Exception):
    pass


def sanitize_filename(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    return _UNDERSCORE_RUNS.sub("_", _UNSAFE_FILENAME_CHARS.sub("_", normalized))


def ext_from_mime(mime_type: str) -> str:
    if "png" in mime_type:
        return "png"
    if "webp" in mime_type:
        return "webp"
    if "heic" in mime_type:
        return "heic"
    return "jpg"


def normalize_key(value: str) -> str:
    """Accent- and punctuation-insensitive key used to match object names."""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_WORD_CHARS.sub("", stripped).lower()


def resolve_storage_object_path(value: str) -> Optional[str]:
    """
    Extracts a bucket object path from a reference.

    Args:
        value (str): A `gs://bucket/path` URI, a Firebase download URL, or a
            plain object path.

    Returns:
        The object path, or None when the reference is blank or is a URL
        that does not point into a bucket.
    """
    raw = (value or "").strip()
    if not raw:
        return None

    if raw.startswith("gs://"):
        without_scheme = raw[len("gs://"):]
        _, sep, path = without_scheme.partition("/")
        if not sep:
            return None
        return path

    if raw.startswith("http://") or raw.startswith("https://"):
        path = urlparse(raw).path
        index = path.find(_OBJECT_MARKER)
        if index < 0:
            return None
        return unquote(path[index + len(_OBJECT_MARKER):])

    return raw


def resolve_existing_template_path(
    storage: StorageClient, value: str
) -> Optional[str]:
    """
    Finds the stored object a template reference points at.

    Falls back to a sibling whose name matches after `normalize_key`; stored
    names and URL-encoded names can differ in Unicode normalization.
    """
    path = resolve_storage_object_path(value)
    if not path:
        return None
    if storage.exists(path):
        return path

    prefix, sep, file_name = path.rpartition("/")
    if not sep:
        return None
    prefix = f"{prefix}/"
    target_key = normalize_key(file_name)
    for candidate in storage.list_paths(prefix):
        if normalize_key(candidate[len(prefix):]) == target_key:
            return candidate
    return None


def _infer_mime_from_url(url: str) -> str:
    lower = url.lower()
    if ".png" in lower:
        return "image/png"
    if ".webp" in lower:
        return "image/webp"
    if ".heic" in lower:
        return "image/heic"
    return "image/jpeg"


def download_image_from_source(storage: StorageClient, source: str) -> ResolvedImage:
    """Loads an image from the bucket when it is there, else over HTTP."""
    path = resolve_storage_object_path(source)
    if path and storage.exists(path):
        mime_type = "image/png" if path.lower().endswith(".png") else "image/jpeg"
        return ResolvedImage(
            content=storage.download_bytes(path), mime_type=mime_type, object_path=path
        )

    if source.startswith("http://") or source.startswith("https://"):
        response = requests.get(source, timeout=REQUEST_TIMEOUT)
        if not response.ok:
            raise ImageSourceError(
                f"Unable to download source image from URL ({response.status_code})"
            )
        content_type = (response.headers.get("content-type") or "").lower().strip()
        mime_type = (
            content_type if content_type.startswith("image/") else _infer_mime_from_url(source)
        )
        return ResolvedImage(content=response.content, mime_type=mime_type, object_path=None)

    raise ImageSourceError("Source image could not be resolved from storage/url")


def signed_or_public_url(storage: StorageClient, path: str) -> str:
    try:
        return storage.signed_url(path)
    except Exception as e:
        logger.debug("Signed URL unavailable for %s: %s", path, e)
        return storage.public_url(path)
