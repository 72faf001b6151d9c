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
"""Children registered by a parent (`AddChild` collection)."""

import logging
from typing import Optional

from backend.db import DbClient
from shared.constants import CHILD_GENDERS
from shared.types import AuthUser
from shared.utils import parse_iso_timestamp, utc_now_iso

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "name, gender, birthDate and avatarUri are required"


class ChildValidationError(ValueError):
    pass


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def add_child(db: DbClient, user: AuthUser, payload: dict) -> dict:
    name = _clean(payload.get("name"))
    gender = payload.get("gender")
    birth_date = _clean(payload.get("birthDate"))
    avatar_uri = _clean(payload.get("avatarUri"))
    if not name or gender not in CHILD_GENDERS or not birth_date or not avatar_uri:
        raise ChildValidationError(REQUIRED_FIELDS_MESSAGE)

    now = utc_now_iso()
    child = {
        "parentUuid": user.id,
        "parentEmail": user.email,
        "name": name,
        "gender": gender,
        "birthDate": birth_date,
        "avatarUri": avatar_uri,
        "createdAt": now,
        "updatedAt": now,
    }
    child_id = db.add_child(child)
    logger.info("Child %s saved for %s", child_id, user.id)
    return {"id": child_id, **child}


def list_children(db: DbClient, user_id: str) -> list[dict]:
    """Newest first; records without a parsable createdAt go last."""
    children = db.list_children(user_id)
    return sorted(
        children,
        key=lambda child: parse_iso_timestamp(child.get("createdAt")),
        reverse=True,
    )
