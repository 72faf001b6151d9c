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

"""Profile records for app users (`users_info` collection)."""

import logging
from typing import Optional

from backend.db import DbClient
from shared.constants import DEFAULT_LANGUAGE, DEFAULT_TIMEZONE
from shared.utils import utc_now_iso

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "email",
    "name",
    "gender",
    "birth_date",
    "height_cm",
    "current_weight_kg",
    "target_weight_kg",
    "activity_level",
    "goal",
    "language",
    "timezone",
    "onboarding_completed",
    "onboarding_device_id",
    "onboarding_completed_at",
)


def get_user_info(db: DbClient, user_id: str) -> Optional[dict]:
    return db.get_user_info(user_id)


def ensure_user_info(
    db: DbClient, user_id: str, fallback: Optional[dict] = None
) -> dict:
    """
    Returns the stored profile, creating one with defaults on first contact.
    """
    fallback = fallback or {}
    existing = get_user_info(db, user_id)
    if existing:
        return {
            **existing,
            "timezone": existing.get("timezone") or DEFAULT_TIMEZONE,
            "language": existing.get("language") or DEFAULT_LANGUAGE,
        }

    now = utc_now_iso()
    user_info = {
        "id": user_id,
        "name": fallback.get("name"),
        "email": fallback.get("email"),
        "timezone": fallback.get("timezone") or DEFAULT_TIMEZONE,
        "language": fallback.get("language") or DEFAULT_LANGUAGE,
        "goal": fallback.get("goal") or "maintain",
        "activity_level": fallback.get("activity_level") or "sedentary",
        "created_at": now,
        "updated_at": now,
    }
    db.set_user_info(user_id, user_info)
    logger.info("users_info created with defaults for %s", user_id)
    return user_info


def update_user_info(db: DbClient, user_id: str, updates: dict) -> dict:
    now = utc_now_iso()
    clean = {key: value for key, value in updates.items() if key in EDITABLE_FIELDS}
    db.set_user_info(user_id, {**clean, "updated_at": now})
    updated = get_user_info(db, user_id)
    if updated:
        return updated
    return {
        "id": user_id,
        **clean,
        "updated_at": now,
        "timezone": clean.get("timezone") or DEFAULT_TIMEZONE,
        "language": clean.get("language") or DEFAULT_LANGUAGE,
    }
