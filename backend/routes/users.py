"""
User profile and daily progress routes.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend.auth import get_current_user
from backend.db import DbClient
from backend.dependencies import get_db_client
from backend.errors import ApiError
from backend.schemas import DailyStatsResponse, UserInfoResponse, UserInfoUpdate
from coach import progress, user_info
from shared.types import AuthUser

logger = logging.getLogger(__name__)

router = APIRouter()

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _fallback(user: AuthUser) -> dict:
    return {"name": user.name, "email": user.email}


@router.get("/users/me", response_model=UserInfoResponse)
def get_me(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return UserInfoResponse(user=user_info.ensure_user_info(db, user.id, _fallback(user)))


@router.patch("/users/me", response_model=UserInfoResponse)
def update_me(
    payload: UserInfoUpdate,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    user_info.ensure_user_info(db, user.id, _fallback(user))
    updates = payload.model_dump(exclude_unset=True)
    return UserInfoResponse(user=user_info.update_user_info(db, user.id, updates))


@router.get("/progress/daily", response_model=DailyStatsResponse)
def daily_progress(
    date: Optional[str] = Query(None),
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if date is not None and not DATE_PATTERN.match(date):
        raise ApiError.invalid_request("date must be in YYYY-MM-DD format")
    info = user_info.ensure_user_info(db, user.id, _fallback(user))
    date_str = date or progress.today_for_user(info)
    return DailyStatsResponse(stats=progress.get_or_create_daily_stats(db, info, date_str))
