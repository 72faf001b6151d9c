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

"""Daily calorie and macro targets and the per-day progress record."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from backend.db import DbClient
from shared.constants import DEFAULT_TIMEZONE

DEFAULT_WEIGHT_KG = 70.0
DEFAULT_HEIGHT_CM = 170.0
DEFAULT_AGE_YEARS = 30
MIN_CALORIES = 1200

ACTIVITY_FACTORS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "very_active": 1.9,
}

GOAL_ADJUSTMENTS = {"lose": -500, "maintain": 0, "gain": 300}

PROTEIN_SHARE = 0.30
CARBS_SHARE = 0.40
FAT_SHARE = 0.30


@dataclass
class DailyTargets:
    calories_goal: int
    protein_goal_g: int
    carbs_goal_g: int
    fat_goal_g: int


def _age_years(birth_date: Optional[str], today: date) -> int:
    if not birth_date:
        return DEFAULT_AGE_YEARS
    try:
        born = date.fromisoformat(birth_date[:10])
    except ValueError:
        return DEFAULT_AGE_YEARS
    years = today.year - born.year - ((today.month, today.day) < (born.month, born.day))
    return years if years > 0 else DEFAULT_AGE_YEARS


def calculate_daily_targets(user: dict, today: Optional[date] = None) -> DailyTargets:
    """
    Mifflin-St Jeor BMR scaled by activity and adjusted for the user's goal.
    """
    today = today or date.today()
    weight = float(user.get("current_weight_kg") or DEFAULT_WEIGHT_KG)
    height = float(user.get("height_cm") or DEFAULT_HEIGHT_CM)
    age = _age_years(user.get("birth_date"), today)

    bmr = 10 * weight + 6.25 * height - 5 * age
    bmr += 5 if user.get("gender") == "male" else -161

    factor = ACTIVITY_FACTORS.get(user.get("activity_level") or "", ACTIVITY_FACTORS["sedentary"])
    calories = bmr * factor + GOAL_ADJUSTMENTS.get(user.get("goal") or "", 0)
    calories = max(MIN_CALORIES, round(calories))

    return DailyTargets(
        calories_goal=calories,
        protein_goal_g=round(calories * PROTEIN_SHARE / 4),
        carbs_goal_g=round(calories * CARBS_SHARE / 4),
        fat_goal_g=round(calories * FAT_SHARE / 9),
    )


def today_for_user(user: dict) -> str:
    """Today's date (YYYY-MM-DD) in the user's timezone."""
    try:
        tz = ZoneInfo(user.get("timezone") or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        tz = ZoneInfo(DEFAULT_TIMEZONE)
    return datetime.now(tz).date().isoformat()


def get_or_create_daily_stats(db: DbClient, user: dict, date_str: str) -> dict:
    existing = db.find_daily_stats(user["id"], date_str)
    if existing:
        return existing

    targets = calculate_daily_targets(user)
    stats = {
        "user_id": user["id"],
        "date": date_str,
        "calories_goal": targets.calories_goal,
        "calories_consumed": 0,
        "protein_goal_g": targets.protein_goal_g,
        "protein_consumed_g": 0,
        "carbs_goal_g": targets.carbs_goal_g,
        "carbs_consumed_g": 0,
        "fat_goal_g": targets.fat_goal_g,
        "fat_consumed_g": 0,
        "water_ml": 0,
        "steps": 0,
    }
    stats_id = db.add_daily_stats(stats)
    return {**stats, "id": stats_id}
