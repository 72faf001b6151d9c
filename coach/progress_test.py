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

import unittest
from datetime import date

from backend.db import InMemoryDbClient
from coach import progress, user_info

TODAY = date(2025, 6, 1)


class CalculateDailyTargetsTest(unittest.TestCase):
    def test_defaults_use_female_offset(self):
        # 10*70 + 6.25*170 - 5*30 - 161 = 1451.5; * 1.2 = 1741.8
        targets = progress.calculate_daily_targets({}, today=TODAY)
        self.assertEqual(targets.calories_goal, 1742)
        self.assertEqual(targets.protein_goal_g, round(1742 * 0.3 / 4))
        self.assertEqual(targets.carbs_goal_g, round(1742 * 0.4 / 4))
        self.assertEqual(targets.fat_goal_g, round(1742 * 0.3 / 9))

    def test_male_active_gain(self):
        user = {
            "gender": "male",
            "current_weight_kg": 80,
            "height_cm": 180,
            "birth_date": "1995-06-02",
            "activity_level": "active",
            "goal": "gain",
        }
        # age 29: 800 + 1125 - 145 + 5 = 1785; * 1.725 = 3079.125; + 300
        targets = progress.calculate_daily_targets(user, today=TODAY)
        self.assertEqual(targets.calories_goal, 3379)

    def test_floor(self):
        user = {"current_weight_kg": 40, "height_cm": 140, "goal": "lose"}
        self.assertEqual(progress.calculate_daily_targets(user, today=TODAY).calories_goal, 1200)


class DailyStatsTest(unittest.TestCase):
    def test_get_or_create_is_idempotent(self):
        db = InMemoryDbClient()
        user = user_info.ensure_user_info(db, "user-1")
        first = progress.get_or_create_daily_stats(db, user, "2025-06-01")
        second = progress.get_or_create_daily_stats(db, user, "2025-06-01")
        other_day = progress.get_or_create_daily_stats(db, user, "2025-06-02")

        self.assertEqual(first["id"], second["id"])
        self.assertNotEqual(first["id"], other_day["id"])
        self.assertEqual(first["water_ml"], 0)

    def test_today_for_user_falls_back_on_bad_timezone(self):
        value = progress.today_for_user({"timezone": "Not/AZone"})
        self.assertRegex(value, r"^\d{4}-\d{2}-\d{2}$")


class UserInfoTest(unittest.TestCase):
    def test_update_keeps_only_editable_fields(self):
        db = InMemoryDbClient()
        user_info.ensure_user_info(db, "user-1", {"name": "Ayşe"})
        updated = user_info.update_user_info(
            db, "user-1", {"goal": "gain", "created_at": "x", "id": "other"}
        )
        self.assertEqual(updated["id"], "user-1")
        self.assertEqual(updated["goal"], "gain")
        self.assertEqual(updated["name"], "Ayşe")
        self.assertNotEqual(updated["created_at"], "x")


if __name__ == "__main__":
    unittest.main()
