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

"""Firestore collection names and fixed values shared across the service."""

USERS_INFO_COLLECTION = "users_info"
DAILY_STATS_COLLECTION = "daily_stats"
CHILDREN_COLLECTION = "AddChild"
CHAT_SESSIONS_COLLECTION = "chat_sessions"
CHAT_MESSAGES_COLLECTION = "chat_messages"
CHAT_MEMORY_SUMMARIES_COLLECTION = "chat_memory_summaries"
CHAT_SETTINGS_COLLECTION = "ChatSettings"
USERS_COLLECTION = "users"
GENERATED_PHOTOS_COLLECTION = "generatedPhotos"
GENERATED_VIDEOS_COLLECTION = "generatedVideos"

DEFAULT_TIMEZONE = "Europe/Istanbul"
DEFAULT_LANGUAGE = "tr"

CHILD_GENDERS = ("Kiz", "Erkek")

DEFAULT_CHAT_SETTINGS = {
    "tone": "default",
    "mood": "cheerful",
    "responseLength": "balanced",
    "emojiStyle": "some",
}

CHAT_RECENT_MESSAGE_LIMIT = 20
CHAT_SUMMARY_WINDOW = 50

PHOTO_HISTORY_LIMIT = 200
VIDEO_HISTORY_LIMIT = 100
MAX_UPLOAD_BYTES = 12 * 1024 * 1024

BLOB_CACHE_CONTROL = "public,max-age=31536000"

_TEMPLATE_BASE = (
    "https://firebasestorage.googleapis.com/v0/b/bebek-ai.firebasestorage.app/o/"
    "assets%2Fyenidogan%2F"
)

# Newborn studio backdrops selectable by style id.
NEWBORN_TEMPLATE_URLS = {
    "n1": _TEMPLATE_BASE + "Y%C4%B1ld%C4%B1z%20Stu%CC%88dyo.png?alt=media&token=b32006cb-948e-4829-b598-13dff314088d",
    "n2": _TEMPLATE_BASE + "Beyaz%20-%20Pelus%CC%A7.png?alt=media&token=84206847-1c7f-4536-b2c8-4343bdfec596",
    "n3": _TEMPLATE_BASE + "Kruvasan%20Stu%CC%88dyo.png?alt=media&token=764021f4-cea1-444d-915f-630036184222",
    "n4": _TEMPLATE_BASE + "Bulut%20Ru%CC%88ya%20Stu%CC%88dyo.png?alt=media&token=931dd6c5-c31e-4ce8-a33c-1a2f32a22791",
    "n5": _TEMPLATE_BASE + "C%CC%A7ic%CC%A7ekli%20Bahar.png?alt=media&token=fa51b742-6afa-4a44-9d99-c49846c8af35",
    "n6": _TEMPLATE_BASE + "Ay%C4%B1c%C4%B1k%20Pelus%CC%A7.png?alt=media&token=5ec3457e-6d3e-445c-acec-9fef61b6c38c",
    "n7": _TEMPLATE_BASE + "Alt%C4%B1n%20Gu%CC%88n%20Bat%C4%B1m%C4%B1.png?alt=media&token=5c1874f8-e0f0-4537-af42-f18953b993f2",
    "n8": _TEMPLATE_BASE + "Vintage%20Sepet.png?alt=media&token=d2a0ec3f-b99b-4b0b-ae43-d1a911088e05",
    "n9": _TEMPLATE_BASE + "Galaksi%20Bebek.png?alt=media&token=92ac051b-4eea-4333-96d7-b617f5395be4",
    "n10": _TEMPLATE_BASE + "Dev%20Oyuncak%20Du%CC%88nyas%C4%B1.png?alt=media&token=90219c63-d2dd-4f53-a0ea-ed7cd9a24a23",
    "n11": _TEMPLATE_BASE + "Uc%CC%A7an%20Balon.png?alt=media&token=5f0d6af5-07eb-4b3a-bb10-b109f85f7c69",
    "n12": _TEMPLATE_BASE + "Masal%20Kitab%C4%B1.png?alt=media&token=09b0d4da-0ec6-4c4b-86dc-a7bcba5ea7a5",
    "n13": _TEMPLATE_BASE + "Kum%20Ru%CC%88yas%C4%B1.png?alt=media&token=14ad8cf2-837a-4874-9128-8bda46fbde0a",
    "n14": _TEMPLATE_BASE + "Uzay%20Astronot%20Bebek.png?alt=media&token=ec2b3586-03ea-4b1b-99b7-00a0694c1264",
}
