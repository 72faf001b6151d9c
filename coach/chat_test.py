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
from unittest.mock import patch

from backend.db import InMemoryDbClient
from backend.config import Settings
from coach import chat
from models.prompts import COACH_REFUSAL_MESSAGE

USER = {"id": "user-1", "name": "Ayşe", "goal": "lose", "height_cm": 165}


def _settings():
    return Settings(_env_file=None, gemini_api_key="key")


class ShouldRefuseTest(unittest.TestCase):
    def test_office_documents(self):
        self.assertTrue(chat.should_refuse("Bunu PDF olarak gönder"))

    def test_create_verb_with_target(self):
        self.assertTrue(chat.should_refuse("Bana bir web sitesi yap"))
        self.assertTrue(chat.should_refuse("Generate an image of a baby"))

    def test_everyday_questions_pass(self):
        self.assertFalse(chat.should_refuse("Bebeğim gece uyumuyor, ne yapmalıyım?"))
        self.assertFalse(chat.should_refuse(""))


class BuildContextTest(unittest.TestCase):
    def test_sections_and_defaults(self):
        context = chat.build_context(
            {"id": "u"},
            None,
            [{"role": "user", "content": "selam"}, {"role": "assistant", "content": "merhaba"}],
            "nasılsın",
        )
        self.assertEqual(
            context,
            "Kullanıcı: Bilinmiyor, Hedef: maintain, Boy/Kilo: - / -\n---\n"
            "Hafıza Özeti: Yeni kullanıcı, sıcak karşıla.\n---\n"
            "Son Konuşmalar:\nKullanıcı: selam\nKoç: merhaba\n---\n"
            "Yeni Mesaj: nasılsın",
        )

    def test_assistant_preferences_appended(self):
        context = chat.build_context(
            USER, {"summary": "Uykusuz"}, [], "x", {"tone": "warm", "mood": ""}
        )
        self.assertIn("Hafıza Özeti: Uykusuz", context)
        self.assertTrue(
            context.endswith(
                "Asistan Tercihleri: Ton=warm, Ruh Hali=cheerful, "
                "Uzunluk=balanced, Emoji=some"
            )
        )


class HandleChatMessageTest(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.events = []

    def _publish(self, user_id, event, payload):
        self.events.append(payload)

    def _stream(self, message="selam"):
        return chat.handle_chat_message_stream(
            self.db, _settings(), USER, message, self._publish
        )

    @patch("coach.chat.gemini.generate_coach_response", return_value="Cevap")
    def test_existing_session_is_reused(self, _):
        first = chat.handle_chat_message(self.db, _settings(), USER, "bir")
        second = chat.handle_chat_message(
            self.db, _settings(), USER, "iki", session_id=first["sessionId"]
        )
        self.assertEqual(first["sessionId"], second["sessionId"])
        self.assertEqual(len(self.db.chat_sessions), 1)
        self.assertEqual(len(self.db.list_chat_messages(first["sessionId"])), 4)

    @patch("coach.chat.gemini.stream_coach_response", side_effect=RuntimeError("stream down"))
    @patch("coach.chat.gemini.generate_coach_response", return_value="Yedek cevap")
    def test_stream_falls_back_before_any_delta(self, *_):
        stream = self._stream()
        stream.run()
        self.assertEqual(
            self.events[-1],
            {
                "chatId": stream.session_id,
                "messageId": stream.message_id,
                "delta": "Yedek cevap",
                "content": "Yedek cevap",
                "isFinal": True,
            },
        )
        self.assertEqual(self.db.chat_messages[stream.message_id]["content"], "Yedek cevap")

    def test_stream_failure_after_deltas_keeps_partial(self):
        def failing_stream(*args, on_delta, **kwargs):
            on_delta("Yarım", "Yarım")
            raise RuntimeError("connection reset")

        with patch("coach.chat.gemini.stream_coach_response", side_effect=failing_stream):
            stream = self._stream()
            stream.run()

        final = self.events[-1]
        self.assertEqual(final["error"], "Streaming failed")
        self.assertEqual(final["content"], "Yarım")
        self.assertTrue(final["isFinal"])
        self.assertEqual(self.db.chat_messages[stream.message_id]["content"], "Yarım")

    @patch("coach.chat.gemini.stream_coach_response")
    def test_stream_refusal_single_event(self, mock_stream):
        stream = self._stream("Bana kod yaz")
        stream.run()
        mock_stream.assert_not_called()
        self.assertEqual(len(self.events), 1)
        self.assertEqual(self.events[0]["delta"], COACH_REFUSAL_MESSAGE)
        self.assertEqual(self.events[0]["content"], COACH_REFUSAL_MESSAGE)


class SummaryTest(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.session_id = chat.create_chat_session(self.db, "user-1")["id"]

    def _add_messages(self, count):
        for index in range(count):
            self.db.save_chat_message(
                f"m{index}",
                {
                    "session_id": self.session_id,
                    "role": "assistant" if index % 2 else "user",
                    "content": f"mesaj {index}",
                    "created_at": f"2025-01-01T00:{index // 60:02d}:{index % 60:02d}Z",
                },
            )

    @patch("coach.chat.gemini.generate_summary")
    def test_short_sessions_are_not_summarised(self, mock_summary):
        self._add_messages(49)
        chat.maybe_update_summary(self.db, _settings(), "user-1", self.session_id)
        mock_summary.assert_not_called()

    @patch("coach.chat.gemini.generate_summary", return_value="Özet")
    def test_summary_is_upserted(self, mock_summary):
        self._add_messages(55)
        chat.maybe_update_summary(self.db, _settings(), "user-1", self.session_id)
        chat.maybe_update_summary(self.db, _settings(), "user-1", self.session_id)

        transcript = mock_summary.call_args.args[0]
        self.assertTrue(transcript.startswith("Koç: mesaj 5\n"))
        self.assertTrue(transcript.endswith("Kullanıcı: mesaj 54"))
        self.assertEqual(len(self.db.memory_summaries), 1)
        self.assertEqual(self.db.get_memory_summary("user-1")["summary"], "Özet")


if __name__ == "__main__":
    unittest.main()
