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

import base64
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from models import gemini
from shared.stream import StreamAccumulator
from shared.types import HistoryTurn, ImagePayload

IMAGE = ImagePayload(data=base64.b64encode(b"img").decode("ascii"), mime_type="image/png")


def _response_with_parts(parts):
    content = SimpleNamespace(parts=parts)
    return SimpleNamespace(candidates=[SimpleNamespace(content=content)])


class BuildContentsTest(unittest.TestCase):
    def test_roles_and_image_placement(self):
        history = [
            HistoryTurn(role="user", content="selam"),
            HistoryTurn(role="assistant", content="merhaba"),
            HistoryTurn(role="user", content=""),
        ]
        contents = gemini.build_contents(history, IMAGE)
        self.assertEqual([c.role for c in contents], ["user", "model", "user"])
        self.assertEqual(len(contents[2].parts), 1)
        self.assertEqual(contents[2].parts[0].inline_data.data, b"img")

    def test_empty_turn_gets_placeholder_text(self):
        contents = gemini.build_contents([HistoryTurn(role="user", content="")])
        self.assertEqual(contents[0].parts[0].text, "Kullanıcı bir görsel paylaştı.")


class ExtractGeneratedImageTest(unittest.TestCase):
    def test_first_inline_image_and_joined_text(self):
        response = _response_with_parts(
            [
                SimpleNamespace(text="Here ", inline_data=None),
                SimpleNamespace(
                    text=None,
                    inline_data=SimpleNamespace(data=b"out", mime_type="image/webp"),
                ),
                SimpleNamespace(text="it is", inline_data=None),
            ]
        )
        generated = gemini.extract_generated_image(response)
        self.assertEqual(base64.b64decode(generated.data), b"out")
        self.assertEqual(generated.mime_type, "image/webp")
        self.assertEqual(generated.text, "Here it is")

    def test_missing_image_raises(self):
        response = _response_with_parts([SimpleNamespace(text="no image", inline_data=None)])
        with self.assertRaises(gemini.GeminiInvalidResponseException):
            gemini.extract_generated_image(response)


class StyledPhotoTest(unittest.TestCase):
    def test_mock_when_key_missing_outside_production(self):
        generated = gemini.generate_styled_photo(
            IMAGE, "watercolor", api_key=None, model="m", allow_mock=True
        )
        self.assertEqual(generated.data, IMAGE.data)
        self.assertEqual(generated.text, gemini.MOCK_IMAGE_NOTE)

    def test_missing_key_raises_in_production(self):
        with self.assertRaises(gemini.GeminiConfigurationError):
            gemini.generate_styled_photo_with_template(
                IMAGE, "studio", api_key=None, model="m", allow_mock=False
            )

    @patch("models.gemini.genai.Client")
    def test_template_is_attached_after_source(self, mock_client_cls):
        client = MagicMock()
        mock_client_cls.return_value = client
        client.models.generate_content.return_value = _response_with_parts(
            [SimpleNamespace(text=None, inline_data=SimpleNamespace(data=b"x", mime_type="image/png"))]
        )
        template = ImagePayload(data=base64.b64encode(b"tpl").decode("ascii"), mime_type="image/png")

        gemini.generate_styled_photo_with_template(
            IMAGE, "studio", template, api_key="key", model="m"
        )

        kwargs = client.models.generate_content.call_args.kwargs
        parts = kwargs["contents"][0].parts
        self.assertEqual(len(parts), 5)
        self.assertIn("studio", parts[0].text)
        self.assertEqual(parts[4].inline_data.data, b"tpl")
        self.assertEqual(kwargs["config"].temperature, 0)


class CoachResponseTest(unittest.TestCase):
    @patch("models.gemini.genai.Client")
    def test_empty_reply_raises(self, mock_client_cls):
        mock_client_cls.return_value.models.generate_content.return_value = SimpleNamespace(text="  ")
        with self.assertRaises(gemini.GeminiInvalidResponseException):
            gemini.generate_coach_response("ctx", [], api_key="key", model="m")

    @patch("models.gemini.genai.Client")
    def test_stream_handles_cumulative_chunks(self, mock_client_cls):
        mock_client_cls.return_value.models.generate_content_stream.return_value = iter(
            [SimpleNamespace(text="Mer"), SimpleNamespace(text="Merhaba"), SimpleNamespace(text=" ")]
        )
        deltas = []
        final = gemini.stream_coach_response(
            "ctx",
            [HistoryTurn(role="user", content="selam")],
            api_key="key",
            model="m",
            on_delta=lambda delta, full: deltas.append((delta, full)),
        )
        self.assertEqual(deltas, [("Mer", "Mer"), ("haba", "Merhaba"), (" ", "Merhaba ")])
        self.assertEqual(final, "Merhaba")

    def test_summary_without_key_is_none(self):
        self.assertIsNone(gemini.generate_summary("t", api_key=None, model="m"))

    @patch("models.gemini.genai.Client", side_effect=RuntimeError("down"))
    def test_summary_failure_is_none(self, _):
        self.assertIsNone(gemini.generate_summary("t", api_key="key", model="m"))


class StreamAccumulatorTest(unittest.TestCase):
    def test_incremental_chunks(self):
        acc = StreamAccumulator()
        self.assertEqual(acc.push("a"), "a")
        self.assertEqual(acc.push("b"), "b")
        self.assertEqual(acc.text, "ab")

    def test_snapshot_chunks_emit_suffix(self):
        acc = StreamAccumulator()
        acc.push("Hello")
        self.assertEqual(acc.push("Hello world"), " world")
        self.assertEqual(acc.push("Hello world"), "")

    def test_empty_chunk_and_final_strip(self):
        acc = StreamAccumulator()
        self.assertEqual(acc.push(""), "")
        acc.push("  hi  ")
        self.assertEqual(acc.final_text, "hi")


if __name__ == "__main__":
    unittest.main()
