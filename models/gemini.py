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
import logging
import time
from typing import Callable, List, Optional

from google import genai
from google.genai import types

from models import prompts
from shared.stream import StreamAccumulator
from shared.types import GeneratedImage, HistoryTurn, ImagePayload

logger = logging.getLogger(__name__)

MOCK_IMAGE_NOTE = "Mock response used because GEMINI_API_KEY is missing"
PROMPT_PREVIEW_LENGTH = 250


class GeminiInvalidResponseException(Exception):
    pass


class GeminiConfigurationError(Exception):
    pass


def _client(api_key: str | None) -> genai.Client:
    if not api_key:
        raise GeminiConfigurationError("GEMINI_API_KEY is not configured")
    return genai.Client(api_key=api_key)


def _image_part(image: ImagePayload) -> types.Part:
    return types.Part.from_bytes(
        data=base64.b64decode(image.data), mime_type=image.mime_type
    )


def build_contents(
    history: List[HistoryTurn], image: Optional[ImagePayload] = None
) -> List[types.Content]:
    """
    Maps chat history onto Gemini contents.

    Assistant turns become `model` turns. The image attachment, if any, goes on
    the last turn when that turn is the user's.
    """
    contents: List[types.Content] = []
    for index, turn in enumerate(history):
        role = "model" if turn.role == "assistant" else "user"
        is_last = index == len(history) - 1
        parts: List[types.Part] = []
        if turn.content:
            parts.append(types.Part.from_text(text=turn.content))
        if image and is_last and role == "user":
            parts.append(_image_part(image))
        if not parts:
            parts.append(types.Part.from_text(text=prompts.IMAGE_ONLY_TURN_TEXT))
        contents.append(types.Content(role=role, parts=parts))
    return contents


def generate_coach_response(
    context: str,
    history: List[HistoryTurn],
    image: Optional[ImagePayload] = None,
    *,
    api_key: str | None,
    model: str,
) -> str:
    client = _client(api_key)
    logger.info("Gemini coach response request started (history=%d)", len(history))
    response = client.models.generate_content(
        model=model,
        contents=build_contents(history, image),
        config=types.GenerateContentConfig(
            system_instruction=prompts.make_coach_system_instruction(context),
        ),
    )
    text = (response.text or "").strip()
    if not text:
        logger.warning("Gemini chat returned empty response")
        raise GeminiInvalidResponseException("Gemini returned empty response")
    return text


def stream_coach_response(
    context: str,
    history: List[HistoryTurn],
    image: Optional[ImagePayload] = None,
    *,
    api_key: str | None,
    model: str,
    on_delta: Callable[[str, str], None],
) -> str:
    """
    Streams the coach reply, calling `on_delta(delta, full_text)` for every
    new piece of text. Returns the final text.
    """
    client = _client(api_key)
    logger.info("Gemini coach streaming request started (history=%d)", len(history))
    accumulator = StreamAccumulator()
    stream = client.models.generate_content_stream(
        model=model,
        contents=build_contents(history, image),
        config=types.GenerateContentConfig(
            system_instruction=prompts.make_coach_system_instruction(context),
        ),
    )
    for chunk in stream:
        delta = accumulator.push(chunk.text or "")
        if delta:
            on_delta(delta, accumulator.text)
    return accumulator.final_text


def generate_summary(
    transcript: str, *, api_key: str | None, model: str
) -> Optional[str]:
    """Short memory summary of a transcript; None when unavailable."""
    if not api_key:
        return None
    try:
        client = genai.Client(api_key=api_key)
        response = client.models.generate_content(
            model=model,
            contents=prompts.make_summary_prompt(transcript),
        )
    except Exception as e:
        logger.warning("Failed to generate summary: %s", e)
        return None
    return (response.text or "").strip() or None


def extract_generated_image(response) -> GeneratedImage:
    """Pulls the first inline image and the joined text out of a response."""
    parts = []
    for candidate in response.candidates or []:
        if candidate.content and candidate.content.parts:
            parts.extend(candidate.content.parts)

    image_part = next(
        (part for part in parts if part.inline_data and part.inline_data.data),
        None,
    )
    if image_part is None:
        raise GeminiInvalidResponseException(
            "Generated image could not be extracted from provider response"
        )
    text_output = "".join(part.text or "" for part in parts).strip()
    return GeneratedImage(
        data=base64.b64encode(image_part.inline_data.data).decode("ascii"),
        mime_type=image_part.inline_data.mime_type or "image/png",
        text=text_output or None,
    )


def _mock_or_raise(image: ImagePayload, api_key: str | None, allow_mock: bool):
    if api_key:
        return None
    if allow_mock:
        logger.warning(
            "GEMINI_API_KEY missing; returning source image as generated output"
        )
        return GeneratedImage(
            data=image.data, mime_type=image.mime_type, text=MOCK_IMAGE_NOTE
        )
    raise GeminiConfigurationError("GEMINI_API_KEY is not configured")


def generate_styled_photo(
    image: ImagePayload,
    prompt: str,
    *,
    api_key: str | None,
    model: str,
    allow_mock: bool = False,
) -> GeneratedImage:
    mocked = _mock_or_raise(image, api_key, allow_mock)
    if mocked:
        return mocked

    client = _client(api_key)
    logger.info("Gemini style photo generation request started (model=%s)", model)
    response = client.models.generate_content(
        model=model,
        contents=[
            types.Content(
                role="user",
                parts=[types.Part.from_text(text=prompt), _image_part(image)],
            )
        ],
        config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
    )
    return extract_generated_image(response)


def generate_styled_photo_with_template(
    user_image: ImagePayload,
    prompt: str,
    template_image: Optional[ImagePayload] = None,
    *,
    api_key: str | None,
    model: str,
    allow_mock: bool = False,
) -> GeneratedImage:
    """
    Places the source baby into the scene described by `prompt`.

    The identity rules wrap the scene brief; when `template_image` is given it
    is attached after the source image as a composition reference.
    """
    mocked = _mock_or_raise(user_image, api_key, allow_mock)
    if mocked:
        return mocked

    client = _client(api_key)
    final_prompt = prompts.make_newborn_scene_prompt(prompt)
    parts = [
        types.Part.from_text(text=final_prompt),
        types.Part.from_text(text=prompts.SOURCE_BABY_IMAGE_LABEL),
        _image_part(user_image),
    ]
    if template_image:
        parts.append(types.Part.from_text(text=prompts.SCENE_TEMPLATE_IMAGE_LABEL))
        parts.append(_image_part(template_image))

    start_time = time.time()
    logger.info(
        "Gemini newborn style generation request started "
        "(model=%s, prompt_length=%d, final_prompt_length=%d, user_mime=%s, "
        "user_image_bytes~%d, with_template=%s): %s",
        model,
        len(prompt),
        len(final_prompt),
        user_image.mime_type,
        len(user_image.data),
        template_image is not None,
        final_prompt[:PROMPT_PREVIEW_LENGTH],
    )
    try:
        response = client.models.generate_content(
            model=model,
            contents=[types.Content(role="user", parts=parts)],
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE", "TEXT"],
                temperature=0,
            ),
        )
    except Exception:
        logger.exception(
            "Gemini newborn style generation request failed after %.2fs",
            time.time() - start_time,
        )
        raise

    generated = extract_generated_image(response)
    logger.info(
        "Gemini newborn style generation completed in %.2fs "
        "(candidates=%d, mime=%s, output_bytes~%d, has_text=%s)",
        time.time() - start_time,
        len(response.candidates or []),
        generated.mime_type,
        len(generated.data),
        bool(generated.text),
    )
    return generated
