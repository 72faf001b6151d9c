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

"""
Client for the image/video generation marketplace (Replicate-compatible
predictions API).

Every model run is a prediction: it is created, then polled until it reaches
a terminal state.
"""

import base64
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 60  # seconds
DOWNLOAD_TIMEOUT = 300  # seconds

SUCCEEDED = "succeeded"
FAILED = "failed"
CANCELED = "canceled"
TERMINAL_STATUSES = (SUCCEEDED, FAILED, CANCELED)


class MarketplaceConfigurationError(Exception):
    pass


class PredictionFailedError(Exception):
    def __init__(self, prediction_id: str, status: str, error: Optional[str]):
        super().__init__(
            f"Prediction {prediction_id} {status}: {error or 'no error detail'}"
        )
        self.prediction_id = prediction_id
        self.status = status
        self.error = error


class PredictionTimeoutError(Exception):
    pass


@dataclass
class Prediction:
    id: str
    status: str
    output: Any = None
    error: Optional[str] = None

    @classmethod
    def from_response(cls, data: dict) -> "Prediction":
        return cls(
            id=data.get("id", ""),
            status=data.get("status", "starting"),
            output=data.get("output"),
            error=data.get("error"),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def output_url(prediction: Prediction) -> str:
    """First URL of the prediction output."""
    output = prediction.output
    if isinstance(output, list) and output:
        output = output[0]
    if isinstance(output, dict):
        output = output.get("url") or output.get("video") or output.get("image")
    if not isinstance(output, str) or not output:
        raise PredictionFailedError(
            prediction.id, prediction.status, "Prediction returned no output URL"
        )
    return output


def to_data_uri(content: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


@dataclass
class MarketplaceClient:
    api_token: Optional[str]
    base_url: str = "https://api.replicate.com/v1"
    poll_interval: float = 3.0
    timeout: float = 900.0
    face_swap_model: str = "cdingram/face-swap"
    image_to_video_model: str = "kwaivgi/kling-v2.1"
    video_person_swap_model: str = "wan-video/wan-2.2-animate-replace"
    video_background_model: str = "lucataco/video-background-swap"
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def __post_init__(self):
        self.session = requests.Session()

    def is_available(self) -> bool:
        return bool(self.api_token)

    def _headers(self) -> dict:
        if not self.api_token:
            raise MarketplaceConfigurationError("REPLICATE_API_TOKEN is not configured")
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    def create_prediction(self, model: str, model_input: dict) -> Prediction:
        """
        Starts a prediction. `model` is either `owner/name` (latest version)
        or `owner/name:version`.
        """
        headers = self._headers()
        if ":" in model:
            _, version = model.split(":", 1)
            url = f"{self.base_url}/predictions"
            body = {"version": version, "input": model_input}
        else:
            url = f"{self.base_url}/models/{model}/predictions"
            body = {"input": model_input}

        response = self.session.post(
            url, headers=headers, json=body, timeout=REQUEST_TIMEOUT
        )
        response.raise_for_status()
        prediction = Prediction.from_response(response.json())
        logger.info(
            "Marketplace prediction %s created for %s (status=%s)",
            prediction.id,
            model,
            prediction.status,
        )
        return prediction

    def get_prediction(self, prediction_id: str) -> Prediction:
        response = self.session.get(
            f"{self.base_url}/predictions/{prediction_id}",
            headers=self._headers(),
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        return Prediction.from_response(response.json())

    def wait_for_prediction(
        self,
        prediction: Prediction | str,
        on_status: Optional[Callable[[Prediction], None]] = None,
    ) -> Prediction:
        """
        Polls until the prediction succeeds, fails or the timeout elapses.

        Raises:
            PredictionFailedError: The prediction failed or was canceled.
            PredictionTimeoutError: No terminal state within `timeout` seconds.
        """
        if isinstance(prediction, str):
            prediction = self.get_prediction(prediction)
        started = self.clock()
        while True:
            if on_status:
                on_status(prediction)
            if prediction.status == SUCCEEDED:
                return prediction
            if prediction.is_terminal:
                raise PredictionFailedError(
                    prediction.id, prediction.status, prediction.error
                )
            elapsed = self.clock() - started
            if elapsed >= self.timeout:
                raise PredictionTimeoutError(
                    f"Prediction {prediction.id} still {prediction.status} "
                    f"after {elapsed:.0f}s"
                )
            self.sleep(self.poll_interval)
            prediction = self.get_prediction(prediction.id)

    def run(
        self,
        model: str,
        model_input: dict,
        on_status: Optional[Callable[[Prediction], None]] = None,
    ) -> Prediction:
        prediction = self.create_prediction(model, model_input)
        return self.wait_for_prediction(prediction, on_status=on_status)

    def download(self, url: str) -> tuple[bytes, str]:
        response = self.session.get(url, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
        content_type = response.headers.get("content-type", "")
        return response.content, content_type.split(";")[0].strip().lower()

    def swap_face(
        self,
        source_image: str,
        target_image: str,
        on_status: Optional[Callable[[Prediction], None]] = None,
    ) -> Prediction:
        """Puts the face from `source_image` onto the person in `target_image`."""
        return self.run(
            self.face_swap_model,
            {"swap_image": source_image, "input_image": target_image},
            on_status=on_status,
        )

    def image_to_video(
        self,
        image: str,
        prompt: str,
        duration: int = 5,
        on_status: Optional[Callable[[Prediction], None]] = None,
    ) -> Prediction:
        return self.run(
            self.image_to_video_model,
            {"start_image": image, "prompt": prompt, "duration": duration},
            on_status=on_status,
        )

    def swap_video_person(
        self,
        video: str,
        character_image: str,
        on_status: Optional[Callable[[Prediction], None]] = None,
    ) -> Prediction:
        return self.run(
            self.video_person_swap_model,
            {"video": video, "character_image": character_image},
            on_status=on_status,
        )

    def swap_video_background(
        self,
        video: str,
        prompt: str,
        on_status: Optional[Callable[[Prediction], None]] = None,
    ) -> Prediction:
        return self.run(
            self.video_background_model,
            {"video": video, "prompt": prompt},
            on_status=on_status,
        )
