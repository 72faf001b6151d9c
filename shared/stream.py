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

"""Reassembly of streamed provider output into deltas and final text."""


class StreamAccumulator:
    """
    Turns streamed chunks into deltas.

    Providers either send each new piece of text or a cumulative snapshot of
    everything generated so far. A chunk that starts with the accumulated text
    is treated as a snapshot and only its suffix is emitted.
    """

    def __init__(self):
        self.text = ""

    def push(self, chunk_text: str) -> str:
        if not chunk_text:
            return ""
        delta = chunk_text
        if self.text and chunk_text.startswith(self.text):
            delta = chunk_text[len(self.text):]
        if delta:
            self.text += delta
        return delta

    @property
    def final_text(self) -> str:
        return self.text.strip()
