"""
OpenAI transcription API backends (gpt-4o-mini-transcribe, gpt-4o-transcribe, whisper-1).
"""

from typing import Optional

import requests

from . import Backend, require_key, wav_for_upload
from ..errors import BackendError
from ..types import TranscriptionRequest


TRANSCRIPTIONS_URL = "https://api.openai.com/v1/audio/transcriptions"

# Fastest/cheapest first
DEFAULT_MODELS = ["gpt-4o-mini-transcribe", "gpt-4o-transcribe", "whisper-1"]


class OpenAIBackend(Backend):
    """
    Cloud transcription using OpenAI's audio transcription endpoint.

    Uploads WAV bytes as multipart form data and asks for a plain-text
    response. One instance per model, so each model is its own link in
    the fallback chain.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini-transcribe",
        timeout_s: float = 10.0,
        url: str = TRANSCRIPTIONS_URL,
    ):
        self.api_key = api_key
        self.model = model
        self.name = model
        self.timeout_s = timeout_s
        self.url = url
        self.session: Optional[requests.Session] = None

    def initialize(self) -> None:
        """Create HTTP session."""
        if not self.api_key:
            print(f"[{self.name}] No API key provided")
            return
        self.session = requests.Session()
        self.session.headers["Authorization"] = f"Bearer {self.api_key}"
        print(f"[{self.name}] Initialized")

    def transcribe(self, request: TranscriptionRequest, timeout: float) -> str:
        require_key(self, self.api_key)
        if self.session is None:
            self.initialize()

        data = {
            "model": self.model,
            "response_format": "text",
        }
        if request.language_hint and request.language_hint != "auto":
            data["language"] = request.language_hint

        hint = request.hint_prompt
        if hint:
            data["prompt"] = hint

        files = {"file": ("audio.wav", wav_for_upload(request), "audio/wav")}

        try:
            response = self.session.post(self.url, data=data, files=files, timeout=timeout)
        except requests.RequestException as e:
            raise BackendError(self.name, f"request failed: {e}") from e

        if not response.ok:
            raise BackendError(self.name, f"HTTP {response.status_code}")

        return response.text.strip()

    def shutdown(self) -> None:
        """Close HTTP session."""
        if self.session is not None:
            self.session.close()
            self.session = None
        print(f"[{self.name}] Shutdown")
