"""
Groq Whisper API backend for cloud transcription.
"""

import io

from . import Backend, require_key, wav_for_upload
from ..errors import BackendError
from ..types import TranscriptionRequest


class GroqBackend(Backend):
    """
    Cloud transcription using Groq's Whisper API.

    Fast cloud-based transcription with low latency.
    """

    name = "groq"

    def __init__(self, api_key: str, model: str = "whisper-large-v3-turbo", timeout_s: float = 10.0):
        self.api_key = api_key
        self.model = model
        self.timeout_s = timeout_s
        self.client = None

    def initialize(self) -> None:
        """Create Groq client."""
        if not self.api_key:
            print(f"[{self.name}] No API key provided")
            return

        from groq import Groq

        self.client = Groq(api_key=self.api_key, max_retries=0)
        print(f"[{self.name}] Initialized (model: {self.model})")

    def transcribe(self, request: TranscriptionRequest, timeout: float) -> str:
        require_key(self, self.api_key)
        if self.client is None:
            self.initialize()

        audio_file = io.BytesIO(wav_for_upload(request))
        audio_file.name = "audio.wav"

        params = {
            "file": audio_file,
            "model": self.model,
            "response_format": "text",
            "temperature": 0.0,
            "timeout": timeout,
        }
        if request.language_hint and request.language_hint != "auto":
            params["language"] = request.language_hint

        hint = request.hint_prompt
        if hint:
            params["prompt"] = hint

        try:
            response = self.client.audio.transcriptions.create(**params)
        except Exception as e:
            raise BackendError(self.name, f"API error: {e}") from e

        # response_format="text" returns a plain string on current SDKs
        text = response if isinstance(response, str) else getattr(response, "text", "")
        return (text or "").strip()

    def shutdown(self) -> None:
        """Close client."""
        if self.client is not None:
            self.client.close()
        self.client = None
        print(f"[{self.name}] Shutdown")
