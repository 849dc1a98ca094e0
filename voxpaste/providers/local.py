"""
Local whisper.cpp backend, the offline backstop at the end of the chain.
"""

import time

from . import Backend
from ..errors import BackendError, ModelLoadError, TranscriptionError
from ..model_cache import ModelCache
from ..types import TranscriptionRequest


class LocalWhisperBackend(Backend):
    """
    Local transcription using the resident model in a ModelCache.

    The model is loaded on initialize() (preload) or on first use and
    stays resident between dictations.
    """

    name = "local"

    def __init__(
        self,
        cache: ModelCache,
        model_id: str,
        model_path: str,
        use_gpu: bool = True,
        timeout_s: float = 30.0,
    ):
        self.cache = cache
        self.model_id = model_id
        self.model_path = model_path
        self.use_gpu = use_gpu
        self.timeout_s = timeout_s

    @property
    def default_language(self) -> str:
        """English-only models get "en"; multilingual ones auto-detect."""
        return "en" if self.model_id.endswith(".en") else "auto"

    def initialize(self) -> None:
        """Preload model weights so the first dictation is fast."""
        try:
            self._ensure_loaded()
            print(f"[{self.name}] Initialized (model: {self.model_id})")
        except ModelLoadError as e:
            print(f"[{self.name}] Failed to preload: {e}")

    def transcribe(self, request: TranscriptionRequest, timeout: float) -> str:
        start = time.time()
        try:
            handle = self._ensure_loaded()
        except ModelLoadError as e:
            raise BackendError(self.name, str(e)) from e

        if not request.language_hint:
            request = TranscriptionRequest(
                samples=request.samples,
                language_hint=self.default_language,
                recognition_hints=request.recognition_hints,
                wav_bytes=request.wav_bytes,
            )

        try:
            result = self.cache.transcribe(handle, request)
        except TranscriptionError as e:
            raise BackendError(self.name, str(e)) from e

        latency_ms = int((time.time() - start) * 1000)
        print(f"[{self.name}] {len(result.segments)} segments in {latency_ms}ms")
        return result.text

    def _ensure_loaded(self):
        handle = self.cache.resident
        if handle is not None and handle.is_loaded and handle.model_id == self.model_id:
            return handle
        return self.cache.load(self.model_id, self.model_path, self.use_gpu)

    def shutdown(self) -> None:
        """Unload model weights."""
        self.cache.shutdown()
        print(f"[{self.name}] Shutdown")
