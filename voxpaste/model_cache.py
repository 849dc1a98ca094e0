"""
Resident local model cache.

Keeps a single whisper context loaded across requests so only the first
dictation pays the load cost. Each handle carries its own lock: at most
one transcription runs per handle, and concurrent callers block in turn.
"""

import os
import re
import threading
import time
from enum import Enum
from typing import Any, List, Optional

from .engines import InferenceEngine, RawSegment, WhisperCppEngine
from .errors import ModelLoadError, TranscriptionError
from .types import Segment, TranscriptionRequest, TranscriptionResult


# whisper timestamps are centiseconds
TIMESTAMP_SCALE_MS = 10

SILENCE_TOKENS = re.compile(r"(?:\[BLANK_AUDIO\]|\[\s*Silence\s*\]|\(\s*Silence\s*\))", re.IGNORECASE)


def strip_silence_tokens(text: str) -> str:
    """Remove whisper's no-speech markers."""
    return SILENCE_TOKENS.sub("", text).strip()


class HandleState(str, Enum):
    LOADED = "loaded"
    FREED = "freed"


class ModelHandle:
    """
    Ownership of one native inference context.

    Created and freed only by ModelCache. The lock guards the context
    for the duration of a single transcribe or free call.
    """

    def __init__(self, model_id: str, path: str, context: Any):
        self.model_id = model_id
        self.path = path
        self.state = HandleState.LOADED
        self._context = context
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self.state is HandleState.LOADED

    def __repr__(self) -> str:
        return f"ModelHandle(model_id={self.model_id!r}, state={self.state.value})"


class ModelCache:
    """
    Owns the single resident local model.

    Loading a different model frees the current one first; whisper
    contexts are large enough that keeping two resident is not an option.

    Usage:
        cache = ModelCache()
        handle = cache.load("base.en", "/path/to/ggml-base.en.bin")
        result = cache.transcribe(handle, request)
        cache.free(handle)
    """

    def __init__(self, engine: Optional[InferenceEngine] = None):
        self.engine = engine if engine is not None else WhisperCppEngine()
        self._resident: Optional[ModelHandle] = None
        self._lock = threading.Lock()  # Guards the resident slot, not inference

    @property
    def resident(self) -> Optional[ModelHandle]:
        """The currently loaded handle, if any."""
        with self._lock:
            return self._resident

    def is_loaded(self, model_id: str) -> bool:
        """Check if the given model is the resident one."""
        handle = self.resident
        return handle is not None and handle.is_loaded and handle.model_id == model_id

    def load(self, model_id: str, path: str, use_gpu: bool = True) -> ModelHandle:
        """
        Load a model, evicting any other resident model.

        Args:
            model_id: Model identifier (e.g. "base.en")
            path: Resolved path to the model file
            use_gpu: Ask the engine for GPU offload

        Returns:
            The loaded handle (the existing one if already resident)

        Raises:
            ModelLoadError: file missing, unreadable, or rejected by the engine
        """
        with self._lock:
            current = self._resident
            if current is not None and current.is_loaded:
                if current.model_id == model_id and current.path == path:
                    return current

            # The resident model survives a request for a file we can't open
            if not os.path.isfile(path):
                raise ModelLoadError(f"Model file not found: {path}")
            if not os.access(path, os.R_OK):
                raise ModelLoadError(f"Model file not readable: {path}")

            if current is not None and current.is_loaded:
                print(f"[ModelCache] Evicting {current.model_id} to load {model_id}")
                self._free_handle(current)
            self._resident = None

            start = time.time()
            try:
                context = self.engine.init(path, use_gpu)
            except Exception as e:
                raise ModelLoadError(f"Failed to load model {model_id}: {e}") from e
            if context is None:
                raise ModelLoadError(f"Engine rejected model {model_id}: {path}")

            handle = ModelHandle(model_id, path, context)
            self._resident = handle

        elapsed_ms = int((time.time() - start) * 1000)
        print(f"[ModelCache] Model {model_id} loaded in {elapsed_ms}ms (gpu={use_gpu})")
        return handle

    def transcribe(self, handle: ModelHandle, request: TranscriptionRequest) -> TranscriptionResult:
        """
        Transcribe with the handle's context. Blocks while another call holds the handle.

        Returns:
            TranscriptionResult; no speech gives empty text and no segments

        Raises:
            TranscriptionError: handle freed, or engine failure
        """
        if not handle.is_loaded:
            raise TranscriptionError(f"Model {handle.model_id} has been freed")

        with handle._lock:
            # Re-check: a free() may have won the lock while we waited
            if not handle.is_loaded or handle._context is None:
                raise TranscriptionError(f"Model {handle.model_id} has been freed")

            language = request.language_hint or "en"
            try:
                raw = self.engine.transcribe(
                    handle._context,
                    request.samples,
                    language,
                    request.hint_prompt,
                )
            except Exception as e:
                raise TranscriptionError(f"Transcription failed: {e}") from e

        segments = _to_segments(raw)
        text = "".join(s.text for s in segments).strip()
        return TranscriptionResult(text=text, segments=segments)

    def free(self, handle: ModelHandle) -> None:
        """Release the handle's context. Safe to call more than once."""
        with self._lock:
            self._free_handle(handle)
            if self._resident is handle:
                self._resident = None

    def shutdown(self) -> None:
        """Free the resident model, if any."""
        handle = self.resident
        if handle is not None:
            self.free(handle)

    def _free_handle(self, handle: ModelHandle) -> None:
        """Must be called with the cache lock held."""
        with handle._lock:
            if not handle.is_loaded:
                return
            context, handle._context = handle._context, None
            handle.state = HandleState.FREED
            try:
                self.engine.free(context)
            finally:
                del context
        print(f"[ModelCache] Model {handle.model_id} freed")


def _to_segments(raw: List[RawSegment]) -> List[Segment]:
    """Scale engine timestamps to ms and drop segments that are only silence markers."""
    segments = []
    for seg in raw:
        text = strip_silence_tokens(seg.text or "")
        if not text:
            continue
        # Keep the engine's leading space so joined text reads naturally
        if seg.text.startswith(" "):
            text = " " + text
        segments.append(Segment(
            text=text,
            start_ms=int(seg.t0) * TIMESTAMP_SCALE_MS,
            end_ms=int(seg.t1) * TIMESTAMP_SCALE_MS,
        ))
    return segments
