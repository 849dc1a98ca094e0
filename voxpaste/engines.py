"""
Local inference engines used by the ModelCache.

An engine exposes three calls:
    init(path, use_gpu) -> context
    transcribe(context, samples, language, prompt) -> [RawSegment, ...]
    free(context)

Segment timestamps are in whisper's native 10ms units; the cache
scales them to milliseconds.
"""

import gc
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

import numpy as np


@dataclass
class RawSegment:
    """Segment as reported by the engine (t0/t1 in 10ms units)."""
    text: str
    t0: int
    t1: int


class InferenceEngine(Protocol):
    def init(self, path: str, use_gpu: bool) -> Any: ...

    def transcribe(
        self,
        context: Any,
        samples: np.ndarray,
        language: str,
        prompt: Optional[str],
    ) -> List[RawSegment]: ...

    def free(self, context: Any) -> None: ...


class WhisperCppEngine:
    """
    whisper.cpp via pywhispercpp.

    The model is loaded once by init() and kept in memory; the returned
    Model object is the native context. GPU offload (Metal/CoreML) is
    decided when pywhispercpp is built, so use_gpu only affects logging.
    """

    def __init__(self, n_threads: int = 4):
        self.n_threads = n_threads

    def init(self, path: str, use_gpu: bool) -> Any:
        from pywhispercpp.model import Model

        print(f"[whisper.cpp] Loading {path} (gpu={'on' if use_gpu else 'off'})")
        return Model(
            path,
            n_threads=self.n_threads,
            print_progress=False,
            print_realtime=False,
            print_timestamps=False,
            redirect_whispercpp_logs_to=None,
        )

    def transcribe(
        self,
        context: Any,
        samples: np.ndarray,
        language: str,
        prompt: Optional[str],
    ) -> List[RawSegment]:
        params = {
            "language": language,
            "suppress_blank": True,
            "single_segment": False,
        }
        if prompt:
            params["initial_prompt"] = prompt

        segments = context.transcribe(samples.astype(np.float32), **params)
        return [RawSegment(text=s.text, t0=int(s.t0), t1=int(s.t1)) for s in segments]

    def free(self, context: Any) -> None:
        # pywhispercpp releases the whisper context when the Model is collected
        del context
        gc.collect()
