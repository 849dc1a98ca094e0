"""
Shared type definitions for VoxPaste.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Sequence
import numpy as np


HINT_LABEL = "This audio may contain these terms: "


@dataclass
class TranscriptionRequest:
    """One utterance to transcribe (16kHz, mono, float32 in [-1, 1])."""
    samples: np.ndarray
    language_hint: Optional[str] = None
    recognition_hints: Sequence[str] = ()
    wav_bytes: Optional[bytes] = None   # Canonical WAV of the same audio, for uploads

    @property
    def hint_prompt(self) -> Optional[str]:
        """
        Recognition hints as a labelled vocabulary list.

        The same string goes to every backend. It lists terms only and is
        never combined with instructions.
        """
        terms = [t.strip() for t in self.recognition_hints if t and t.strip()]
        if not terms:
            return None
        return HINT_LABEL + ", ".join(terms)


@dataclass
class Segment:
    """A timed piece of transcribed text."""
    text: str
    start_ms: int
    end_ms: int


@dataclass
class TranscriptionResult:
    """Result from the local engine."""
    text: str
    segments: List[Segment] = field(default_factory=list)


@dataclass
class BackendAttempt:
    """Typed outcome of one backend call inside the fallback chain."""
    backend: str
    text: str = ""
    error: Optional[str] = None
    latency_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text.strip())


@dataclass
class ChainResult:
    """Text produced by the first successful backend, plus attempt history."""
    text: str
    backend: str
    attempts: List[BackendAttempt]
    latency_ms: int


@dataclass
class DictationOutcome:
    """
    What happened to one dictation.

    status:
        "pasted"  - text committed to the focused application
        "copied"  - paste failed, text left on the clipboard
        "failed"  - no transcription (or nothing could be done)
        "empty"   - audio produced no text to paste
    """
    status: str
    text: str = ""
    backend: Optional[str] = None
    error: Optional[Exception] = None
    attempts: List[BackendAttempt] = field(default_factory=list)
    method: Optional[str] = None


@dataclass
class ConfigSnapshot:
    """
    Immutable snapshot of configuration for a dictation.
    Ensures config changes mid-dictation don't cause inconsistency.
    """
    # Chain
    backends: List[str]
    cloud_timeout_seconds: float
    local_timeout_seconds: float

    # Local model
    local_model_id: str
    local_model_path: str
    use_gpu: bool

    # Recognition
    language: str
    recognition_hints: List[str]

    # Output
    copy_timeout_seconds: float
    paste_timeout_seconds: float
    clipboard_write_delay_seconds: float

    # API Keys
    openai_api_key: str
    groq_api_key: str

    # Metrics
    metrics_enabled: bool = True
