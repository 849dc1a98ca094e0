"""
Error taxonomy for the dictation core.

Per-attempt errors (TranscriptionError, BackendError) are absorbed by the
fallback chain. Everything else reaches the caller.
"""

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .types import BackendAttempt


class VoxPasteError(Exception):
    """Base class for all dictation core errors."""


class ModelLoadError(VoxPasteError):
    """Model file missing, unreadable, or rejected by the inference engine."""


class TranscriptionError(VoxPasteError):
    """Local transcription failed (freed handle or engine failure)."""


class BackendError(VoxPasteError):
    """A single backend attempt failed."""

    def __init__(self, backend: str, reason: str):
        super().__init__(f"{backend}: {reason}")
        self.backend = backend
        self.reason = reason


class AllBackendsFailedError(VoxPasteError):
    """Every backend in the chain failed. Carries the ordered attempts."""

    def __init__(self, attempts: List["BackendAttempt"]):
        summary = "; ".join(f"{a.backend}: {a.error}" for a in attempts) or "no backends"
        super().__init__(f"All transcription backends failed ({summary})")
        self.attempts = list(attempts)


class PasteError(VoxPasteError):
    """Text could not be committed to the focused application."""


class NoFocusedInputError(PasteError):
    """Native paste is available but no editable field has focus."""

    def __init__(self, message: str = "No text input is focused"):
        super().__init__(message)


class CopyTimeoutError(PasteError):
    """Clipboard copy subprocess did not finish in time and was killed."""


class PasteTimeoutError(PasteError):
    """Paste keystroke subprocess did not finish in time and was killed."""


class PasteCommandError(PasteError):
    """Copy or paste subprocess exited with a non-zero status."""
