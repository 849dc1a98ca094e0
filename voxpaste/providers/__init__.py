"""
Transcription backends with lifecycle management.

Each backend holds its own state (HTTP session, SDK client, model cache)
and provides a consistent interface for the fallback chain.
"""

from abc import ABC, abstractmethod

from ..audio import encode_wav
from ..errors import BackendError
from ..types import TranscriptionRequest


class Backend(ABC):
    """
    Base class for transcription backends.

    Subclasses must implement:
    - initialize(): Create HTTP client / check model availability
    - transcribe(): Transcribe audio to text, raising BackendError on failure
    - shutdown(): Free resources
    """

    name: str = "base"
    timeout_s: float = 10.0

    def initialize(self) -> None:
        """Prepare the backend. Default: nothing to do."""

    @abstractmethod
    def transcribe(self, request: TranscriptionRequest, timeout: float) -> str:
        """
        Transcribe one request.

        Args:
            request: Audio plus language and recognition hints
            timeout: Seconds the chain will wait for this call

        Returns:
            Transcribed text (may be empty)

        Raises:
            BackendError: HTTP error, engine failure, missing credentials
        """

    def shutdown(self) -> None:
        """Free resources. Default: nothing to do."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def wav_for_upload(request: TranscriptionRequest) -> bytes:
    """WAV bytes for multipart upload, encoding from samples if the adapter didn't."""
    if request.wav_bytes:
        return request.wav_bytes
    return encode_wav(request.samples)


def require_key(backend: Backend, api_key: str) -> None:
    """Fail the attempt early when a cloud backend has no credentials."""
    if not api_key:
        raise BackendError(backend.name, "no API key configured")
