"""
Dictation pipeline: captured PCM -> transcription chain -> paste.

One dictation runs from key release to text in the focused app. Every
failure ends as a typed DictationOutcome; nothing escapes to the caller's
event loop.
"""

import threading
import time
from typing import Callable, List, Optional, Sequence, TYPE_CHECKING
from uuid import uuid4

from .audio import AudioBufferAdapter, PCMInput
from .chain import TranscriptionFallbackChain
from .errors import AllBackendsFailedError, NoFocusedInputError, PasteError
from .metrics import log_chain_failure, log_dictation_complete, log_transcription
from .model_cache import ModelCache
from .output import TextInjector, notify, play_busy_sound
from .providers import Backend
from .providers.groq import GroqBackend
from .providers.local import LocalWhisperBackend
from .providers.openai import DEFAULT_MODELS, OpenAIBackend
from .types import ConfigSnapshot, DictationOutcome, TranscriptionRequest

if TYPE_CHECKING:
    from .metrics import MetricsWriter


def build_backends(config: ConfigSnapshot, cache: Optional[ModelCache] = None) -> List[Backend]:
    """
    Build backends in the configured order.

    Cloud backends without an API key are skipped; the local backend is
    only added when a model cache is supplied.
    """
    backends: List[Backend] = []
    for name in config.backends:
        if name in DEFAULT_MODELS or name.startswith(("gpt-", "whisper-1")):
            if config.openai_api_key:
                backends.append(OpenAIBackend(config.openai_api_key, name, config.cloud_timeout_seconds))
            else:
                print(f"  Skipping {name}: no OPENAI_API_KEY")
        elif name == "groq":
            if config.groq_api_key:
                backends.append(GroqBackend(config.groq_api_key, timeout_s=config.cloud_timeout_seconds))
            else:
                print(f"  Skipping {name}: no GROQ_API_KEY")
        elif name == "local":
            if cache is not None:
                backends.append(LocalWhisperBackend(
                    cache,
                    config.local_model_id,
                    config.local_model_path,
                    use_gpu=config.use_gpu,
                    timeout_s=config.local_timeout_seconds,
                ))
        else:
            print(f"  Unknown backend: {name}")
    return backends


def build_chain(
    config: ConfigSnapshot,
    cache: Optional[ModelCache] = None,
    metrics: Optional["MetricsWriter"] = None,
) -> TranscriptionFallbackChain:
    """Chain for the given config (backends not yet initialized)."""
    return TranscriptionFallbackChain(build_backends(config, cache), metrics=metrics)


class DictationPipeline:
    """
    Runs one dictation at a time through adapter, chain and injector.

    Usage:
        pipeline = DictationPipeline(chain, TextInjector())
        pipeline.finalize(pcm_bytes, on_complete=handle_outcome)
    """

    def __init__(
        self,
        chain: TranscriptionFallbackChain,
        injector: TextInjector,
        adapter: Optional[AudioBufferAdapter] = None,
        language: Optional[str] = None,
        recognition_hints: Sequence[str] = (),
        metrics: Optional["MetricsWriter"] = None,
        notifier: Callable[[str], None] = notify,
    ):
        self.chain = chain
        self.injector = injector
        self.adapter = adapter if adapter is not None else AudioBufferAdapter()
        self.language = language or None
        self.recognition_hints = list(recognition_hints)
        self.metrics = metrics
        self.notifier = notifier

        self._active = False
        self._lock = threading.Lock()

    def is_busy(self) -> bool:
        """Check if a dictation is currently being processed."""
        with self._lock:
            return self._active

    def finalize(
        self,
        pcm16: PCMInput,
        on_complete: Optional[Callable[[DictationOutcome], None]] = None,
    ) -> Optional[threading.Thread]:
        """
        Process a recording in a background thread.

        Returns None (and plays the busy sound) if a dictation is already
        in flight.
        """
        with self._lock:
            if self._active:
                play_busy_sound()
                return None
            self._active = True

        thread = threading.Thread(
            target=self._finalize_impl,
            args=(pcm16, on_complete),
            daemon=True,
        )
        thread.start()
        return thread

    def _finalize_impl(
        self,
        pcm16: PCMInput,
        on_complete: Optional[Callable[[DictationOutcome], None]],
    ) -> None:
        try:
            outcome = self.process(pcm16)
        except Exception as e:
            print(f"[pipeline] Dictation crashed: {type(e).__name__}: {e}")
            self.notifier("Dictation failed")
            outcome = DictationOutcome(status="failed", error=e)
        finally:
            with self._lock:
                self._active = False

        if on_complete:
            on_complete(outcome)

    def process(self, pcm16: PCMInput) -> DictationOutcome:
        """Transcribe and paste one recording, synchronously."""
        dictation_id = str(uuid4())
        start = time.time()

        if len(pcm16) == 0:
            print("No audio recorded.")
            return self._complete(dictation_id, start, DictationOutcome(status="empty"))

        audio = self.adapter.normalize(pcm16)
        print(f"[Audio] {audio.duration_ms / 1000:.2f}s of audio")

        request = TranscriptionRequest(
            samples=audio.samples,
            language_hint=self.language,
            recognition_hints=self.recognition_hints,
            wav_bytes=audio.wav_bytes,
        )

        try:
            result = self.chain.transcribe(request)
        except AllBackendsFailedError as e:
            if self.metrics:
                log_chain_failure(
                    self.metrics,
                    dictation_id,
                    [{"backend": a.backend, "error": a.error} for a in e.attempts],
                )
            self.notifier("Transcription failed")
            return self._complete(dictation_id, start, DictationOutcome(
                status="failed", error=e, attempts=e.attempts,
            ))

        if self.metrics:
            log_transcription(
                self.metrics,
                dictation_id,
                backend=result.backend,
                latency_ms=result.latency_ms,
                text=result.text,
                attempts=len(result.attempts),
                audio_duration_ms=audio.duration_ms,
            )

        outcome = DictationOutcome(
            status="pasted",
            text=result.text,
            backend=result.backend,
            attempts=result.attempts,
        )

        try:
            method = self.injector.paste_fast(result.text)
        except NoFocusedInputError as e:
            outcome.status, outcome.error = "copied", e
            self.notifier("No text field focused - copied to clipboard")
        except PasteError as e:
            outcome.status, outcome.error = "copied", e
            self.notifier("Paste failed - copied to clipboard")
        else:
            if method is None:
                outcome.status = "empty"
            else:
                outcome.method = method.value

        return self._complete(dictation_id, start, outcome)

    def _complete(self, dictation_id: str, start: float, outcome: DictationOutcome) -> DictationOutcome:
        total_ms = int((time.time() - start) * 1000)
        print(f"[Output] {outcome.status} | {outcome.backend or '-'} | {total_ms / 1000:.2f}s total")
        if self.metrics:
            log_dictation_complete(
                self.metrics,
                dictation_id,
                status=outcome.status,
                total_duration_ms=total_ms,
                method=outcome.method,
                final_text=outcome.text,
            )
        return outcome

    def shutdown(self) -> None:
        """Cancel pending clipboard writes and shut the chain down."""
        self.injector.shutdown()
        self.chain.shutdown()
