"""
Ordered transcription fallback chain.

Backends are tried one at a time in priority order (fast cloud models
first, local model last). The first non-empty text wins. A backend that
overruns its timeout is abandoned, not joined, so a hung request can
never hold up the rest of the chain.
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import List, Optional, Sequence, TYPE_CHECKING
import time

from .errors import AllBackendsFailedError, BackendError
from .providers import Backend
from .types import BackendAttempt, ChainResult, TranscriptionRequest

if TYPE_CHECKING:
    from .metrics import MetricsWriter


class TranscriptionFallbackChain:
    """
    Tries backends left to right until one yields text.

    Usage:
        chain = TranscriptionFallbackChain([
            OpenAIBackend(key, "gpt-4o-mini-transcribe"),
            OpenAIBackend(key, "whisper-1"),
            LocalWhisperBackend(cache, "base.en", path),
        ])
        result = chain.transcribe(request)
    """

    def __init__(
        self,
        backends: Sequence[Backend],
        metrics: Optional["MetricsWriter"] = None,
    ):
        names = [b.name for b in backends]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate backends in chain: {sorted(duplicates)}")

        self.backends: List[Backend] = list(backends)
        self.metrics = metrics

    @property
    def names(self) -> List[str]:
        return [b.name for b in self.backends]

    def initialize(self) -> None:
        """Initialize every backend (HTTP clients, model preload)."""
        for backend in self.backends:
            try:
                backend.initialize()
            except Exception as e:
                print(f"[chain] Failed to init {backend.name}: {e}")

    def transcribe(self, request: TranscriptionRequest) -> ChainResult:
        """
        Run the chain for one request.

        Returns:
            ChainResult from the first backend that produced text

        Raises:
            AllBackendsFailedError: every backend failed, with the attempt history
        """
        start = time.time()
        attempts: List[BackendAttempt] = []

        for step, backend in enumerate(self.backends, 1):
            print(f"[chain] Step {step}: trying {backend.name}...")
            attempt = self._attempt(backend, request)
            attempts.append(attempt)

            if self.metrics:
                self.metrics.log(
                    "backend_attempt",
                    backend=attempt.backend,
                    ok=attempt.ok,
                    error=attempt.error,
                    latency_ms=attempt.latency_ms,
                )

            if attempt.ok:
                latency_ms = int((time.time() - start) * 1000)
                print(f"[chain] Success with {backend.name} ({attempt.latency_ms}ms)")
                return ChainResult(
                    text=attempt.text,
                    backend=backend.name,
                    attempts=attempts,
                    latency_ms=latency_ms,
                )

            print(f"[chain] {backend.name} failed: {attempt.error}")

        print("[chain] All transcription backends failed")
        raise AllBackendsFailedError(attempts)

    def _attempt(self, backend: Backend, request: TranscriptionRequest) -> BackendAttempt:
        """Invoke one backend, turning every failure mode into a failed attempt."""
        start = time.time()
        timeout = backend.timeout_s

        def elapsed() -> int:
            return int((time.time() - start) * 1000)

        # Fresh worker per attempt; an abandoned call keeps its own thread
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"backend-{backend.name}")
        future = executor.submit(backend.transcribe, request, timeout)
        executor.shutdown(wait=False)
        try:
            text = future.result(timeout=timeout)
        except FutureTimeout:
            # Abandon: the worker finishes (or times out) on its own
            future.cancel()
            return BackendAttempt(backend.name, error=f"timed out after {timeout:.1f}s", latency_ms=elapsed())
        except BackendError as e:
            return BackendAttempt(backend.name, error=e.reason, latency_ms=elapsed())
        except Exception as e:
            return BackendAttempt(backend.name, error=f"{type(e).__name__}: {e}", latency_ms=elapsed())

        text = (text or "").strip()
        if not text:
            return BackendAttempt(backend.name, error="empty result", latency_ms=elapsed())
        return BackendAttempt(backend.name, text=text, latency_ms=elapsed())

    def shutdown(self) -> None:
        """Shutdown backends. Abandoned calls are left to finish on their own threads."""
        for backend in self.backends:
            try:
                backend.shutdown()
            except Exception as e:
                print(f"[chain] Error shutting down {backend.name}: {e}")
