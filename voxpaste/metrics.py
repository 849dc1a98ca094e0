"""
Dictation telemetry as JSON lines.

Events are queued from any thread (chain workers, paste timers, the
pipeline) and appended to metrics.jsonl by one background writer, so no
caller ever waits on disk I/O. The file is rolled over to metrics.jsonl.1
once it grows past max_bytes.

Usage:
    metrics = MetricsWriter(config.metrics_file)
    metrics.log("backend_attempt", backend="whisper-1", ok=True, latency_ms=812)
    metrics.shutdown()
"""

import json
import threading
import time
from pathlib import Path
from queue import Empty, Queue
from typing import Any, List, Optional


MAX_BYTES = 5 * 1024 * 1024
_STOP = object()


class MetricsWriter:
    """Single-writer JSONL sink fed by a queue."""

    def __init__(self, metrics_file: Path, max_bytes: int = MAX_BYTES):
        self.metrics_file = Path(metrics_file)
        self.max_bytes = max_bytes
        self._queue: Queue = Queue()
        self._closed = False
        self._write_lock = threading.Lock()
        self._writer_thread = threading.Thread(target=self._run, name="metrics-writer", daemon=True)
        self._writer_thread.start()

    def log(self, event: str, **fields: Any) -> None:
        """Queue one event. Never blocks; dropped after shutdown."""
        if self._closed:
            return
        self._queue.put({"ts": time.time(), "event": event, **fields})

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            batch = [item]
            stop = False
            while True:
                try:
                    nxt = self._queue.get_nowait()
                except Empty:
                    break
                if nxt is _STOP:
                    stop = True
                    break
                batch.append(nxt)
            self._append(batch)
            if stop:
                return

    def _append(self, batch: List[dict]) -> None:
        lines = "".join(json.dumps(entry, default=str) + "\n" for entry in batch)
        with self._write_lock:
            try:
                self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
                self._roll_if_needed()
                with open(self.metrics_file, "a") as f:
                    f.write(lines)
            except OSError as e:
                print(f"[metrics] Write failed, {len(batch)} events lost: {e}")

    def _roll_if_needed(self) -> None:
        try:
            size = self.metrics_file.stat().st_size
        except FileNotFoundError:
            return
        if size >= self.max_bytes:
            self.metrics_file.replace(self.metrics_file.with_name(self.metrics_file.name + ".1"))

    def shutdown(self, timeout: float = 2.0) -> None:
        """Write everything queued so far and stop the writer thread."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        self._writer_thread.join(timeout=timeout)


_metrics: Optional[MetricsWriter] = None


def get_metrics(metrics_file: Path) -> MetricsWriter:
    """Process-wide writer, created on first use."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsWriter(metrics_file)
    return _metrics


# Event helpers for the pipeline's per-dictation events

def log_transcription(
    metrics: MetricsWriter,
    dictation_id: str,
    backend: str,
    latency_ms: int,
    text: str,
    attempts: int,
    audio_duration_ms: int,
) -> None:
    """The chain produced text."""
    metrics.log(
        "transcription",
        dictation_id=dictation_id,
        backend=backend,
        latency_ms=latency_ms,
        chars=len(text),
        text=text[:200],
        attempts=attempts,
        audio_duration_ms=audio_duration_ms,
    )


def log_chain_failure(metrics: MetricsWriter, dictation_id: str, failures: List[dict]) -> None:
    metrics.log("chain_failed", dictation_id=dictation_id, failures=failures)


def log_dictation_complete(
    metrics: MetricsWriter,
    dictation_id: str,
    status: str,
    total_duration_ms: int,
    method: Optional[str],
    final_text: str,
) -> None:
    """End of one dictation, whatever the outcome."""
    metrics.log(
        "dictation_complete",
        dictation_id=dictation_id,
        status=status,
        total_duration_ms=total_duration_ms,
        method=method,
        final_text=final_text[:500],
    )
