"""
Main entry point for VoxPaste.

Run with: python -m voxpaste recording.wav

Transcribes a recording through the fallback chain and pastes the text
into the focused application. A push-to-talk host wires its own hotkey
and capture to DictationPipeline.finalize() instead.
"""

import argparse
import signal
import sys
import time
from typing import List, Optional

from .audio import load_wav_as_pcm16
from .config import Config
from .metrics import MetricsWriter, get_metrics
from .model_cache import ModelCache
from .output import TextInjector
from .pipeline import DictationPipeline, build_chain
from .types import TranscriptionRequest


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voxpaste",
        description="Transcribe a recording and paste it into the focused app.",
    )
    parser.add_argument("audio", help="Audio file (any format soundfile can read)")
    parser.add_argument(
        "--backends",
        nargs="+",
        default=None,
        help="Override backend order, e.g. whisper-1 local",
    )
    parser.add_argument("--language", default=None, help="Language hint (e.g. en)")
    parser.add_argument(
        "--hint",
        action="append",
        default=None,
        help="Recognition hint term (repeatable)",
    )
    parser.add_argument(
        "--no-paste",
        action="store_true",
        help="Print the transcription instead of pasting it",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)

    print("VoxPaste v1.0.0 starting...")

    # Load configuration
    config = Config.load()
    if args.backends:
        config.backends = args.backends
    if args.language:
        config.language = args.language
    if args.hint:
        config.recognition_hints = args.hint
    snapshot = config.snapshot()
    print(f"  Backends: {snapshot.backends}")

    metrics: Optional[MetricsWriter] = None
    if snapshot.metrics_enabled:
        metrics = get_metrics(config.metrics_file)

    cache = ModelCache()
    chain = build_chain(snapshot, cache, metrics)
    if not chain.backends:
        print("No usable backends (set OPENAI_API_KEY or add 'local').")
        return 2
    chain.initialize()

    injector = TextInjector(
        copy_timeout=snapshot.copy_timeout_seconds,
        paste_timeout=snapshot.paste_timeout_seconds,
        clipboard_delay=snapshot.clipboard_write_delay_seconds,
        metrics=metrics,
    )
    pipeline = DictationPipeline(
        chain,
        injector,
        language=snapshot.language,
        recognition_hints=snapshot.recognition_hints,
        metrics=metrics,
    )

    def _signal_handler(signum, frame):
        shutdown(pipeline, metrics)
        sys.exit(130)

    signal.signal(signal.SIGINT, _signal_handler)

    try:
        pcm = load_wav_as_pcm16(args.audio)
        if args.no_paste:
            audio = pipeline.adapter.normalize(pcm)
            result = chain.transcribe(TranscriptionRequest(
                samples=audio.samples,
                language_hint=snapshot.language or None,
                recognition_hints=snapshot.recognition_hints,
                wav_bytes=audio.wav_bytes,
            ))
            print(result.text)
            return 0

        outcome = pipeline.process(pcm)
        if outcome.status == "pasted":
            # Let the deferred clipboard write land before exiting
            time.sleep(snapshot.clipboard_write_delay_seconds + 0.1)
        if outcome.error:
            print(f"Error: {outcome.error}")
        return 0 if outcome.status in ("pasted", "empty") else 1
    except Exception as e:
        print(f"Error: {e}")
        return 1
    finally:
        shutdown(pipeline, metrics)


def shutdown(pipeline: DictationPipeline, metrics: Optional[MetricsWriter]) -> None:
    """Clean shutdown."""
    pipeline.shutdown()
    if metrics:
        metrics.shutdown()


if __name__ == "__main__":
    sys.exit(main())
