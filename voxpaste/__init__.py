"""
VoxPaste - Push-to-talk dictation core.

This package provides:
- PCM normalization and padding for local and cloud transcription
- A resident local whisper model cache with per-handle locking
- An ordered fallback chain across cloud and local backends
- Smart spacing/capitalization between consecutive pastes
- Timeout-bounded text injection with clipboard reconciliation

Main entry point: python -m voxpaste
"""

__version__ = "1.0.0"
