"""
VoxPaste settings.

Sources, later ones winning:
    DEFAULT_CONFIG
    ./settings.json, then ~/.voxpaste/settings.json
    ./.env, then ~/.voxpaste/.env, then the process environment (API keys only)

Each dictation works from a ConfigSnapshot so edits made while it runs
don't leak into it.
"""

import copy
import json
import os
from pathlib import Path
from typing import Dict, Optional

from .types import ConfigSnapshot


DEFAULT_CONFIG = {
    # Chain, in priority order; the local model is the backstop
    "backends": ["gpt-4o-mini-transcribe", "gpt-4o-transcribe", "whisper-1", "local"],
    "cloud_timeout_seconds": 10.0,
    "local_timeout_seconds": 30.0,

    # Local model
    "local_model_id": "base.en",
    "local_model_path": "",  # Empty: <data_dir>/models/whisper/ggml-<id>.bin
    "use_gpu": True,

    # Recognition
    "language": "",
    "recognition_hints": [],

    # Output
    "copy_timeout_seconds": 0.2,
    "paste_timeout_seconds": 0.5,
    "clipboard_write_delay_seconds": 2.0,

    "metrics_enabled": True,
}

ENV_KEYS = {
    "OPENAI_API_KEY": "openai_api_key",
    "GROQ_API_KEY": "groq_api_key",
}

POSITIVE_KEYS = (
    "cloud_timeout_seconds",
    "local_timeout_seconds",
    "copy_timeout_seconds",
    "paste_timeout_seconds",
    "clipboard_write_delay_seconds",
)


def parse_env_file(path: Path) -> Dict[str, str]:
    """KEY=value pairs from a .env file; comments and junk lines skipped."""
    values = {}
    with open(path) as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip().strip("'\"")
    return values


def coerce(key: str, value):
    """Convert a settings.json value to the type of its default."""
    default = DEFAULT_CONFIG[key]
    if isinstance(default, list):
        if isinstance(value, str) or not isinstance(value, list):
            raise TypeError("expected a list")
        return [str(v) for v in value]
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise TypeError("expected true or false")
        return value
    value = type(default)(value)
    if key in POSITIVE_KEYS and value <= 0:
        raise ValueError("must be positive")
    return value


class Config:
    """
    Mutable settings for the running process.

    Usage:
        config = Config.load()
        snapshot = config.snapshot()
    """

    def __init__(self, data_dir: Optional[Path] = None):
        for key, default in DEFAULT_CONFIG.items():
            setattr(self, key, copy.deepcopy(default))

        self.openai_api_key: str = ""
        self.groq_api_key: str = ""

        self._set_data_dir(Path(data_dir) if data_dir else Path.home() / ".voxpaste")

    def _set_data_dir(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.models_dir = data_dir / "models" / "whisper"
        self.metrics_file = data_dir / "metrics.jsonl"
        self.settings_file = data_dir / "settings.json"
        self.env_file = data_dir / ".env"

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> "Config":
        """Build a Config from every source."""
        config = cls(data_dir)
        config.data_dir.mkdir(parents=True, exist_ok=True)

        for path in (Path("settings.json"), config.settings_file):
            if path.exists():
                config._apply_settings_file(path)

        for path in (Path(".env"), config.env_file):
            if path.exists():
                config._apply_env_file(path)
        for env_key, attr in ENV_KEYS.items():
            if os.getenv(env_key):
                setattr(config, attr, os.environ[env_key])

        return config

    def _apply_env_file(self, path: Path) -> None:
        try:
            values = parse_env_file(path)
        except OSError as e:
            print(f"[config] Could not read {path}: {e}")
            return
        for env_key, attr in ENV_KEYS.items():
            if env_key in values:
                setattr(self, attr, values[env_key])

    def _apply_settings_file(self, path: Path) -> None:
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"[config] Could not read {path}: {e}")
            return
        if not isinstance(data, dict):
            print(f"[config] Ignoring {path}: expected a JSON object")
            return

        for key, value in data.items():
            if key not in DEFAULT_CONFIG:
                print(f"[config] Unknown setting {key!r} in {path}")
                continue
            try:
                setattr(self, key, coerce(key, value))
            except (TypeError, ValueError) as e:
                print(f"[config] Ignoring {key}={value!r}: {e}")

    def save_settings(self) -> None:
        """Write every non-secret setting to ~/.voxpaste/settings.json."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = {key: getattr(self, key) for key in DEFAULT_CONFIG}
        with open(self.settings_file, "w") as f:
            json.dump(data, f, indent=2)

    def resolve_model_path(self) -> str:
        if self.local_model_path:
            return os.path.expanduser(self.local_model_path)
        return str(self.models_dir / f"ggml-{self.local_model_id}.bin")

    def snapshot(self) -> ConfigSnapshot:
        """Copy of the current values for one dictation."""
        return ConfigSnapshot(
            backends=list(self.backends),
            cloud_timeout_seconds=self.cloud_timeout_seconds,
            local_timeout_seconds=self.local_timeout_seconds,
            local_model_id=self.local_model_id,
            local_model_path=self.resolve_model_path(),
            use_gpu=self.use_gpu,
            language=self.language,
            recognition_hints=list(self.recognition_hints),
            copy_timeout_seconds=self.copy_timeout_seconds,
            paste_timeout_seconds=self.paste_timeout_seconds,
            clipboard_write_delay_seconds=self.clipboard_write_delay_seconds,
            openai_api_key=self.openai_api_key,
            groq_api_key=self.groq_api_key,
            metrics_enabled=self.metrics_enabled,
        )
