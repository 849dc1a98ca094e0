"""
Audio buffer adapter.

Turns captured 16-bit PCM into the two shapes the backends need:
normalized float32 samples for the local engine and a canonical WAV
container for cloud uploads. Short utterances are zero-padded to the
engine's minimum duration.
"""

import io
from dataclasses import dataclass
from typing import Union

import numpy as np
import soundfile as sf


# Constants
SAMPLE_RATE = 16000
BYTES_PER_SAMPLE = 2  # 16-bit mono
MIN_DURATION_MS = 1100  # whisper drops very short utterances below this
INT16_SCALE = 32768.0

PCMInput = Union[bytes, bytearray, memoryview, np.ndarray]


@dataclass
class NormalizedAudio:
    """Both renditions of one utterance."""
    samples: np.ndarray      # float32 in [-1, 1]
    wav_bytes: bytes         # RIFF/WAVE, PCM_16, 16kHz mono
    duration_ms: int         # Duration of the input before padding
    padded: bool = False

    @property
    def num_samples(self) -> int:
        return len(self.samples)


def min_samples(sample_rate: int = SAMPLE_RATE, min_duration_ms: int = MIN_DURATION_MS) -> int:
    """Number of samples in the minimum duration (17 600 at 16kHz)."""
    return -(-min_duration_ms * sample_rate // 1000)


def pcm16_to_int16(pcm: PCMInput) -> np.ndarray:
    """View raw little-endian PCM16 as an int16 array. A dangling odd byte is dropped."""
    if isinstance(pcm, np.ndarray):
        return pcm.astype(np.int16, copy=False).ravel()

    data = bytes(pcm)
    usable = len(data) - (len(data) % BYTES_PER_SAMPLE)
    return np.frombuffer(data[:usable], dtype="<i2").astype(np.int16)


def pcm16_to_float32(pcm: PCMInput) -> np.ndarray:
    """Convert PCM16 to float32 samples (sample / 32768.0)."""
    return (pcm16_to_int16(pcm).astype(np.float32) / INT16_SCALE).astype(np.float32)


def encode_wav(audio: np.ndarray, sample_rate: int = SAMPLE_RATE) -> bytes:
    """
    Encode audio as WAV bytes (PCM_16, mono).

    Args:
        audio: int16 samples, or float samples in [-1, 1]

    Returns:
        WAV file contents
    """
    if audio.dtype != np.int16:
        audio = np.clip(audio, -1.0, 1.0)
        audio = (audio * 32767).astype(np.int16)

    buffer = io.BytesIO()
    sf.write(buffer, audio, sample_rate, format="WAV", subtype="PCM_16")
    buffer.seek(0)
    return buffer.getvalue()


def load_wav_as_pcm16(path: str, sample_rate: int = SAMPLE_RATE) -> bytes:
    """
    Read an audio file and return raw PCM16 at the target rate, mono.

    Used by the CLI; the core itself only consumes already-captured PCM.
    """
    audio, file_rate = sf.read(path, dtype="float32")

    # Convert to mono if stereo
    if audio.ndim > 1:
        audio = np.mean(audio, axis=1)

    if file_rate != sample_rate:
        from scipy import signal
        num_samples = int(len(audio) * sample_rate / file_rate)
        audio = signal.resample(audio, num_samples)

    audio = np.clip(audio, -1.0, 1.0)
    return (audio * 32767).astype("<i2").tobytes()


class AudioBufferAdapter:
    """
    Normalizes captured PCM for transcription.

    Usage:
        adapter = AudioBufferAdapter()
        audio = adapter.normalize(pcm_bytes)
        request = TranscriptionRequest(samples=audio.samples, wav_bytes=audio.wav_bytes)
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE, min_duration_ms: int = MIN_DURATION_MS):
        self.sample_rate = sample_rate
        self.min_duration_ms = min_duration_ms
        self._min_samples = min_samples(sample_rate, min_duration_ms)

    def pad(self, pcm: np.ndarray) -> np.ndarray:
        """Zero-pad int16 samples up to the minimum duration. Never truncates."""
        if len(pcm) >= self._min_samples:
            return pcm
        padded = np.zeros(self._min_samples, dtype=np.int16)
        padded[:len(pcm)] = pcm
        return padded

    def normalize(self, pcm16: PCMInput) -> NormalizedAudio:
        """
        Build float32 samples and WAV bytes from PCM16.

        Args:
            pcm16: 16kHz mono 16-bit PCM (bytes or int16 array)

        Returns:
            NormalizedAudio padded to at least the minimum duration
        """
        pcm = pcm16_to_int16(pcm16)
        duration_ms = int(round(len(pcm) * 1000 / self.sample_rate))

        padded = self.pad(pcm)
        was_padded = len(padded) != len(pcm)
        if was_padded:
            print(f"[audio] Audio too short ({duration_ms}ms), padding to {self.min_duration_ms}ms")

        samples = (padded.astype(np.float32) / INT16_SCALE).astype(np.float32)

        return NormalizedAudio(
            samples=samples,
            wav_bytes=encode_wav(padded, self.sample_rate),
            duration_ms=duration_ms,
            padded=was_padded,
        )
