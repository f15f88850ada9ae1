"""Audio file loading utilities."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Union

import librosa
import numpy as np

from bpmscan.analysis.models import AudioSampleBuffer

SUPPORTED_CONTENT_TYPES = {
    "audio/mpeg", "audio/mp3", "audio/wav", "audio/ogg", "audio/aac", "audio/flac",
}
SUPPORTED_EXTENSIONS = {".mp3", ".wav", ".ogg", ".aac", ".flac", ".m4a"}


def is_supported_audio_file(filename: str | None, content_type: str | None = None) -> bool:
    """Accept a file by MIME type or, failing that, by extension."""
    if content_type and content_type in SUPPORTED_CONTENT_TYPES:
        return True
    if not filename:
        return False
    return Path(filename).suffix.lower() in SUPPORTED_EXTENSIONS


def load_audio(
    file_path_or_buffer: Union[str, Path, BytesIO],
    sr: int | None = None,
) -> AudioSampleBuffer:
    """Decode an audio file or buffer, keeping every channel.

    Parameters
    ----------
    file_path_or_buffer:
        Path to an audio file or a BytesIO buffer containing audio data.
    sr:
        Target sample rate. ``None`` keeps the file's native rate.

    Returns
    -------
    AudioSampleBuffer
        Samples shaped ``(channels, n)``.
    """
    audio, sample_rate = librosa.load(file_path_or_buffer, sr=sr, mono=False)
    audio = np.asarray(audio, dtype=np.float32)
    if audio.ndim == 1:
        audio = audio.reshape(1, -1)
    return AudioSampleBuffer(samples=audio, sample_rate=int(sample_rate))
