"""Audio preprocessing: mixdown, truncation and the bass low-pass."""

from __future__ import annotations

import numpy as np

from bpmscan.analysis.errors import InvalidInputError


def mix_down(samples: np.ndarray) -> np.ndarray:
    """Equal-weight downmix of ``(channels, n)`` samples to one mono array."""
    samples = np.asarray(samples)
    if samples.ndim != 2:
        raise InvalidInputError(f"Expected samples shaped (channels, n), got {samples.ndim}-D array")
    if samples.shape[0] == 0:
        raise InvalidInputError("Cannot mix down a buffer with no channels")
    return samples.astype(np.float64).mean(axis=0)


def truncate(audio: np.ndarray, sr: int, max_seconds: float) -> np.ndarray:
    """Keep only the leading *max_seconds* of audio."""
    max_samples = int(max_seconds * sr)
    return audio[:max_samples]


def low_pass_window(sr: int, cutoff_hz: float) -> int:
    """Moving-average window length (samples) for a cutoff frequency."""
    return max(1, int(round(sr / cutoff_hz)))


def low_pass_filter(
    audio: np.ndarray,
    sr: int,
    cutoff_hz: float = 150.0,
) -> np.ndarray:
    """Moving average of ``|audio|`` over a centered window.

    The window is ``round(sr / cutoff_hz)`` samples. Near the buffer edges it
    is clipped and the mean is taken over the samples that remain. Window
    sums come from differences of one running sum, so the cost is O(n)
    regardless of window length.

    Parameters
    ----------
    audio:
        Mono input signal.
    sr:
        Sample rate in Hz.
    cutoff_hz:
        Cutoff frequency in Hz. Defaults to 150 Hz (bass and kick drum).
    """
    n = len(audio)
    if n == 0:
        return np.zeros(0, dtype=np.float64)

    w = low_pass_window(sr, cutoff_hz)
    running = np.concatenate(([0.0], np.cumsum(np.abs(audio), dtype=np.float64)))

    idx = np.arange(n)
    starts = np.clip(idx - w // 2, 0, n)
    ends = np.clip(idx - w // 2 + w, 0, n)
    return (running[ends] - running[starts]) / (ends - starts)
