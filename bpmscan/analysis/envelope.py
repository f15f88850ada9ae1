"""Coarse RMS energy envelope (~10 ms frames, 50% overlap)."""

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

FRAME_SECONDS = 0.01


def frame_size(sr: int) -> int:
    return max(1, int(round(sr * FRAME_SECONDS)))


def hop_size(sr: int) -> int:
    return max(1, frame_size(sr) // 2)


def rms_envelope(audio: np.ndarray, sr: int) -> np.ndarray:
    """Windowed RMS of *audio*.

    Frame ``k`` covers ``[k * hop, k * hop + frame)``. The envelope has
    ``(len(audio) - frame) // hop`` frames and is empty when the input is
    shorter than one frame.
    """
    frame = frame_size(sr)
    hop = hop_size(sr)
    n_frames = (len(audio) - frame) // hop if len(audio) >= frame else 0
    if n_frames <= 0:
        return np.zeros(0, dtype=np.float64)

    squared = np.square(np.asarray(audio, dtype=np.float64))
    windows = sliding_window_view(squared, frame)[::hop][:n_frames]
    return np.sqrt(windows.sum(axis=1) / frame)
