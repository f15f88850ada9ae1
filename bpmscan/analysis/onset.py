"""Onset detection from an energy envelope using positive flux."""

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

# Keeps the threshold above zero so silence never yields onsets.
ONSET_EPSILON = 0.001


def spectral_flux(envelope: np.ndarray) -> np.ndarray:
    """Frame-to-frame positive energy change; ``flux[0]`` is 0."""
    flux = np.zeros(len(envelope), dtype=np.float64)
    if len(envelope) > 1:
        flux[1:] = np.maximum(0.0, np.diff(envelope))
    return flux


def adaptive_threshold(
    flux: np.ndarray,
    radius: int = 10,
    multiplier: float = 1.5,
) -> np.ndarray:
    """Local-median threshold for frames ``radius <= i < len - radius``.

    Returns an array aligned with *flux*; frames too close to either edge get
    ``inf`` so they can never be onsets.
    """
    threshold = np.full(len(flux), np.inf)
    if len(flux) < 2 * radius + 1:
        return threshold
    medians = np.median(sliding_window_view(flux, 2 * radius + 1), axis=1)
    threshold[radius:len(flux) - radius] = medians * multiplier + ONSET_EPSILON
    return threshold


def detect_onsets(
    envelope: np.ndarray,
    radius: int = 10,
    multiplier: float = 1.5,
) -> list[int]:
    """Detect onset frames in an energy envelope.

    A frame is an onset when its flux exceeds the adaptive threshold and is a
    peak: strictly above the previous frame and at least equal to the next.
    Of two equal adjacent peaks only the earlier one is kept.

    Returns ascending frame indices.
    """
    flux = spectral_flux(envelope)
    n = len(flux)
    if n < 2 * radius + 1:
        return []

    threshold = adaptive_threshold(flux, radius, multiplier)
    i = np.arange(radius, n - radius)
    above = flux[i] > threshold[i]
    rising = flux[i] > flux[i - 1]
    not_falling = flux[i] >= flux[i + 1]
    return [int(x) for x in i[above & rising & not_falling]]
