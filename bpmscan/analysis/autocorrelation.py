"""Fallback tempo estimation by envelope autocorrelation."""

import logging
import math

import numpy as np
from scipy.signal import correlate

from bpmscan.analysis.errors import InsufficientDataError
from bpmscan.analysis.models import BpmRange, TempoEstimate
from bpmscan.analysis.tempo import fold_into_range

logger = logging.getLogger(__name__)

AUTOCORR_CONFIDENCE_BASE = 0.35
AUTOCORR_CONFIDENCE_SCALE = 0.5
AUTOCORR_CONFIDENCE_CAP = 0.85


def lag_bounds(sr: int, hop: int, bpm_range: BpmRange, n_frames: int) -> tuple[int, int]:
    """Inclusive lag range (frames) implied by *bpm_range*, capped below half the envelope."""
    min_lag = max(1, math.floor(sr * 60 / (bpm_range.max * hop)))
    max_lag = math.floor(sr * 60 / (bpm_range.min * hop))
    # lag < n_frames / 2
    max_lag = min(max_lag, (n_frames - 1) // 2)
    return min_lag, max_lag


def normalized_autocorrelation(signal: np.ndarray, lags: np.ndarray) -> np.ndarray:
    """Normalized correlation of *signal* with itself shifted by each lag.

    ``corr(L) = sum(x[i] x[i+L]) / sqrt(sum(x[i]^2) * sum(x[i+L]^2))`` over
    the overlapping part ``i < n - L``.
    """
    n = len(signal)
    products = correlate(signal, signal, mode="full")[n - 1 + lags]
    energy = np.concatenate(([0.0], np.cumsum(signal ** 2)))
    head = energy[n - lags]
    tail = energy[n] - energy[lags]
    return products / (np.sqrt(head * tail) + 1e-10)


def estimate_by_autocorrelation(
    envelope: np.ndarray,
    sr: int,
    hop: int,
    bpm_range: BpmRange,
) -> TempoEstimate:
    """Pick the envelope period with the strongest self-similarity.

    Raises InsufficientDataError when the envelope is too short for any lag
    in range or carries no energy after mean-centring.
    """
    n = len(envelope)
    if n == 0:
        raise InsufficientDataError("Energy envelope is empty")

    min_lag, max_lag = lag_bounds(sr, hop, bpm_range, n)
    if max_lag < min_lag:
        raise InsufficientDataError(
            f"Envelope of {n} frames too short for lags {min_lag}+"
        )

    centred = np.asarray(envelope, dtype=np.float64) - float(np.mean(envelope))
    if np.max(np.abs(centred)) < 1e-9:
        raise InsufficientDataError("Energy envelope is flat")

    lags = np.arange(min_lag, max_lag + 1)
    corr = normalized_autocorrelation(centred, lags)

    best = int(np.argmax(corr))
    if corr[best] > 0:
        best_lag = int(lags[best])
        max_corr = float(corr[best])
    else:
        best_lag = min_lag
        max_corr = 0.0

    bpm = fold_into_range(60.0 / (best_lag * hop / sr), bpm_range)
    confidence = min(AUTOCORR_CONFIDENCE_CAP,
                     max_corr * AUTOCORR_CONFIDENCE_SCALE + AUTOCORR_CONFIDENCE_BASE)

    logger.debug(f"  Autocorrelation: lags {min_lag}-{max_lag}, best {best_lag} "
                 f"(corr={max_corr:.3f}), result {bpm:.1f}")
    return TempoEstimate(bpm=bpm, confidence=confidence, method="autocorrelation")
