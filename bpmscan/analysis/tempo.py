"""Histogram tempo estimation over inter-onset intervals, plus octave/range folding."""

import logging
import math

import numpy as np

from bpmscan.analysis.models import BpmRange, TempoEstimate

logger = logging.getLogger(__name__)

HISTOGRAM_CONFIDENCE_BASE = 0.3
HISTOGRAM_CONFIDENCE_CAP = 0.95
# Half-tempo bin must hold more than this share of the dominant count.
HALF_TIME_SUPPORT = 0.7


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class TempoHistogram:
    """Greedy single-pass clustering of rounded BPM values.

    Each value joins the nearest existing bin whose key lies within
    *tolerance*; on equal distance the earlier bin wins. Otherwise it opens a
    new bin keyed by the value itself. Bin keys never move, so the result
    depends on insertion order. The confidence and half-time constants were
    tuned against exactly this policy; do not swap in a global clustering.
    """

    def __init__(self, tolerance: float = 2.0):
        self.tolerance = tolerance
        self.counts: dict[int, int] = {}  # insertion-ordered

    def find_bin(self, bpm: int) -> int | None:
        """Key of the bin that *bpm* would join, or None."""
        best_key = None
        best_dist = None
        for key in self.counts:
            dist = abs(key - bpm)
            if dist <= self.tolerance and (best_dist is None or dist < best_dist):
                best_key = key
                best_dist = dist
        return best_key

    def add(self, bpm: float) -> int:
        rounded = round_half_up(bpm)
        key = self.find_bin(rounded)
        if key is None:
            key = rounded
            self.counts[key] = 0
        self.counts[key] += 1
        return key

    def dominant(self) -> tuple[int, int]:
        """(key, count) of the fullest bin; the earliest bin wins ties."""
        best_key, best_count = None, 0
        for key, count in self.counts.items():
            if count > best_count:
                best_key, best_count = key, count
        return best_key, best_count

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def __len__(self) -> int:
        return len(self.counts)


def intervals_to_bpm(onsets: list[int], sr: int, hop: int) -> np.ndarray:
    """Convert consecutive onset frame gaps to BPM values."""
    if len(onsets) < 2:
        return np.zeros(0)
    intervals = np.diff(np.asarray(onsets, dtype=np.float64))
    seconds = intervals * hop / sr
    return 60.0 / seconds


def fold_into_range(bpm: float, bpm_range: BpmRange) -> float:
    """Move *bpm* by octaves into *bpm_range*.

    Halves while above the maximum and doubles while below the minimum. When
    the range is narrower than an octave and no octave of *bpm* fits, the
    value ends up below the range and is clipped to the minimum.
    """
    if bpm <= 0:
        return bpm_range.min
    while bpm > bpm_range.max:
        bpm /= 2
    while bpm < bpm_range.min and bpm * 2 <= bpm_range.max:
        bpm *= 2
    return min(max(bpm, bpm_range.min), bpm_range.max)


def finalize_bpm(bpm: float, bpm_range: BpmRange) -> int:
    """Round to a whole BPM that still lies inside *bpm_range*."""
    rounded = round_half_up(bpm)
    return min(max(rounded, math.ceil(bpm_range.min)), math.floor(bpm_range.max))


def correct_octave(
    dominant_bpm: float,
    dominant_count: int,
    histogram: TempoHistogram,
    bpm_range: BpmRange,
) -> float:
    """Prefer half tempo when its bin is nearly as full as the dominant one.

    Only the half-time direction is checked: the onset detector is far more
    likely to double a slow pulse than to halve a fast one.
    """
    half = dominant_bpm / 2
    if not bpm_range.contains(half):
        return dominant_bpm
    # exact key only; a neighbouring bin within tolerance does not count
    half_count = histogram.counts.get(round_half_up(half), 0)
    if half_count > dominant_count * HALF_TIME_SUPPORT:
        logger.debug(f"  Half-time correction: {dominant_bpm} -> {half} "
                     f"({half_count} vs {dominant_count})")
        return half
    return dominant_bpm


def estimate_from_onsets(
    onsets: list[int],
    sr: int,
    hop: int,
    bpm_range: BpmRange,
    tolerance: float = 2.0,
    min_intervals: int = 4,
    octave_correction: bool = True,
) -> TempoEstimate | None:
    """Estimate tempo from an onset-interval histogram.

    Returns None when fewer than *min_intervals* intervals fall inside
    *bpm_range*; the caller then falls back to autocorrelation.
    """
    bpms = intervals_to_bpm(onsets, sr, hop)
    valid = bpms[(bpms >= bpm_range.min) & (bpms <= bpm_range.max)]
    if len(valid) < min_intervals:
        logger.debug(f"  {len(valid)} valid intervals (< {min_intervals}), no histogram estimate")
        return None

    histogram = TempoHistogram(tolerance)
    for bpm in valid:
        histogram.add(float(bpm))

    dominant_bpm, dominant_count = histogram.dominant()
    confidence = min(HISTOGRAM_CONFIDENCE_CAP,
                     dominant_count / len(valid) + HISTOGRAM_CONFIDENCE_BASE)

    bpm = float(dominant_bpm)
    if octave_correction:
        bpm = correct_octave(bpm, dominant_count, histogram, bpm_range)
    bpm = fold_into_range(bpm, bpm_range)

    logger.debug(f"  Histogram: {len(histogram)} bins, dominant {dominant_bpm} "
                 f"({dominant_count}/{len(valid)}), result {bpm}")
    return TempoEstimate(bpm=bpm, confidence=confidence, method="histogram")
