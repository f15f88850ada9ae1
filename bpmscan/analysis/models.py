"""Core data models for tempo analysis."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from bpmscan.analysis.cancellation import CancellationToken
from bpmscan.analysis.errors import InvalidInputError


@dataclass
class AudioSampleBuffer:
    """Decoded PCM audio, shaped ``(channels, samples)``.

    Construction does not validate; the engine calls :meth:`validate` so a
    malformed buffer is reported as a failed result instead of an exception.
    """
    samples: np.ndarray
    sample_rate: int

    @classmethod
    def from_mono(cls, audio: np.ndarray, sample_rate: int) -> AudioSampleBuffer:
        audio = np.asarray(audio, dtype=np.float32)
        return cls(samples=audio.reshape(1, -1), sample_rate=sample_rate)

    @classmethod
    def from_channels(cls, channels: list[np.ndarray], sample_rate: int) -> AudioSampleBuffer:
        lengths = {len(c) for c in channels}
        if len(lengths) > 1:
            raise InvalidInputError(f"Channels differ in length: {sorted(lengths)}")
        if not channels:
            samples = np.zeros((0, 0), dtype=np.float32)
        else:
            samples = np.stack([np.asarray(c, dtype=np.float32) for c in channels])
        return cls(samples=samples, sample_rate=sample_rate)

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[0]) if self.samples.ndim == 2 else 0

    @property
    def length(self) -> int:
        return int(self.samples.shape[-1]) if self.samples.ndim == 2 else 0

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.length / self.sample_rate

    def validate(self) -> None:
        """Raise InvalidInputError unless the buffer is structurally usable."""
        if self.samples.ndim != 2:
            raise InvalidInputError(
                f"Expected samples shaped (channels, n), got {self.samples.ndim}-D array"
            )
        if self.channel_count == 0:
            raise InvalidInputError("Buffer has no channels")
        if self.length == 0:
            raise InvalidInputError("Buffer has no samples")
        if self.sample_rate <= 0:
            raise InvalidInputError(f"Sample rate must be positive, got {self.sample_rate}")


@dataclass(frozen=True)
class BpmRange:
    """Inclusive BPM bounds."""
    min: float = 60.0
    max: float = 180.0

    def __post_init__(self):
        if self.min <= 0 or self.max <= 0:
            raise ValueError(f"BPM bounds must be positive, got {self.min}-{self.max}")
        if self.min >= self.max:
            raise ValueError(f"BPM range min must be below max, got {self.min}-{self.max}")
        if math.ceil(self.min) > math.floor(self.max):
            raise ValueError(f"BPM range {self.min}-{self.max} contains no whole BPM")

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2

    def contains(self, bpm: float) -> bool:
        return self.min <= bpm <= self.max


@dataclass(frozen=True)
class AnalysisConfig:
    """Tuning for a single analysis call."""
    bpm_range: BpmRange = field(default_factory=BpmRange)
    low_pass_cutoff_hz: float = 150.0
    sample_window_seconds: float = 30.0
    onset_window_radius: int = 10
    onset_threshold_multiplier: float = 1.5
    tempo_grouping_tolerance_bpm: float = 2.0
    # Fewer valid onset intervals than this routes to autocorrelation.
    min_onset_intervals: int = 4
    octave_correction: bool = True

    def __post_init__(self):
        if self.low_pass_cutoff_hz <= 0:
            raise ValueError("low_pass_cutoff_hz must be positive")
        if self.sample_window_seconds <= 0:
            raise ValueError("sample_window_seconds must be positive")
        if self.onset_window_radius < 1:
            raise ValueError("onset_window_radius must be at least 1")
        if self.onset_threshold_multiplier <= 0:
            raise ValueError("onset_threshold_multiplier must be positive")
        if self.tempo_grouping_tolerance_bpm < 0:
            raise ValueError("tempo_grouping_tolerance_bpm must not be negative")
        if self.min_onset_intervals < 1:
            raise ValueError("min_onset_intervals must be at least 1")

    @classmethod
    def from_settings(cls, settings) -> AnalysisConfig:
        """Build a config from :class:`bpmscan.config.Settings`."""
        return cls(
            bpm_range=BpmRange(settings.min_bpm, settings.max_bpm),
            low_pass_cutoff_hz=settings.low_pass_cutoff_hz,
            sample_window_seconds=settings.sample_window_seconds,
            onset_window_radius=settings.onset_window_radius,
            onset_threshold_multiplier=settings.onset_threshold_multiplier,
            tempo_grouping_tolerance_bpm=settings.tempo_grouping_tolerance_bpm,
            min_onset_intervals=settings.min_onset_intervals,
            octave_correction=settings.octave_correction,
        )


@dataclass(frozen=True)
class AnalysisContext:
    """Everything one pipeline run needs; nothing outlives the call."""
    buffer: AudioSampleBuffer
    config: AnalysisConfig
    cancel: CancellationToken | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_cancelled


@dataclass(frozen=True)
class TempoEstimate:
    """A BPM estimate from a single method, before final rounding."""
    bpm: float
    confidence: float  # 0.0-1.0
    method: str  # "histogram" | "autocorrelation" | "default"


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of analyzing one buffer."""
    bpm: int | None
    confidence: float
    elapsed_time_ms: float
    succeeded: bool
    error_description: str | None = None
    # "invalid_input" | "cancelled" | "decode_error" | "internal"
    error_kind: str | None = None
    method: str | None = None
