"""Tests for data models, configuration and cancellation."""

import dataclasses

import numpy as np
import pytest

from bpmscan.analysis.cancellation import CancellationToken
from bpmscan.analysis.errors import InvalidInputError
from bpmscan.analysis.models import AnalysisConfig, AudioSampleBuffer, BpmRange
from bpmscan.config import Settings


def test_buffer_from_mono():
    buffer = AudioSampleBuffer.from_mono(np.zeros(22050), 22050)
    assert buffer.channel_count == 1
    assert buffer.length == 22050
    assert buffer.duration == pytest.approx(1.0)
    assert buffer.samples.dtype == np.float32
    buffer.validate()


def test_buffer_from_channels_rejects_unequal_lengths():
    with pytest.raises(InvalidInputError, match="differ in length"):
        AudioSampleBuffer.from_channels([np.zeros(10), np.zeros(11)], 44100)


def test_buffer_from_no_channels_fails_validation():
    buffer = AudioSampleBuffer.from_channels([], 44100)
    assert buffer.channel_count == 0
    with pytest.raises(InvalidInputError):
        buffer.validate()


def test_default_config():
    config = AnalysisConfig()
    assert config.bpm_range == BpmRange(60, 180)
    assert config.low_pass_cutoff_hz == 150
    assert config.sample_window_seconds == 30
    assert config.onset_window_radius == 10
    assert config.onset_threshold_multiplier == 1.5
    assert config.tempo_grouping_tolerance_bpm == 2
    assert config.min_onset_intervals == 4
    assert config.octave_correction is True


def test_config_is_immutable():
    config = AnalysisConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.low_pass_cutoff_hz = 200


@pytest.mark.parametrize("kwargs", [
    {"low_pass_cutoff_hz": 0},
    {"sample_window_seconds": -1},
    {"onset_window_radius": 0},
    {"onset_threshold_multiplier": 0},
    {"tempo_grouping_tolerance_bpm": -0.5},
    {"min_onset_intervals": 0},
])
def test_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        AnalysisConfig(**kwargs)


@pytest.mark.parametrize("low, high", [(0, 100), (120, 120), (150, 100), (60.2, 60.8)])
def test_bpm_range_rejects_invalid_bounds(low, high):
    with pytest.raises(ValueError):
        BpmRange(low, high)


def test_bpm_range_helpers():
    bpm_range = BpmRange(80, 100)
    assert bpm_range.midpoint == 90
    assert bpm_range.contains(80) and bpm_range.contains(100)
    assert not bpm_range.contains(100.1)


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("BPMSCAN_MIN_BPM", "70")
    monkeypatch.setenv("BPMSCAN_MAX_BPM", "150")
    monkeypatch.setenv("BPMSCAN_OCTAVE_CORRECTION", "false")
    monkeypatch.setenv("BPMSCAN_MIN_ONSET_INTERVALS", "6")

    config = AnalysisConfig.from_settings(Settings())

    assert config.bpm_range == BpmRange(70, 150)
    assert config.octave_correction is False
    assert config.min_onset_intervals == 6


def test_cancellation_token():
    token = CancellationToken()
    assert not token.is_cancelled
    token.cancel()
    assert token.is_cancelled
    assert "cancelled=True" in repr(token)


def test_cancel_after_fires():
    token = CancellationToken()
    timer = token.cancel_after(0.01)
    timer.join(timeout=2)
    assert token.is_cancelled


def test_cancel_after_can_be_stopped():
    token = CancellationToken()
    timer = token.cancel_after(60)
    timer.cancel()
    timer.join(timeout=2)
    assert not token.is_cancelled
