"""Tests for mixdown, low-pass filtering, envelope extraction and onset detection."""

import numpy as np
import pytest

from bpmscan.analysis.envelope import frame_size, hop_size, rms_envelope
from bpmscan.analysis.errors import InvalidInputError
from bpmscan.analysis.onset import ONSET_EPSILON, adaptive_threshold, detect_onsets, spectral_flux
from bpmscan.audio.preprocessing import low_pass_filter, low_pass_window, mix_down, truncate


def _naive_low_pass(audio: np.ndarray, w: int) -> np.ndarray:
    out = np.zeros(len(audio))
    for i in range(len(audio)):
        start = max(0, i - w // 2)
        end = min(len(audio), i - w // 2 + w)
        out[i] = np.mean(np.abs(audio[start:end]))
    return out


# ---------------------------------------------------------------------------
# Mixdown / truncation
# ---------------------------------------------------------------------------


def test_mix_down_averages_channels():
    samples = np.array([[1.0, 0.0, -1.0], [0.0, 0.5, 1.0]], dtype=np.float32)
    assert np.allclose(mix_down(samples), [0.5, 0.25, 0.0])


def test_mix_down_single_channel_is_identity():
    samples = np.array([[0.1, -0.2, 0.3]], dtype=np.float32)
    assert np.allclose(mix_down(samples), samples[0])


def test_mix_down_rejects_zero_channels():
    with pytest.raises(InvalidInputError):
        mix_down(np.zeros((0, 10)))


@pytest.mark.parametrize("shape", [(10,), (1, 2, 10)])
def test_mix_down_rejects_non_2d_samples(shape):
    with pytest.raises(InvalidInputError, match="channels, n"):
        mix_down(np.zeros(shape))


def test_truncate_keeps_leading_window():
    audio = np.arange(100.0)
    assert len(truncate(audio, sr=10, max_seconds=3)) == 30
    assert len(truncate(audio, sr=10, max_seconds=60)) == 100


# ---------------------------------------------------------------------------
# Low-pass filter
# ---------------------------------------------------------------------------


def test_low_pass_window_from_cutoff():
    assert low_pass_window(44100, 150) == 294
    assert low_pass_window(22050, 150) == 147
    assert low_pass_window(100, 1000) == 1  # clamped


def test_low_pass_matches_direct_window_mean():
    rng = np.random.default_rng(0)
    audio = rng.uniform(-1, 1, 500)
    for w_sr in (700, 1000, 1500):  # windows of 7, 10 and 15 samples at 100 Hz cutoff
        expected = _naive_low_pass(audio, low_pass_window(w_sr, 100))
        assert np.allclose(low_pass_filter(audio, w_sr, 100), expected)


def test_low_pass_of_constant_is_constant_including_edges():
    audio = np.full(1000, -0.5)
    out = low_pass_filter(audio, 44100, 150)
    assert out.shape == audio.shape
    assert np.allclose(out, 0.5)


def test_low_pass_empty_input():
    assert len(low_pass_filter(np.zeros(0), 44100)) == 0


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


def test_frame_and_hop_sizes():
    assert frame_size(44100) == 441
    assert hop_size(44100) == 220
    assert frame_size(50) == 1
    assert hop_size(50) == 1


def test_envelope_length_and_values():
    sr = 44100
    audio = np.full(sr, 0.5)
    env = rms_envelope(audio, sr)
    assert len(env) == (sr - 441) // 220
    assert np.allclose(env, 0.5)
    assert np.all(env >= 0)


def test_envelope_empty_when_shorter_than_frame():
    assert len(rms_envelope(np.ones(100), 44100)) == 0


def test_envelope_rms_of_frame():
    sr = 400  # frame 4, hop 2
    audio = np.array([1.0, 1.0, 0.0, 0.0, 2.0, 2.0, 0.0, 0.0, 0.0, 0.0])
    env = rms_envelope(audio, sr)
    assert len(env) == 3
    assert env[0] == pytest.approx(np.sqrt(2 / 4))
    assert env[1] == pytest.approx(np.sqrt(8 / 4))
    assert env[2] == pytest.approx(np.sqrt(8 / 4))


# ---------------------------------------------------------------------------
# Onsets
# ---------------------------------------------------------------------------


def test_flux_keeps_only_rises():
    flux = spectral_flux(np.array([0.0, 1.0, 0.5, 2.0]))
    assert np.allclose(flux, [0.0, 1.0, 0.0, 1.5])


def test_threshold_is_inf_near_edges():
    flux = np.zeros(30)
    threshold = adaptive_threshold(flux, radius=10)
    assert np.isinf(threshold[:10]).all()
    assert np.isinf(threshold[20:]).all()
    assert np.allclose(threshold[10:20], ONSET_EPSILON)


def test_detect_onsets_on_periodic_envelope():
    env = np.zeros(200)
    for start in range(20, 180, 40):
        env[start:start + 5] = [0.2, 1.0, 0.7, 0.4, 0.2]
    # flux peaks on the steepest rise, one frame into each block
    assert detect_onsets(env) == [21, 61, 101, 141]


def test_equal_adjacent_peaks_keep_earlier():
    env = np.array([0.0] * 20 + [1.0, 2.0] + [2.0] * 20)
    assert detect_onsets(env) == [20]


def test_silence_has_no_onsets():
    assert detect_onsets(np.zeros(500)) == []


def test_onsets_within_radius_of_edges_are_ignored():
    env = np.zeros(100)
    env[5:] = 1.0   # rise at frame 5, inside the leading radius
    env[95:] = 2.0  # rise at frame 95, inside the trailing radius
    assert detect_onsets(env, radius=10) == []


def test_short_envelope_has_no_onsets():
    assert detect_onsets(np.array([0.0, 1.0, 0.0]), radius=10) == []


def test_threshold_multiplier_suppresses_weak_peaks():
    env = np.zeros(100)
    env[50] = 0.01
    assert detect_onsets(env, multiplier=1.5) == [50]
    env[50] = 0.0005  # below the epsilon floor
    assert detect_onsets(env, multiplier=1.5) == []
