"""Shared test fixtures for tempo analysis tests."""

import io

import numpy as np
import pytest
import soundfile as sf
from fastapi.testclient import TestClient

from bpmscan.main import app


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


def _click(sr: int) -> np.ndarray:
    """20ms decaying 1 kHz burst."""
    click_samples = int(0.02 * sr)
    t_click = np.arange(click_samples) / sr
    return np.sin(2 * np.pi * 1000 * t_click) * np.exp(-t_click * 100)


def generate_pulse_track(
    pulse_times: list[float],
    duration_seconds: float,
    sr: int = 44100,
) -> np.ndarray:
    """Mono audio with one click at each of *pulse_times* (seconds)."""
    n_samples = int(duration_seconds * sr)
    audio = np.zeros(n_samples, dtype=np.float32)
    click = _click(sr)

    for time in pulse_times:
        sample_pos = int(time * sr)
        end = min(sample_pos + len(click), n_samples)
        length = end - sample_pos
        if length > 0:
            audio[sample_pos:end] += click[:length]

    peak = np.max(np.abs(audio))
    if peak > 0:
        audio = audio / peak
    return audio


def generate_click_track(
    bpm: float,
    duration_seconds: float = 10.0,
    sr: int = 44100,
    start: float = 0.25,
) -> np.ndarray:
    """Generate a synthetic click track with one click every ``60 / bpm`` seconds.

    Returns mono audio at the given sample rate.
    """
    beat_interval = 60.0 / bpm
    times = []
    time = start
    while time < duration_seconds:
        times.append(time)
        time += beat_interval
    return generate_pulse_track(times, duration_seconds, sr)


def wav_bytes(audio: np.ndarray, sr: int = 44100) -> bytes:
    """Encode audio (mono or ``(n, channels)``) as WAV bytes."""
    buf = io.BytesIO()
    sf.write(buf, audio, sr, format="WAV")
    return buf.getvalue()


@pytest.fixture
def click_120():
    """Click track at 120 BPM."""
    return generate_click_track(bpm=120, duration_seconds=10)


@pytest.fixture
def silence_5s():
    """Five seconds of digital silence."""
    return np.zeros(5 * 44100, dtype=np.float32)
