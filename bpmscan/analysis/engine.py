"""Analysis orchestrator - runs the tempo pipeline over one or many buffers.

Every entry point returns an ``AnalysisResult``; expected failures (malformed
buffers, cancellation, undecodable files) and unexpected ones alike are
reported in the result instead of being raised.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from bpmscan.analysis.autocorrelation import estimate_by_autocorrelation
from bpmscan.analysis.cancellation import CancellationToken
from bpmscan.analysis.envelope import hop_size, rms_envelope
from bpmscan.analysis.errors import (
    AnalysisCancelled,
    InsufficientDataError,
    InvalidInputError,
)
from bpmscan.analysis.models import (
    AnalysisConfig,
    AnalysisContext,
    AnalysisResult,
    AudioSampleBuffer,
    TempoEstimate,
)
from bpmscan.analysis.onset import detect_onsets
from bpmscan.analysis.tempo import estimate_from_onsets, finalize_bpm
from bpmscan.audio.loader import load_audio
from bpmscan.audio.preprocessing import low_pass_filter, mix_down, truncate
from bpmscan.config import settings

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"
# Reported for silent or too-short audio instead of failing.
INSUFFICIENT_DATA_CONFIDENCE = 0.3


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


def _failure(started: float, kind: str, description: str) -> AnalysisResult:
    return AnalysisResult(
        bpm=None,
        confidence=0.0,
        elapsed_time_ms=_elapsed_ms(started),
        succeeded=False,
        error_description=description,
        error_kind=kind,
    )


def _checkpoint(context: AnalysisContext, stage: str) -> None:
    if context.cancelled:
        logger.info(f"  Cancelled before {stage}")
        raise AnalysisCancelled(CANCELLED)
    logger.debug(f"Step: {stage}")


def _estimate(context: AnalysisContext) -> TempoEstimate:
    buffer, config = context.buffer, context.config

    _checkpoint(context, "validation")
    buffer.validate()
    sr = buffer.sample_rate

    _checkpoint(context, "mixdown")
    mono = mix_down(buffer.samples)

    _checkpoint(context, "truncation")
    mono = truncate(mono, sr, config.sample_window_seconds)

    _checkpoint(context, "low-pass filter")
    filtered = low_pass_filter(mono, sr, config.low_pass_cutoff_hz)

    _checkpoint(context, "envelope")
    envelope = rms_envelope(filtered, sr)
    hop = hop_size(sr)

    _checkpoint(context, "onset detection")
    onsets = detect_onsets(
        envelope,
        radius=config.onset_window_radius,
        multiplier=config.onset_threshold_multiplier,
    )
    logger.debug(f"  {len(envelope)} envelope frames, {len(onsets)} onsets")

    _checkpoint(context, "histogram tempo estimation")
    estimate = estimate_from_onsets(
        onsets,
        sr,
        hop,
        config.bpm_range,
        tolerance=config.tempo_grouping_tolerance_bpm,
        min_intervals=config.min_onset_intervals,
        octave_correction=config.octave_correction,
    )
    if estimate is not None:
        return estimate

    _checkpoint(context, "autocorrelation tempo estimation")
    return estimate_by_autocorrelation(envelope, sr, hop, config.bpm_range)


def analyze(
    buffer: AudioSampleBuffer,
    config: AnalysisConfig | None = None,
    cancel: CancellationToken | None = None,
) -> AnalysisResult:
    """Estimate the dominant tempo of one decoded buffer.

    The cancellation token is polled between stages only; a stage that has
    started always finishes. Never raises.
    """
    started = time.perf_counter()
    try:
        if config is None:
            config = AnalysisConfig.from_settings(settings)
        context = AnalysisContext(buffer=buffer, config=config, cancel=cancel)
        logger.info(f"Analyzing {buffer.duration:.1f}s of audio at {buffer.sample_rate}Hz "
                    f"({buffer.channel_count} channels)")
        estimate = _estimate(context)
    except AnalysisCancelled as e:
        return _failure(started, e.kind, CANCELLED)
    except InvalidInputError as e:
        logger.warning(f"Rejected audio buffer: {e}")
        return _failure(started, e.kind, str(e))
    except InsufficientDataError as e:
        logger.info(f"  Insufficient data ({e}), using range midpoint")
        estimate = TempoEstimate(
            bpm=config.bpm_range.midpoint,
            confidence=INSUFFICIENT_DATA_CONFIDENCE,
            method="default",
        )
    except Exception as e:
        logger.exception("Tempo analysis failed")
        return _failure(started, "internal", f"Analysis failed: {e}")

    result = AnalysisResult(
        bpm=finalize_bpm(estimate.bpm, config.bpm_range),
        confidence=estimate.confidence,
        elapsed_time_ms=_elapsed_ms(started),
        succeeded=True,
        method=estimate.method,
    )
    logger.info(f"  Tempo: {result.bpm} BPM (confidence: {result.confidence:.2f}, "
                f"{result.method}, {result.elapsed_time_ms:.0f}ms)")
    return result


def analyze_batch(
    buffers: list[AudioSampleBuffer],
    config: AnalysisConfig | None = None,
    cancel: CancellationToken | None = None,
    max_workers: int | None = None,
) -> list[AnalysisResult]:
    """Analyze several buffers, one result per input in input order.

    A failing buffer does not affect the others. With ``max_workers > 1``
    buffers are analyzed on a thread pool; each pipeline is independent.
    """
    workers = max_workers if max_workers is not None else settings.batch_workers
    logger.info(f"Batch of {len(buffers)} buffers ({workers} workers)")
    if workers <= 1 or len(buffers) < 2:
        return [analyze(b, config, cancel) for b in buffers]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(lambda b: analyze(b, config, cancel), buffers))


def analyze_file(
    file_path: str | Path,
    config: AnalysisConfig | None = None,
    cancel: CancellationToken | None = None,
    sr: int | None = None,
) -> AnalysisResult:
    """Decode an audio file and analyze it.

    Decode failures are reported as ``error_kind="decode_error"`` before the
    pipeline runs.
    """
    started = time.perf_counter()
    if cancel is not None and cancel.is_cancelled:
        return _failure(started, AnalysisCancelled.kind, CANCELLED)

    try:
        buffer = load_audio(file_path, sr=sr if sr is not None else settings.sample_rate)
    except Exception as e:
        logger.warning(f"Could not decode {file_path}: {e}")
        return _failure(started, "decode_error", f"Could not decode audio: {e}")

    return analyze(buffer, config, cancel)


def analyze_files(
    file_paths: list[str | Path],
    config: AnalysisConfig | None = None,
    cancel: CancellationToken | None = None,
) -> list[AnalysisResult]:
    """Decode and analyze files sequentially, one result per path."""
    return [analyze_file(p, config, cancel) for p in file_paths]
