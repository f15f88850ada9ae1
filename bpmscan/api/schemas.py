"""Pydantic response models for API."""

from pydantic import BaseModel


class AnalysisResponse(BaseModel):
    bpm: int | None = None
    confidence: float
    elapsed_time_ms: float
    succeeded: bool
    error_description: str | None = None
    error_kind: str | None = None
    method: str | None = None


class FileAnalysisResponse(BaseModel):
    filename: str | None = None
    result: AnalysisResponse


def result_to_response(result) -> AnalysisResponse:
    """Convert an AnalysisResult to its API model."""
    return AnalysisResponse(
        bpm=result.bpm,
        confidence=round(result.confidence, 3),
        elapsed_time_ms=round(result.elapsed_time_ms, 1),
        succeeded=result.succeeded,
        error_description=result.error_description,
        error_kind=result.error_kind,
        method=result.method,
    )
