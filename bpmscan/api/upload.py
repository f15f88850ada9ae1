"""File upload endpoints for tempo analysis."""

import logging
import os
import tempfile
from pathlib import Path

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from bpmscan.analysis.engine import analyze_file
from bpmscan.analysis.models import AnalysisResult
from bpmscan.api.schemas import AnalysisResponse, FileAnalysisResponse, result_to_response
from bpmscan.audio.loader import SUPPORTED_EXTENSIONS, is_supported_audio_file
from bpmscan.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(file: UploadFile) -> bytes:
    """Read an upload, rejecting unsupported formats and oversized files."""
    if not is_supported_audio_file(file.filename, file.content_type):
        raise HTTPException(
            400, f"Unsupported format. Use: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        )
    content = await file.read()
    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(400, f"File too large (max {settings.max_upload_mb} MB)")
    return content


def _analyze_bytes(content: bytes, filename: str | None) -> AnalysisResult:
    # Decoders want a real path for some formats.
    suffix = Path(filename).suffix.lower() if filename else ""
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
            tmp.write(content)
            tmp_path = tmp.name
        return analyze_file(tmp_path)
    finally:
        if tmp_path:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_upload(file: UploadFile = File(...)):
    """Estimate the tempo of an uploaded audio file."""
    content = await _read_upload(file)
    try:
        result = await run_in_threadpool(_analyze_bytes, content, file.filename)
    except Exception:
        logger.exception(f"Analysis of upload {file.filename!r} failed")
        raise HTTPException(500, "Analysis failed")
    return result_to_response(result)


@router.post("/analyze/batch", response_model=list[FileAnalysisResponse])
async def analyze_upload_batch(files: list[UploadFile] = File(...)):
    """Estimate tempo for several uploads; one entry per file, in upload order."""
    responses = []
    for file in files:
        try:
            content = await _read_upload(file)
            result = result_to_response(
                await run_in_threadpool(_analyze_bytes, content, file.filename)
            )
        except HTTPException as e:
            result = AnalysisResponse(
                confidence=0.0,
                elapsed_time_ms=0.0,
                succeeded=False,
                error_description=e.detail,
                error_kind="invalid_input",
            )
        except Exception:
            logger.exception(f"Analysis of upload {file.filename!r} failed")
            result = AnalysisResponse(
                confidence=0.0,
                elapsed_time_ms=0.0,
                succeeded=False,
                error_description="Analysis failed",
                error_kind="internal",
            )
        responses.append(FileAnalysisResponse(filename=file.filename, result=result))
    return responses
