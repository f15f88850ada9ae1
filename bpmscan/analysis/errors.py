"""Error taxonomy for the tempo pipeline.

These are raised inside the pipeline and converted into structured
``AnalysisResult`` values at the ``analyze`` boundary, so none of them
reach a caller of the engine.
"""


class AnalysisError(Exception):
    """Base class for pipeline failures."""
    kind = "internal"


class InvalidInputError(AnalysisError):
    """Malformed buffer: no channels, no samples, or a non-positive sample rate."""
    kind = "invalid_input"


class InsufficientDataError(AnalysisError):
    """Too little signal for any tempo estimate (short or silent envelope)."""
    kind = "insufficient_data"


class AnalysisCancelled(AnalysisError):
    """The caller's cancellation token was set between stages."""
    kind = "cancelled"
