"""Application configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings with env var overrides."""

    # Decoding (None keeps the file's native rate)
    sample_rate: int | None = None

    # Analysis
    min_bpm: float = 60.0
    max_bpm: float = 180.0
    low_pass_cutoff_hz: float = 150.0
    sample_window_seconds: float = 30.0  # only the leading N seconds are analyzed
    onset_window_radius: int = 10  # frames
    onset_threshold_multiplier: float = 1.5
    tempo_grouping_tolerance_bpm: float = 2.0
    min_onset_intervals: int = 4
    octave_correction: bool = True

    # Batch
    batch_workers: int = 1

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    max_upload_mb: int = 50
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    model_config = {"env_prefix": "BPMSCAN_"}


settings = Settings()
