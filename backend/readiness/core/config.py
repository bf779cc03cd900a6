"""Application configuration settings."""

import logging
import warnings
from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ReadinessDashboard"
    app_version: str = "0.1.0"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"

    # Windows
    rolling_window_days: int = 7
    baseline_exclude_recent_days: int = 7
    baseline_window_days: int = 30
    baseline_min_points: int = 7
    default_days_to_show: int = 30

    # Takeaway / trigger bands (single-day decision surface)
    takeaway_high_threshold: float = 75
    takeaway_moderate_threshold: float = 55

    # Status banner bands (coarser, chart reference lines)
    status_high_threshold: float = 67
    status_moderate_threshold: float = 34

    # Triggers
    readiness_shift_threshold: float = 10

    # Demo data
    demo_days: int = 90
    demo_seed: Optional[int] = None

    # Observability
    metrics_backend: Literal["inmemory", "prometheus"] = "inmemory"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Warns if either band system is configured with its moderate threshold
    at or above its high threshold.
    """
    settings = Settings()

    band_pairs = {
        "takeaway": (settings.takeaway_high_threshold, settings.takeaway_moderate_threshold),
        "status": (settings.status_high_threshold, settings.status_moderate_threshold),
    }
    for name, (high, moderate) in band_pairs.items():
        if moderate >= high:
            msg = (
                f"{name} band thresholds are misordered (moderate={moderate}, high={high}). "
                "The moderate band will never be reported."
            )
            logger.warning(msg)
            warnings.warn(msg, UserWarning, stacklevel=2)

    return settings
